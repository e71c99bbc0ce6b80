"""
Typed error taxonomy shared by services and the HTTP layer.

Callers switch on ``MealGateError.kind``; message text is for humans only.
The allergen evaluator never raises for internal failures on a safety check
(it fails closed). ``EVALUATION_FAILURE`` reaches callers only from the
listing helpers, which cannot produce a verdict without their variant list.
``AUDIT_WRITE_FAILURE`` only ever appears in logs.
"""

from __future__ import annotations

import enum
from typing import Any, Optional

from fastapi import status


class ErrorKind(str, enum.Enum):
    NOT_FOUND = "NOT_FOUND"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    MISSING_TENANT_CONTEXT = "MISSING_TENANT_CONTEXT"
    MISSING_USER_CONTEXT = "MISSING_USER_CONTEXT"
    INVALID_SERVICE_TOKEN = "INVALID_SERVICE_TOKEN"
    ADMISSION_BLOCKED = "ADMISSION_BLOCKED"
    GATE_FAILURE = "GATE_FAILURE"
    OVERRIDE_NOT_RECORDED = "OVERRIDE_NOT_RECORDED"
    EVALUATION_FAILURE = "EVALUATION_FAILURE"
    AUDIT_WRITE_FAILURE = "AUDIT_WRITE_FAILURE"
    INTERNAL_ERROR = "INTERNAL_ERROR"


HTTP_STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.VALIDATION_ERROR: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_TRANSITION: status.HTTP_409_CONFLICT,
    ErrorKind.MISSING_TENANT_CONTEXT: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.MISSING_USER_CONTEXT: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.INVALID_SERVICE_TOKEN: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.ADMISSION_BLOCKED: status.HTTP_403_FORBIDDEN,
    ErrorKind.GATE_FAILURE: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorKind.EVALUATION_FAILURE: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorKind.OVERRIDE_NOT_RECORDED: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorKind.INTERNAL_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


class MealGateError(Exception):
    """Base class for every error the service reports to callers."""

    kind: ErrorKind = ErrorKind.INTERNAL_ERROR

    def __init__(self, message: str, payload: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.payload = payload or {}

    @property
    def status_code(self) -> int:
        return HTTP_STATUS_BY_KIND.get(self.kind, status.HTTP_500_INTERNAL_SERVER_ERROR)


class NotFoundError(MealGateError):
    kind = ErrorKind.NOT_FOUND

    def __init__(self, entity: str, entity_id: str) -> None:
        super().__init__(f"{entity} not found", {"entity": entity, "id": entity_id})
        self.entity = entity
        self.entity_id = entity_id


class ValidationFailed(MealGateError):
    kind = ErrorKind.VALIDATION_ERROR


class InvalidTransition(MealGateError):
    kind = ErrorKind.INVALID_TRANSITION


class MissingContext(MealGateError):
    def __init__(self, kind: ErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind


class InvalidServiceToken(MealGateError):
    kind = ErrorKind.INVALID_SERVICE_TOKEN


class GateFailure(MealGateError):
    """Hygiene/approval gate could not be evaluated; treated as not allowed."""

    kind = ErrorKind.GATE_FAILURE


class EvaluationFailure(MealGateError):
    """Allergen listing could not be evaluated; nothing is reported as safe."""

    kind = ErrorKind.EVALUATION_FAILURE


class AdmissionBlocked(MealGateError):
    """A consumer flow (attendance, meal choice) was refused by the gates."""

    kind = ErrorKind.ADMISSION_BLOCKED


def error_body(kind: ErrorKind, message: str, payload: Optional[dict[str, Any]] = None) -> dict:
    body: dict[str, Any] = {"detail": message, "code": kind.value}
    if payload:
        body["data"] = payload
    return body

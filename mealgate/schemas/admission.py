"""Pydantic schemas for gate decisions and admission-gated records."""

from __future__ import annotations

import enum
import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from mealgate.models.meal_service import AttendanceStatus
from mealgate.schemas.allergen import AllergenCheckResult


class Gate(str, enum.Enum):
    HYGIENE = "HYGIENE"
    APPROVAL = "APPROVAL"
    ALLERGEN = "ALLERGEN"


class AdmissionStatus(str, enum.Enum):
    ADMITTED = "ADMITTED"
    BLOCKED = "BLOCKED"
    BLOCKED_PENDING_OVERRIDE = "BLOCKED_PENDING_OVERRIDE"


class GateDecision(BaseModel):
    """Student-independent answer of the hygiene and approval gates."""

    allowed: bool
    reason: str
    gate: Optional[Gate] = None        # the gate that blocked, if any


class AdmissionDecision(BaseModel):
    """Composite verdict for serving one variant to one student right now."""

    allowed: bool
    status: AdmissionStatus
    blocked_by: Optional[Gate] = None
    reason: str
    serviceability: GateDecision
    allergen_check: Optional[AllergenCheckResult] = None


class AdmissionRequest(BaseModel):
    student_id: uuid.UUID
    variant_id: uuid.UUID


class AttendanceCreate(BaseModel):
    """Body for POST /meal-attendance — upserts on (student, meal)."""

    student_id: uuid.UUID
    meal_id: uuid.UUID
    variant_id: Optional[uuid.UUID] = None
    status: AttendanceStatus = AttendanceStatus.PRESENT
    attendance_date: Optional[date] = None


class AttendanceRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    student_id: str
    meal_id: str
    variant_id: Optional[str]
    status: AttendanceStatus
    attendance_date: date
    allergy_verified: bool
    override_id: Optional[str]
    updated_at: datetime


class MealChoiceCreate(BaseModel):
    student_id: uuid.UUID
    variant_id: uuid.UUID
    verification_notes: Optional[str] = None


class MealChoiceRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    student_id: str
    variant_id: str
    allergy_verified: bool
    override_id: Optional[str]
    verification_notes: Optional[str]
    created_at: datetime

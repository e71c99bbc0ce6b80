"""
Request-scoped FastAPI dependencies: inter-service auth, tenant context and
access to the process-wide services.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Header, Request

from mealgate.config import get_settings
from mealgate.errors import ErrorKind, InvalidServiceToken, MissingContext
from mealgate.services.container import Services


@dataclass(frozen=True)
class TenantContext:
    tenant_id: str
    user_id: Optional[str] = None

    def require_user(self) -> str:
        if not self.user_id:
            raise MissingContext(
                ErrorKind.MISSING_USER_CONTEXT, "X-User-ID header is required for this action"
            )
        return self.user_id


async def verify_service_token(
    x_service_token: Optional[str] = Header(None, alias="X-Service-Token"),
) -> None:
    """Verify that the inter-service token matches the configured secret."""
    if not x_service_token or x_service_token != get_settings().service_token:
        raise InvalidServiceToken("Invalid service token")


async def get_tenant_context(
    x_tenant_id: Optional[str] = Header(None, alias="X-Tenant-ID"),
    x_user_id: Optional[str] = Header(None, alias="X-User-ID"),
) -> TenantContext:
    """Tenant is mandatory on every call; the user only for actor actions."""
    tenant_id = (x_tenant_id or "").strip()
    if not tenant_id:
        raise MissingContext(ErrorKind.MISSING_TENANT_CONTEXT, "X-Tenant-ID header is required")
    user_id = (x_user_id or "").strip() or None
    return TenantContext(tenant_id=tenant_id, user_id=user_id)


def get_services(request: Request) -> Services:
    return request.app.state.services

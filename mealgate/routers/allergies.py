"""
Student allergy record endpoints — all protected by X-Service-Token header.
Verify and reject need the acting staff member in X-User-ID.
"""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from mealgate.database import get_db
from mealgate.dependencies import (
    TenantContext,
    get_services,
    get_tenant_context,
    verify_service_token,
)
from mealgate.schemas.allergy import (
    StudentAllergyCreate,
    StudentAllergyRead,
    VerifyAllergyRequest,
)
from mealgate.services.container import Services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/allergies", tags=["allergies"])


@router.post("", response_model=StudentAllergyRead, status_code=status.HTTP_201_CREATED)
async def create_allergy(
    body: StudentAllergyCreate,
    _: None = Depends(verify_service_token),
    ctx: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db),
    services: Services = Depends(get_services),
) -> StudentAllergyRead:
    """Submit a claimed allergy. It has no effect on meal safety until verified."""
    record = await services.registry.create(db, body, ctx.tenant_id)
    return StudentAllergyRead.model_validate(record)


@router.get("/students/{student_id}", response_model=list[StudentAllergyRead])
async def list_student_allergies(
    student_id: UUID,
    include_inactive: bool = Query(False),
    _: None = Depends(verify_service_token),
    ctx: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db),
    services: Services = Depends(get_services),
) -> list[StudentAllergyRead]:
    await services.registry.require_student(db, str(student_id), ctx.tenant_id)
    records = await services.registry.list_for_student(
        db, str(student_id), ctx.tenant_id, include_inactive=include_inactive
    )
    return [StudentAllergyRead.model_validate(r) for r in records]


@router.post("/{record_id}/verify", response_model=StudentAllergyRead)
async def verify_allergy(
    record_id: UUID,
    body: VerifyAllergyRequest,
    _: None = Depends(verify_service_token),
    ctx: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db),
    services: Services = Depends(get_services),
) -> StudentAllergyRead:
    record = await services.registry.verify(
        db, str(record_id), body, ctx.require_user(), ctx.tenant_id
    )
    return StudentAllergyRead.model_validate(record)


@router.post("/{record_id}/reject", response_model=StudentAllergyRead)
async def reject_allergy(
    record_id: UUID,
    _: None = Depends(verify_service_token),
    ctx: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db),
    services: Services = Depends(get_services),
) -> StudentAllergyRead:
    record = await services.registry.reject(
        db, str(record_id), ctx.require_user(), ctx.tenant_id
    )
    return StudentAllergyRead.model_validate(record)


@router.post("/{record_id}/deactivate", response_model=StudentAllergyRead)
async def deactivate_allergy(
    record_id: UUID,
    _: None = Depends(verify_service_token),
    ctx: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db),
    services: Services = Depends(get_services),
) -> StudentAllergyRead:
    record = await services.registry.deactivate(db, str(record_id), ctx.tenant_id)
    return StudentAllergyRead.model_validate(record)

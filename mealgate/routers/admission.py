"""
Admission endpoints — all protected by X-Service-Token header.

/admission/check is a read-only verdict. /meal-attendance and /meal-choices
write records only when admission allows it, and answer 403 with code
ADMISSION_BLOCKED (the full decision under "data") otherwise.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from mealgate.database import get_db
from mealgate.dependencies import (
    TenantContext,
    get_services,
    get_tenant_context,
    verify_service_token,
)
from mealgate.schemas.admission import (
    AdmissionDecision,
    AdmissionRequest,
    AttendanceCreate,
    AttendanceRead,
    MealChoiceCreate,
    MealChoiceRead,
)
from mealgate.services.container import Services

logger = logging.getLogger(__name__)

router = APIRouter(tags=["admission"])


@router.post("/admission/check", response_model=AdmissionDecision)
async def admission_check(
    body: AdmissionRequest,
    _: None = Depends(verify_service_token),
    ctx: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db),
    services: Services = Depends(get_services),
) -> AdmissionDecision:
    return await services.admission.admit_student(
        db, str(body.student_id), str(body.variant_id), ctx.tenant_id
    )


@router.post("/meal-attendance", response_model=AttendanceRead)
async def mark_attendance(
    body: AttendanceCreate,
    _: None = Depends(verify_service_token),
    ctx: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db),
    services: Services = Depends(get_services),
) -> AttendanceRead:
    record = await services.meals.mark_attendance(db, body, ctx.tenant_id)
    return AttendanceRead.model_validate(record)


@router.post(
    "/meal-choices", response_model=MealChoiceRead, status_code=status.HTTP_201_CREATED
)
async def create_meal_choice(
    body: MealChoiceCreate,
    _: None = Depends(verify_service_token),
    ctx: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db),
    services: Services = Depends(get_services),
) -> MealChoiceRead:
    choice = await services.meals.create_meal_choice(db, body, ctx.tenant_id)
    return MealChoiceRead.model_validate(choice)

"""
Kitchen hygiene endpoints — all protected by X-Service-Token header.

GET /kitchens/{id}/can-serve answers 200 either way; "allowed" carries the
verdict and "reason" says why.
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
from mealgate.errors import NotFoundError
from mealgate.schemas.admission import GateDecision
from mealgate.schemas.hygiene import (
    ComplianceReport,
    CorrectionRequest,
    HygieneCheckCreate,
    HygieneCheckRead,
)
from mealgate.services.container import Services

logger = logging.getLogger(__name__)

router = APIRouter(tags=["hygiene"])


@router.get("/kitchens/{kitchen_id}/can-serve", response_model=GateDecision)
async def can_kitchen_serve(
    kitchen_id: UUID,
    _: None = Depends(verify_service_token),
    ctx: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db),
    services: Services = Depends(get_services),
) -> GateDecision:
    return await services.admission.can_kitchen_serve(db, str(kitchen_id), ctx.tenant_id)


@router.post(
    "/kitchens/{kitchen_id}/hygiene-checks",
    response_model=HygieneCheckRead,
    status_code=status.HTTP_201_CREATED,
)
async def record_hygiene_check(
    kitchen_id: UUID,
    body: HygieneCheckCreate,
    _: None = Depends(verify_service_token),
    ctx: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db),
    services: Services = Depends(get_services),
) -> HygieneCheckRead:
    """Record today's (or a dated) inspection; score and status are computed."""
    check = await services.hygiene.record_check(db, str(kitchen_id), body, ctx.tenant_id)
    return HygieneCheckRead.model_validate(check)


@router.get("/kitchens/{kitchen_id}/hygiene-checks/today", response_model=HygieneCheckRead)
async def today_hygiene_check(
    kitchen_id: UUID,
    _: None = Depends(verify_service_token),
    ctx: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db),
    services: Services = Depends(get_services),
) -> HygieneCheckRead:
    check = await services.hygiene.today_check(db, str(kitchen_id), ctx.tenant_id)
    if check is None:
        raise NotFoundError("Hygiene check for today", str(kitchen_id))
    return HygieneCheckRead.model_validate(check)


@router.get("/kitchens/{kitchen_id}/hygiene-compliance", response_model=ComplianceReport)
async def hygiene_compliance(
    kitchen_id: UUID,
    months: int = Query(3, ge=1, le=24),
    _: None = Depends(verify_service_token),
    ctx: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db),
    services: Services = Depends(get_services),
) -> ComplianceReport:
    return await services.hygiene.compliance_report(
        db, str(kitchen_id), ctx.tenant_id, months=months
    )


@router.post("/hygiene-checks/{check_id}/correction", response_model=HygieneCheckRead)
async def record_correction(
    check_id: UUID,
    body: CorrectionRequest,
    _: None = Depends(verify_service_token),
    ctx: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db),
    services: Services = Depends(get_services),
) -> HygieneCheckRead:
    check = await services.hygiene.record_correction(
        db, str(check_id), body.correction_status, ctx.tenant_id
    )
    return HygieneCheckRead.model_validate(check)

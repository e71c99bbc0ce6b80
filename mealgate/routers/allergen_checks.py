"""
Allergen safety endpoints — all protected by X-Service-Token header.
Called by the Backend before any meal is chosen, marked or served.

An evaluated verdict is always 200, safe or not. 404 means the student or
variant does not exist; it never means "unsafe".
"""

from __future__ import annotations

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from mealgate.database import get_db
from mealgate.dependencies import (
    TenantContext,
    get_services,
    get_tenant_context,
    verify_service_token,
)
from mealgate.errors import ErrorKind, error_body
from mealgate.schemas.allergen import (
    AllergenCheckLogRead,
    AllergenCheckResult,
    BatchCheckRequest,
    BatchCheckResponse,
    CheckVariantRequest,
    MealVariantSafety,
    OverrideOutcome,
    OverrideRead,
    OverrideRequest,
    SafeVariant,
)
from mealgate.services.container import Services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/allergen-checks", tags=["allergen-checks"])


# ── Checks ───────────────────────────────────────────────────────────────────


@router.post("/check", response_model=AllergenCheckResult)
async def check_variant(
    body: CheckVariantRequest,
    _: None = Depends(verify_service_token),
    ctx: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db),
    services: Services = Depends(get_services),
) -> AllergenCheckResult:
    """Is this variant safe for this student? Fails closed."""
    return await services.evaluator.check_variant(
        db, str(body.student_id), str(body.variant_id), ctx.tenant_id
    )


@router.post("/batch", response_model=BatchCheckResponse)
async def check_variants_batch(
    body: BatchCheckRequest,
    _: None = Depends(verify_service_token),
    ctx: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db),
    services: Services = Depends(get_services),
) -> BatchCheckResponse:
    """
    One result per requested variant, in request order. Unknown variants come
    back as outcome=NOT_FOUND items; an unknown student is a 404.
    """
    results = await services.evaluator.check_variants(
        db, str(body.student_id), [str(v) for v in body.variant_ids], ctx.tenant_id
    )
    safe_count = sum(1 for r in results if r.safe)
    return BatchCheckResponse(
        total=len(results),
        safe=safe_count,
        unsafe=len(results) - safe_count,
        results=results,
    )


@router.get("/students/{student_id}/safe-variants", response_model=list[SafeVariant])
async def list_safe_variants(
    student_id: UUID,
    _: None = Depends(verify_service_token),
    ctx: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db),
    services: Services = Depends(get_services),
) -> list[SafeVariant]:
    return await services.evaluator.list_safe_variants(db, str(student_id), ctx.tenant_id)


@router.get(
    "/students/{student_id}/meals/{meal_id}/variants",
    response_model=list[MealVariantSafety],
)
async def variants_for_meal(
    student_id: UUID,
    meal_id: UUID,
    _: None = Depends(verify_service_token),
    ctx: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db),
    services: Services = Depends(get_services),
) -> list[MealVariantSafety]:
    """Every variant of the meal, annotated for the serving counter."""
    return await services.evaluator.variants_for_meal(
        db, str(student_id), str(meal_id), ctx.tenant_id
    )


@router.get("/history", response_model=list[AllergenCheckLogRead])
async def audit_history(
    student_id: Optional[UUID] = Query(None),
    limit: int = Query(100, ge=1),
    _: None = Depends(verify_service_token),
    ctx: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db),
    services: Services = Depends(get_services),
) -> list[AllergenCheckLogRead]:
    """Most recent checks first. limit is capped at AUDIT_HISTORY_MAX_LIMIT."""
    rows = await services.audit_log.history(
        db, ctx.tenant_id, str(student_id) if student_id else None, limit
    )
    return [AllergenCheckLogRead.model_validate(r) for r in rows]


# ── Overrides ────────────────────────────────────────────────────────────────


@router.post("/overrides", response_model=OverrideOutcome, status_code=status.HTTP_201_CREATED)
async def record_override(
    body: OverrideRequest,
    _: None = Depends(verify_service_token),
    ctx: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db),
    services: Services = Depends(get_services),
):
    """
    Record a manager override for a SEVERE conflict. The manager is the
    X-User-ID caller. ANAPHYLAXIS conflicts are never overridable.
    """
    outcome = await services.overrides.record_override(
        db,
        body.student_id,
        body.variant_id,
        ctx.require_user(),
        body.reason,
        ctx.tenant_id,
    )
    if not outcome.success:
        kind = ErrorKind.OVERRIDE_NOT_RECORDED
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_body(kind, outcome.message, outcome.model_dump()),
            headers={"X-Error-Code": kind.value},
        )
    return outcome


@router.get("/overrides", response_model=list[OverrideRead])
async def list_overrides(
    student_id: Optional[UUID] = Query(None),
    _: None = Depends(verify_service_token),
    ctx: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db),
    services: Services = Depends(get_services),
) -> list[OverrideRead]:
    rows = await services.overrides.list_overrides(
        db, ctx.tenant_id, str(student_id) if student_id else None
    )
    return [OverrideRead.model_validate(r) for r in rows]

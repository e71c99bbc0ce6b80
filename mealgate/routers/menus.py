"""
Menu serving and approval endpoints — all protected by X-Service-Token
header. Approval actions need the acting manager in X-User-ID.
"""

from __future__ import annotations

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from mealgate.database import get_db
from mealgate.dependencies import (
    TenantContext,
    get_services,
    get_tenant_context,
    verify_service_token,
)
from mealgate.schemas.admission import GateDecision
from mealgate.schemas.approval import (
    ApproveRequest,
    MenuApprovalRead,
    MenuSubmitRequest,
    RejectRequest,
)
from mealgate.services.container import Services

logger = logging.getLogger(__name__)

router = APIRouter(tags=["menus"])


# ── Serving ──────────────────────────────────────────────────────────────────


@router.get("/menus/{menu_id}/can-serve", response_model=GateDecision)
async def can_menu_serve(
    menu_id: UUID,
    _: None = Depends(verify_service_token),
    ctx: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db),
    services: Services = Depends(get_services),
) -> GateDecision:
    """Kitchen hygiene for today first, then menu approval."""
    return await services.admission.can_menu_serve(db, str(menu_id), ctx.tenant_id)


# ── Approval workflow ────────────────────────────────────────────────────────


@router.post(
    "/menus/{menu_id}/submit",
    response_model=MenuApprovalRead,
    status_code=status.HTTP_201_CREATED,
)
async def submit_menu(
    menu_id: UUID,
    body: Optional[MenuSubmitRequest] = None,
    _: None = Depends(verify_service_token),
    ctx: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db),
    services: Services = Depends(get_services),
) -> MenuApprovalRead:
    approval = await services.approval.submit(
        db,
        str(menu_id),
        ctx.require_user(),
        ctx.tenant_id,
        notes=body.notes if body else None,
    )
    return MenuApprovalRead.model_validate(approval)


@router.get("/menus/{menu_id}/approval", response_model=Optional[MenuApprovalRead])
async def menu_approval(
    menu_id: UUID,
    _: None = Depends(verify_service_token),
    ctx: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db),
    services: Services = Depends(get_services),
) -> Optional[MenuApprovalRead]:
    """Latest submission for the menu, or null if it was never submitted."""
    approval = await services.approval.get_for_menu(db, str(menu_id), ctx.tenant_id)
    return MenuApprovalRead.model_validate(approval) if approval else None


@router.get("/menu-approvals/pending", response_model=list[MenuApprovalRead])
async def pending_approvals(
    _: None = Depends(verify_service_token),
    ctx: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db),
    services: Services = Depends(get_services),
) -> list[MenuApprovalRead]:
    rows = await services.approval.pending(db, ctx.tenant_id)
    return [MenuApprovalRead.model_validate(r) for r in rows]


@router.post("/menu-approvals/{approval_id}/approve", response_model=MenuApprovalRead)
async def approve_menu(
    approval_id: UUID,
    body: Optional[ApproveRequest] = None,
    _: None = Depends(verify_service_token),
    ctx: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db),
    services: Services = Depends(get_services),
) -> MenuApprovalRead:
    approval = await services.approval.approve(
        db,
        str(approval_id),
        ctx.require_user(),
        ctx.tenant_id,
        notes=body.notes if body else None,
    )
    return MenuApprovalRead.model_validate(approval)


@router.post("/menu-approvals/{approval_id}/reject", response_model=MenuApprovalRead)
async def reject_menu(
    approval_id: UUID,
    body: RejectRequest,
    _: None = Depends(verify_service_token),
    ctx: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db),
    services: Services = Depends(get_services),
) -> MenuApprovalRead:
    approval = await services.approval.reject(
        db, str(approval_id), ctx.require_user(), body.reason, ctx.tenant_id
    )
    return MenuApprovalRead.model_validate(approval)

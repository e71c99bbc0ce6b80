"""
ApprovalGate — only manager-approved menus may be served, plus the
submit/approve/reject workflow that gets them there.

    DRAFT ──submit──> PENDING_APPROVAL ──approve──> APPROVED
      ^                      │
      └──── (resubmit) <── REJECTED <──reject──┘

Submission snapshots the menu's SEVERE/ANAPHYLAXIS allergen warnings onto
the approval row so the approving manager sees them.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mealgate.database import utcnow
from mealgate.errors import InvalidTransition, NotFoundError, ValidationFailed
from mealgate.models import Menu, MenuApproval, MenuStatus
from mealgate.schemas.admission import Gate, GateDecision
from mealgate.services.allergen_index import IngredientAllergenIndex

logger = logging.getLogger(__name__)

SUBMITTABLE = frozenset({MenuStatus.DRAFT, MenuStatus.REJECTED})


class ApprovalGate:
    def __init__(self, index: IngredientAllergenIndex) -> None:
        self._index = index

    def evaluate(self, menu: Menu) -> GateDecision:
        """Allowed iff the menu is APPROVED. No override path."""
        current = MenuStatus(menu.status)
        if current != MenuStatus.APPROVED:
            return GateDecision(
                allowed=False,
                reason=f"Menu status is {current.value}. Only APPROVED menus can be served.",
                gate=Gate.APPROVAL,
            )
        return GateDecision(allowed=True, reason="Menu is approved")

    # ── Workflow ──────────────────────────────────────────────────────────────

    async def get_menu(self, db: AsyncSession, menu_id: str, tenant_id: str) -> Menu:
        menu = (
            await db.execute(select(Menu).where(Menu.id == menu_id, Menu.tenant_id == tenant_id))
        ).scalar_one_or_none()
        if menu is None:
            raise NotFoundError("Menu", menu_id)
        return menu

    async def submit(
        self,
        db: AsyncSession,
        menu_id: str,
        submitted_by: str,
        tenant_id: str,
        notes: Optional[str] = None,
    ) -> MenuApproval:
        menu = await self.get_menu(db, menu_id, tenant_id)
        if MenuStatus(menu.status) not in SUBMITTABLE:
            raise InvalidTransition(
                f"Menu is {MenuStatus(menu.status).value} and cannot be submitted for approval"
            )

        warnings = await self._index.menu_allergen_warnings(db, menu_id, tenant_id)
        approval = MenuApproval(
            tenant_id=tenant_id,
            menu_id=menu_id,
            status=MenuStatus.PENDING_APPROVAL,
            submitted_by=submitted_by,
            notes=notes,
            allergen_warnings=warnings,
        )
        menu.status = MenuStatus.PENDING_APPROVAL
        db.add(approval)
        await db.commit()

        logger.info(
            "Menu %s submitted for approval by %s (%d allergen warning(s))",
            menu_id, submitted_by, len(warnings),
        )
        return approval

    async def approve(
        self,
        db: AsyncSession,
        approval_id: str,
        approver_id: str,
        tenant_id: str,
        notes: Optional[str] = None,
    ) -> MenuApproval:
        approval, menu = await self._pending(db, approval_id, tenant_id, "approved")
        approval.status = MenuStatus.APPROVED
        approval.resolved_by = approver_id
        approval.resolved_at = utcnow()
        if notes:
            approval.notes = notes
        menu.status = MenuStatus.APPROVED
        await db.commit()

        logger.info("Menu %s approved by %s", menu.id, approver_id)
        return approval

    async def reject(
        self,
        db: AsyncSession,
        approval_id: str,
        approver_id: str,
        reason: Optional[str],
        tenant_id: str,
    ) -> MenuApproval:
        reason = (reason or "").strip()
        if not reason:
            raise ValidationFailed("A rejection reason is required")

        approval, menu = await self._pending(db, approval_id, tenant_id, "rejected")
        approval.status = MenuStatus.REJECTED
        approval.resolved_by = approver_id
        approval.resolved_at = utcnow()
        approval.rejection_reason = reason
        menu.status = MenuStatus.REJECTED
        await db.commit()

        logger.info("Menu %s rejected by %s: %s", menu.id, approver_id, reason)
        return approval

    async def pending(self, db: AsyncSession, tenant_id: str) -> list[MenuApproval]:
        result = await db.execute(
            select(MenuApproval)
            .where(
                MenuApproval.tenant_id == tenant_id,
                MenuApproval.status == MenuStatus.PENDING_APPROVAL,
            )
            .order_by(MenuApproval.submitted_at)
        )
        return list(result.scalars().all())

    async def get_for_menu(
        self, db: AsyncSession, menu_id: str, tenant_id: str
    ) -> Optional[MenuApproval]:
        """Latest submission for the menu."""
        await self.get_menu(db, menu_id, tenant_id)
        result = await db.execute(
            select(MenuApproval)
            .where(MenuApproval.tenant_id == tenant_id, MenuApproval.menu_id == menu_id)
            .order_by(MenuApproval.submitted_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def _pending(
        self, db: AsyncSession, approval_id: str, tenant_id: str, action: str
    ) -> tuple[MenuApproval, Menu]:
        approval = (
            await db.execute(
                select(MenuApproval).where(
                    MenuApproval.id == approval_id, MenuApproval.tenant_id == tenant_id
                )
            )
        ).scalar_one_or_none()
        if approval is None:
            raise NotFoundError("Menu approval", approval_id)
        if MenuStatus(approval.status) != MenuStatus.PENDING_APPROVAL:
            raise InvalidTransition(
                f"Approval is {MenuStatus(approval.status).value} and cannot be {action}"
            )
        menu = await self.get_menu(db, approval.menu_id, tenant_id)
        return approval, menu

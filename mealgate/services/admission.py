"""
AdmissionService — composes the three gates into one serving decision.

Order is fixed: kitchen hygiene, then menu approval, then the student's
allergen check. The first failing gate decides the answer and later gates
are not consulted. Holds no state of its own.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from mealgate.errors import GateFailure, NotFoundError
from mealgate.models import Meal
from mealgate.schemas.admission import AdmissionDecision, AdmissionStatus, Gate, GateDecision
from mealgate.services.allergen_index import IngredientAllergenIndex
from mealgate.services.allergy_guard import AllergenSafetyEvaluator
from mealgate.services.allergy_registry import AllergyRegistry
from mealgate.services.approval_gate import ApprovalGate
from mealgate.services.hygiene_gate import HygieneGate

logger = logging.getLogger(__name__)


class AdmissionService:
    def __init__(
        self,
        hygiene: HygieneGate,
        approval: ApprovalGate,
        evaluator: AllergenSafetyEvaluator,
        index: IngredientAllergenIndex,
        registry: AllergyRegistry,
    ) -> None:
        self._hygiene = hygiene
        self._approval = approval
        self._evaluator = evaluator
        self._index = index
        self._registry = registry

    async def can_kitchen_serve(
        self, db: AsyncSession, kitchen_id: str, tenant_id: str
    ) -> GateDecision:
        return await self._hygiene.can_kitchen_serve(db, kitchen_id, tenant_id)

    async def can_menu_serve(
        self, db: AsyncSession, menu_id: str, tenant_id: str
    ) -> GateDecision:
        """Hygiene of the menu's kitchen first, then the menu's approval."""
        try:
            menu = await self._approval.get_menu(db, menu_id, tenant_id)
        except SQLAlchemyError as exc:
            logger.exception("Approval gate could not load menu %s", menu_id)
            raise GateFailure("Menu status could not be determined", {"menu_id": menu_id}) from exc

        hygiene = await self._hygiene.can_kitchen_serve(db, menu.kitchen_id, tenant_id)
        if not hygiene.allowed:
            return hygiene
        return self._approval.evaluate(menu)

    async def admit_student(
        self,
        db: AsyncSession,
        student_id: str,
        variant_id: str,
        tenant_id: str,
    ) -> AdmissionDecision:
        """
        Unknown student, variant or meal raises NotFoundError before any gate
        runs, so a missing entity is never reported as a BLOCKED decision.
        """
        try:
            await self._registry.require_student(db, student_id, tenant_id)
        except SQLAlchemyError as exc:
            logger.exception("Admission could not load student %s", student_id)
            raise GateFailure(
                "Student could not be loaded", {"student_id": student_id}
            ) from exc

        variant = await self._index.get_variant(db, variant_id, tenant_id)
        meal = (
            await db.execute(select(Meal).where(Meal.id == variant.meal_id))
        ).scalar_one_or_none()
        if meal is None:
            raise NotFoundError("Meal", variant.meal_id)

        serviceability = await self.can_menu_serve(db, meal.menu_id, tenant_id)
        if not serviceability.allowed:
            logger.warning(
                "Admission BLOCKED by %s: student=%s variant=%s: %s",
                serviceability.gate.value if serviceability.gate else "UNKNOWN",
                student_id, variant_id, serviceability.reason,
            )
            return AdmissionDecision(
                allowed=False,
                status=AdmissionStatus.BLOCKED,
                blocked_by=serviceability.gate,
                reason=serviceability.reason,
                serviceability=serviceability,
            )

        check = await self._evaluator.check_variant(db, student_id, variant_id, tenant_id)
        if check.safe:
            return AdmissionDecision(
                allowed=True,
                status=AdmissionStatus.ADMITTED,
                reason=check.notes or "Admitted",
                serviceability=serviceability,
                allergen_check=check,
            )

        status = (
            AdmissionStatus.BLOCKED_PENDING_OVERRIDE
            if check.requires_manager_override
            else AdmissionStatus.BLOCKED
        )
        return AdmissionDecision(
            allowed=False,
            status=status,
            blocked_by=Gate.ALLERGEN,
            reason=check.block_reason or "Allergen check did not pass",
            serviceability=serviceability,
            allergen_check=check,
        )

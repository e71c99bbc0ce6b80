"""
MealService — attendance marks and meal choices, both gated by admission.

A record naming a variant is written only when the student is ADMITTED, or
when the only obstacle is a SEVERE allergen conflict a manager has already
overridden. In the override case the record carries the override id and
allergy_verified stays False.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mealgate.database import utcnow
from mealgate.errors import AdmissionBlocked, InvalidTransition, NotFoundError, ValidationFailed
from mealgate.models import Meal, MealAttendance, MealChoice
from mealgate.schemas.admission import (
    AdmissionDecision,
    AdmissionStatus,
    AttendanceCreate,
    MealChoiceCreate,
)
from mealgate.services.admission import AdmissionService
from mealgate.services.allergen_index import IngredientAllergenIndex
from mealgate.services.allergy_registry import AllergyRegistry
from mealgate.services.override_authority import OverrideAuthority

logger = logging.getLogger(__name__)


class MealService:
    def __init__(
        self,
        registry: AllergyRegistry,
        index: IngredientAllergenIndex,
        admission: AdmissionService,
        overrides: OverrideAuthority,
    ) -> None:
        self._registry = registry
        self._index = index
        self._admission = admission
        self._overrides = overrides

    async def mark_attendance(
        self, db: AsyncSession, body: AttendanceCreate, tenant_id: str
    ) -> MealAttendance:
        """Create or update the (student, meal) attendance mark."""
        student_id = str(body.student_id)
        meal_id = str(body.meal_id)
        variant_id = str(body.variant_id) if body.variant_id else None

        await self._registry.require_student(db, student_id, tenant_id)
        meal = (
            await db.execute(select(Meal).where(Meal.id == meal_id, Meal.tenant_id == tenant_id))
        ).scalar_one_or_none()
        if meal is None:
            raise NotFoundError("Meal", meal_id)

        allergy_verified = False
        override_id: Optional[str] = None
        if variant_id is not None:
            variant = await self._index.get_variant(db, variant_id, tenant_id)
            if variant.meal_id != meal_id:
                raise ValidationFailed(
                    "Variant does not belong to this meal",
                    {"variant_id": variant_id, "meal_id": meal_id},
                )
            allergy_verified, override_id = await self._admit(db, student_id, variant_id, tenant_id)

        record = (
            await db.execute(
                select(MealAttendance).where(
                    MealAttendance.student_id == student_id,
                    MealAttendance.meal_id == meal_id,
                )
            )
        ).scalar_one_or_none()
        if record is None:
            record = MealAttendance(tenant_id=tenant_id, student_id=student_id, meal_id=meal_id)
            db.add(record)

        record.variant_id = variant_id
        record.status = body.status
        record.attendance_date = body.attendance_date or utcnow().date()
        record.allergy_verified = allergy_verified
        record.override_id = override_id
        record.updated_at = utcnow()
        await db.commit()

        logger.info(
            "Attendance %s for student %s meal %s (variant=%s verified=%s override=%s)",
            body.status.value, student_id, meal_id, variant_id, allergy_verified, override_id,
        )
        return record

    async def create_meal_choice(
        self, db: AsyncSession, body: MealChoiceCreate, tenant_id: str
    ) -> MealChoice:
        student_id = str(body.student_id)
        variant_id = str(body.variant_id)

        await self._registry.require_student(db, student_id, tenant_id)
        existing = (
            await db.execute(
                select(MealChoice.id).where(
                    MealChoice.student_id == student_id, MealChoice.variant_id == variant_id
                )
            )
        ).scalar_one_or_none()
        if existing is not None:
            raise InvalidTransition("Student has already chosen this variant", {"id": existing})

        allergy_verified, override_id = await self._admit(db, student_id, variant_id, tenant_id)

        choice = MealChoice(
            tenant_id=tenant_id,
            student_id=student_id,
            variant_id=variant_id,
            allergy_verified=allergy_verified,
            override_id=override_id,
            verification_notes=body.verification_notes,
        )
        db.add(choice)
        await db.commit()
        return choice

    async def _admit(
        self, db: AsyncSession, student_id: str, variant_id: str, tenant_id: str
    ) -> tuple[bool, Optional[str]]:
        """(allergy_verified, override_id) for an admissible pair, else AdmissionBlocked."""
        decision = await self._admission.admit_student(db, student_id, variant_id, tenant_id)
        if decision.status == AdmissionStatus.ADMITTED:
            return True, None

        if decision.status == AdmissionStatus.BLOCKED_PENDING_OVERRIDE:
            override = await self._overrides.find_override(db, student_id, variant_id, tenant_id)
            if override is not None:
                logger.warning(
                    "Serving under override %s: student=%s variant=%s",
                    override.id, student_id, variant_id,
                )
                return False, override.id

        raise self._blocked(decision)

    @staticmethod
    def _blocked(decision: AdmissionDecision) -> AdmissionBlocked:
        return AdmissionBlocked(decision.reason, decision.model_dump(mode="json"))

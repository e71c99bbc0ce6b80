"""
OverrideAuthority — lets a manager accept the residual risk of a SEVERE
allergen conflict for one student/variant pair.

An override is an append-only record consulted by serving staff. It never
touches allergy records and never changes what the evaluator says: the same
check after an override still comes back unsafe.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mealgate.errors import ErrorKind, ValidationFailed
from mealgate.models import AllergenOverride
from mealgate.schemas.allergen import OverrideOutcome
from mealgate.services.allergy_guard import AllergenSafetyEvaluator

logger = logging.getLogger(__name__)


class OverrideAuthority:
    def __init__(self, evaluator: AllergenSafetyEvaluator) -> None:
        self._evaluator = evaluator

    async def record_override(
        self,
        db: AsyncSession,
        student_id: Optional[str],
        variant_id: Optional[str],
        authorized_by: Optional[str],
        reason: Optional[str],
        tenant_id: str,
    ) -> OverrideOutcome:
        """
        Validate, re-evaluate and persist an override.

        Raises ValidationFailed for missing inputs or when the current verdict
        is not override-eligible (safe, ANAPHYLAXIS or failed closed). A
        persistence failure is reported as success=False.
        """
        fields = {
            "student_id": student_id,
            "variant_id": variant_id,
            "authorized_by": authorized_by,
            "reason": reason,
        }
        cleaned = {name: (value or "").strip() for name, value in fields.items()}
        missing = [name for name, value in cleaned.items() if not value]
        if missing:
            raise ValidationFailed(
                f"Override requires {', '.join(missing)}", {"missing": missing}
            )

        result = await self._evaluator.check_variant(
            db, cleaned["student_id"], cleaned["variant_id"], tenant_id
        )
        if result.safe:
            raise ValidationFailed("Meal is safe for this student; no override needed")
        if not result.requires_manager_override:
            raise ValidationFailed(
                f"This conflict cannot be overridden: {result.block_reason}",
                {"outcome": result.outcome.value},
            )

        override = AllergenOverride(
            tenant_id=tenant_id,
            student_id=cleaned["student_id"],
            variant_id=cleaned["variant_id"],
            authorized_by=cleaned["authorized_by"],
            reason=cleaned["reason"],
        )
        try:
            db.add(override)
            await db.commit()
        except Exception:
            await db.rollback()
            logger.exception(
                "%s: override for student=%s variant=%s by %s could not be saved",
                ErrorKind.OVERRIDE_NOT_RECORDED.value,
                cleaned["student_id"],
                cleaned["variant_id"],
                cleaned["authorized_by"],
            )
            return OverrideOutcome(success=False, message="Failed to record override")

        logger.warning(
            "Allergen OVERRIDE recorded: student=%s variant=%s by=%s reason=%r",
            cleaned["student_id"],
            cleaned["variant_id"],
            cleaned["authorized_by"],
            cleaned["reason"],
        )
        return OverrideOutcome(
            success=True,
            message="Override recorded. Serve only under manager supervision.",
            override_id=override.id,
        )

    async def find_override(
        self, db: AsyncSession, student_id: str, variant_id: str, tenant_id: str
    ) -> Optional[AllergenOverride]:
        """Latest override on file for the pair, if any."""
        result = await db.execute(
            select(AllergenOverride)
            .where(
                AllergenOverride.tenant_id == tenant_id,
                AllergenOverride.student_id == student_id,
                AllergenOverride.variant_id == variant_id,
            )
            .order_by(AllergenOverride.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def list_overrides(
        self, db: AsyncSession, tenant_id: str, student_id: Optional[str] = None
    ) -> list[AllergenOverride]:
        stmt = select(AllergenOverride).where(AllergenOverride.tenant_id == tenant_id)
        if student_id:
            stmt = stmt.where(AllergenOverride.student_id == student_id)
        result = await db.execute(stmt.order_by(AllergenOverride.created_at.desc()))
        return list(result.scalars().all())

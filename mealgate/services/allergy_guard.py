"""
AllergyGuard — the allergen safety evaluator. Decides whether one meal
variant may be served to one student.

This check runs before every meal choice, attendance mark and serving
decision. It is never optional, it cannot be bypassed, and it fails closed:
if the check cannot be completed the answer is "not safe".
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from mealgate.errors import ErrorKind, EvaluationFailure, NotFoundError, ValidationFailed
from mealgate.models import CheckOutcome, Meal, MealVariant, StudentAllergy
from mealgate.schemas.allergen import (
    AllergenCheckResult,
    ConflictingAllergen,
    MealVariantSafety,
    SafeVariant,
    VariantRead,
)
from mealgate.services.allergen_index import AllergenExposure, IngredientAllergenIndex
from mealgate.services.allergy_registry import AllergyRegistry
from mealgate.services.audit_log import AuditLog
from mealgate.utils.allergy_data import (
    FAIL_CLOSED_REASON,
    NOTICE_SEVERITIES,
    SEVERITY_RANK,
    STUDENT_NOT_FOUND_REASON,
    VARIANT_NOT_FOUND_REASON,
    VERDICTS,
    Severity,
)

logger = logging.getLogger(__name__)


def variant_read(variant: MealVariant) -> VariantRead:
    return VariantRead(
        id=variant.id,
        meal_id=variant.meal_id,
        recipe_id=variant.recipe_id,
        variant_type=variant.variant_type,
        cost=float(variant.cost or 0),
        description=variant.description,
    )


class AllergenSafetyEvaluator:
    """
    Safety layer: intersects a student's verified allergies with a variant's
    allergen exposure and applies the severity policy.

    Core rules:
    1. Only verified AND active allergy records count. Unverified claims never
       influence a verdict in either direction.
    2. Policy follows the allergen's intrinsic severity; most restrictive wins:
       ANAPHYLAXIS → blocked, no override path, ever.
       SEVERE      → blocked, manager override required.
       MILD/MODERATE → safe, conflicts still reported for staff awareness.
       none        → safe.
    3. Every evaluation is written to the audit log before returning,
       including not-found and failed-closed outcomes.
    4. Any unexpected error → safe=False with a generic reason. Not-found is
       not an error: it is audited and re-raised so callers can tell
       "no such variant" from "unsafe".
    """

    def __init__(
        self,
        registry: AllergyRegistry,
        index: IngredientAllergenIndex,
        audit_log: AuditLog,
    ) -> None:
        self._registry = registry
        self._index = index
        self._audit = audit_log

    async def check_variant(
        self,
        db: AsyncSession,
        student_id: str,
        variant_id: str,
        tenant_id: str,
    ) -> AllergenCheckResult:
        """Evaluate, audit, and return the verdict for one student/variant pair."""
        checked_at = datetime.now(timezone.utc)

        try:
            await self._registry.require_student(db, student_id, tenant_id)
            allergies = await self._registry.verified_allergies(db, student_id, tenant_id)
            exposure = await self._index.exposure(db, variant_id, tenant_id)
            result = self.apply_policy(student_id, variant_id, checked_at, allergies, exposure)
        except NotFoundError as exc:
            reason = (
                STUDENT_NOT_FOUND_REASON if exc.entity == "Student" else VARIANT_NOT_FOUND_REASON
            )
            await self._audit.record(
                tenant_id,
                AllergenCheckResult(
                    student_id=student_id,
                    variant_id=variant_id,
                    checked_at=checked_at,
                    outcome=CheckOutcome.NOT_FOUND,
                    safe=False,
                    block_reason=reason,
                ),
            )
            raise
        except Exception:
            logger.exception(
                "%s: allergen check failed (student=%s variant=%s) — blocking",
                ErrorKind.EVALUATION_FAILURE.value,
                student_id,
                variant_id,
            )
            result = self._failed_closed(student_id, variant_id, checked_at)

        await self._audit.record(tenant_id, result)

        if not result.safe:
            logger.warning(
                "Allergen check BLOCKED student=%s variant=%s outcome=%s override=%s: %s",
                student_id,
                variant_id,
                result.outcome.value,
                result.requires_manager_override,
                result.block_reason,
            )
        return result

    @staticmethod
    def _failed_closed(
        student_id: str, variant_id: str, checked_at: datetime
    ) -> AllergenCheckResult:
        return AllergenCheckResult(
            student_id=student_id,
            variant_id=variant_id,
            checked_at=checked_at,
            outcome=CheckOutcome.FAILED_CLOSED,
            safe=False,
            requires_manager_override=False,
            block_reason=FAIL_CLOSED_REASON,
        )

    def apply_policy(
        self,
        student_id: str,
        variant_id: str,
        checked_at: datetime,
        allergies: list[StudentAllergy],
        exposure: dict[str, AllergenExposure],
    ) -> AllergenCheckResult:
        """Pure severity policy over already-loaded inputs."""
        # Several records for one allergen collapse into one conflict carrying
        # the harshest personal reaction on file.
        student_severity: dict[str, Severity] = {}
        for allergy in allergies:
            recorded = Severity(allergy.severity)
            current = student_severity.get(allergy.allergen_id)
            if current is None or SEVERITY_RANK[recorded] > SEVERITY_RANK[current]:
                student_severity[allergy.allergen_id] = recorded

        conflicts: list[ConflictingAllergen] = []
        for allergen_id, recorded in student_severity.items():
            entry = exposure.get(allergen_id)
            if entry is None:
                continue
            if entry.severity not in SEVERITY_RANK:
                raise ValueError(
                    f"Allergen {allergen_id} has unrecognised severity {entry.severity!r}"
                )
            conflicts.append(
                ConflictingAllergen(
                    allergen_id=allergen_id,
                    allergen_name=entry.allergen_name,
                    severity=entry.severity,
                    student_severity=recorded,
                    ingredient_food_items=list(entry.food_items),
                )
            )

        conflicts.sort(key=lambda c: (-c.severity.rank, c.allergen_name))

        base = dict(
            student_id=student_id,
            variant_id=variant_id,
            checked_at=checked_at,
            outcome=CheckOutcome.EVALUATED,
            conflicting_allergens=conflicts,
        )

        if not conflicts:
            return AllergenCheckResult(safe=True, notes=VERDICTS["CLEAR"]["notes"], **base)

        worst = conflicts[0].severity
        names = ", ".join(c.allergen_name for c in conflicts if c.severity == worst)

        if worst == Severity.ANAPHYLAXIS:
            verdict = VERDICTS["ANAPHYLAXIS"]
            return AllergenCheckResult(
                safe=False,
                requires_manager_override=False,
                block_reason=verdict["block_reason"].format(allergens=names),
                notes=verdict["notes"],
                **base,
            )

        if worst == Severity.SEVERE:
            verdict = VERDICTS["SEVERE"]
            return AllergenCheckResult(
                safe=False,
                requires_manager_override=True,
                block_reason=verdict["block_reason"].format(allergens=names),
                notes=verdict["notes"],
                **base,
            )

        if worst in NOTICE_SEVERITIES:
            all_names = ", ".join(c.allergen_name for c in conflicts)
            return AllergenCheckResult(
                safe=True,
                notes=VERDICTS["NOTICE"]["notes"].format(allergens=all_names),
                **base,
            )

        # Unreachable with a closed Severity enum; refuse rather than allow.
        raise ValueError(f"No policy for severity {worst!r}")

    # ── Batch and listing helpers ─────────────────────────────────────────────

    async def check_variants(
        self,
        db: AsyncSession,
        student_id: str,
        variant_ids: list[str],
        tenant_id: str,
    ) -> list[AllergenCheckResult]:
        """
        One result per requested variant, in request order. An unknown
        variant becomes a NOT_FOUND item rather than failing the whole batch;
        an unknown student fails the batch. If the student cannot be looked
        up at all, every requested variant comes back FAILED_CLOSED.
        """
        if not variant_ids:
            raise ValidationFailed("variant_ids must not be empty")
        try:
            await self._registry.require_student(db, student_id, tenant_id)
        except NotFoundError:
            raise
        except Exception:
            logger.exception(
                "%s: batch allergen check failed for student %s, blocking %d variants",
                ErrorKind.EVALUATION_FAILURE.value,
                student_id,
                len(variant_ids),
            )
            checked_at = datetime.now(timezone.utc)
            blocked = [self._failed_closed(student_id, v, checked_at) for v in variant_ids]
            for result in blocked:
                await self._audit.record(tenant_id, result)
            return blocked

        results: list[AllergenCheckResult] = []
        for variant_id in variant_ids:
            try:
                results.append(await self.check_variant(db, student_id, variant_id, tenant_id))
            except NotFoundError as exc:
                if exc.entity == "Student":
                    raise
                results.append(
                    AllergenCheckResult(
                        student_id=student_id,
                        variant_id=variant_id,
                        checked_at=datetime.now(timezone.utc),
                        outcome=CheckOutcome.NOT_FOUND,
                        safe=False,
                        block_reason=VARIANT_NOT_FOUND_REASON,
                    )
                )
        return results

    async def list_safe_variants(
        self, db: AsyncSession, student_id: str, tenant_id: str
    ) -> list[SafeVariant]:
        """Every variant in the tenant this student may safely be served."""
        try:
            await self._registry.require_student(db, student_id, tenant_id)
            variants = (
                await db.execute(
                    select(MealVariant)
                    .where(MealVariant.tenant_id == tenant_id)
                    .order_by(MealVariant.meal_id, MealVariant.variant_type)
                )
            ).scalars().all()
        except SQLAlchemyError as exc:
            raise self._listing_failure(student_id) from exc

        safe: list[SafeVariant] = []
        for variant in variants:
            result = await self.check_variant(db, student_id, variant.id, tenant_id)
            if result.safe:
                safe.append(SafeVariant(variant=variant_read(variant), result=result))
        return safe

    async def variants_for_meal(
        self,
        db: AsyncSession,
        student_id: str,
        meal_id: str,
        tenant_id: str,
    ) -> list[MealVariantSafety]:
        """All variants of one meal, each annotated for the serving counter."""
        try:
            await self._registry.require_student(db, student_id, tenant_id)
            meal_variants = await self._meal_variants(db, meal_id, tenant_id)
        except SQLAlchemyError as exc:
            raise self._listing_failure(student_id, meal_id=meal_id) from exc

        annotated: list[MealVariantSafety] = []
        for variant in meal_variants:
            result = await self.check_variant(db, student_id, variant.id, tenant_id)
            annotated.append(
                MealVariantSafety(
                    variant=variant_read(variant),
                    is_safe=result.safe,
                    requires_override=result.requires_manager_override,
                    conflicting_allergens=result.conflicting_allergens,
                    block_reason=result.block_reason,
                )
            )
        return annotated

    @staticmethod
    def _listing_failure(student_id: str, **context: str) -> EvaluationFailure:
        logger.exception(
            "%s: could not list variants for student %s",
            ErrorKind.EVALUATION_FAILURE.value,
            student_id,
        )
        return EvaluationFailure(
            "Allergen safety could not be determined",
            {"student_id": student_id, **context},
        )

    async def _meal_variants(
        self, db: AsyncSession, meal_id: str, tenant_id: str
    ) -> list[MealVariant]:
        meal: Optional[Meal] = (
            await db.execute(select(Meal).where(Meal.id == meal_id, Meal.tenant_id == tenant_id))
        ).scalar_one_or_none()
        if meal is None:
            raise NotFoundError("Meal", meal_id)
        result = await db.execute(
            select(MealVariant)
            .where(MealVariant.meal_id == meal_id)
            .order_by(MealVariant.variant_type)
        )
        return list(result.scalars().all())

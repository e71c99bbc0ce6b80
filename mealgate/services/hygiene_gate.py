"""
HygieneGate — no meal leaves a kitchen without a passing inspection today.

Inspectors score eight checklist categories on a 0..HYGIENE_ITEM_MAX scale.
The overall score is their average rounded half-up, and the kitchen may serve
only when today's most recent check reaches HYGIENE_PASS_SCORE. There is no
override path.
"""

from __future__ import annotations

import calendar
import logging
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from mealgate.config import Settings, get_settings
from mealgate.errors import GateFailure, NotFoundError, ValidationFailed
from mealgate.models import HygieneCheck, HygieneStatus, Kitchen
from mealgate.models.hygiene import SCORE_FIELDS
from mealgate.schemas.admission import Gate, GateDecision
from mealgate.schemas.hygiene import ComplianceReport, HygieneCheckCreate, HygieneCheckRead

logger = logging.getLogger(__name__)

NO_CHECK_TODAY_REASON = (
    "No hygiene check completed today. Check must be done before meal service."
)
FAILED_CHECK_REASON = "Hygiene check failed with score {score}/{scale}. Minimum required: {threshold}/{scale}"
PASSED_CHECK_REASON = "Hygiene check passed with score {score}/{scale}"

TREND_MARGIN = 5


def overall_score(scores: list[int]) -> int:
    """Average of the category scores, rounded half-up."""
    # Integer form of floor(sum / n + 0.5); avoids banker's rounding.
    n = len(scores)
    return (2 * sum(scores) + n) // (2 * n)


def months_before(day: date, months: int) -> date:
    month_index = day.year * 12 + (day.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


class HygieneGate:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        clock: Callable[[], date] = date.today,
    ) -> None:
        self._settings = settings or get_settings()
        self._today = clock

    @property
    def pass_score(self) -> int:
        return self._settings.hygiene_pass_score

    @property
    def scale(self) -> int:
        return self._settings.hygiene_item_max

    # ── Gate ──────────────────────────────────────────────────────────────────

    async def can_kitchen_serve(
        self, db: AsyncSession, kitchen_id: str, tenant_id: str
    ) -> GateDecision:
        """
        Allowed only when today's latest hygiene check scores at least the
        pass threshold. Raises NotFoundError for an unknown kitchen and
        GateFailure when the check cannot be read.
        """
        try:
            await self._require_kitchen(db, kitchen_id, tenant_id)
            check = await self.today_check(db, kitchen_id, tenant_id)
        except SQLAlchemyError as exc:
            logger.exception("Hygiene gate could not read checks for kitchen %s", kitchen_id)
            raise GateFailure(
                "Hygiene status could not be determined", {"kitchen_id": kitchen_id}
            ) from exc

        if check is None:
            return GateDecision(allowed=False, reason=NO_CHECK_TODAY_REASON, gate=Gate.HYGIENE)

        if check.overall_score < self.pass_score:
            return GateDecision(
                allowed=False,
                reason=FAILED_CHECK_REASON.format(
                    score=check.overall_score, threshold=self.pass_score, scale=self.scale
                ),
                gate=Gate.HYGIENE,
            )

        return GateDecision(
            allowed=True,
            reason=PASSED_CHECK_REASON.format(score=check.overall_score, scale=self.scale),
        )

    # ── Checks ────────────────────────────────────────────────────────────────

    async def record_check(
        self,
        db: AsyncSession,
        kitchen_id: str,
        body: HygieneCheckCreate,
        tenant_id: str,
    ) -> HygieneCheck:
        await self._require_kitchen(db, kitchen_id, tenant_id)

        scores = [getattr(body, name) for name in SCORE_FIELDS]
        too_high = [name for name, value in zip(SCORE_FIELDS, scores) if value > self.scale]
        if too_high:
            raise ValidationFailed(
                f"Scores must be between 0 and {self.scale}", {"fields": too_high}
            )

        score = overall_score(scores)
        status = HygieneStatus.PASS if score >= self.pass_score else HygieneStatus.FAIL
        check = HygieneCheck(
            tenant_id=tenant_id,
            kitchen_id=kitchen_id,
            check_date=body.check_date or self._today(),
            inspector_name=body.inspector_name,
            inspector_signature=body.inspector_signature,
            overall_score=score,
            status=status,
            issues_identified=list(body.issues_identified),
            **{name: getattr(body, name) for name in SCORE_FIELDS},
        )
        db.add(check)
        await db.commit()

        log = logger.warning if status == HygieneStatus.FAIL else logger.info
        log(
            "Hygiene check %s for kitchen %s: %s/%s (%s)",
            check.id, kitchen_id, score, self.scale, status.value,
        )
        return check

    async def today_check(
        self, db: AsyncSession, kitchen_id: str, tenant_id: str
    ) -> Optional[HygieneCheck]:
        """Most recently recorded check dated today, if any."""
        result = await db.execute(
            select(HygieneCheck)
            .where(
                HygieneCheck.tenant_id == tenant_id,
                HygieneCheck.kitchen_id == kitchen_id,
                HygieneCheck.check_date == self._today(),
            )
            .order_by(HygieneCheck.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def record_correction(
        self,
        db: AsyncSession,
        check_id: str,
        correction_status: str,
        tenant_id: str,
    ) -> HygieneCheck:
        """Note the corrective action for a check and start its deadline."""
        check = (
            await db.execute(
                select(HygieneCheck).where(
                    HygieneCheck.id == check_id, HygieneCheck.tenant_id == tenant_id
                )
            )
        ).scalar_one_or_none()
        if check is None:
            raise NotFoundError("Hygiene check", check_id)

        check.correction_status = correction_status.strip()
        check.correction_deadline = datetime.now(timezone.utc) + timedelta(
            days=self._settings.hygiene_correction_days
        )
        await db.commit()
        return check

    async def compliance_report(
        self,
        db: AsyncSession,
        kitchen_id: str,
        tenant_id: str,
        months: int = 3,
    ) -> ComplianceReport:
        await self._require_kitchen(db, kitchen_id, tenant_id)
        since = months_before(self._today(), months)
        checks = list(
            (
                await db.execute(
                    select(HygieneCheck)
                    .where(
                        HygieneCheck.tenant_id == tenant_id,
                        HygieneCheck.kitchen_id == kitchen_id,
                        HygieneCheck.check_date >= since,
                    )
                    .order_by(HygieneCheck.check_date.desc(), HygieneCheck.created_at.desc())
                )
            ).scalars().all()
        )

        total = len(checks)
        passed = sum(1 for c in checks if c.status == HygieneStatus.PASS)
        scores = [c.overall_score for c in checks]

        return ComplianceReport(
            kitchen_id=kitchen_id,
            months=months,
            total_checks=total,
            passed_checks=passed,
            failed_checks=total - passed,
            compliance_percentage=(200 * passed + total) // (2 * total) if total else 0,
            average_score=overall_score(scores) if total else 0,
            trend=self._trend(scores),
            latest_check=HygieneCheckRead.model_validate(checks[0]) if checks else None,
        )

    @staticmethod
    def _trend(scores_newest_first: list[int]) -> str:
        if len(scores_newest_first) <= 2:
            return "STABLE"
        mid = len(scores_newest_first) // 2
        newer = scores_newest_first[:mid]
        older = scores_newest_first[mid:]
        newer_avg = sum(newer) / len(newer)
        older_avg = sum(older) / len(older)
        if newer_avg > older_avg + TREND_MARGIN:
            return "IMPROVING"
        if newer_avg < older_avg - TREND_MARGIN:
            return "DECLINING"
        return "STABLE"

    async def _require_kitchen(self, db: AsyncSession, kitchen_id: str, tenant_id: str) -> Kitchen:
        kitchen = (
            await db.execute(
                select(Kitchen).where(Kitchen.id == kitchen_id, Kitchen.tenant_id == tenant_id)
            )
        ).scalar_one_or_none()
        if kitchen is None:
            raise NotFoundError("Kitchen", kitchen_id)
        return kitchen

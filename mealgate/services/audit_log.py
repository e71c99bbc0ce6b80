"""
AuditLog — append-only trail of every allergen evaluation.

Writes go through their own session from the injected session factory, so a
caller that later rolls back cannot erase the row and a failing write cannot
poison the caller's transaction. Write failures are logged for operators and
never propagate: the verdict must reach the caller either way.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from mealgate.errors import ErrorKind
from mealgate.models import AllergenCheckLog
from mealgate.schemas.allergen import AllergenCheckResult

logger = logging.getLogger(__name__)


class AuditLog:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        max_history_limit: int = 500,
    ) -> None:
        self._session_factory = session_factory
        self._max_history_limit = max_history_limit

    async def record(self, tenant_id: str, result: AllergenCheckResult) -> bool:
        """Persist one evaluation. Returns False (and logs) if the write failed."""
        reason = result.block_reason or result.notes
        entry = AllergenCheckLog(
            tenant_id=tenant_id,
            student_id=result.student_id,
            variant_id=result.variant_id,
            outcome=result.outcome,
            safe=result.safe,
            requires_override=result.requires_manager_override,
            conflicting_allergens=[
                c.model_dump(mode="json") for c in result.conflicting_allergens
            ],
            reason=reason,
            checked_at=result.checked_at,
        )
        try:
            async with self._session_factory() as session:
                session.add(entry)
                await session.commit()
        except Exception:
            logger.exception(
                "%s: could not log allergen check (student=%s variant=%s safe=%s outcome=%s)",
                ErrorKind.AUDIT_WRITE_FAILURE.value,
                result.student_id,
                result.variant_id,
                result.safe,
                result.outcome.value,
            )
            return False
        return True

    async def history(
        self,
        db: AsyncSession,
        tenant_id: str,
        student_id: Optional[str] = None,
        limit: int = 100,
    ) -> list[AllergenCheckLog]:
        """Most recent checks first, optionally for one student."""
        limit = max(1, min(limit, self._max_history_limit))
        stmt = select(AllergenCheckLog).where(AllergenCheckLog.tenant_id == tenant_id)
        if student_id:
            stmt = stmt.where(AllergenCheckLog.student_id == student_id)
        stmt = stmt.order_by(AllergenCheckLog.id.desc()).limit(limit)
        result = await db.execute(stmt)
        return list(result.scalars().all())

"""
create_tables.py — idempotent table creation script.
Run this before starting MealGate for the first time, or after schema changes.
Safe to run multiple times (all DDL uses IF NOT EXISTS).

Usage:
    python scripts/create_tables.py
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

# Ensure the project root is on the path
sys.path.insert(0, str(Path(__file__).parent.parent))

from mealgate.config import settings
from mealgate.database import engine
from mealgate.models import Base  # noqa: F401 — triggers model registration


async def main() -> None:
    """Create all tables."""
    print(f"Creating tables on {settings.database_url.split('@')[-1]} ...")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    for name in sorted(Base.metadata.tables):
        print(f"  ✓ {name}")
    print("\nDone. Start the service with `uvicorn mealgate.main:app`.")
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())

#!/usr/bin/env python3
"""Attendance Sweep — close sessions left open past the auto-expiry threshold.

The API already runs this on a timer and closes overdue sessions lazily;
this script is for deployments that disable the in-process timer
(ATTENDANCE_SWEEP_INTERVAL_SECONDS=0) and schedule it from cron instead:
    */5 * * * *

Usage:
    python scripts/sweep_expired_sessions.py             # expire and commit
    python scripts/sweep_expired_sessions.py --dry-run   # report, roll back

Requires .env at project root (DATABASE_URL, JWT_SECRET).

Exit codes:
    0 = sweep finished (possibly with nothing to do)
    1 = database error
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# ── Path setup ────────────────────────────────────────────────────────
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from dotenv import load_dotenv

load_dotenv(PROJECT_ROOT / ".env")

from sqlalchemy.exc import SQLAlchemyError

from backend.attendance.clock import ClockService
from backend.database import async_session_factory, engine

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("sweep_expired_sessions")


async def sweep(dry_run: bool) -> int:
    async with async_session_factory() as session:
        expired = await ClockService.sweep_expired(session)
        for entry in expired:
            logger.info(
                "%s entry %s (employee %s, clocked in %s)",
                "Would expire" if dry_run else "Expired",
                entry.id,
                entry.employee_id,
                entry.clock_in.isoformat(),
            )
        if dry_run:
            await session.rollback()
        else:
            await session.commit()
    await engine.dispose()
    return len(expired)


def main():
    parser = argparse.ArgumentParser(
        description="Close attendance sessions left open past the expiry threshold",
    )
    parser.add_argument(
        "--dry-run", action="store_true", help="Report overdue sessions without writing"
    )
    args = parser.parse_args()

    try:
        count = asyncio.run(sweep(args.dry_run))
    except SQLAlchemyError as e:
        logger.error("Sweep failed: %s", e)
        sys.exit(1)

    logger.info(
        "%s %d overdue session(s)", "Found" if args.dry_run else "Expired", count
    )


if __name__ == "__main__":
    main()

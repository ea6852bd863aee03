#!/usr/bin/env python3
"""Daily Summary Repair — recompute DailyTeamSummary rows from source tables.

Purpose: Backfill or repair summaries after data fixes, holiday edits made
outside the API, or missed recomputes. Every day is recomputed from scratch
and committed on its own, so a failing day is reported and skipped without
losing the days already written.

Usage:
    python -m scripts.recalculate_summaries --team <uuid>                  # last 7 days
    python -m scripts.recalculate_summaries --team <uuid> --from 2026-03-01 --to 2026-03-31
    python -m scripts.recalculate_summaries --company <uuid> --days 30     # every team
    python -m scripts.recalculate_summaries --company <uuid> --dry-run     # list work only

Requires in .env (project root):
    DATABASE_URL
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import uuid
from datetime import date, timedelta
from typing import Optional

from teamready.common.dates import iter_days, parse_date, today_in
from teamready.common.exceptions import AppException
from teamready.database import async_session_factory, session_scope
from teamready.organization.service import OrganizationService
from teamready.summaries.service import DailySummaryService

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("recalculate_summaries")

# ══════════════════════════════════════════════════════════════════════
# Work
# ══════════════════════════════════════════════════════════════════════

async def _resolve_targets(
    team_id: Optional[uuid.UUID],
    company_id: Optional[uuid.UUID],
) -> tuple[list[uuid.UUID], str]:
    """Team ids to process and the company timezone they share."""
    async with async_session_factory() as db:
        if team_id is not None:
            team = await OrganizationService.get_team(db, team_id)
            tz = await OrganizationService.get_company_timezone(db, team.company_id)
            return [team.id], tz
        company = await OrganizationService.get_company(db, company_id)
        teams = await OrganizationService.get_company_teams(db, company.id)
        return [t.id for t in teams], OrganizationService.resolve_timezone(company)

async def _recalculate_day(team_id: uuid.UUID, day: date, tz: str) -> None:
    async with session_scope() as db:
        await DailySummaryService.recalculate_daily_team_summary(db, team_id, day, tz)

async def run(
    team_id: Optional[uuid.UUID],
    company_id: Optional[uuid.UUID],
    start: Optional[date],
    end: Optional[date],
    days: int,
    dry_run: bool,
) -> dict[str, int]:
    team_ids, tz = await _resolve_targets(team_id, company_id)
    if end is None:
        end = today_in(tz)
    if start is None:
        start = end - timedelta(days=days - 1)

    logger.info(
        "Recomputing %d team(s) from %s to %s (%s)", len(team_ids), start, end, tz,
    )
    stats = {"written": 0, "failed": 0}
    for tid in team_ids:
        for day in iter_days(start, end):
            if dry_run:
                logger.info("  [dry-run] team=%s date=%s", tid, day)
                continue
            try:
                await _recalculate_day(tid, day, tz)
            except AppException as exc:
                logger.error("  team=%s date=%s failed: %s", tid, day, exc.detail)
                stats["failed"] += 1
            except Exception:
                logger.exception("  team=%s date=%s failed", tid, day)
                stats["failed"] += 1
            else:
                stats["written"] += 1
    return stats

# ══════════════════════════════════════════════════════════════════════
# Main
# ══════════════════════════════════════════════════════════════════════

def main():
    parser = argparse.ArgumentParser(
        description="Recompute daily team summaries from source tables",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --team <uuid> --from 2026-03-01 --to 2026-03-31
  %(prog)s --company <uuid> --days 30
        """,
    )
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--team", type=uuid.UUID, help="Team id")
    target.add_argument("--company", type=uuid.UUID, help="Company id (all active teams)")
    parser.add_argument("--from", dest="from_date", type=str,
                        help="Start date (YYYY-MM-DD)")
    parser.add_argument("--to", dest="to_date", type=str,
                        help="End date (YYYY-MM-DD, default: today in company time)")
    parser.add_argument("--days", type=int, default=7,
                        help="Days back from --to (default: 7, ignored if --from set)")
    parser.add_argument("--dry-run", action="store_true",
                        help="List the (team, date) pairs without writing")
    args = parser.parse_args()

    start = parse_date(args.from_date, "from") if args.from_date else None
    end = parse_date(args.to_date, "to") if args.to_date else None
    if start and end and start > end:
        parser.error("--from must be on or before --to")

    stats = asyncio.run(
        run(args.team, args.company, start, end, args.days, args.dry_run)
    )

    print(f"""
{'=' * 60}
  SUMMARY RECOMPUTE COMPLETE
  Written : {stats['written']}
  Failed  : {stats['failed']}
{'=' * 60}
""")
    sys.exit(1 if stats["failed"] else 0)

if __name__ == "__main__":
    main()

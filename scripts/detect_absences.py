#!/usr/bin/env python3
"""Absence Detection Sweep — fallback gap scan for every worker of a company.

Purpose: Catch missed work days for workers who have not opened the app
(detection otherwise runs when a worker checks their own status). Each
worker is processed in its own savepoint; failures are listed at the end
and do not stop the sweep.

Usage:
    python -m scripts.detect_absences --company <uuid>
    python -m scripts.detect_absences --company <uuid> --json

Requires in .env (project root):
    DATABASE_URL
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import uuid

from teamready.absences.schemas import DetectionReport
from teamready.absences.service import AbsenceService
from teamready.database import session_scope

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("detect_absences")

async def run(company_id: uuid.UUID) -> DetectionReport:
    async with session_scope() as db:
        return await AbsenceService.detect_absences_for_company(db, company_id)

def main():
    parser = argparse.ArgumentParser(
        description="Detect absences for every active worker of a company",
    )
    parser.add_argument("--company", type=uuid.UUID, required=True, help="Company id")
    parser.add_argument("--json", action="store_true", help="Print the report as JSON")
    args = parser.parse_args()

    report = asyncio.run(run(args.company))

    if args.json:
        print(report.model_dump_json(indent=2))
    else:
        print(f"""
{'=' * 60}
  ABSENCE DETECTION COMPLETE
  Workers scanned : {report.workers_processed}
  Absences created: {report.absences_created}
  Errors          : {len(report.errors)}
{'=' * 60}
""")
        for err in report.errors:
            print(f"   • {err.user_id}: {err.error}")

    sys.exit(1 if report.errors else 0)

if __name__ == "__main__":
    main()

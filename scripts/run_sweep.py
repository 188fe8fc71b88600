"""
Run one background sweep immediately, outside the scheduler.

    python scripts/run_sweep.py rollover
    python scripts/run_sweep.py trials
"""
import argparse
import asyncio
import json
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from subly.config import settings  # noqa: E402
from subly.core.logger import configure_logging  # noqa: E402
from subly.database import init_db  # noqa: E402
from subly.services.jobs import (  # noqa: E402
    PAYMENT_REMINDER_JOB,
    ROLLOVER_JOB,
    TRIAL_REMINDER_JOB,
    build_services,
)

SWEEPS = {
    "rollover": ROLLOVER_JOB,
    "trials": TRIAL_REMINDER_JOB,
    "payments": PAYMENT_REMINDER_JOB,
}


async def run(sweep: str) -> dict:
    service = build_services(settings)[SWEEPS[sweep]]
    if sweep == "rollover":
        report = await service.run()
    else:
        report = await service.check()
    return report.as_dict()


def main() -> int:
    parser = argparse.ArgumentParser(description="Run a Subly background sweep once")
    parser.add_argument("sweep", choices=sorted(SWEEPS))
    args = parser.parse_args()

    configure_logging(settings.log_level)
    init_db()
    report = asyncio.run(run(args.sweep))
    print(json.dumps(report, indent=2))
    return 1 if report.get("error") else 0


if __name__ == "__main__":
    sys.exit(main())

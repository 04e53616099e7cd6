#!/usr/bin/env python3
"""
Run the scheduled marketplace sweeps once.

Usage:
    python -m scripts.run_scheduled_jobs                 # All sweeps
    python -m scripts.run_scheduled_jobs --job expire    # Only expire stale proposals

Jobs:
    expire              Pending trades past their response deadline are cancelled
    trade-auto-confirm  Shipped trades past the auto-confirm period complete
    order-auto-confirm  Delivered orders past the auto-confirm period complete

Run from the backend directory (cron every 15 minutes):
    cd backend
    python -m scripts.run_scheduled_jobs
"""

import argparse
import sys
from datetime import datetime, timezone
from pathlib import Path

# Add backend and repository root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from api.config.logging import configure_logging
from api.services.container import ServiceContainer

JOBS = ("expire", "trade-auto-confirm", "order-auto-confirm")


def run_jobs(container: ServiceContainer, jobs, now: datetime) -> dict:
    """
    Run the selected sweeps.

    Returns:
        Mapping of job name to the number of entities moved
    """
    results = {}
    if "expire" in jobs:
        results["expire"] = len(container.trade_service.expire_stale(now))
    if "trade-auto-confirm" in jobs:
        results["trade-auto-confirm"] = len(container.trade_service.auto_confirm_due(now))
    if "order-auto-confirm" in jobs:
        results["order-auto-confirm"] = len(container.order_service.auto_confirm_due(now))
    return results


def main():
    parser = argparse.ArgumentParser(
        description="Run scheduled trade and order sweeps"
    )
    parser.add_argument(
        "--job", "-j",
        action="append",
        choices=JOBS,
        help="Job to run (repeatable); all jobs when omitted"
    )

    args = parser.parse_args()

    configure_logging()
    container = ServiceContainer.from_settings()
    try:
        results = run_jobs(container, args.job or JOBS, datetime.now(timezone.utc))
    finally:
        container.close()

    print("\n=== Scheduled jobs ===\n")
    for job, count in results.items():
        print(f"  {job}: {count} processed")


if __name__ == "__main__":
    main()

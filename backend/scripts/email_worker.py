#!/usr/bin/env python3
"""
Email worker: sends queued emails one job at a time.

Usage:
    python -m scripts.email_worker              # Run until interrupted
    python -m scripts.email_worker --once       # Drain the queue and exit

Requires REDIS_URL and the SMTP_* variables. Run from the backend directory:
    cd backend
    python -m scripts.email_worker
"""

import argparse
import sys
from pathlib import Path

# Add backend and repository root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from api.config.logging import configure_logging
from api.config.settings import get_settings
from src.cache.cache_service import CacheService
from src.notifications.providers import SmtpEmailProvider
from src.notifications.queue import EmailQueue


def drain(queue: EmailQueue, provider: SmtpEmailProvider, once: bool = False, timeout: int = 5) -> dict:
    """
    Process jobs until interrupted, or until the queue is empty when `once` is set.

    Returns:
        Counts of sent and failed jobs
    """
    counts = {"sent": 0, "failed": 0}
    while True:
        result = queue.process_next(provider, timeout=timeout)
        if result is None:
            if once:
                return counts
            continue
        counts["sent" if result else "failed"] += 1


def main():
    parser = argparse.ArgumentParser(description="Send queued emails")
    parser.add_argument(
        "--once",
        action="store_true",
        help="Exit when the queue is empty"
    )
    parser.add_argument(
        "--timeout", "-t",
        type=int,
        default=5,
        help="Seconds to block waiting for a job"
    )

    args = parser.parse_args()

    configure_logging()
    settings = get_settings()
    cache = CacheService(redis_url=settings.redis_url or "")
    if not cache.enabled:
        print("Error: REDIS_URL is not set or Redis is unreachable")
        sys.exit(1)

    provider = SmtpEmailProvider.from_env()
    if not provider.is_configured():
        print("Error: SMTP is not configured (SMTP_HOST, SMTP_USER, SMTP_PASSWORD)")
        sys.exit(1)

    queue = EmailQueue(cache.client)
    print(f"Email worker started, {queue.size()} job(s) waiting")
    try:
        counts = drain(queue, provider, once=args.once, timeout=args.timeout)
    except KeyboardInterrupt:
        print("\nEmail worker stopped")
        return
    print(f"Sent: {counts['sent']}, failed: {counts['failed']}")


if __name__ == "__main__":
    main()

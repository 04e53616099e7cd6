"""
Best-effort side effects
Cache invalidation and notifications may fail independently of the operation
that triggered them. Failures are logged and reported, never raised.
"""

from typing import Callable, Any, Optional

import structlog
from pydantic import BaseModel

logger = structlog.get_logger()


class SideEffectOutcome(BaseModel):
    """What happened to one best-effort action"""
    name: str
    ok: bool
    error: Optional[str] = None


def run_best_effort(name: str, action: Callable[[], Any], **context) -> SideEffectOutcome:
    """
    Run action, swallowing and logging any exception

    Args:
        name: Short identifier used in logs and outcomes, e.g. 'cache.invalidate'
        action: Zero-argument callable
        **context: Extra key/values for the warning log

    Returns:
        SideEffectOutcome with ok=False and the error text on failure
    """
    try:
        action()
        return SideEffectOutcome(name=name, ok=True)
    except Exception as e:
        logger.warning("Side effect failed", side_effect=name, error=str(e), **context)
        return SideEffectOutcome(name=name, ok=False, error=str(e))

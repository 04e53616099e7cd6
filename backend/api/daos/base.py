"""
Shared helpers for Supabase DAOs.
"""

from typing import Any, Dict, List, Optional

from src.errors import DomainError

UNIQUE_VIOLATION = "23505"


def is_unique_violation(error: Exception) -> bool:
    """True when PostgREST reports a unique-constraint violation."""
    code = getattr(error, "code", None)
    if code is None and error.args and isinstance(error.args[0], dict):
        code = error.args[0].get("code")
    return str(code) == UNIQUE_VIOLATION


def reraise_database_error(action: str, error: Exception) -> None:
    """Let domain errors through; wrap anything else with the failed action."""
    if isinstance(error, DomainError):
        raise error
    raise Exception(f"Database error while {action}: {str(error)}") from error


def first_row(data: Optional[List[Dict[str, Any]]]) -> Optional[Dict[str, Any]]:
    if data and len(data) > 0:
        return data[0]
    return None

"""
Admin audit trail
Append-only record of admin actions with JSON-safe before/after snapshots
"""

from datetime import datetime, timezone
from typing import Callable, Dict, Any, Optional

import structlog
from pydantic import BaseModel

from src.governance.policy_engine import MarketplacePolicy
from src.models.audit import AdminAuditLog, AuditAction, AuditLogQuery, AuditLogPage
from src.persistence.interfaces import AuditLogRepository

logger = structlog.get_logger()


def snapshot(value: Any) -> Optional[Dict[str, Any]]:
    """Serialise a model or mapping to plain JSON types (datetimes as ISO strings)"""
    if value is None:
        return None
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    return {key: (val.isoformat() if isinstance(val, datetime) else val) for key, val in dict(value).items()}


class AuditTrail:
    def __init__(
        self,
        repository: AuditLogRepository,
        policy: Optional[MarketplacePolicy] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.repository = repository
        self.policy = policy
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def record(
        self,
        admin_id: str,
        action: AuditAction,
        entity_type: str,
        entity_id: str,
        old_values: Any = None,
        new_values: Any = None
    ) -> AdminAuditLog:
        entry = AdminAuditLog(
            admin_id=admin_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            old_values=snapshot(old_values),
            new_values=snapshot(new_values),
            created_at=self.clock(),
        )
        self.repository.append(entry)
        logger.info("Admin action audited", admin_id=admin_id, action=action.value,
                    entity_type=entity_type, entity_id=entity_id)
        return entry

    def query(
        self,
        action: Optional[AuditAction] = None,
        admin_id: Optional[str] = None,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None,
        page: int = 1,
        limit: Optional[int] = None
    ) -> AuditLogPage:
        """Filtered read, newest first"""
        default_limit = self.policy.get_audit_default_limit() if self.policy else 50
        query = AuditLogQuery(
            action=action,
            admin_id=admin_id,
            from_date=from_date,
            to_date=to_date,
            page=max(1, page),
            limit=limit or default_limit,
        )
        entries, total = self.repository.query(query)
        return AuditLogPage(
            data=entries,
            total=total,
            page=query.page,
            limit=query.limit,
            total_pages=(total + query.limit - 1) // query.limit,
        )

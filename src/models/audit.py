"""
Audit logging models
Append-only trail of admin actions on marketplace entities
"""

from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any, List

from pydantic import BaseModel, Field

from src.models.trade import _new_id, _utc_now


class AuditAction(str, Enum):
    """Types of admin actions that are audited"""
    # Trade administration
    TRADE_RESOLVE = "trade_resolve"

    # Order administration
    ORDER_STATUS_UPDATE = "order_status_update"
    ORDER_REFUND = "order_refund"

    # Moderation
    RATING_REMOVE = "rating_remove"


class AdminAuditLog(BaseModel):
    """
    Individual audit log entry
    Old and new values are JSON-safe snapshots of the entity
    """
    id: str = Field(default_factory=_new_id)
    admin_id: str = Field(..., description="Admin who performed the action")
    action: AuditAction
    entity_type: str = Field(..., description="Entity kind, e.g. 'Trade'")
    entity_id: str
    old_values: Optional[Dict[str, Any]] = None
    new_values: Optional[Dict[str, Any]] = None
    created_at: datetime = Field(default_factory=_utc_now)


class AuditLogQuery(BaseModel):
    """Filters for reading the audit log"""
    action: Optional[AuditAction] = None
    admin_id: Optional[str] = None
    from_date: Optional[datetime] = None
    to_date: Optional[datetime] = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=50, ge=1, le=200)


class AuditLogPage(BaseModel):
    data: List[AdminAuditLog] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = 50
    total_pages: int = 0

"""
Pydantic models for admin back-office responses.
"""

from datetime import datetime
from typing import Optional, Dict, Any, List
from pydantic import BaseModel, Field

from src.models.audit import AuditAction


class AuditLogResponse(BaseModel):
    """Model for one audit log entry."""
    id: str
    admin_id: str
    action: AuditAction
    entity_type: str
    entity_id: str
    old_values: Optional[Dict[str, Any]] = None
    new_values: Optional[Dict[str, Any]] = None
    created_at: datetime

    class Config:
        from_attributes = True


class AuditLogListResponse(BaseModel):
    """Paginated audit log, newest first."""
    data: List[AuditLogResponse] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = 50
    total_pages: int = 0

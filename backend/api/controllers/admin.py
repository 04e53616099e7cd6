"""
Admin controller.
Audit log reads. Trade administration lives in TradeController.
"""

from datetime import datetime
from typing import Optional

from api.models.admin import AuditLogListResponse
from src.governance.audit_trail import AuditTrail
from src.models.audit import AuditAction


class AdminController:
    """Controller for the admin audit log."""

    def __init__(self, audit: AuditTrail):
        self.audit = audit

    def audit_logs(
        self,
        action: Optional[AuditAction] = None,
        admin_id: Optional[str] = None,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None,
        page: int = 1,
        limit: Optional[int] = None
    ) -> AuditLogListResponse:
        result = self.audit.query(
            action=action,
            admin_id=admin_id,
            from_date=from_date,
            to_date=to_date,
            page=page,
            limit=limit,
        )
        return AuditLogListResponse.model_validate(result.model_dump())

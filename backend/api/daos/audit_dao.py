"""
Data Access Object for the admin audit log (append-only).
"""

from typing import List, Optional, Tuple
from supabase import Client

from api.config.database import get_db
from api.daos.base import reraise_database_error
from src.models.audit import AdminAuditLog, AuditLogQuery
from src.persistence.interfaces import AuditLogRepository, page_offset


class AuditLogDAO(AuditLogRepository):
    """Handles database operations for the admin_audit_logs table."""

    def __init__(self, db_client: Optional[Client] = None):
        self.db = db_client or get_db()
        self.table_name = "admin_audit_logs"

    def append(self, entry: AdminAuditLog) -> AdminAuditLog:
        try:
            self.db.table(self.table_name).insert(entry.model_dump(mode="json")).execute()
            return entry
        except Exception as e:
            reraise_database_error("creating audit log", e)

    def query(self, query: AuditLogQuery) -> Tuple[List[AdminAuditLog], int]:
        try:
            request = self.db.table(self.table_name).select("*", count="exact")
            if query.action is not None:
                request = request.eq("action", query.action.value)
            if query.admin_id:
                request = request.eq("admin_id", query.admin_id)
            if query.from_date:
                request = request.gte("created_at", query.from_date.isoformat())
            if query.to_date:
                request = request.lte("created_at", query.to_date.isoformat())

            offset = page_offset(query.page, query.limit)
            response = (
                request.order("created_at", desc=True)
                .range(offset, offset + query.limit - 1)
                .execute()
            )
            return [AdminAuditLog(**row) for row in response.data or []], response.count or 0
        except Exception as e:
            reraise_database_error("querying audit logs", e)

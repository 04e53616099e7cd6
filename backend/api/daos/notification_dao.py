"""
Data Access Object for notification logs and push tokens.
In-app notifications are notification_logs rows with channel = 'in_app'.
"""

from typing import List, Optional, Tuple
from supabase import Client

from api.config.database import get_db
from api.daos.base import reraise_database_error
from src.models.notification import NotificationLog, PushToken, NotificationChannel, DeliveryStatus
from src.persistence.interfaces import NotificationRepository


class NotificationDAO(NotificationRepository):
    """Handles database operations for notification_logs and push_tokens tables."""

    def __init__(self, db_client: Optional[Client] = None):
        self.db = db_client or get_db()
        self.table_name = "notification_logs"
        self.tokens_table = "push_tokens"

    def add_log(self, log: NotificationLog) -> NotificationLog:
        try:
            self.db.table(self.table_name).insert(log.model_dump(mode="json")).execute()
            return log
        except Exception as e:
            reraise_database_error("creating notification log", e)

    def list_in_app(self, user_id: str, offset: int, limit: int) -> Tuple[List[NotificationLog], int]:
        try:
            response = (
                self.db.table(self.table_name)
                .select("*", count="exact")
                .eq("user_id", user_id)
                .eq("channel", NotificationChannel.IN_APP.value)
                .order("created_at", desc=True)
                .range(offset, offset + limit - 1)
                .execute()
            )
            return [NotificationLog(**row) for row in response.data or []], response.count or 0
        except Exception as e:
            reraise_database_error("listing in-app notifications", e)

    def count_unread(self, user_id: str) -> int:
        try:
            response = (
                self.db.table(self.table_name)
                .select("id", count="exact")
                .eq("user_id", user_id)
                .eq("channel", NotificationChannel.IN_APP.value)
                .eq("status", DeliveryStatus.SENT.value)
                .execute()
            )
            return response.count or 0
        except Exception as e:
            reraise_database_error("counting unread notifications", e)

    def mark_read(self, notification_id: str, user_id: str) -> bool:
        try:
            response = (
                self.db.table(self.table_name)
                .update({"status": DeliveryStatus.READ.value})
                .eq("id", notification_id)
                .eq("user_id", user_id)
                .execute()
            )
            return bool(response.data)
        except Exception as e:
            reraise_database_error("marking notification read", e)

    def mark_all_read(self, user_id: str) -> int:
        try:
            response = (
                self.db.table(self.table_name)
                .update({"status": DeliveryStatus.READ.value})
                .eq("user_id", user_id)
                .eq("channel", NotificationChannel.IN_APP.value)
                .eq("status", DeliveryStatus.SENT.value)
                .execute()
            )
            return len(response.data or [])
        except Exception as e:
            reraise_database_error("marking notifications read", e)

    def save_push_token(self, token: PushToken) -> PushToken:
        try:
            self.db.table(self.tokens_table).upsert(
                token.model_dump(mode="json"), on_conflict="token"
            ).execute()
            return token
        except Exception as e:
            reraise_database_error("saving push token", e)

    def get_push_tokens(self, user_id: str) -> List[PushToken]:
        try:
            response = self.db.table(self.tokens_table).select("*").eq("user_id", user_id).execute()
            return [PushToken(**row) for row in response.data or []]
        except Exception as e:
            reraise_database_error("fetching push tokens", e)

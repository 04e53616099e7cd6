"""
Notification controller.
In-app inbox, read state, push-token registration and provider status.
"""

from typing import Dict, Optional

from api.auth import CurrentUser
from api.models.notification import PushTokenRequest, UnreadCountResponse, MarkReadResponse
from src.errors import NotFoundError
from src.models.notification import InAppNotificationPage
from src.notifications.dispatcher import NotificationDispatcher


class NotificationController:
    """Controller for the in-app notification inbox."""

    def __init__(self, dispatcher: NotificationDispatcher):
        self.dispatcher = dispatcher

    def inbox(self, user: CurrentUser, page: int, limit: Optional[int]) -> InAppNotificationPage:
        return self.dispatcher.get_in_app_notifications(user.id, page, limit)

    def unread_count(self, user: CurrentUser) -> UnreadCountResponse:
        return UnreadCountResponse(count=self.dispatcher.get_unread_count(user.id))

    def mark_read(self, user: CurrentUser, notification_id: str) -> MarkReadResponse:
        if not self.dispatcher.mark_as_read(notification_id, user.id):
            raise NotFoundError("Bildirim bulunamadı")
        return MarkReadResponse(success=True, updated=1)

    def mark_all_read(self, user: CurrentUser) -> MarkReadResponse:
        return MarkReadResponse(success=True, updated=self.dispatcher.mark_all_as_read(user.id))

    def register_push_token(self, user: CurrentUser, request: PushTokenRequest) -> Dict[str, bool]:
        self.dispatcher.register_push_token(user.id, request.token, request.platform, request.device_id)
        return {"success": True}

    def provider_status(self) -> Dict[str, bool]:
        return self.dispatcher.get_provider_status()

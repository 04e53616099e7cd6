"""
Notification Dispatcher
Fans one event out to email, push, SMS and in-app channels

Each channel is attempted once and independently; a failure on one channel
never blocks the others. Every attempt is written to the notification log.
"""

from datetime import datetime, timezone
from typing import Callable, Dict, Any, List, Optional, Union

import structlog

from src.governance.policy_engine import MarketplacePolicy
from src.models.notification import (
    NotificationType,
    NotificationChannel,
    NotificationLog,
    NotificationTemplate,
    DeliveryStatus,
    DispatchResult,
    InAppNotification,
    InAppNotificationPage,
    PushToken,
)
from src.notifications.providers import (
    SmtpEmailProvider,
    ExpoPushProvider,
    TwilioSmsProvider,
    render_email_html,
)
from src.notifications.templates import TemplateRegistry
from src.persistence.interfaces import NotificationRepository, UserDirectory, page_offset

logger = structlog.get_logger()


class NotificationDispatcher:
    def __init__(
        self,
        repository: NotificationRepository,
        users: UserDirectory,
        templates: TemplateRegistry,
        email_provider: Optional[SmtpEmailProvider] = None,
        push_provider: Optional[ExpoPushProvider] = None,
        sms_provider: Optional[TwilioSmsProvider] = None,
        policy: Optional[MarketplacePolicy] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.repository = repository
        self.users = users
        self.templates = templates
        self.email_provider = email_provider
        self.push_provider = push_provider
        self.sms_provider = sms_provider
        self.policy = policy
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def _default_channels(self) -> List[NotificationChannel]:
        names = self.policy.get_default_channels() if self.policy else ["email", "in_app"]
        return [NotificationChannel(name) for name in names]

    def send(
        self,
        user_id: str,
        notification_type: Union[NotificationType, str],
        channels: Optional[List[NotificationChannel]] = None,
        data: Optional[Dict[str, Any]] = None
    ) -> DispatchResult:
        """
        Deliver a templated notification to one user

        Args:
            user_id: Recipient
            notification_type: Template key
            channels: Channels to attempt (default from policy: email + in_app)
            data: Placeholder values for the template

        Returns:
            DispatchResult; unknown type or user gives success=False, never raises
        """
        type_key = getattr(notification_type, "value", notification_type)
        rendered = self.templates.render(type_key, data)
        if rendered is None:
            logger.warning("Unknown notification type", type=type_key)
            return DispatchResult(success=False, error="Unknown notification type")

        user = self.users.get_user(user_id)
        if user is None:
            logger.warning("Notification recipient not found", user_id=user_id)
            return DispatchResult(success=False, error="User not found")

        results: Dict[NotificationChannel, bool] = {}
        for channel in channels or self._default_channels():
            try:
                channel = NotificationChannel(channel)
            except ValueError:
                logger.warning("Unknown notification channel skipped", channel=channel, user_id=user_id)
                continue
            if channel == NotificationChannel.IN_APP:
                results[channel] = self._save_in_app(user_id, type_key, rendered, data)
                continue
            if channel == NotificationChannel.SMS and not user.phone:
                continue

            if channel == NotificationChannel.EMAIL:
                results[channel] = self._attempt(channel, lambda: self._send_email(user.email, rendered))
            elif channel == NotificationChannel.PUSH:
                results[channel] = self._attempt(channel, lambda: self._send_push(user_id, rendered, data))
            else:
                results[channel] = self._attempt(channel, lambda: self._send_sms(user.phone, rendered))
            self._log(user_id, channel, type_key, rendered, results[channel])

        logger.info("Notification dispatched", user_id=user_id, type=type_key,
                    channels={c.value: ok for c, ok in results.items()})
        return DispatchResult(success=True, channels=results)

    def create_in_app_notification(
        self,
        user_id: str,
        notification_type: Union[NotificationType, str],
        data: Optional[Dict[str, Any]] = None
    ) -> bool:
        """Write only the in-app row; used by services that skip email/push"""
        type_key = getattr(notification_type, "value", notification_type)
        rendered = self.templates.render(type_key, data)
        if rendered is None:
            logger.warning("Unknown notification type", type=type_key)
            return False
        return self._save_in_app(user_id, type_key, rendered, data)

    # Channels

    def _attempt(self, channel: NotificationChannel, deliver: Callable[[], bool]) -> bool:
        try:
            return bool(deliver())
        except Exception as e:
            logger.error("Notification channel failed", channel=channel.value, error=str(e))
            return False

    def _send_email(self, to_email: str, rendered: NotificationTemplate) -> bool:
        if self.email_provider is None:
            logger.warning("No email provider configured")
            return False
        return self.email_provider.send(to_email, rendered.title, render_email_html(rendered.title, rendered.message))

    def _send_push(self, user_id: str, rendered: NotificationTemplate, data: Optional[Dict[str, Any]]) -> bool:
        if self.push_provider is None:
            logger.warning("No push provider configured")
            return False
        tokens = self.repository.get_push_tokens(user_id)
        return self.push_provider.send(tokens, rendered.title, rendered.message, data)

    def _send_sms(self, phone: str, rendered: NotificationTemplate) -> bool:
        if self.sms_provider is None:
            logger.warning("No SMS provider configured")
            return False
        return self.sms_provider.send(phone, rendered.message)

    def _save_in_app(self, user_id: str, type_key: str, rendered: NotificationTemplate,
                     data: Optional[Dict[str, Any]]) -> bool:
        now = self.clock()
        row = NotificationLog(
            user_id=user_id,
            channel=NotificationChannel.IN_APP,
            type=type_key,
            title=rendered.title,
            body=rendered.message,
            data={**(data or {}), "icon": rendered.icon, "link": rendered.link},
            status=DeliveryStatus.SENT,
            sent_at=now,
            created_at=now,
        )
        try:
            self.repository.add_log(row)
            return True
        except Exception as e:
            logger.error("Failed to save in-app notification", user_id=user_id, error=str(e))
            return False

    def _log(self, user_id: str, channel: NotificationChannel, type_key: str,
             rendered: NotificationTemplate, success: bool) -> None:
        now = self.clock()
        row = NotificationLog(
            user_id=user_id,
            channel=channel,
            type=type_key,
            title=rendered.title,
            body=rendered.message,
            status=DeliveryStatus.SENT if success else DeliveryStatus.FAILED,
            sent_at=now if success else None,
            error_message=None if success else "Delivery failed",
            created_at=now,
        )
        try:
            self.repository.add_log(row)
        except Exception as e:
            logger.error("Failed to log notification", user_id=user_id, channel=channel.value, error=str(e))

    # In-app inbox

    def get_in_app_notifications(self, user_id: str, page: int = 1,
                                 limit: Optional[int] = None) -> InAppNotificationPage:
        page = max(1, page)
        limit = limit or (self.policy.get_notification_page_size() if self.policy else 20)
        rows, total = self.repository.list_in_app(user_id, page_offset(page, limit), limit)
        notifications = [
            InAppNotification(
                id=row.id,
                type=row.type,
                title=row.title,
                message=row.body,
                icon=row.data.get("icon") or self.templates.default_icon(row.type),
                link=row.data.get("link"),
                is_read=row.status == DeliveryStatus.READ,
                created_at=row.created_at,
                data=row.data,
            )
            for row in rows
        ]
        return InAppNotificationPage(
            notifications=notifications,
            unread_count=self.repository.count_unread(user_id),
            page=page,
            limit=limit,
            total=total,
            pages=(total + limit - 1) // limit,
        )

    def mark_as_read(self, notification_id: str, user_id: str) -> bool:
        return self.repository.mark_read(notification_id, user_id)

    def mark_all_as_read(self, user_id: str) -> int:
        return self.repository.mark_all_read(user_id)

    def get_unread_count(self, user_id: str) -> int:
        return self.repository.count_unread(user_id)

    def register_push_token(self, user_id: str, token: str, platform: Optional[str] = None,
                            device_id: Optional[str] = None) -> PushToken:
        push_token = PushToken(user_id=user_id, token=token, platform=platform,
                               device_id=device_id, created_at=self.clock())
        return self.repository.save_push_token(push_token)

    def get_provider_status(self) -> Dict[str, bool]:
        return {
            "email": bool(self.email_provider and self.email_provider.is_configured()),
            "push": bool(self.push_provider and self.push_provider.is_configured()),
            "sms": bool(self.sms_provider and self.sms_provider.is_configured()),
        }

"""
Notification data models
Templates, per-channel delivery log rows and dispatch results
"""

from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any, List

from pydantic import BaseModel, Field

from src.models.trade import _new_id, _utc_now


class NotificationType(str, Enum):
    """Events that produce a user notification"""
    # Order lifecycle
    ORDER_CREATED = "order_created"
    ORDER_PAID = "order_paid"
    ORDER_SHIPPED = "order_shipped"
    ORDER_DELIVERED = "order_delivered"
    ORDER_COMPLETED = "order_completed"
    ORDER_CANCELLED = "order_cancelled"
    ORDER_REFUNDED = "order_refunded"

    # Trade lifecycle
    TRADE_RECEIVED = "trade_received"
    TRADE_ACCEPTED = "trade_accepted"
    TRADE_REJECTED = "trade_rejected"
    TRADE_COUNTER = "trade_counter"
    TRADE_CANCELLED = "trade_cancelled"
    TRADE_SHIPPED = "trade_shipped"
    TRADE_COMPLETED = "trade_completed"
    TRADE_DISPUTED = "trade_disputed"
    TRADE_DISPUTE_RESOLVED = "trade_dispute_resolved"

    # Reviews
    REVIEW_RECEIVED = "review_received"

    # General
    WELCOME = "welcome"
    SYSTEM_ANNOUNCEMENT = "system_announcement"


class NotificationChannel(str, Enum):
    EMAIL = "email"
    PUSH = "push"
    SMS = "sms"
    IN_APP = "in_app"


class DeliveryStatus(str, Enum):
    SENT = "sent"
    FAILED = "failed"
    READ = "read"  # Only for in-app rows


class NotificationTemplate(BaseModel):
    """Static template resolved by notification type"""
    title: str
    message: str
    icon: Optional[str] = None
    link: Optional[str] = None


class NotificationLog(BaseModel):
    """
    One delivery attempt on one channel
    In-app notifications are the rows with channel=in_app
    """
    id: str = Field(default_factory=_new_id)
    user_id: str
    channel: NotificationChannel
    type: str
    title: str
    body: str
    data: Dict[str, Any] = Field(default_factory=dict)
    status: DeliveryStatus
    sent_at: Optional[datetime] = None
    error_message: Optional[str] = None
    created_at: datetime = Field(default_factory=_utc_now)


class PushToken(BaseModel):
    user_id: str
    token: str
    platform: Optional[str] = Field(None, description="ios, android or web")
    device_id: Optional[str] = None
    created_at: datetime = Field(default_factory=_utc_now)


class DispatchResult(BaseModel):
    """Outcome of NotificationDispatcher.send"""
    success: bool
    channels: Dict[NotificationChannel, bool] = Field(default_factory=dict)
    error: Optional[str] = None


class InAppNotification(BaseModel):
    """In-app notification as shown in the bell menu"""
    id: str
    type: str
    title: str
    message: str
    icon: Optional[str] = None
    link: Optional[str] = None
    is_read: bool = False
    created_at: datetime
    data: Dict[str, Any] = Field(default_factory=dict)


class InAppNotificationPage(BaseModel):
    notifications: List[InAppNotification] = Field(default_factory=list)
    unread_count: int = 0
    page: int = 1
    limit: int = 20
    total: int = 0
    pages: int = 0

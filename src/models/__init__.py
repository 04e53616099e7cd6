"""
Data models for the Tarodan marketplace core
"""

from .trade import (
    Trade,
    TradeItem,
    TradeSide,
    TradeStatus,
    TradeDispute,
    Shipment,
    ShipmentStatus,
    DisputeResolution,
)
from .order import Order, OrderStatus
from .catalog import Product, ProductStatus, UserContact, UserRole
from .rating import UserRating, ProductRating, RatingStats
from .notification import (
    NotificationType,
    NotificationChannel,
    NotificationLog,
    DeliveryStatus,
    DispatchResult,
)
from .audit import AdminAuditLog, AuditAction

__all__ = [
    "Trade",
    "TradeItem",
    "TradeSide",
    "TradeStatus",
    "TradeDispute",
    "Shipment",
    "ShipmentStatus",
    "DisputeResolution",
    "Order",
    "OrderStatus",
    "Product",
    "ProductStatus",
    "UserContact",
    "UserRole",
    "UserRating",
    "ProductRating",
    "RatingStats",
    "NotificationType",
    "NotificationChannel",
    "NotificationLog",
    "DeliveryStatus",
    "DispatchResult",
    "AdminAuditLog",
    "AuditAction",
]

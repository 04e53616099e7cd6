"""Pydantic models for API request/response validation."""

from api.models.trade import (
    TradeProposeRequest,
    TradeCounterRequest,
    TradeReasonRequest,
    TradeShipRequest,
    TradeDisputeRequest,
    ResolveDisputeRequest,
    TradeResponse,
    CounterTradeResponse,
    TradeListResponse,
)
from api.models.order import (
    OrderCreateRequest,
    OrderShipRequest,
    OrderCancelRequest,
    OrderResponse,
)
from api.models.rating import (
    UserRatingCreate,
    ProductRatingCreate,
    UserRatingResponse,
    ProductRatingResponse,
)
from api.models.notification import PushTokenRequest, UnreadCountResponse, MarkReadResponse
from api.models.admin import AuditLogResponse, AuditLogListResponse

__all__ = [
    "TradeProposeRequest",
    "TradeCounterRequest",
    "TradeReasonRequest",
    "TradeShipRequest",
    "TradeDisputeRequest",
    "ResolveDisputeRequest",
    "TradeResponse",
    "CounterTradeResponse",
    "TradeListResponse",
    "OrderCreateRequest",
    "OrderShipRequest",
    "OrderCancelRequest",
    "OrderResponse",
    "UserRatingCreate",
    "ProductRatingCreate",
    "UserRatingResponse",
    "ProductRatingResponse",
    "PushTokenRequest",
    "UnreadCountResponse",
    "MarkReadResponse",
    "AuditLogResponse",
    "AuditLogListResponse",
]

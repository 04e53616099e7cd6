"""
Order data models
A single-product purchase paid through an external gateway
"""

from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any

from pydantic import BaseModel, Field

from src.models.trade import _new_id, _utc_now


class OrderStatus(str, Enum):
    """Lifecycle status of an order"""
    PENDING_PAYMENT = "pending_payment"
    PAID = "paid"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


# Statuses after which the buyer has the goods in hand
RATEABLE_ORDER_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.COMPLETED})


class Order(BaseModel):
    """Order between one buyer and one seller for one product"""
    id: str = Field(default_factory=_new_id)
    buyer_id: str
    seller_id: str
    product_id: str
    amount: float = Field(..., gt=0, description="Order total in TRY")
    status: OrderStatus = Field(default=OrderStatus.PENDING_PAYMENT)

    payment_id: Optional[str] = Field(None, description="Gateway payment reference")
    carrier: Optional[str] = None
    tracking_number: Optional[str] = None

    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)
    paid_at: Optional[datetime] = None
    shipped_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    auto_confirmed: bool = False
    cancelled_at: Optional[datetime] = None
    cancelled_by: Optional[str] = None
    cancel_reason: Optional[str] = None
    refunded_at: Optional[datetime] = None
    refund_amount: Optional[float] = None

    metadata: Dict[str, Any] = Field(default_factory=dict)

    def is_party(self, user_id: str) -> bool:
        return user_id in (self.buyer_id, self.seller_id)

    def other_party(self, user_id: str) -> Optional[str]:
        if user_id == self.buyer_id:
            return self.seller_id
        if user_id == self.seller_id:
            return self.buyer_id
        return None

"""
Pydantic models for order requests and responses.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from src.models.order import OrderStatus


class OrderCreateRequest(BaseModel):
    """Model for buying a product."""
    product_id: str = Field(..., description="Product to buy")


class OrderShipRequest(BaseModel):
    """Model for the seller shipping an order."""
    carrier: str = Field(..., min_length=1)
    tracking_number: Optional[str] = None


class OrderCancelRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class OrderResponse(BaseModel):
    """Model for order response."""
    id: str = Field(..., description="Order UUID")
    buyer_id: str
    seller_id: str
    product_id: str
    amount: float
    status: OrderStatus
    payment_id: Optional[str] = None
    carrier: Optional[str] = None
    tracking_number: Optional[str] = None
    paid_at: Optional[datetime] = None
    shipped_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancel_reason: Optional[str] = None
    refund_amount: Optional[float] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

"""
Pydantic models for rating requests and responses.
"""

from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field


class UserRatingCreate(BaseModel):
    """Model for rating the other party of an order or a trade."""
    receiver_id: str = Field(..., description="User being rated")
    order_id: Optional[str] = Field(None, description="Delivered or completed order")
    trade_id: Optional[str] = Field(None, description="Completed trade")
    score: int = Field(..., description="1 to 5")
    comment: Optional[str] = Field(None, max_length=1000)


class ProductRatingCreate(BaseModel):
    """Model for reviewing a purchased product."""
    product_id: str
    order_id: str
    score: int
    title: Optional[str] = Field(None, max_length=200)
    review: Optional[str] = Field(None, max_length=2000)
    images: List[str] = Field(default_factory=list)


class UserRatingResponse(BaseModel):
    id: str
    giver_id: str
    receiver_id: str
    order_id: Optional[str] = None
    trade_id: Optional[str] = None
    score: int
    comment: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ProductRatingResponse(BaseModel):
    id: str
    product_id: str
    user_id: str
    order_id: str
    score: int
    title: Optional[str] = None
    review: Optional[str] = None
    images: List[str] = Field(default_factory=list)
    is_verified_purchase: bool = True
    helpful_count: int = 0
    created_at: datetime

    class Config:
        from_attributes = True

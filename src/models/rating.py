"""
Rating data models
User ratings are tied to an order or a trade, product ratings to an order
"""

from datetime import datetime
from typing import Optional, List, Dict

from pydantic import BaseModel, Field

from src.models.trade import _new_id, _utc_now


class UserRating(BaseModel):
    """Rating one party gives the other after an order or trade"""
    id: str = Field(default_factory=_new_id)
    giver_id: str
    receiver_id: str
    order_id: Optional[str] = None
    trade_id: Optional[str] = None
    score: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=1000)
    created_at: datetime = Field(default_factory=_utc_now)


class ProductRating(BaseModel):
    """Verified-purchase review of a product"""
    id: str = Field(default_factory=_new_id)
    product_id: str
    user_id: str
    order_id: str
    score: int = Field(..., ge=1, le=5)
    title: Optional[str] = Field(None, max_length=200)
    review: Optional[str] = Field(None, max_length=2000)
    images: List[str] = Field(default_factory=list)
    is_verified_purchase: bool = True
    helpful_count: int = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=_utc_now)


class RatingStats(BaseModel):
    """Aggregate score for a user or a product"""
    subject_id: str
    total_ratings: int = 0
    average_score: float = 0.0
    score_distribution: Dict[int, int] = Field(
        default_factory=lambda: {1: 0, 2: 0, 3: 0, 4: 0, 5: 0}
    )


class RatingPage(BaseModel):
    """One page of ratings, newest first"""
    ratings: List[UserRating] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = 20


class ProductRatingPage(BaseModel):
    ratings: List[ProductRating] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = 20

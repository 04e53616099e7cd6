"""
Rating controller.
"""

from typing import Optional

from api.auth import CurrentUser
from api.models.rating import (
    UserRatingCreate,
    ProductRatingCreate,
    UserRatingResponse,
    ProductRatingResponse,
)
from src.models.rating import RatingPage, ProductRatingPage, RatingStats
from src.ratings.service import RatingService


class RatingController:
    """Controller for user and product ratings."""

    def __init__(self, service: RatingService):
        self.service = service

    def rate_user(self, user: CurrentUser, request: UserRatingCreate) -> UserRatingResponse:
        rating = self.service.create_user_rating(
            giver_id=user.id,
            receiver_id=request.receiver_id,
            score=request.score,
            order_id=request.order_id,
            trade_id=request.trade_id,
            comment=request.comment,
        )
        return UserRatingResponse.model_validate(rating)

    def rate_product(self, user: CurrentUser, request: ProductRatingCreate) -> ProductRatingResponse:
        rating = self.service.create_product_rating(
            user_id=user.id,
            product_id=request.product_id,
            order_id=request.order_id,
            score=request.score,
            title=request.title,
            review=request.review,
            images=request.images,
        )
        return ProductRatingResponse.model_validate(rating)

    def user_ratings(self, user_id: str, page: Optional[int], page_size: Optional[int]) -> RatingPage:
        return self.service.get_user_ratings(user_id, page, page_size)

    def user_stats(self, user_id: str) -> RatingStats:
        return self.service.get_user_rating_stats(user_id)

    def product_ratings(self, product_id: str, page: Optional[int], page_size: Optional[int]) -> ProductRatingPage:
        return self.service.get_product_ratings(product_id, page, page_size)

    def product_stats(self, product_id: str) -> RatingStats:
        return self.service.get_product_rating_stats(product_id)

    def mark_helpful(self, rating_id: str) -> ProductRatingResponse:
        return ProductRatingResponse.model_validate(self.service.mark_product_rating_helpful(rating_id))

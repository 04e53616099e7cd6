"""
Rating Service
User ratings after an order or trade, product reviews after a purchase

A rating is accepted only once the underlying order has been delivered or
the trade completed, only from a party, and only once per (giver, order|trade).
"""

from datetime import datetime, timezone
from typing import Callable, List, Optional

import structlog

from src.cache.cache_service import CacheService
from src.errors import ValidationError, NotFoundError, AuthorizationError, ConflictError
from src.governance.policy_engine import MarketplacePolicy
from src.models.notification import NotificationType
from src.models.order import RATEABLE_ORDER_STATUSES
from src.models.rating import (
    UserRating,
    ProductRating,
    RatingStats,
    RatingPage,
    ProductRatingPage,
)
from src.models.trade import TradeStatus
from src.notifications.dispatcher import NotificationDispatcher
from src.persistence.interfaces import (
    RatingRepository,
    OrderRepository,
    TradeRepository,
    UserDirectory,
    ProductCatalog,
    page_offset,
)
from src.side_effects import SideEffectOutcome, run_best_effort

logger = structlog.get_logger()


def build_stats(subject_id: str, scores: List[int]) -> RatingStats:
    """Count, average rounded to one decimal, and 1..5 distribution"""
    distribution = {score: 0 for score in range(1, 6)}
    for score in scores:
        distribution[score] = distribution.get(score, 0) + 1
    average = round(sum(scores) / len(scores), 1) if scores else 0.0
    return RatingStats(
        subject_id=subject_id,
        total_ratings=len(scores),
        average_score=average,
        score_distribution=distribution,
    )


class RatingService:
    def __init__(
        self,
        ratings: RatingRepository,
        orders: OrderRepository,
        trades: TradeRepository,
        users: UserDirectory,
        cache: Optional[CacheService] = None,
        dispatcher: Optional[NotificationDispatcher] = None,
        policy: Optional[MarketplacePolicy] = None,
        clock: Optional[Callable[[], datetime]] = None,
        catalog: Optional[ProductCatalog] = None
    ):
        self.ratings = ratings
        self.orders = orders
        self.trades = trades
        self.users = users
        self.cache = cache
        self.catalog = catalog
        self.dispatcher = dispatcher
        self.policy = policy or MarketplacePolicy()
        self.clock = clock or (lambda: datetime.now(timezone.utc))

        # Outcomes of the side effects of the most recent create call
        self.last_side_effects: List[SideEffectOutcome] = []

    def _check_score(self, score: int) -> None:
        low, high = self.policy.get_score_range()
        if not isinstance(score, int) or not low <= score <= high:
            raise ValidationError(f"Puan {low} ile {high} arasında olmalıdır")

    def create_user_rating(
        self,
        giver_id: str,
        receiver_id: str,
        score: int,
        order_id: Optional[str] = None,
        trade_id: Optional[str] = None,
        comment: Optional[str] = None
    ) -> UserRating:
        if giver_id == receiver_id:
            raise ValidationError("Kendinizi puanlayamazsınız")
        self._check_score(score)

        receiver = self.users.get_user(receiver_id)
        if receiver is None:
            raise NotFoundError("Kullanıcı bulunamadı")

        if bool(order_id) == bool(trade_id):
            raise ValidationError("Sipariş veya takas ID gerekli")

        if order_id:
            order = self.orders.get(order_id)
            if order is None:
                raise NotFoundError("Sipariş bulunamadı")
            if order.status not in RATEABLE_ORDER_STATUSES:
                raise ValidationError("Sadece teslim edilmiş siparişler puanlanabilir")
            if not order.is_party(giver_id):
                raise AuthorizationError("Bu siparişi puanlama yetkiniz yok")
            if order.other_party(giver_id) != receiver_id:
                raise ValidationError("Geçersiz alıcı")
        else:
            trade = self.trades.get(trade_id)
            if trade is None:
                raise NotFoundError("Takas bulunamadı")
            if trade.status != TradeStatus.COMPLETED:
                raise ValidationError("Sadece tamamlanmış takaslar puanlanabilir")
            if not trade.is_party(giver_id):
                raise AuthorizationError("Bu takası puanlama yetkiniz yok")
            if trade.other_party(giver_id) != receiver_id:
                raise ValidationError("Geçersiz alıcı")

        if self.ratings.find_user_rating(giver_id, order_id=order_id, trade_id=trade_id) is not None:
            subject = "sipariş" if order_id else "takas"
            raise ConflictError(f"Bu {subject} için zaten puan verdiniz")

        # The repository enforces the same uniqueness for concurrent writes
        rating = self.ratings.add_user_rating(UserRating(
            giver_id=giver_id,
            receiver_id=receiver_id,
            order_id=order_id,
            trade_id=trade_id,
            score=score,
            comment=comment,
            created_at=self.clock(),
        ))
        logger.info("User rating created", rating_id=rating.id, giver_id=giver_id, receiver_id=receiver_id)

        giver = self.users.get_user(giver_id)
        reviewer_name = giver.display_name if giver and giver.display_name else "Bir kullanıcı"
        self.last_side_effects = [
            *self._invalidate_seller_products(receiver_id),
            self._notify_review(receiver_id, {
                "reviewerName": reviewer_name,
                "score": score,
                "orderId": order_id,
                "tradeId": trade_id,
            }),
        ]
        return rating

    def create_product_rating(
        self,
        user_id: str,
        product_id: str,
        order_id: str,
        score: int,
        title: Optional[str] = None,
        review: Optional[str] = None,
        images: Optional[List[str]] = None
    ) -> ProductRating:
        self._check_score(score)

        order = self.orders.get(order_id)
        if order is None:
            raise NotFoundError("Sipariş bulunamadı")
        if order.buyer_id != user_id:
            raise AuthorizationError("Sadece alıcı ürünü puanlayabilir")
        if order.product_id != product_id:
            raise ValidationError("Siparişteki ürün eşleşmiyor")
        if order.status not in RATEABLE_ORDER_STATUSES:
            raise ValidationError("Sadece teslim edilmiş siparişler puanlanabilir")
        if self.ratings.find_product_rating_by_order(order_id) is not None:
            raise ConflictError("Bu sipariş için zaten ürün puanı verdiniz")

        rating = self.ratings.add_product_rating(ProductRating(
            product_id=product_id,
            user_id=user_id,
            order_id=order_id,
            score=score,
            title=title,
            review=review,
            images=list(images or []),
            is_verified_purchase=True,
            created_at=self.clock(),
        ))
        logger.info("Product rating created", rating_id=rating.id, product_id=product_id)

        detail_key = self.policy.get_product_detail_key(product_id)
        list_pattern = self.policy.get_product_cache_patterns()[1]
        if self.cache is None:
            self.last_side_effects = []
        else:
            self.last_side_effects = [*self._delete_keys([detail_key]), *self._invalidate([list_pattern])]
        return rating

    # Reads

    def get_user_ratings(self, user_id: str, page: Optional[int] = None,
                         page_size: Optional[int] = None) -> RatingPage:
        page, page_size = self.policy.clamp_pagination(page, page_size)
        ratings, total = self.ratings.list_user_ratings(user_id, page_offset(page, page_size), page_size)
        return RatingPage(ratings=ratings, total=total, page=page, page_size=page_size)

    def get_product_ratings(self, product_id: str, page: Optional[int] = None,
                            page_size: Optional[int] = None) -> ProductRatingPage:
        page, page_size = self.policy.clamp_pagination(page, page_size)
        ratings, total = self.ratings.list_product_ratings(product_id, page_offset(page, page_size), page_size)
        return ProductRatingPage(ratings=ratings, total=total, page=page, page_size=page_size)

    def get_user_rating_stats(self, user_id: str) -> RatingStats:
        return build_stats(user_id, self.ratings.user_scores(user_id))

    def get_product_rating_stats(self, product_id: str) -> RatingStats:
        return build_stats(product_id, self.ratings.product_scores(product_id))

    def mark_product_rating_helpful(self, rating_id: str) -> ProductRating:
        rating = self.ratings.get_product_rating(rating_id)
        if rating is None:
            raise NotFoundError("Değerlendirme bulunamadı")
        rating.helpful_count += 1
        return self.ratings.update_product_rating(rating)

    # Side effects

    def _invalidate(self, patterns: List[str]) -> List[SideEffectOutcome]:
        if self.cache is None:
            return []
        return [
            run_best_effort("cache.delete_pattern", lambda p=pattern: self.cache.delete_pattern(p), pattern=pattern)
            for pattern in patterns
        ]

    def _invalidate_seller_products(self, seller_id: str) -> List[SideEffectOutcome]:
        """Detail keys of the seller's products and every list page; all detail keys when the catalog is unknown"""
        detail_pattern, list_pattern = self.policy.get_product_cache_patterns()
        if self.cache is None or self.catalog is None:
            return self._invalidate([detail_pattern, list_pattern])

        product_ids: List[str] = []
        lookup = run_best_effort("catalog.list_seller_product_ids",
                                 lambda: product_ids.extend(self.catalog.list_seller_product_ids(seller_id)),
                                 seller_id=seller_id)
        return [
            lookup,
            *self._delete_keys([self.policy.get_product_detail_key(pid) for pid in product_ids]),
            *self._invalidate([list_pattern]),
        ]

    def _delete_keys(self, keys: List[str]) -> List[SideEffectOutcome]:
        return [
            run_best_effort("cache.delete", lambda k=key: self.cache.delete(k), key=key)
            for key in keys
        ]

    def _notify_review(self, receiver_id: str, data: dict) -> SideEffectOutcome:
        if self.dispatcher is None:
            return SideEffectOutcome(name="notification.in_app", ok=True)

        def _create():
            if not self.dispatcher.create_in_app_notification(receiver_id, NotificationType.REVIEW_RECEIVED, data):
                raise RuntimeError("in-app notification was not stored")

        return run_best_effort("notification.in_app", _create, user_id=receiver_id)

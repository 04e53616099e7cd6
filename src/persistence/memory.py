"""
In-memory repositories
Used for local runs (PERSISTENCE_BACKEND=memory) and by the test-suite.
Each repository serialises writes with a lock and stores deep copies, so
callers never share mutable state with the store.
"""

import threading
from typing import Dict, List, Optional, Tuple

import structlog

from src.errors import ConflictError
from src.models.audit import AdminAuditLog, AuditLogQuery
from src.models.catalog import Product, ProductStatus, UserContact
from src.models.notification import NotificationLog, NotificationChannel, DeliveryStatus, PushToken
from src.models.order import Order, OrderStatus
from src.models.rating import UserRating, ProductRating
from src.models.trade import Trade, TradeStatus
from src.persistence.interfaces import (
    TradeRepository,
    OrderRepository,
    RatingRepository,
    NotificationRepository,
    AuditLogRepository,
    UserDirectory,
    ProductCatalog,
    page_offset,
    within_range,
)

logger = structlog.get_logger()


class InMemoryTradeRepository(TradeRepository):
    def __init__(self):
        self._trades: Dict[str, Trade] = {}
        self._lock = threading.Lock()

    def get(self, trade_id: str) -> Optional[Trade]:
        trade = self._trades.get(trade_id)
        return trade.model_copy(deep=True) if trade else None

    def save(self, trade: Trade) -> Trade:
        with self._lock:
            self._trades[trade.id] = trade.model_copy(deep=True)
        return trade

    def list_for_user(self, user_id: str, status: Optional[TradeStatus] = None) -> List[Trade]:
        trades = [
            t for t in self._trades.values()
            if t.is_party(user_id) and (status is None or t.status == status)
        ]
        trades.sort(key=lambda t: t.created_at, reverse=True)
        return [t.model_copy(deep=True) for t in trades]

    def list_by_status(
        self,
        status: Optional[TradeStatus] = None,
        offset: int = 0,
        limit: int = 20
    ) -> Tuple[List[Trade], int]:
        trades = [t for t in self._trades.values() if status is None or t.status == status]
        trades.sort(key=lambda t: t.created_at, reverse=True)
        return [t.model_copy(deep=True) for t in trades[offset:offset + limit]], len(trades)


class InMemoryOrderRepository(OrderRepository):
    def __init__(self):
        self._orders: Dict[str, Order] = {}
        self._lock = threading.Lock()

    def get(self, order_id: str) -> Optional[Order]:
        order = self._orders.get(order_id)
        return order.model_copy(deep=True) if order else None

    def save(self, order: Order) -> Order:
        with self._lock:
            self._orders[order.id] = order.model_copy(deep=True)
        return order

    def list_by_status(self, status: OrderStatus) -> List[Order]:
        return [o.model_copy(deep=True) for o in self._orders.values() if o.status == status]


class InMemoryRatingRepository(RatingRepository):
    def __init__(self):
        self._user_ratings: Dict[str, UserRating] = {}
        self._product_ratings: Dict[str, ProductRating] = {}
        self._lock = threading.Lock()

    def add_user_rating(self, rating: UserRating) -> UserRating:
        with self._lock:
            for existing in self._user_ratings.values():
                if existing.giver_id != rating.giver_id:
                    continue
                if rating.order_id and existing.order_id == rating.order_id:
                    raise ConflictError("Bu sipariş için zaten puan verdiniz")
                if rating.trade_id and existing.trade_id == rating.trade_id:
                    raise ConflictError("Bu takas için zaten puan verdiniz")
            self._user_ratings[rating.id] = rating.model_copy()
        return rating

    def find_user_rating(
        self,
        giver_id: str,
        order_id: Optional[str] = None,
        trade_id: Optional[str] = None
    ) -> Optional[UserRating]:
        for rating in self._user_ratings.values():
            if rating.giver_id != giver_id:
                continue
            if order_id and rating.order_id == order_id:
                return rating.model_copy()
            if trade_id and rating.trade_id == trade_id:
                return rating.model_copy()
        return None

    def list_user_ratings(self, receiver_id: str, offset: int, limit: int) -> Tuple[List[UserRating], int]:
        ratings = [r for r in self._user_ratings.values() if r.receiver_id == receiver_id]
        ratings.sort(key=lambda r: r.created_at, reverse=True)
        return [r.model_copy() for r in ratings[offset:offset + limit]], len(ratings)

    def user_scores(self, receiver_id: str) -> List[int]:
        return [r.score for r in self._user_ratings.values() if r.receiver_id == receiver_id]

    def add_product_rating(self, rating: ProductRating) -> ProductRating:
        with self._lock:
            if any(r.order_id == rating.order_id for r in self._product_ratings.values()):
                raise ConflictError("Bu sipariş için zaten ürün puanı verdiniz")
            self._product_ratings[rating.id] = rating.model_copy(deep=True)
        return rating

    def find_product_rating_by_order(self, order_id: str) -> Optional[ProductRating]:
        for rating in self._product_ratings.values():
            if rating.order_id == order_id:
                return rating.model_copy(deep=True)
        return None

    def get_product_rating(self, rating_id: str) -> Optional[ProductRating]:
        rating = self._product_ratings.get(rating_id)
        return rating.model_copy(deep=True) if rating else None

    def update_product_rating(self, rating: ProductRating) -> ProductRating:
        with self._lock:
            self._product_ratings[rating.id] = rating.model_copy(deep=True)
        return rating

    def list_product_ratings(self, product_id: str, offset: int, limit: int) -> Tuple[List[ProductRating], int]:
        ratings = [r for r in self._product_ratings.values() if r.product_id == product_id]
        ratings.sort(key=lambda r: r.created_at, reverse=True)
        return [r.model_copy(deep=True) for r in ratings[offset:offset + limit]], len(ratings)

    def product_scores(self, product_id: str) -> List[int]:
        return [r.score for r in self._product_ratings.values() if r.product_id == product_id]


class InMemoryNotificationRepository(NotificationRepository):
    def __init__(self):
        self.logs: List[NotificationLog] = []
        self._push_tokens: Dict[str, PushToken] = {}
        self._lock = threading.Lock()

    def add_log(self, log: NotificationLog) -> NotificationLog:
        with self._lock:
            self.logs.append(log.model_copy(deep=True))
        return log

    def _in_app(self, user_id: str) -> List[NotificationLog]:
        return [
            log for log in self.logs
            if log.user_id == user_id and log.channel == NotificationChannel.IN_APP
        ]

    def list_in_app(self, user_id: str, offset: int, limit: int) -> Tuple[List[NotificationLog], int]:
        rows = sorted(self._in_app(user_id), key=lambda log: log.created_at, reverse=True)
        return [log.model_copy(deep=True) for log in rows[offset:offset + limit]], len(rows)

    def count_unread(self, user_id: str) -> int:
        return sum(1 for log in self._in_app(user_id) if log.status == DeliveryStatus.SENT)

    def mark_read(self, notification_id: str, user_id: str) -> bool:
        with self._lock:
            for log in self.logs:
                if log.id == notification_id and log.user_id == user_id:
                    log.status = DeliveryStatus.READ
                    return True
        return False

    def mark_all_read(self, user_id: str) -> int:
        updated = 0
        with self._lock:
            for log in self._in_app(user_id):
                if log.status == DeliveryStatus.SENT:
                    log.status = DeliveryStatus.READ
                    updated += 1
        return updated

    def save_push_token(self, token: PushToken) -> PushToken:
        with self._lock:
            self._push_tokens[token.token] = token.model_copy()
        return token

    def get_push_tokens(self, user_id: str) -> List[PushToken]:
        return [t.model_copy() for t in self._push_tokens.values() if t.user_id == user_id]


class InMemoryAuditLogRepository(AuditLogRepository):
    def __init__(self):
        self._entries: List[AdminAuditLog] = []
        self._lock = threading.Lock()

    def append(self, entry: AdminAuditLog) -> AdminAuditLog:
        with self._lock:
            self._entries.append(entry.model_copy(deep=True))
        return entry

    def query(self, query: AuditLogQuery) -> Tuple[List[AdminAuditLog], int]:
        rows = [
            e for e in self._entries
            if (query.action is None or e.action == query.action)
            and (query.admin_id is None or e.admin_id == query.admin_id)
            and within_range(e.created_at, query.from_date, query.to_date)
        ]
        rows.sort(key=lambda e: e.created_at, reverse=True)
        offset = page_offset(query.page, query.limit)
        return [e.model_copy(deep=True) for e in rows[offset:offset + query.limit]], len(rows)


class InMemoryUserDirectory(UserDirectory):
    def __init__(self, users: Optional[List[UserContact]] = None):
        self._users: Dict[str, UserContact] = {u.id: u for u in users or []}

    def add(self, user: UserContact) -> None:
        self._users[user.id] = user

    def get_user(self, user_id: str) -> Optional[UserContact]:
        return self._users.get(user_id)


class InMemoryProductCatalog(ProductCatalog):
    def __init__(self, products: Optional[List[Product]] = None):
        self._products: Dict[str, Product] = {p.id: p for p in products or []}
        self._lock = threading.Lock()

    def add(self, product: Product) -> None:
        self._products[product.id] = product

    def get_products(self, product_ids: List[str]) -> List[Product]:
        return [self._products[pid].model_copy() for pid in product_ids if pid in self._products]

    def set_status(self, product_ids: List[str], status: ProductStatus) -> None:
        with self._lock:
            for pid in product_ids:
                if pid in self._products:
                    self._products[pid].status = status
        logger.debug("Product status updated", product_ids=product_ids, status=status.value)

    def list_seller_product_ids(self, seller_id: str) -> List[str]:
        return [p.id for p in self._products.values() if p.seller_id == seller_id]

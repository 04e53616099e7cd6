"""
Repository interfaces used by the domain services
Implemented in memory (src.persistence.memory) and on Supabase (api.daos)
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional, Tuple

from src.models.audit import AdminAuditLog, AuditLogQuery
from src.models.catalog import Product, ProductStatus, UserContact
from src.models.notification import NotificationLog, PushToken
from src.models.order import Order, OrderStatus
from src.models.rating import UserRating, ProductRating
from src.models.trade import Trade, TradeStatus


class TradeRepository(ABC):
    @abstractmethod
    def get(self, trade_id: str) -> Optional[Trade]:
        pass

    @abstractmethod
    def save(self, trade: Trade) -> Trade:
        """Insert or replace the whole aggregate (items, shipments, dispute)"""
        pass

    @abstractmethod
    def list_for_user(self, user_id: str, status: Optional[TradeStatus] = None) -> List[Trade]:
        pass

    @abstractmethod
    def list_by_status(
        self,
        status: Optional[TradeStatus] = None,
        offset: int = 0,
        limit: int = 20
    ) -> Tuple[List[Trade], int]:
        """
        Returns:
            (page_of_trades_newest_first, total_count)
        """
        pass


class OrderRepository(ABC):
    @abstractmethod
    def get(self, order_id: str) -> Optional[Order]:
        pass

    @abstractmethod
    def save(self, order: Order) -> Order:
        pass

    @abstractmethod
    def list_by_status(self, status: OrderStatus) -> List[Order]:
        pass


class RatingRepository(ABC):
    """Uniqueness on (giver, order), (giver, trade) and product rating per order is enforced here"""

    @abstractmethod
    def add_user_rating(self, rating: UserRating) -> UserRating:
        """Raises ConflictError when the (giver, order|trade) pair already exists"""
        pass

    @abstractmethod
    def find_user_rating(
        self,
        giver_id: str,
        order_id: Optional[str] = None,
        trade_id: Optional[str] = None
    ) -> Optional[UserRating]:
        pass

    @abstractmethod
    def list_user_ratings(self, receiver_id: str, offset: int, limit: int) -> Tuple[List[UserRating], int]:
        pass

    @abstractmethod
    def user_scores(self, receiver_id: str) -> List[int]:
        pass

    @abstractmethod
    def add_product_rating(self, rating: ProductRating) -> ProductRating:
        """Raises ConflictError when the order already has a product rating"""
        pass

    @abstractmethod
    def find_product_rating_by_order(self, order_id: str) -> Optional[ProductRating]:
        pass

    @abstractmethod
    def get_product_rating(self, rating_id: str) -> Optional[ProductRating]:
        pass

    @abstractmethod
    def update_product_rating(self, rating: ProductRating) -> ProductRating:
        pass

    @abstractmethod
    def list_product_ratings(self, product_id: str, offset: int, limit: int) -> Tuple[List[ProductRating], int]:
        pass

    @abstractmethod
    def product_scores(self, product_id: str) -> List[int]:
        pass


class NotificationRepository(ABC):
    @abstractmethod
    def add_log(self, log: NotificationLog) -> NotificationLog:
        pass

    @abstractmethod
    def list_in_app(self, user_id: str, offset: int, limit: int) -> Tuple[List[NotificationLog], int]:
        pass

    @abstractmethod
    def count_unread(self, user_id: str) -> int:
        pass

    @abstractmethod
    def mark_read(self, notification_id: str, user_id: str) -> bool:
        pass

    @abstractmethod
    def mark_all_read(self, user_id: str) -> int:
        pass

    @abstractmethod
    def save_push_token(self, token: PushToken) -> PushToken:
        pass

    @abstractmethod
    def get_push_tokens(self, user_id: str) -> List[PushToken]:
        pass


class AuditLogRepository(ABC):
    """Append-only"""

    @abstractmethod
    def append(self, entry: AdminAuditLog) -> AdminAuditLog:
        pass

    @abstractmethod
    def query(self, query: AuditLogQuery) -> Tuple[List[AdminAuditLog], int]:
        pass


class UserDirectory(ABC):
    @abstractmethod
    def get_user(self, user_id: str) -> Optional[UserContact]:
        pass


class ProductCatalog(ABC):
    @abstractmethod
    def get_products(self, product_ids: List[str]) -> List[Product]:
        pass

    @abstractmethod
    def set_status(self, product_ids: List[str], status: ProductStatus) -> None:
        pass

    @abstractmethod
    def list_seller_product_ids(self, seller_id: str) -> List[str]:
        pass


def page_offset(page: int, limit: int) -> int:
    return (page - 1) * limit


def within_range(moment: datetime, start: Optional[datetime], end: Optional[datetime]) -> bool:
    if start is not None and moment < start:
        return False
    if end is not None and moment > end:
        return False
    return True

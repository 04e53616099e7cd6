"""
Data Access Object for user ratings and product ratings.
Uniqueness of (giver_id, order_id), (giver_id, trade_id) and
product_ratings.order_id is enforced by database constraints.
"""

from typing import List, Optional, Tuple
from supabase import Client

from api.config.database import get_db
from api.daos.base import is_unique_violation, reraise_database_error, first_row
from src.errors import ConflictError
from src.models.rating import UserRating, ProductRating
from src.persistence.interfaces import RatingRepository


class RatingDAO(RatingRepository):
    """Handles database operations for ratings and product_ratings tables."""

    def __init__(self, db_client: Optional[Client] = None):
        self.db = db_client or get_db()
        self.table_name = "ratings"
        self.product_table = "product_ratings"

    # User ratings

    def add_user_rating(self, rating: UserRating) -> UserRating:
        """
        Insert a user rating.

        Raises:
            ConflictError: If the giver already rated this order or trade
            Exception: If database operation fails
        """
        try:
            response = self.db.table(self.table_name).insert(rating.model_dump(mode="json")).execute()
            row = first_row(response.data)
            if row is None:
                raise Exception("Failed to create rating record")
            return UserRating(**row)

        except Exception as e:
            if is_unique_violation(e):
                message = (
                    "Bu sipariş için zaten puan verdiniz" if rating.order_id
                    else "Bu takas için zaten puan verdiniz"
                )
                raise ConflictError(message)
            reraise_database_error("creating rating", e)

    def find_user_rating(
        self,
        giver_id: str,
        order_id: Optional[str] = None,
        trade_id: Optional[str] = None
    ) -> Optional[UserRating]:
        try:
            query = self.db.table(self.table_name).select("*").eq("giver_id", giver_id)
            if order_id:
                query = query.eq("order_id", order_id)
            if trade_id:
                query = query.eq("trade_id", trade_id)
            row = first_row(query.execute().data)
            return UserRating(**row) if row else None
        except Exception as e:
            reraise_database_error("fetching rating", e)

    def list_user_ratings(self, receiver_id: str, offset: int, limit: int) -> Tuple[List[UserRating], int]:
        try:
            response = (
                self.db.table(self.table_name)
                .select("*", count="exact")
                .eq("receiver_id", receiver_id)
                .order("created_at", desc=True)
                .range(offset, offset + limit - 1)
                .execute()
            )
            return [UserRating(**row) for row in response.data or []], response.count or 0
        except Exception as e:
            reraise_database_error("listing user ratings", e)

    def user_scores(self, receiver_id: str) -> List[int]:
        try:
            response = (
                self.db.table(self.table_name)
                .select("score")
                .eq("receiver_id", receiver_id)
                .execute()
            )
            return [row["score"] for row in response.data or []]
        except Exception as e:
            reraise_database_error("fetching user scores", e)

    # Product ratings

    def add_product_rating(self, rating: ProductRating) -> ProductRating:
        try:
            response = self.db.table(self.product_table).insert(rating.model_dump(mode="json")).execute()
            row = first_row(response.data)
            if row is None:
                raise Exception("Failed to create product rating record")
            return ProductRating(**row)

        except Exception as e:
            if is_unique_violation(e):
                raise ConflictError("Bu sipariş için zaten ürün puanı verdiniz")
            reraise_database_error("creating product rating", e)

    def find_product_rating_by_order(self, order_id: str) -> Optional[ProductRating]:
        try:
            response = self.db.table(self.product_table).select("*").eq("order_id", order_id).execute()
            row = first_row(response.data)
            return ProductRating(**row) if row else None
        except Exception as e:
            reraise_database_error("fetching product rating", e)

    def get_product_rating(self, rating_id: str) -> Optional[ProductRating]:
        try:
            response = self.db.table(self.product_table).select("*").eq("id", rating_id).execute()
            row = first_row(response.data)
            return ProductRating(**row) if row else None
        except Exception as e:
            reraise_database_error("fetching product rating", e)

    def update_product_rating(self, rating: ProductRating) -> ProductRating:
        try:
            self.db.table(self.product_table).update(
                {"helpful_count": rating.helpful_count}
            ).eq("id", rating.id).execute()
            return rating
        except Exception as e:
            reraise_database_error("updating product rating", e)

    def list_product_ratings(self, product_id: str, offset: int, limit: int) -> Tuple[List[ProductRating], int]:
        try:
            response = (
                self.db.table(self.product_table)
                .select("*", count="exact")
                .eq("product_id", product_id)
                .order("created_at", desc=True)
                .range(offset, offset + limit - 1)
                .execute()
            )
            return [ProductRating(**row) for row in response.data or []], response.count or 0
        except Exception as e:
            reraise_database_error("listing product ratings", e)

    def product_scores(self, product_id: str) -> List[int]:
        try:
            response = self.db.table(self.product_table).select("score").eq("product_id", product_id).execute()
            return [row["score"] for row in response.data or []]
        except Exception as e:
            reraise_database_error("fetching product scores", e)

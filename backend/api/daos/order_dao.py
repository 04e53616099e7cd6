"""
Data Access Object for orders.
"""

from typing import List, Optional
from supabase import Client

from api.config.database import get_db
from api.daos.base import reraise_database_error, first_row
from src.models.order import Order, OrderStatus
from src.persistence.interfaces import OrderRepository


class OrderDAO(OrderRepository):
    """Handles database operations for the orders table."""

    def __init__(self, db_client: Optional[Client] = None):
        self.db = db_client or get_db()
        self.table_name = "orders"

    def save(self, order: Order) -> Order:
        try:
            self.db.table(self.table_name).upsert(order.model_dump(mode="json")).execute()
            return order
        except Exception as e:
            reraise_database_error("saving order", e)

    def get(self, order_id: str) -> Optional[Order]:
        try:
            response = (
                self.db.table(self.table_name)
                .select("*")
                .eq("id", order_id)
                .execute()
            )
            row = first_row(response.data)
            return Order(**row) if row else None
        except Exception as e:
            reraise_database_error("fetching order", e)

    def list_by_status(self, status: OrderStatus) -> List[Order]:
        try:
            response = (
                self.db.table(self.table_name)
                .select("*")
                .eq("status", status.value)
                .execute()
            )
            return [Order(**row) for row in response.data or []]
        except Exception as e:
            reraise_database_error("listing orders by status", e)

"""
Data Access Objects for the user and product read models used by the core.
"""

from typing import List, Optional
from supabase import Client

from api.config.database import get_db
from api.daos.base import reraise_database_error, first_row
from src.models.catalog import Product, ProductStatus, UserContact
from src.persistence.interfaces import UserDirectory, ProductCatalog


class UserDAO(UserDirectory):
    """Reads contact details and role from the users table."""

    def __init__(self, db_client: Optional[Client] = None):
        self.db = db_client or get_db()
        self.table_name = "users"

    def get_user(self, user_id: str) -> Optional[UserContact]:
        try:
            response = (
                self.db.table(self.table_name)
                .select("id, email, phone, display_name, role")
                .eq("id", user_id)
                .execute()
            )
            row = first_row(response.data)
            return UserContact(**row) if row else None
        except Exception as e:
            reraise_database_error("fetching user", e)


class ProductDAO(ProductCatalog):
    """Reads products and updates their availability status."""

    def __init__(self, db_client: Optional[Client] = None):
        self.db = db_client or get_db()
        self.table_name = "products"

    def get_products(self, product_ids: List[str]) -> List[Product]:
        if not product_ids:
            return []
        try:
            response = (
                self.db.table(self.table_name)
                .select("id, seller_id, title, price, status, is_trade_enabled")
                .in_("id", product_ids)
                .execute()
            )
            return [Product(**row) for row in response.data or []]
        except Exception as e:
            reraise_database_error("fetching products", e)

    def set_status(self, product_ids: List[str], status: ProductStatus) -> None:
        if not product_ids:
            return
        try:
            self.db.table(self.table_name).update({"status": status.value}).in_("id", product_ids).execute()
        except Exception as e:
            reraise_database_error("updating product status", e)

    def list_seller_product_ids(self, seller_id: str) -> List[str]:
        try:
            response = self.db.table(self.table_name).select("id").eq("seller_id", seller_id).execute()
            return [row["id"] for row in response.data or []]
        except Exception as e:
            reraise_database_error("listing seller products", e)

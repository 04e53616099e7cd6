"""
Data Access Object for trades.
A trade aggregate spans four tables: trades, trade_items, trade_shipments
and trade_disputes. The parent row is written first, child rows after.
"""

from typing import List, Optional, Tuple, Dict, Any
from supabase import Client

from api.config.database import get_db
from api.daos.base import reraise_database_error, first_row
from src.models.trade import Trade, TradeItem, TradeSide, TradeStatus, Shipment, TradeDispute
from src.persistence.interfaces import TradeRepository

_CHILD_FIELDS = {"initiator_items", "receiver_items", "shipments", "dispute"}


class TradeDAO(TradeRepository):
    """Handles database operations for the trade aggregate."""

    def __init__(self, db_client: Optional[Client] = None):
        """
        Initialize TradeDAO.

        Args:
            db_client: Optional Supabase client. If not provided, uses default client.
        """
        self.db = db_client or get_db()
        self.table_name = "trades"
        self.items_table = "trade_items"
        self.shipments_table = "trade_shipments"
        self.disputes_table = "trade_disputes"

    def save(self, trade: Trade) -> Trade:
        """
        Upsert the trade row and all of its child rows.

        Raises:
            Exception: If database operation fails
        """
        try:
            row = trade.model_dump(mode="json", exclude=_CHILD_FIELDS)
            self.db.table(self.table_name).upsert(row).execute()

            items = [item.model_dump(mode="json") for item in trade.initiator_items + trade.receiver_items]
            if items:
                self.db.table(self.items_table).upsert(items).execute()

            shipments = [shipment.model_dump(mode="json") for shipment in trade.shipments]
            if shipments:
                self.db.table(self.shipments_table).upsert(shipments).execute()

            if trade.dispute is not None:
                self.db.table(self.disputes_table).upsert(trade.dispute.model_dump(mode="json")).execute()

            return trade

        except Exception as e:
            reraise_database_error("saving trade", e)

    def get(self, trade_id: str) -> Optional[Trade]:
        """
        Retrieve a trade with its items, shipments and dispute.

        Returns:
            Trade if found, None otherwise
        """
        try:
            response = (
                self.db.table(self.table_name)
                .select("*")
                .eq("id", trade_id)
                .execute()
            )
            row = first_row(response.data)
            if row is None:
                return None
            return self._hydrate(row)

        except Exception as e:
            reraise_database_error("fetching trade", e)

    def list_for_user(self, user_id: str, status: Optional[TradeStatus] = None) -> List[Trade]:
        try:
            query = (
                self.db.table(self.table_name)
                .select("*")
                .or_(f"initiator_id.eq.{user_id},receiver_id.eq.{user_id}")
            )
            if status is not None:
                query = query.eq("status", status.value)
            response = query.order("created_at", desc=True).execute()
            return [self._hydrate(row) for row in response.data or []]

        except Exception as e:
            reraise_database_error("listing user trades", e)

    def list_by_status(
        self,
        status: Optional[TradeStatus] = None,
        offset: int = 0,
        limit: int = 20
    ) -> Tuple[List[Trade], int]:
        try:
            query = self.db.table(self.table_name).select("*", count="exact")
            if status is not None:
                query = query.eq("status", status.value)
            response = (
                query.order("created_at", desc=True)
                .range(offset, offset + limit - 1)
                .execute()
            )
            trades = [self._hydrate(row) for row in response.data or []]
            return trades, response.count or 0

        except Exception as e:
            reraise_database_error("listing trades", e)

    def _hydrate(self, row: Dict[str, Any]) -> Trade:
        trade_id = row["id"]

        items = (
            self.db.table(self.items_table).select("*").eq("trade_id", trade_id).execute().data or []
        )
        shipments = (
            self.db.table(self.shipments_table).select("*").eq("trade_id", trade_id).execute().data or []
        )
        dispute = first_row(
            self.db.table(self.disputes_table).select("*").eq("trade_id", trade_id).execute().data
        )

        trade = Trade(**row)
        parsed_items = [TradeItem(**item) for item in items]
        trade.initiator_items = [i for i in parsed_items if i.side == TradeSide.INITIATOR]
        trade.receiver_items = [i for i in parsed_items if i.side == TradeSide.RECEIVER]
        trade.shipments = [Shipment(**shipment) for shipment in shipments]
        trade.dispute = TradeDispute(**dispute) if dispute else None
        return trade

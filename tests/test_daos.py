"""
Tests for the Supabase DAOs against a fake PostgREST query builder
"""

from unittest.mock import MagicMock

import pytest

from api.daos import AuditLogDAO, NotificationDAO, OrderDAO, ProductDAO, RatingDAO, TradeDAO, UserDAO
from api.daos.base import is_unique_violation, reraise_database_error
from src.errors import ConflictError, NotFoundError
from src.models.audit import AdminAuditLog, AuditAction, AuditLogQuery
from src.models.catalog import ProductStatus, UserRole
from src.models.notification import DeliveryStatus, PushToken
from src.models.order import OrderStatus
from src.models.rating import UserRating
from src.models.trade import Shipment, Trade, TradeDispute, TradeItem, TradeSide, TradeStatus
from tests.factories import ADMIN, ALICE, BOB, NOW

_BUILDER_METHODS = ("select", "eq", "or_", "in_", "gte", "lte", "order", "range", "insert", "upsert", "update")


def fake_query(data=None, count=None, error=None):
    """Query builder whose chain methods return itself and whose execute returns data"""
    query = MagicMock()
    for name in _BUILDER_METHODS:
        getattr(query, name).return_value = query
    if error is not None:
        query.execute.side_effect = error
    else:
        query.execute.return_value = MagicMock(data=data if data is not None else [], count=count)
    return query


def fake_db(**tables):
    db = MagicMock()
    db.table.side_effect = lambda name: tables[name]
    return db


class PostgrestError(Exception):
    def __init__(self, code):
        super().__init__({"code": code, "message": "duplicate key value"})
        self.code = code


class TestBaseHelpers:
    def test_unique_violation_from_attribute(self):
        assert is_unique_violation(PostgrestError("23505"))
        assert not is_unique_violation(PostgrestError("42P01"))

    def test_unique_violation_from_args(self):
        assert is_unique_violation(Exception({"code": "23505"}))
        assert not is_unique_violation(Exception("boom"))

    def test_domain_errors_pass_through(self):
        with pytest.raises(NotFoundError):
            reraise_database_error("fetching trade", NotFoundError("Takas bulunamadı"))

    def test_other_errors_are_wrapped(self):
        with pytest.raises(Exception, match="Database error while fetching trade: timeout"):
            reraise_database_error("fetching trade", RuntimeError("timeout"))


class TestTradeDAO:
    def _trade(self):
        trade = Trade(id="t-1", initiator_id=ALICE, receiver_id=BOB, status=TradeStatus.DISPUTED)
        trade.initiator_items = [TradeItem(trade_id="t-1", side=TradeSide.INITIATOR, product_id="p1")]
        trade.receiver_items = [TradeItem(trade_id="t-1", side=TradeSide.RECEIVER, product_id="p2")]
        trade.shipments = [Shipment(trade_id="t-1", side=TradeSide.INITIATOR, carrier="aras",
                                    tracking_number="ARA1")]
        trade.dispute = TradeDispute(trade_id="t-1", opened_by=BOB, reason="damaged")
        return trade

    def test_save_writes_parent_then_children(self):
        tables = {name: fake_query() for name in ("trades", "trade_items", "trade_shipments", "trade_disputes")}
        db = fake_db(**tables)
        TradeDAO(db_client=db).save(self._trade())

        assert [c.args[0] for c in db.table.call_args_list] == [
            "trades", "trade_items", "trade_shipments", "trade_disputes",
        ]
        parent = tables["trades"].upsert.call_args.args[0]
        assert parent["id"] == "t-1"
        assert "dispute" not in parent and "initiator_items" not in parent
        assert len(tables["trade_items"].upsert.call_args.args[0]) == 2

    def test_save_skips_empty_children(self):
        db = fake_db(trades=fake_query())
        TradeDAO(db_client=db).save(Trade(id="t-2", initiator_id=ALICE, receiver_id=BOB))
        assert [c.args[0] for c in db.table.call_args_list] == ["trades"]

    def test_get_hydrates_aggregate(self):
        stored = self._trade()
        db = fake_db(
            trades=fake_query([stored.model_dump(mode="json", exclude={"initiator_items", "receiver_items",
                                                                       "shipments", "dispute"})]),
            trade_items=fake_query([i.model_dump(mode="json")
                                    for i in stored.initiator_items + stored.receiver_items]),
            trade_shipments=fake_query([s.model_dump(mode="json") for s in stored.shipments]),
            trade_disputes=fake_query([stored.dispute.model_dump(mode="json")]),
        )
        trade = TradeDAO(db_client=db).get("t-1")

        assert trade.status == TradeStatus.DISPUTED
        assert [i.product_id for i in trade.initiator_items] == ["p1"]
        assert [i.product_id for i in trade.receiver_items] == ["p2"]
        assert trade.shipments[0].tracking_number == "ARA1"
        assert trade.dispute.reason == "damaged"

    def test_get_missing(self):
        assert TradeDAO(db_client=fake_db(trades=fake_query([]))).get("t-x") is None

    def test_list_for_user_filters_both_sides(self):
        query = fake_query([])
        TradeDAO(db_client=fake_db(trades=query)).list_for_user(ALICE, TradeStatus.PENDING)
        query.or_.assert_called_once_with(f"initiator_id.eq.{ALICE},receiver_id.eq.{ALICE}")
        query.eq.assert_called_once_with("status", "pending")

    def test_list_by_status_pages(self):
        query = fake_query([], count=42)
        trades, total = TradeDAO(db_client=fake_db(trades=query)).list_by_status(TradeStatus.DISPUTED, 20, 10)
        assert (trades, total) == ([], 42)
        query.range.assert_called_once_with(20, 29)

    def test_database_error_wrapped(self):
        db = fake_db(trades=fake_query(error=RuntimeError("connection reset")))
        with pytest.raises(Exception, match="Database error while fetching trade"):
            TradeDAO(db_client=db).get("t-1")


class TestOrderDAO:
    def test_round_trip_row(self):
        row = {"id": "o-1", "buyer_id": ALICE, "seller_id": BOB, "product_id": "p2",
               "amount": 300.0, "status": "delivered", "delivered_at": NOW.isoformat()}
        order = OrderDAO(db_client=fake_db(orders=fake_query([row]))).get("o-1")
        assert order.status == OrderStatus.DELIVERED
        assert order.delivered_at == NOW

    def test_list_by_status(self):
        query = fake_query([])
        OrderDAO(db_client=fake_db(orders=query)).list_by_status(OrderStatus.DELIVERED)
        query.eq.assert_called_once_with("status", "delivered")


class TestRatingDAO:
    def test_duplicate_user_rating_is_conflict(self):
        db = fake_db(ratings=fake_query(error=PostgrestError("23505")))
        rating = UserRating(giver_id=ALICE, receiver_id=BOB, order_id="o-1", score=5)
        with pytest.raises(ConflictError, match="sipariş"):
            RatingDAO(db_client=db).add_user_rating(rating)

    def test_duplicate_trade_rating_message(self):
        db = fake_db(ratings=fake_query(error=PostgrestError("23505")))
        rating = UserRating(giver_id=ALICE, receiver_id=BOB, trade_id="t-1", score=5)
        with pytest.raises(ConflictError, match="takas"):
            RatingDAO(db_client=db).add_user_rating(rating)

    def test_user_scores(self):
        db = fake_db(ratings=fake_query([{"score": 5}, {"score": 3}]))
        assert RatingDAO(db_client=db).user_scores(BOB) == [5, 3]

    def test_find_by_trade(self):
        query = fake_query([])
        assert RatingDAO(db_client=fake_db(ratings=query)).find_user_rating(ALICE, trade_id="t-1") is None
        assert [c.args for c in query.eq.call_args_list] == [("giver_id", ALICE), ("trade_id", "t-1")]


class TestNotificationDAO:
    def test_unread_count(self):
        query = fake_query([], count=4)
        assert NotificationDAO(db_client=fake_db(notification_logs=query)).count_unread(BOB) == 4
        assert ("status", "sent") in [c.args for c in query.eq.call_args_list]

    def test_mark_read_reports_match(self):
        dao = NotificationDAO(db_client=fake_db(notification_logs=fake_query([])))
        assert dao.mark_read("n-1", BOB) is False

    def test_mark_all_read_counts_rows(self):
        query = fake_query([{"id": "n-1"}, {"id": "n-2"}])
        assert NotificationDAO(db_client=fake_db(notification_logs=query)).mark_all_read(BOB) == 2
        query.update.assert_called_once_with({"status": DeliveryStatus.READ.value})

    def test_push_token_upsert(self):
        query = fake_query()
        NotificationDAO(db_client=fake_db(push_tokens=query)).save_push_token(
            PushToken(user_id=BOB, token="ExponentPushToken[a]"))
        assert query.upsert.call_args.kwargs == {"on_conflict": "token"}


class TestAuditLogDAO:
    def test_query_applies_filters(self):
        entry = AdminAuditLog(admin_id=ADMIN, action=AuditAction.TRADE_RESOLVE, entity_type="Trade",
                              entity_id="t-1", created_at=NOW)
        query = fake_query([entry.model_dump(mode="json")], count=1)
        entries, total = AuditLogDAO(db_client=fake_db(admin_audit_logs=query)).query(AuditLogQuery(
            action=AuditAction.TRADE_RESOLVE, admin_id=ADMIN, from_date=NOW, page=2, limit=10,
        ))

        assert total == 1
        assert entries[0].entity_id == "t-1"
        query.gte.assert_called_once_with("created_at", NOW.isoformat())
        query.lte.assert_not_called()
        query.range.assert_called_once_with(10, 19)


class TestCatalogDAOs:
    def test_get_user(self):
        row = {"id": ADMIN, "email": "admin@tarodan.com", "phone": None, "display_name": None, "role": "admin"}
        user = UserDAO(db_client=fake_db(users=fake_query([row]))).get_user(ADMIN)
        assert user.role == UserRole.ADMIN

    def test_get_products_empty_ids_skips_query(self):
        db = fake_db()
        assert ProductDAO(db_client=db).get_products([]) == []
        db.table.assert_not_called()

    def test_set_status(self):
        query = fake_query()
        ProductDAO(db_client=fake_db(products=query)).set_status(["p1", "p2"], ProductStatus.RESERVED)
        query.update.assert_called_once_with({"status": "reserved"})
        query.in_.assert_called_once_with("id", ["p1", "p2"])

    def test_list_seller_product_ids(self):
        query = fake_query([{"id": "p2"}, {"id": "p3"}])
        assert ProductDAO(db_client=fake_db(products=query)).list_seller_product_ids(BOB) == ["p2", "p3"]
        query.eq.assert_called_once_with("seller_id", BOB)

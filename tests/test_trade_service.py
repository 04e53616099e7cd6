"""
Tests for TradeService: catalog checks, product disposition, notifications,
admin resolution with audit, and the scheduled sweeps
"""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from structlog.testing import capture_logs

from src.errors import (
    ValidationError,
    NotFoundError,
    AuthorizationError,
    ConflictError,
    InvalidStateError,
    UnsupportedResolutionError,
)
from src.models.audit import AuditAction, AuditLogQuery
from src.models.catalog import ProductStatus
from src.models.notification import NotificationChannel
from src.models.trade import TradeStatus, DisputeResolution
from src.trading.service import TradeService, generate_tracking_number
from tests.factories import ALICE, BOB, CAROL, ADMIN


def status_of(catalog, product_id):
    return catalog.get_products([product_id])[0].status


@pytest.fixture
def proposed(trade_service):
    return trade_service.propose(ALICE, BOB, ["p1"], ["p2"])


@pytest.fixture
def shipped(trade_service, proposed):
    trade_service.accept(proposed.id, BOB)
    trade_service.ship(proposed.id, ALICE, "aras")
    return trade_service.ship(proposed.id, BOB, "yurtici", tracking_number="YUR123456789")


@pytest.fixture
def disputed(trade_service, shipped):
    return trade_service.raise_dispute(shipped.id, ALICE, "item not as described",
                                       description="Box was crushed")


class TestProposal:
    """Catalog checks on propose"""

    def test_propose_stores_pending_trade_with_prices(self, trade_service, trade_repo, proposed):
        stored = trade_repo.get(proposed.id)
        assert stored.status == TradeStatus.PENDING
        assert stored.initiator_items[0].value == 450.0
        assert stored.receiver_items[0].value == 300.0
        assert stored.response_deadline == stored.created_at + timedelta(hours=48)

    def test_receiver_must_exist(self, trade_service):
        with pytest.raises(NotFoundError):
            trade_service.propose(ALICE, "user-ghost", ["p1"], ["p2"])

    def test_offered_product_must_belong_to_initiator(self, trade_service):
        with pytest.raises(ValidationError):
            trade_service.propose(ALICE, BOB, ["p4"], ["p2"])

    def test_requested_product_must_belong_to_receiver(self, trade_service):
        with pytest.raises(ValidationError):
            trade_service.propose(ALICE, BOB, ["p1"], ["p4"])

    def test_trade_disabled_product_rejected(self, trade_service):
        with pytest.raises(ValidationError):
            trade_service.propose(ALICE, BOB, ["p5"], ["p2"])

    def test_unknown_product(self, trade_service):
        with pytest.raises(NotFoundError):
            trade_service.propose(ALICE, BOB, ["p-missing"], ["p2"])

    def test_cash_limit(self, trade_service):
        with pytest.raises(ValidationError):
            trade_service.propose(ALICE, BOB, ["p1"], ["p2"], cash_amount=1_000_000, cash_payer_id=ALICE)

    def test_receiver_gets_email_and_in_app(self, proposed, notification_repo, email_provider):
        rows = [log for log in notification_repo.logs if log.user_id == BOB]
        assert {log.channel for log in rows} == {NotificationChannel.EMAIL, NotificationChannel.IN_APP}
        assert email_provider.sent == [("bob@example.com", "Yeni Takas Teklifi")]


class TestResponses:
    def test_accept_reserves_products(self, trade_service, catalog, proposed):
        trade_service.accept(proposed.id, BOB)
        assert status_of(catalog, "p1") == ProductStatus.RESERVED
        assert status_of(catalog, "p2") == ProductStatus.RESERVED

    def test_reject_scenario(self, trade_service, trade_repo, catalog, proposed):
        trade_service.reject(proposed.id, BOB)
        stored = trade_repo.get(proposed.id)
        assert stored.status == TradeStatus.REJECTED
        assert stored.dispute is None
        assert stored.shipments == []
        assert status_of(catalog, "p1") == ProductStatus.ACTIVE

    def test_counter_persists_both_trades(self, trade_service, trade_repo, proposed):
        original, counter = trade_service.counter(proposed.id, BOB, offered_product_ids=["p3"])
        assert trade_repo.get(original.id).status == TradeStatus.COUNTERED
        stored = trade_repo.get(counter.id)
        assert stored.initiator_id == BOB
        assert [i.product_id for i in stored.initiator_items] == ["p3"]
        assert [i.product_id for i in stored.receiver_items] == ["p1"]

    def test_counter_with_foreign_product_rejected(self, trade_service, trade_repo, proposed):
        with pytest.raises(ValidationError):
            trade_service.counter(proposed.id, BOB, offered_product_ids=["p4"])
        assert trade_repo.get(proposed.id).status == TradeStatus.PENDING

    def test_initiator_counter_with_products_is_forbidden(self, trade_service, trade_repo, proposed):
        with pytest.raises(AuthorizationError):
            trade_service.counter(proposed.id, ALICE, offered_product_ids=["p2"], requested_product_ids=["p1"])
        assert trade_repo.get(proposed.id).status == TradeStatus.PENDING

    def test_accept_fails_when_product_taken_by_another_trade(self, trade_service, trade_repo, catalog, proposed):
        rival = trade_service.propose(CAROL, BOB, ["p4"], ["p2"])
        trade_service.accept(proposed.id, BOB)

        with pytest.raises(InvalidStateError):
            trade_service.accept(rival.id, BOB)
        assert trade_repo.get(rival.id).status == TradeStatus.PENDING
        assert status_of(catalog, "p4") == ProductStatus.ACTIVE

    def test_accept_fails_when_product_reserved_by_order(self, trade_service, order_service, trade_repo,
                                                         catalog, proposed):
        order_service.create_order(CAROL, "p2")

        with pytest.raises(InvalidStateError):
            trade_service.accept(proposed.id, BOB)
        assert trade_repo.get(proposed.id).status == TradeStatus.PENDING
        assert status_of(catalog, "p1") == ProductStatus.ACTIVE
        assert status_of(catalog, "p2") == ProductStatus.RESERVED

    def test_missing_trade(self, trade_service):
        with pytest.raises(NotFoundError):
            trade_service.accept("trade-missing", BOB)

    @pytest.mark.parametrize("action", [
        lambda s, t: s.accept(t, CAROL),
        lambda s, t: s.reject(t, CAROL),
        lambda s, t: s.counter(t, CAROL),
        lambda s, t: s.ship(t, CAROL, "aras"),
        lambda s, t: s.confirm_receipt(t, CAROL),
    ])
    def test_outsider_is_forbidden(self, trade_service, proposed, action):
        with pytest.raises(AuthorizationError):
            action(trade_service, proposed.id)

    def test_get_trade_visible_to_parties_and_admin(self, trade_service, proposed):
        assert trade_service.get_trade(proposed.id, ALICE).id == proposed.id
        assert trade_service.get_trade(proposed.id, ADMIN).id == proposed.id
        with pytest.raises(AuthorizationError):
            trade_service.get_trade(proposed.id, CAROL)


class TestFulfilment:
    def test_generated_tracking_number(self, shipped):
        numbers = {s.side.value: s.tracking_number for s in shipped.shipments}
        assert numbers["receiver"] == "YUR123456789"
        assert numbers["initiator"].startswith("ARA")
        assert len(numbers["initiator"]) == 12

    def test_mutual_confirmation_marks_products_sold(self, trade_service, catalog, shipped):
        trade_service.confirm_receipt(shipped.id, ALICE)
        done = trade_service.confirm_receipt(shipped.id, BOB)
        assert done.status == TradeStatus.COMPLETED
        assert status_of(catalog, "p1") == ProductStatus.SOLD
        assert status_of(catalog, "p2") == ProductStatus.SOLD

    def test_notification_failure_does_not_abort(self, trade_repo, catalog, users, policy, clock):
        dispatcher = MagicMock()
        dispatcher.send.side_effect = RuntimeError("smtp down")
        service = TradeService(trade_repo, catalog, users, dispatcher=dispatcher, policy=policy, clock=clock)

        with capture_logs() as logs:
            trade = service.propose(ALICE, BOB, ["p1"], ["p2"])

        assert trade_repo.get(trade.id).status == TradeStatus.PENDING
        failures = [entry for entry in logs if entry["event"] == "Side effect failed"]
        assert failures[0]["side_effect"] == "notification.send"
        assert failures[0]["error"] == "smtp down"
        assert failures[0]["log_level"] == "warning"


class TestDisputeResolution:
    def test_dispute_scenario_complete_trade(self, trade_service, trade_repo, catalog, audit_repo,
                                             disputed, clock):
        assert disputed.status == TradeStatus.DISPUTED
        assert disputed.dispute.reason == "item not as described"

        clock.advance(days=1)
        resolved = trade_service.resolve_dispute(disputed.id, ADMIN, "complete_trade", note="Checked photos")

        stored = trade_repo.get(disputed.id)
        assert stored.status == TradeStatus.COMPLETED
        assert stored.completed_at == clock.now
        assert stored.dispute.resolution == DisputeResolution.COMPLETE_TRADE
        assert stored.dispute.resolved_by == ADMIN
        assert stored.dispute_invariant_holds()
        assert status_of(catalog, "p1") == ProductStatus.SOLD

        entries, total = audit_repo.query(AuditLogQuery())
        assert total == 1
        entry = entries[0]
        assert entry.action == AuditAction.TRADE_RESOLVE
        assert entry.entity_type == "Trade"
        assert entry.entity_id == disputed.id
        assert entry.admin_id == ADMIN
        assert entry.old_values["status"] == "disputed"
        assert entry.new_values["status"] == "completed"
        assert entry.new_values["resolution"] == "complete_trade"
        assert entry.new_values["note"] == "Checked photos"
        assert resolved.status == TradeStatus.COMPLETED

    def test_cancel_reactivates_products(self, trade_service, catalog, disputed):
        trade_service.resolve_dispute(disputed.id, ADMIN, "cancel")
        assert status_of(catalog, "p1") == ProductStatus.ACTIVE
        assert status_of(catalog, "p2") == ProductStatus.ACTIVE

    def test_non_admin_cannot_resolve(self, trade_service, trade_repo, disputed):
        for user_id in (ALICE, BOB, CAROL):
            with pytest.raises(AuthorizationError):
                trade_service.resolve_dispute(disputed.id, user_id, "complete_trade")
        assert trade_repo.get(disputed.id).status == TradeStatus.DISPUTED

    def test_favor_outcome_leaves_trade_untouched(self, trade_service, trade_repo, catalog,
                                                  audit_repo, disputed):
        with pytest.raises(UnsupportedResolutionError):
            trade_service.resolve_dispute(disputed.id, ADMIN, "favor_initiator")
        stored = trade_repo.get(disputed.id)
        assert stored.status == TradeStatus.DISPUTED
        assert stored.dispute.resolution is None
        assert status_of(catalog, "p1") == ProductStatus.RESERVED
        assert audit_repo.query(AuditLogQuery())[1] == 0

    def test_second_resolution_conflicts(self, trade_service, audit_repo, disputed):
        trade_service.resolve_dispute(disputed.id, ADMIN, "cancel")
        with pytest.raises(ConflictError):
            trade_service.resolve_dispute(disputed.id, ADMIN, "complete_trade")
        assert audit_repo.query(AuditLogQuery())[1] == 1

    def test_second_dispute_conflicts(self, trade_service, disputed):
        with pytest.raises(ConflictError):
            trade_service.raise_dispute(disputed.id, BOB, "damaged")

    def test_description_length_limit(self, trade_service, shipped):
        with pytest.raises(ValidationError):
            trade_service.raise_dispute(shipped.id, ALICE, "damaged", description="x" * 1001)

    def test_audit_failure_is_best_effort(self, trade_service, trade_repo, disputed):
        trade_service.audit = MagicMock()
        trade_service.audit.record.side_effect = RuntimeError("audit store offline")

        with capture_logs() as logs:
            resolved = trade_service.resolve_dispute(disputed.id, ADMIN, "complete_trade")

        assert resolved.status == TradeStatus.COMPLETED
        assert trade_repo.get(disputed.id).status == TradeStatus.COMPLETED
        assert any(entry.get("side_effect") == "audit.record" for entry in logs)


class TestSweeps:
    def test_expire_stale(self, trade_service, trade_repo, proposed, clock):
        assert trade_service.expire_stale(clock.now + timedelta(hours=47)) == []
        expired = trade_service.expire_stale(clock.now + timedelta(hours=48))
        assert [t.id for t in expired] == [proposed.id]
        assert trade_repo.get(proposed.id).status == TradeStatus.CANCELLED

    def test_auto_confirm_due(self, trade_service, catalog, shipped, clock):
        assert trade_service.auto_confirm_due(clock.now + timedelta(days=6)) == []
        done = trade_service.auto_confirm_due(clock.now + timedelta(days=7))
        assert len(done) == 1
        assert done[0].auto_confirmed
        assert status_of(catalog, "p2") == ProductStatus.SOLD

    def test_admin_listing(self, trade_service, proposed):
        trade_service.propose(BOB, ALICE, ["p3"], ["p1"])
        trades, total = trade_service.list_trades(TradeStatus.PENDING, page=1, limit=1)
        assert total == 2
        assert len(trades) == 1


def test_tracking_number_prefix():
    assert generate_tracking_number("mng").startswith("MNG")
    assert generate_tracking_number("").startswith("TRD")

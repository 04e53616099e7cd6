"""
Trade State Machine
Pure transition functions over the Trade aggregate

Every transition takes the current trade and returns a TradeTransition:
either a new trade (the input is never mutated) plus the notification events
it produces, or a domain error. Nothing here touches storage or the network.
"""

from datetime import datetime, timedelta
from typing import Optional, List, Dict, Any, Iterable, Union

from pydantic import BaseModel, ConfigDict, Field

from src.errors import (
    DomainError,
    ValidationError,
    InvalidStateError,
    ConflictError,
    AuthorizationError,
    UnsupportedResolutionError,
)
from src.models.notification import NotificationType
from src.models.trade import (
    Trade,
    TradeItem,
    TradeSide,
    TradeStatus,
    TradeDispute,
    Shipment,
    ShipmentStatus,
    DisputeResolution,
)


class TradeEvent(BaseModel):
    """Notification owed to one user because of a transition"""
    recipient_id: str
    type: NotificationType
    data: Dict[str, Any] = Field(default_factory=dict)


class TradeTransition(BaseModel):
    """Result of a transition: a new trade and its events, or an error"""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    trade: Optional[Trade] = None
    counter_trade: Optional[Trade] = None
    events: List[TradeEvent] = Field(default_factory=list)
    error: Optional[DomainError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Trade:
        """Return the new trade or raise the domain error"""
        if self.error is not None:
            raise self.error
        return self.trade


def _ok(trade: Trade, events: Iterable[TradeEvent] = (), counter_trade: Optional[Trade] = None) -> TradeTransition:
    return TradeTransition(trade=trade, counter_trade=counter_trade, events=list(events))


def _fail(error: DomainError) -> TradeTransition:
    return TradeTransition(error=error)


def _invalid_state(trade: Trade, operation: str) -> TradeTransition:
    return _fail(InvalidStateError(
        "Takas bu işlem için uygun durumda değil",
        details={"status": trade.status.value, "operation": operation},
    ))


def _not_a_party(trade: Trade, actor_id: str) -> Optional[TradeTransition]:
    if not trade.is_party(actor_id):
        return _fail(AuthorizationError("Bu takas üzerinde işlem yetkiniz yok"))
    return None


def _require_receiver(trade: Trade, actor_id: str) -> Optional[TradeTransition]:
    denied = _not_a_party(trade, actor_id)
    if denied:
        return denied
    if actor_id != trade.receiver_id:
        return _fail(AuthorizationError("Sadece teklifi alan kullanıcı bu işlemi yapabilir"))
    return None


def _is_expired(trade: Trade, now: datetime) -> bool:
    return trade.response_deadline is not None and now >= trade.response_deadline


def check_response(trade: Trade, actor_id: str, now: datetime, operation: str) -> Optional[TradeTransition]:
    """Failed transition if actor_id may not accept or counter the trade right now, else None"""
    denied = _require_receiver(trade, actor_id)
    if denied:
        return denied
    if trade.status != TradeStatus.PENDING:
        return _invalid_state(trade, operation)
    if _is_expired(trade, now):
        return _fail(InvalidStateError("Takas teklifinin yanıt süresi doldu"))
    return None


def _advance(trade: Trade, now: datetime) -> Trade:
    updated = trade.model_copy(deep=True)
    updated.updated_at = now
    return updated


def _build_items(trade_id: str, side: TradeSide, product_ids: List[str],
                 item_values: Optional[Dict[str, float]]) -> List[TradeItem]:
    values = item_values or {}
    return [
        TradeItem(trade_id=trade_id, side=side, product_id=pid, value=values.get(pid))
        for pid in product_ids
    ]


# Proposal

def propose(
    initiator_id: str,
    receiver_id: str,
    initiator_product_ids: List[str],
    receiver_product_ids: List[str],
    now: datetime,
    response_deadline: Optional[datetime] = None,
    cash_amount: Optional[float] = None,
    cash_payer_id: Optional[str] = None,
    message: Optional[str] = None,
    parent_trade_id: Optional[str] = None,
    max_items_per_side: int = 10,
    item_values: Optional[Dict[str, float]] = None,
) -> TradeTransition:
    """
    Create a new pending trade

    Structural checks only; ownership and availability of the products are
    checked by the service, which has access to the catalog.
    """
    if initiator_id == receiver_id:
        return _fail(ValidationError("Kendinizle takas yapamazsınız"))
    if not initiator_product_ids:
        return _fail(ValidationError("En az 1 ürün teklif etmelisiniz"))
    if not receiver_product_ids:
        return _fail(ValidationError("En az 1 ürün talep etmelisiniz"))
    if len(initiator_product_ids) > max_items_per_side or len(receiver_product_ids) > max_items_per_side:
        return _fail(ValidationError(
            f"Her taraf en fazla {max_items_per_side} ürün içerebilir"
        ))
    overlap = set(initiator_product_ids) & set(receiver_product_ids)
    if overlap or len(set(initiator_product_ids)) != len(initiator_product_ids) \
            or len(set(receiver_product_ids)) != len(receiver_product_ids):
        return _fail(ValidationError("Aynı ürün takasta birden fazla kez yer alamaz"))

    if cash_amount is not None:
        if cash_amount <= 0:
            return _fail(ValidationError("Nakit farkı sıfırdan büyük olmalıdır"))
        if cash_payer_id not in (initiator_id, receiver_id):
            return _fail(ValidationError("Nakit farkı ödeyen taraf takasın tarafı olmalıdır"))
    elif cash_payer_id is not None:
        return _fail(ValidationError("Nakit farkı belirtilmeden ödeyen taraf seçilemez"))

    trade = Trade(
        initiator_id=initiator_id,
        receiver_id=receiver_id,
        status=TradeStatus.PENDING,
        cash_amount=cash_amount,
        cash_payer_id=cash_payer_id,
        message=message,
        parent_trade_id=parent_trade_id,
        created_at=now,
        updated_at=now,
        response_deadline=response_deadline,
    )
    trade.initiator_items = _build_items(trade.id, TradeSide.INITIATOR, initiator_product_ids, item_values)
    trade.receiver_items = _build_items(trade.id, TradeSide.RECEIVER, receiver_product_ids, item_values)

    return _ok(trade, [
        TradeEvent(recipient_id=receiver_id, type=NotificationType.TRADE_RECEIVED,
                   data={"tradeId": trade.id}),
    ])


# Receiver responses

def accept(trade: Trade, actor_id: str, now: datetime,
           shipping_deadline: Optional[datetime] = None) -> TradeTransition:
    denied = check_response(trade, actor_id, now, "accept")
    if denied:
        return denied

    updated = _advance(trade, now)
    updated.status = TradeStatus.ACCEPTED
    updated.accepted_at = now
    updated.responded_at = now
    updated.shipping_deadline = shipping_deadline

    return _ok(updated, [
        TradeEvent(recipient_id=trade.initiator_id, type=NotificationType.TRADE_ACCEPTED,
                   data={"tradeId": trade.id}),
    ])


def reject(trade: Trade, actor_id: str, now: datetime, reason: Optional[str] = None) -> TradeTransition:
    denied = _require_receiver(trade, actor_id)
    if denied:
        return denied
    if trade.status != TradeStatus.PENDING:
        return _invalid_state(trade, "reject")

    updated = _advance(trade, now)
    updated.status = TradeStatus.REJECTED
    updated.responded_at = now
    if reason:
        updated.metadata["reject_reason"] = reason

    return _ok(updated, [
        TradeEvent(recipient_id=trade.initiator_id, type=NotificationType.TRADE_REJECTED,
                   data={"tradeId": trade.id, "reason": reason or ""}),
    ])


def counter(
    trade: Trade,
    actor_id: str,
    now: datetime,
    initiator_product_ids: Optional[List[str]] = None,
    receiver_product_ids: Optional[List[str]] = None,
    cash_amount: Optional[float] = None,
    cash_payer_id: Optional[str] = None,
    message: Optional[str] = None,
    response_deadline: Optional[datetime] = None,
    max_items_per_side: int = 10,
    item_values: Optional[Dict[str, float]] = None,
) -> TradeTransition:
    """
    Replace a pending proposal with a counter proposal

    The counter-offerer (original receiver) becomes the initiator of the new
    trade. initiator_product_ids are what they now offer, receiver_product_ids
    what they want back. Omitted sets default to the original sets, swapped.
    """
    denied = check_response(trade, actor_id, now, "counter")
    if denied:
        return denied

    offered = initiator_product_ids or [item.product_id for item in trade.receiver_items]
    wanted = receiver_product_ids or [item.product_id for item in trade.initiator_items]
    if not item_values:
        item_values = {
            item.product_id: item.value
            for item in trade.initiator_items + trade.receiver_items
            if item.value is not None
        }

    proposal = propose(
        initiator_id=trade.receiver_id,
        receiver_id=trade.initiator_id,
        initiator_product_ids=offered,
        receiver_product_ids=wanted,
        now=now,
        response_deadline=response_deadline,
        cash_amount=cash_amount,
        cash_payer_id=cash_payer_id,
        message=message,
        parent_trade_id=trade.id,
        max_items_per_side=max_items_per_side,
        item_values=item_values,
    )
    if not proposal.ok:
        return proposal

    updated = _advance(trade, now)
    updated.status = TradeStatus.COUNTERED
    updated.responded_at = now
    new_trade = proposal.trade

    return _ok(updated, [
        TradeEvent(recipient_id=trade.initiator_id, type=NotificationType.TRADE_COUNTER,
                   data={"tradeId": new_trade.id, "originalTradeId": trade.id}),
    ], counter_trade=new_trade)


def cancel(trade: Trade, actor_id: str, now: datetime, reason: Optional[str] = None) -> TradeTransition:
    """Initiator withdraws a pending proposal"""
    denied = _not_a_party(trade, actor_id)
    if denied:
        return denied
    if actor_id != trade.initiator_id:
        return _fail(AuthorizationError("Sadece teklifi gönderen kullanıcı iptal edebilir"))
    if trade.status != TradeStatus.PENDING:
        return _invalid_state(trade, "cancel")

    updated = _advance(trade, now)
    updated.status = TradeStatus.CANCELLED
    updated.cancelled_at = now
    updated.cancelled_by = actor_id
    updated.cancel_reason = reason

    return _ok(updated, [
        TradeEvent(recipient_id=trade.receiver_id, type=NotificationType.TRADE_CANCELLED,
                   data={"tradeId": trade.id, "reason": reason or ""}),
    ])


def expire(trade: Trade, now: datetime) -> TradeTransition:
    """Cancel a pending proposal whose response deadline has passed"""
    if trade.status != TradeStatus.PENDING:
        return _invalid_state(trade, "expire")
    if not _is_expired(trade, now):
        return _fail(InvalidStateError("Takas teklifinin yanıt süresi henüz dolmadı"))

    updated = _advance(trade, now)
    updated.status = TradeStatus.CANCELLED
    updated.cancelled_at = now
    updated.cancel_reason = "expired"

    return _ok(updated, [
        TradeEvent(recipient_id=trade.initiator_id, type=NotificationType.TRADE_CANCELLED,
                   data={"tradeId": trade.id, "reason": "expired"}),
    ])


# Shipping and receipt

def ship(trade: Trade, actor_id: str, carrier: str, tracking_number: str, now: datetime) -> TradeTransition:
    denied = _not_a_party(trade, actor_id)
    if denied:
        return denied
    if trade.status not in (TradeStatus.ACCEPTED, TradeStatus.SHIPPED):
        return _invalid_state(trade, "ship")
    if not carrier or not carrier.strip():
        return _fail(ValidationError("Kargo firması gereklidir"))

    side = trade.side_of(actor_id)
    if trade.shipment_for(side) is not None:
        return _fail(ConflictError("Ürünlerinizi zaten kargoya verdiniz"))

    updated = _advance(trade, now)
    updated.shipments.append(Shipment(
        trade_id=trade.id,
        side=side,
        carrier=carrier.strip(),
        tracking_number=tracking_number,
        shipped_at=now,
    ))
    updated.status = TradeStatus.SHIPPED

    return _ok(updated, [
        TradeEvent(recipient_id=trade.other_party(actor_id), type=NotificationType.TRADE_SHIPPED,
                   data={"tradeId": trade.id, "trackingNumber": tracking_number, "carrier": carrier}),
    ])


def _complete(updated: Trade, now: datetime) -> List[TradeEvent]:
    updated.status = TradeStatus.COMPLETED
    updated.completed_at = now
    return [
        TradeEvent(recipient_id=party, type=NotificationType.TRADE_COMPLETED,
                   data={"tradeId": updated.id})
        for party in (updated.initiator_id, updated.receiver_id)
    ]


def confirm_receipt(trade: Trade, actor_id: str, now: datetime) -> TradeTransition:
    """A party confirms it received the other side's shipment"""
    denied = _not_a_party(trade, actor_id)
    if denied:
        return denied
    if trade.status != TradeStatus.SHIPPED:
        return _invalid_state(trade, "confirm_receipt")
    if not trade.both_shipped():
        return _fail(InvalidStateError("Her iki taraf da kargoya vermeden teslim onayı verilemez"))

    side = trade.side_of(actor_id)
    confirmed_at = trade.initiator_confirmed_at if side == TradeSide.INITIATOR else trade.receiver_confirmed_at
    if confirmed_at is not None:
        return _fail(ConflictError("Teslimatı zaten onayladınız"))

    updated = _advance(trade, now)
    if side == TradeSide.INITIATOR:
        updated.initiator_confirmed_at = now
    else:
        updated.receiver_confirmed_at = now

    incoming = updated.shipment_for(side.other())
    incoming.status = ShipmentStatus.DELIVERED
    incoming.delivered_at = now

    events: List[TradeEvent] = []
    if updated.initiator_confirmed_at and updated.receiver_confirmed_at:
        events = _complete(updated, now)
    return _ok(updated, events)


def auto_confirm(trade: Trade, now: datetime, waiting_period: timedelta) -> TradeTransition:
    """Complete a shipped trade once the waiting period after the last shipment has elapsed"""
    if trade.status != TradeStatus.SHIPPED or not trade.both_shipped():
        return _invalid_state(trade, "auto_confirm")

    last_shipped = max(shipment.shipped_at for shipment in trade.shipments)
    if now < last_shipped + waiting_period:
        return _fail(InvalidStateError("Otomatik onay süresi henüz dolmadı"))

    updated = _advance(trade, now)
    updated.initiator_confirmed_at = updated.initiator_confirmed_at or now
    updated.receiver_confirmed_at = updated.receiver_confirmed_at or now
    for shipment in updated.shipments:
        if shipment.status != ShipmentStatus.DELIVERED:
            shipment.status = ShipmentStatus.DELIVERED
            shipment.delivered_at = now
    updated.auto_confirmed = True
    return _ok(updated, _complete(updated, now))


# Disputes

def raise_dispute(
    trade: Trade,
    actor_id: str,
    reason: str,
    now: datetime,
    description: Optional[str] = None,
    evidence_urls: Optional[List[str]] = None,
) -> TradeTransition:
    denied = _not_a_party(trade, actor_id)
    if denied:
        return denied
    if not reason or not reason.strip():
        return _fail(ValidationError("İtiraz nedeni gereklidir"))
    if trade.dispute is not None:
        return _fail(ConflictError("Bu takas için zaten bir itiraz açılmış"))
    if trade.status not in (TradeStatus.ACCEPTED, TradeStatus.SHIPPED):
        return _invalid_state(trade, "raise_dispute")

    updated = _advance(trade, now)
    updated.status = TradeStatus.DISPUTED
    updated.dispute = TradeDispute(
        trade_id=trade.id,
        opened_by=actor_id,
        reason=reason.strip(),
        description=description,
        evidence_urls=list(evidence_urls or []),
        created_at=now,
    )
    updated.metadata["status_before_dispute"] = trade.status.value

    return _ok(updated, [
        TradeEvent(recipient_id=trade.other_party(actor_id), type=NotificationType.TRADE_DISPUTED,
                   data={"tradeId": trade.id, "reason": reason.strip()}),
    ])


def parse_resolution(value: Union[str, DisputeResolution]) -> Optional[DisputeResolution]:
    try:
        return DisputeResolution(value)
    except ValueError:
        return None


def resolve_dispute(
    trade: Trade,
    admin_id: str,
    resolution: Union[str, DisputeResolution],
    now: datetime,
    note: Optional[str] = None,
) -> TradeTransition:
    """
    Close a dispute with one of the fixed outcomes

    Role checks happen in the service; this only enforces state rules.
    favor_initiator / favor_receiver have no defined effect on items or funds
    and are refused without touching the trade.
    """
    outcome = parse_resolution(resolution)
    if outcome is None:
        valid = ", ".join(r.value for r in DisputeResolution)
        return _fail(ValidationError(f"Geçersiz çözüm tipi. Geçerli değerler: {valid}"))
    if trade.dispute is not None and trade.dispute.is_resolved:
        return _fail(ConflictError("Bu itiraz zaten çözümlendi"))
    if trade.status != TradeStatus.DISPUTED or trade.dispute is None:
        return _fail(InvalidStateError(
            "Takas itiraz durumunda değil",
            details={"status": trade.status.value, "operation": "resolve_dispute"},
        ))
    if outcome in (DisputeResolution.FAVOR_INITIATOR, DisputeResolution.FAVOR_RECEIVER):
        return _fail(UnsupportedResolutionError(
            "Bu çözüm tipi henüz desteklenmiyor",
            details={"resolution": outcome.value},
        ))

    updated = _advance(trade, now)
    updated.dispute.resolution = outcome
    updated.dispute.admin_note = note
    updated.dispute.resolved_by = admin_id
    updated.dispute.resolved_at = now

    if outcome == DisputeResolution.COMPLETE_TRADE:
        updated.status = TradeStatus.COMPLETED
        updated.completed_at = now
    else:
        updated.status = TradeStatus.CANCELLED
        updated.cancelled_at = now
        updated.cancelled_by = admin_id
        updated.cancel_reason = note or "Admin tarafından iptal edildi"

    return _ok(updated, [
        TradeEvent(recipient_id=party, type=NotificationType.TRADE_DISPUTE_RESOLVED,
                   data={"tradeId": trade.id, "resolution": outcome.value})
        for party in (trade.initiator_id, trade.receiver_id)
    ])

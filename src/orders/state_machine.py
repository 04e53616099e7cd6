"""
Order State Machine
pending_payment -> paid -> shipped -> delivered -> completed,
with cancellation before shipping and refund after payment
"""

from datetime import datetime, timedelta
from typing import Optional, List, Iterable

from pydantic import BaseModel, ConfigDict, Field

from src.errors import DomainError, ValidationError, InvalidStateError, AuthorizationError
from src.models.notification import NotificationType
from src.models.order import Order, OrderStatus
from src.trading.state_machine import TradeEvent as OrderEvent


class OrderTransition(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    order: Optional[Order] = None
    events: List[OrderEvent] = Field(default_factory=list)
    error: Optional[DomainError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Order:
        if self.error is not None:
            raise self.error
        return self.order


def _ok(order: Order, events: Iterable[OrderEvent] = ()) -> OrderTransition:
    return OrderTransition(order=order, events=list(events))


def _fail(error: DomainError) -> OrderTransition:
    return OrderTransition(error=error)


def _invalid_state(order: Order, operation: str) -> OrderTransition:
    return _fail(InvalidStateError(
        "Sipariş bu işlem için uygun durumda değil",
        details={"status": order.status.value, "operation": operation},
    ))


def _advance(order: Order, now: datetime) -> Order:
    updated = order.model_copy(deep=True)
    updated.updated_at = now
    return updated


def _event(recipient_id: str, notification_type: NotificationType, order: Order, **extra) -> OrderEvent:
    return OrderEvent(recipient_id=recipient_id, type=notification_type,
                      data={"orderId": order.id, "amount": order.amount, **extra})


def create(buyer_id: str, seller_id: str, product_id: str, amount: float, now: datetime) -> OrderTransition:
    if buyer_id == seller_id:
        return _fail(ValidationError("Kendi ürününüzü satın alamazsınız"))
    if amount <= 0:
        return _fail(ValidationError("Sipariş tutarı sıfırdan büyük olmalıdır"))

    order = Order(
        buyer_id=buyer_id,
        seller_id=seller_id,
        product_id=product_id,
        amount=amount,
        created_at=now,
        updated_at=now,
    )
    return _ok(order, [_event(buyer_id, NotificationType.ORDER_CREATED, order)])


def mark_paid(order: Order, payment_id: str, now: datetime) -> OrderTransition:
    if order.status != OrderStatus.PENDING_PAYMENT:
        return _invalid_state(order, "mark_paid")
    if not payment_id:
        return _fail(ValidationError("Ödeme referansı gereklidir"))

    updated = _advance(order, now)
    updated.status = OrderStatus.PAID
    updated.payment_id = payment_id
    updated.paid_at = now
    return _ok(updated, [
        _event(order.buyer_id, NotificationType.ORDER_PAID, order),
        _event(order.seller_id, NotificationType.ORDER_PAID, order),
    ])


def ship(order: Order, actor_id: str, carrier: str, tracking_number: str, now: datetime) -> OrderTransition:
    if actor_id != order.seller_id:
        return _fail(AuthorizationError("Sadece satıcı siparişi kargoya verebilir"))
    if order.status != OrderStatus.PAID:
        return _invalid_state(order, "ship")
    if not carrier or not carrier.strip():
        return _fail(ValidationError("Kargo firması gereklidir"))

    updated = _advance(order, now)
    updated.status = OrderStatus.SHIPPED
    updated.carrier = carrier.strip()
    updated.tracking_number = tracking_number
    updated.shipped_at = now
    return _ok(updated, [
        _event(order.buyer_id, NotificationType.ORDER_SHIPPED, order, trackingNumber=tracking_number),
    ])


def mark_delivered(order: Order, now: datetime, actor_id: Optional[str] = None) -> OrderTransition:
    """Carrier callback (no actor) or the buyer reports delivery"""
    if actor_id is not None and actor_id != order.buyer_id:
        return _fail(AuthorizationError("Sadece alıcı teslimatı bildirebilir"))
    if order.status != OrderStatus.SHIPPED:
        return _invalid_state(order, "mark_delivered")

    updated = _advance(order, now)
    updated.status = OrderStatus.DELIVERED
    updated.delivered_at = now
    return _ok(updated, [_event(order.buyer_id, NotificationType.ORDER_DELIVERED, order)])


def _complete(updated: Order, now: datetime) -> List[OrderEvent]:
    updated.status = OrderStatus.COMPLETED
    updated.completed_at = now
    return [
        _event(party, NotificationType.ORDER_COMPLETED, updated)
        for party in (updated.buyer_id, updated.seller_id)
    ]


def confirm(order: Order, actor_id: str, now: datetime) -> OrderTransition:
    if actor_id != order.buyer_id:
        return _fail(AuthorizationError("Sadece alıcı siparişi onaylayabilir"))
    if order.status != OrderStatus.DELIVERED:
        return _invalid_state(order, "confirm")

    updated = _advance(order, now)
    return _ok(updated, _complete(updated, now))


def auto_confirm(order: Order, now: datetime, waiting_period: timedelta) -> OrderTransition:
    if order.status != OrderStatus.DELIVERED or order.delivered_at is None:
        return _invalid_state(order, "auto_confirm")
    if now < order.delivered_at + waiting_period:
        return _fail(InvalidStateError("Otomatik onay süresi henüz dolmadı"))

    updated = _advance(order, now)
    updated.auto_confirmed = True
    return _ok(updated, _complete(updated, now))


def cancel(order: Order, actor_id: str, now: datetime, reason: Optional[str] = None) -> OrderTransition:
    """
    Cancel before shipping

    From pending_payment the order is simply cancelled. From paid the caller
    must refund through the gateway and then apply `refund`.
    """
    if not order.is_party(actor_id):
        return _fail(AuthorizationError("Bu sipariş üzerinde işlem yetkiniz yok"))
    if order.status != OrderStatus.PENDING_PAYMENT:
        return _invalid_state(order, "cancel")

    updated = _advance(order, now)
    updated.status = OrderStatus.CANCELLED
    updated.cancelled_at = now
    updated.cancelled_by = actor_id
    updated.cancel_reason = reason
    return _ok(updated, [
        _event(party, NotificationType.ORDER_CANCELLED, order)
        for party in (order.buyer_id, order.seller_id)
    ])


def refund(order: Order, actor_id: str, now: datetime, reason: Optional[str] = None,
           amount: Optional[float] = None) -> OrderTransition:
    """Record a completed gateway refund on a paid, not yet shipped order"""
    if not order.is_party(actor_id):
        return _fail(AuthorizationError("Bu sipariş üzerinde işlem yetkiniz yok"))
    if order.status != OrderStatus.PAID:
        return _invalid_state(order, "refund")

    updated = _advance(order, now)
    updated.status = OrderStatus.REFUNDED
    updated.cancelled_at = now
    updated.cancelled_by = actor_id
    updated.cancel_reason = reason
    updated.refunded_at = now
    updated.refund_amount = amount if amount is not None else order.amount
    return _ok(updated, [
        OrderEvent(recipient_id=order.buyer_id, type=NotificationType.ORDER_REFUNDED,
                   data={"orderId": order.id, "amount": updated.refund_amount}),
    ])

"""
Order Service
Single-product purchases from creation through payment, shipping and completion
"""

import json
from datetime import datetime, timezone
from typing import Callable, Optional, List, Dict, Any

import structlog

from src.errors import ValidationError, NotFoundError, AuthorizationError, AuthenticationError, PaymentError
from src.governance.policy_engine import MarketplacePolicy
from src.models.catalog import ProductStatus
from src.models.order import Order, OrderStatus
from src.notifications.dispatcher import NotificationDispatcher
from src.orders import state_machine
from src.orders.gateway import PaymentGateway, ManualPaymentGateway, verify_signature
from src.orders.state_machine import OrderTransition
from src.persistence.interfaces import OrderRepository, ProductCatalog
from src.side_effects import SideEffectOutcome, run_best_effort
from src.trading.service import generate_tracking_number

logger = structlog.get_logger()


class OrderService:
    def __init__(
        self,
        orders: OrderRepository,
        catalog: ProductCatalog,
        dispatcher: Optional[NotificationDispatcher] = None,
        gateway: Optional[PaymentGateway] = None,
        policy: Optional[MarketplacePolicy] = None,
        webhook_secret: Optional[str] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.orders = orders
        self.catalog = catalog
        self.dispatcher = dispatcher
        self.gateway = gateway or ManualPaymentGateway()
        self.policy = policy or MarketplacePolicy()
        self.webhook_secret = webhook_secret
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def _load(self, order_id: str) -> Order:
        order = self.orders.get(order_id)
        if order is None:
            raise NotFoundError("Sipariş bulunamadı")
        return order

    def get_order(self, order_id: str, user_id: str) -> Order:
        order = self._load(order_id)
        if not order.is_party(user_id):
            raise AuthorizationError("Bu siparişi görüntüleme yetkiniz yok")
        return order

    def create_order(self, buyer_id: str, product_id: str) -> Order:
        products = self.catalog.get_products([product_id])
        if not products:
            raise NotFoundError("Ürün bulunamadı")
        product = products[0]
        if product.status != ProductStatus.ACTIVE:
            raise ValidationError("Ürün satışta değil")
        if product.price is None:
            raise ValidationError("Ürün fiyatı belirlenmemiş")

        order = self._commit(state_machine.create(buyer_id, product.seller_id, product_id,
                                                  product.price, self.clock()))
        self.catalog.set_status([product_id], ProductStatus.RESERVED)
        logger.info("Order created", order_id=order.id, buyer_id=buyer_id, product_id=product_id)
        return order

    def handle_payment_callback(self, raw_body: bytes, signature: Optional[str]) -> Order:
        """
        Apply a signed gateway callback

        Body: {"orderId": ..., "paymentId": ..., "status": "success" | "failure"}
        """
        if not verify_signature(raw_body, signature, self.webhook_secret):
            raise AuthenticationError("Geçersiz ödeme imzası")

        try:
            payload: Dict[str, Any] = json.loads(raw_body)
        except ValueError:
            raise ValidationError("Geçersiz ödeme bildirimi")
        if not isinstance(payload, dict):
            raise ValidationError("Geçersiz ödeme bildirimi")

        order = self._load(str(payload.get("orderId", "")))
        if payload.get("status") != "success":
            logger.warning("Payment failed at gateway", order_id=order.id, reason=payload.get("errorMessage"))
            return order
        return self.mark_paid(order.id, str(payload.get("paymentId") or ""))

    def mark_paid(self, order_id: str, payment_id: str) -> Order:
        order = self._load(order_id)
        paid = self._commit(state_machine.mark_paid(order, payment_id, self.clock()))
        logger.info("Order paid", order_id=order_id, payment_id=payment_id)
        return paid

    def ship(self, order_id: str, actor_id: str, carrier: str, tracking_number: Optional[str] = None) -> Order:
        order = self._load(order_id)
        tracking_number = tracking_number or generate_tracking_number(carrier)
        return self._commit(state_machine.ship(order, actor_id, carrier, tracking_number, self.clock()))

    def mark_delivered(self, order_id: str, actor_id: Optional[str] = None) -> Order:
        order = self._load(order_id)
        return self._commit(state_machine.mark_delivered(order, self.clock(), actor_id))

    def confirm(self, order_id: str, actor_id: str) -> Order:
        order = self._load(order_id)
        completed = self._commit(state_machine.confirm(order, actor_id, self.clock()))
        self.catalog.set_status([completed.product_id], ProductStatus.SOLD)
        return completed

    def cancel(self, order_id: str, actor_id: str, reason: Optional[str] = None) -> Order:
        """Cancel an unpaid order, or refund a paid one that has not shipped"""
        order = self._load(order_id)
        now = self.clock()

        if order.status == OrderStatus.PAID and order.is_party(actor_id):
            result = self.gateway.refund(order.payment_id, order.amount)
            if not result.success:
                logger.error("Refund failed", order_id=order_id, error=result.error)
                raise PaymentError("İade işlemi başarısız oldu", details={"error": result.error})
            cancelled = self._commit(state_machine.refund(order, actor_id, now, reason))
            cancelled.metadata["refund_id"] = result.refund_id
            self.orders.save(cancelled)
        else:
            cancelled = self._commit(state_machine.cancel(order, actor_id, now, reason))

        self.catalog.set_status([cancelled.product_id], ProductStatus.ACTIVE)
        logger.info("Order cancelled", order_id=order_id, status=cancelled.status.value)
        return cancelled

    def auto_confirm_due(self, now: Optional[datetime] = None) -> List[Order]:
        now = now or self.clock()
        waiting_period = self.policy.get_order_auto_confirm_period()
        completed: List[Order] = []
        for order in self.orders.list_by_status(OrderStatus.DELIVERED):
            transition = state_machine.auto_confirm(order, now, waiting_period)
            if transition.ok:
                done = self._commit(transition)
                self.catalog.set_status([done.product_id], ProductStatus.SOLD)
                completed.append(done)
        if completed:
            logger.info("Auto-confirmed orders", count=len(completed))
        return completed

    def _commit(self, transition: OrderTransition) -> Order:
        order = transition.unwrap()
        self.orders.save(order)
        for event in transition.events:
            self._notify(event.recipient_id, event.type, event.data)
        return order

    def _notify(self, user_id: str, notification_type, data: Dict[str, Any]) -> SideEffectOutcome:
        if self.dispatcher is None:
            return SideEffectOutcome(name="notification.send", ok=True)
        return run_best_effort(
            "notification.send",
            lambda: self.dispatcher.send(user_id, notification_type, data=data),
            user_id=user_id,
            type=notification_type.value,
        )

"""
Trade Service
Runs trade transitions against storage, the product catalog and notifications

The state machine decides; this service loads, checks what needs outside data
(product ownership, admin role), persists, and fires the best-effort effects.
"""

import secrets
from datetime import datetime, timezone
from typing import Callable, Optional, List, Dict, Tuple, Union

import structlog

from src.errors import ValidationError, NotFoundError, AuthorizationError, InvalidStateError
from src.governance.audit_trail import AuditTrail
from src.governance.policy_engine import MarketplacePolicy
from src.models.audit import AuditAction
from src.models.catalog import ProductStatus, UserRole
from src.models.trade import Trade, TradeStatus, DisputeResolution
from src.notifications.dispatcher import NotificationDispatcher
from src.persistence.interfaces import TradeRepository, ProductCatalog, UserDirectory, page_offset
from src.side_effects import SideEffectOutcome, run_best_effort
from src.trading import state_machine
from src.trading.state_machine import TradeTransition

logger = structlog.get_logger()

SWEEP_BATCH_SIZE = 200


def generate_tracking_number(carrier: str) -> str:
    """Carrier prefix plus random digits, e.g. ARA483920174"""
    prefix = (carrier or "TRD")[:3].upper()
    return f"{prefix}{secrets.randbelow(10 ** 9):09d}"


class TradeService:
    def __init__(
        self,
        trades: TradeRepository,
        catalog: ProductCatalog,
        users: UserDirectory,
        dispatcher: Optional[NotificationDispatcher] = None,
        audit: Optional[AuditTrail] = None,
        policy: Optional[MarketplacePolicy] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        """
        Args:
            trades: Trade aggregate storage
            catalog: Product read/write access for ownership checks and disposition
            users: Directory used for receiver existence and admin role checks
            dispatcher: Notification fan-out (notifications skipped if None)
            audit: Admin audit trail (required for dispute resolution)
            policy: Marketplace rules (creates default if None)
            clock: Returns the current UTC time
        """
        self.trades = trades
        self.catalog = catalog
        self.users = users
        self.dispatcher = dispatcher
        self.audit = audit
        self.policy = policy or MarketplacePolicy()
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    # Reads

    def _load(self, trade_id: str) -> Trade:
        trade = self.trades.get(trade_id)
        if trade is None:
            raise NotFoundError("Takas bulunamadı")
        return trade

    def get_trade(self, trade_id: str, user_id: str) -> Trade:
        trade = self._load(trade_id)
        if not trade.is_party(user_id) and not self._is_admin(user_id):
            raise AuthorizationError("Bu takası görüntüleme yetkiniz yok")
        return trade

    def list_user_trades(self, user_id: str, status: Optional[TradeStatus] = None) -> List[Trade]:
        return self.trades.list_for_user(user_id, status)

    def list_trades(self, status: Optional[TradeStatus] = None, page: int = 1,
                    limit: int = 20) -> Tuple[List[Trade], int]:
        """Admin listing, newest first"""
        page, limit = self.policy.clamp_pagination(page, limit)
        return self.trades.list_by_status(status, page_offset(page, limit), limit)

    # Proposal and responses

    def propose(
        self,
        initiator_id: str,
        receiver_id: str,
        initiator_product_ids: List[str],
        receiver_product_ids: List[str],
        cash_amount: Optional[float] = None,
        cash_payer_id: Optional[str] = None,
        message: Optional[str] = None
    ) -> Trade:
        if self.users.get_user(receiver_id) is None:
            raise NotFoundError("Kullanıcı bulunamadı")
        self._check_cash(cash_amount)
        values = self._product_values(initiator_id, initiator_product_ids, receiver_id, receiver_product_ids)

        now = self.clock()
        transition = state_machine.propose(
            initiator_id=initiator_id,
            receiver_id=receiver_id,
            initiator_product_ids=initiator_product_ids,
            receiver_product_ids=receiver_product_ids,
            now=now,
            response_deadline=self.policy.get_response_deadline(now),
            cash_amount=cash_amount,
            cash_payer_id=cash_payer_id,
            message=message,
            max_items_per_side=self.policy.get_max_items_per_side(),
            item_values=values,
        )
        trade = self._commit(transition)
        logger.info("Trade proposed", trade_id=trade.id, initiator_id=initiator_id, receiver_id=receiver_id)
        return trade

    def accept(self, trade_id: str, actor_id: str) -> Trade:
        trade = self._load(trade_id)
        now = self.clock()
        transition = state_machine.accept(
            trade, actor_id, now, shipping_deadline=self.policy.get_shipping_deadline(now)
        )
        if transition.ok:
            self._check_still_available(trade)
        accepted = self._commit(transition)
        self._set_product_status(accepted, ProductStatus.RESERVED)
        logger.info("Trade accepted", trade_id=trade_id)
        return accepted

    def reject(self, trade_id: str, actor_id: str, reason: Optional[str] = None) -> Trade:
        trade = self._load(trade_id)
        return self._commit(state_machine.reject(trade, actor_id, self.clock(), reason))

    def counter(
        self,
        trade_id: str,
        actor_id: str,
        offered_product_ids: Optional[List[str]] = None,
        requested_product_ids: Optional[List[str]] = None,
        cash_amount: Optional[float] = None,
        cash_payer_id: Optional[str] = None,
        message: Optional[str] = None
    ) -> Tuple[Trade, Trade]:
        """
        Returns:
            (original_trade_now_countered, new_pending_trade)
        """
        trade = self._load(trade_id)
        now = self.clock()
        denied = state_machine.check_response(trade, actor_id, now, "counter")
        if denied:
            denied.unwrap()
        self._check_cash(cash_amount)

        values: Dict[str, float] = {}
        if offered_product_ids or requested_product_ids:
            offered = offered_product_ids or [i.product_id for i in trade.receiver_items]
            requested = requested_product_ids or [i.product_id for i in trade.initiator_items]
            values = self._product_values(actor_id, offered, trade.initiator_id, requested)

        transition = state_machine.counter(
            trade,
            actor_id,
            now,
            initiator_product_ids=offered_product_ids,
            receiver_product_ids=requested_product_ids,
            cash_amount=cash_amount,
            cash_payer_id=cash_payer_id,
            message=message,
            response_deadline=self.policy.get_response_deadline(now),
            max_items_per_side=self.policy.get_max_items_per_side(),
            item_values=values or None,
        )
        countered = self._commit(transition)
        logger.info("Trade countered", trade_id=trade_id, counter_trade_id=transition.counter_trade.id)
        return countered, transition.counter_trade

    def cancel(self, trade_id: str, actor_id: str, reason: Optional[str] = None) -> Trade:
        trade = self._load(trade_id)
        return self._commit(state_machine.cancel(trade, actor_id, self.clock(), reason))

    # Shipping and receipt

    def ship(self, trade_id: str, actor_id: str, carrier: str,
             tracking_number: Optional[str] = None) -> Trade:
        trade = self._load(trade_id)
        tracking_number = tracking_number or generate_tracking_number(carrier)
        shipped = self._commit(state_machine.ship(trade, actor_id, carrier, tracking_number, self.clock()))
        logger.info("Trade shipment recorded", trade_id=trade_id, actor_id=actor_id, carrier=carrier)
        return shipped

    def confirm_receipt(self, trade_id: str, actor_id: str) -> Trade:
        trade = self._load(trade_id)
        confirmed = self._commit(state_machine.confirm_receipt(trade, actor_id, self.clock()))
        if confirmed.status == TradeStatus.COMPLETED:
            self._set_product_status(confirmed, ProductStatus.SOLD)
            logger.info("Trade completed", trade_id=trade_id)
        return confirmed

    # Disputes

    def raise_dispute(
        self,
        trade_id: str,
        actor_id: str,
        reason: str,
        description: Optional[str] = None,
        evidence_urls: Optional[List[str]] = None
    ) -> Trade:
        max_length = self.policy.get_dispute_description_max_length()
        if description and len(description) > max_length:
            raise ValidationError(f"Açıklama en fazla {max_length} karakter olabilir")

        trade = self._load(trade_id)
        disputed = self._commit(state_machine.raise_dispute(
            trade, actor_id, reason, self.clock(),
            description=description, evidence_urls=evidence_urls,
        ))
        logger.info("Trade disputed", trade_id=trade_id, opened_by=actor_id)
        return disputed

    def resolve_dispute(
        self,
        trade_id: str,
        admin_id: str,
        resolution: Union[str, DisputeResolution],
        note: Optional[str] = None
    ) -> Trade:
        if not self._is_admin(admin_id):
            raise AuthorizationError("Bu işlem için yönetici yetkisi gerekli")

        trade = self._load(trade_id)
        resolved = self._commit(state_machine.resolve_dispute(trade, admin_id, resolution, self.clock(), note))

        if resolved.status == TradeStatus.COMPLETED:
            self._set_product_status(resolved, ProductStatus.SOLD)
        else:
            self._set_product_status(resolved, ProductStatus.ACTIVE)

        if self.audit is not None:
            self._run("audit.record", lambda: self.audit.record(
                admin_id,
                AuditAction.TRADE_RESOLVE,
                "Trade",
                trade_id,
                old_values=trade,
                new_values={
                    **resolved.model_dump(mode="json"),
                    "resolution": resolved.dispute.resolution.value,
                    "note": note,
                },
            ), trade_id=trade_id)

        logger.info("Trade dispute resolved", trade_id=trade_id, admin_id=admin_id,
                    resolution=resolved.dispute.resolution.value, status=resolved.status.value)
        return resolved

    # Scheduled sweeps

    def _all_with_status(self, status: TradeStatus) -> List[Trade]:
        collected: List[Trade] = []
        offset = 0
        while True:
            batch, total = self.trades.list_by_status(status, offset, SWEEP_BATCH_SIZE)
            collected.extend(batch)
            offset += len(batch)
            if not batch or offset >= total:
                return collected

    def expire_stale(self, now: Optional[datetime] = None) -> List[Trade]:
        """Cancel pending proposals past their response deadline"""
        now = now or self.clock()
        expired: List[Trade] = []
        for trade in self._all_with_status(TradeStatus.PENDING):
            transition = state_machine.expire(trade, now)
            if transition.ok:
                expired.append(self._commit(transition))
        if expired:
            logger.info("Expired stale trades", count=len(expired))
        return expired

    def auto_confirm_due(self, now: Optional[datetime] = None) -> List[Trade]:
        """Complete shipped trades whose waiting period after the last shipment has passed"""
        now = now or self.clock()
        waiting_period = self.policy.get_trade_auto_confirm_period()
        completed: List[Trade] = []
        for trade in self._all_with_status(TradeStatus.SHIPPED):
            transition = state_machine.auto_confirm(trade, now, waiting_period)
            if transition.ok:
                done = self._commit(transition)
                self._set_product_status(done, ProductStatus.SOLD)
                completed.append(done)
        if completed:
            logger.info("Auto-confirmed trades", count=len(completed))
        return completed

    # Helpers

    def _commit(self, transition: TradeTransition) -> Trade:
        """Raise on failure, otherwise persist and dispatch the transition's events"""
        trade = transition.unwrap()
        self.trades.save(trade)
        if transition.counter_trade is not None:
            self.trades.save(transition.counter_trade)
        for event in transition.events:
            self.notify(event.recipient_id, event.type, event.data)
        return trade

    def notify(self, user_id: str, notification_type, data: Dict) -> SideEffectOutcome:
        if self.dispatcher is None:
            return SideEffectOutcome(name="notification.send", ok=True)
        return self._run(
            "notification.send",
            lambda: self.dispatcher.send(user_id, notification_type, data=data),
            user_id=user_id,
            type=getattr(notification_type, "value", notification_type),
        )

    def _run(self, name: str, action: Callable, **context) -> SideEffectOutcome:
        return run_best_effort(name, action, **context)

    def _set_product_status(self, trade: Trade, status: ProductStatus) -> None:
        self.catalog.set_status(trade.product_ids(), status)

    def _check_still_available(self, trade: Trade) -> None:
        """Products offered when the trade was proposed must still be listed by the same owners"""
        owners = {item.product_id: trade.initiator_id for item in trade.initiator_items}
        owners.update({item.product_id: trade.receiver_id for item in trade.receiver_items})
        products = {p.id: p for p in self.catalog.get_products(list(owners))}
        for product_id, owner_id in owners.items():
            product = products.get(product_id)
            if product is None or product.seller_id != owner_id or product.status != ProductStatus.ACTIVE:
                raise InvalidStateError("Takastaki ürün artık müsait değil", details={"product_id": product_id})

    def _is_admin(self, user_id: str) -> bool:
        user = self.users.get_user(user_id)
        return user is not None and user.role == UserRole.ADMIN

    def _check_cash(self, cash_amount: Optional[float]) -> None:
        max_cash = self.policy.get_max_cash_amount()
        if cash_amount is not None and cash_amount > max_cash:
            raise ValidationError(f"Nakit farkı en fazla {max_cash:.0f} TL olabilir")

    def _product_values(
        self,
        giver_id: str,
        offered_ids: List[str],
        taker_id: str,
        requested_ids: List[str]
    ) -> Dict[str, float]:
        """
        Check ownership and availability of every product in a proposal

        Returns:
            product_id -> listed price, used as the agreed item value
        """
        values: Dict[str, float] = {}
        for owner_id, product_ids, foreign_message in (
            (giver_id, offered_ids, "Teklif edilen ürünler size ait olmalıdır"),
            (taker_id, requested_ids, "Talep edilen ürünler karşı tarafa ait olmalıdır"),
        ):
            products = {p.id: p for p in self.catalog.get_products(list(product_ids))}
            for product_id in product_ids:
                product = products.get(product_id)
                if product is None:
                    raise NotFoundError("Ürün bulunamadı", details={"product_id": product_id})
                if product.seller_id != owner_id:
                    raise ValidationError(foreign_message, details={"product_id": product_id})
                if product.status != ProductStatus.ACTIVE or not product.is_trade_enabled:
                    raise ValidationError("Ürün takas için uygun değil", details={"product_id": product_id})
                if product.price is not None:
                    values[product_id] = product.price
        return values

"""
Trade controller.
Translates API requests into TradeService calls and trades into responses.
Domain errors propagate to the global handler in main.py.
"""

import logging
from typing import List, Optional

from api.auth import CurrentUser
from api.models.trade import (
    TradeProposeRequest,
    TradeCounterRequest,
    TradeReasonRequest,
    TradeShipRequest,
    TradeDisputeRequest,
    ResolveDisputeRequest,
    TradeResponse,
    CounterTradeResponse,
    TradeListResponse,
)
from src.models.trade import Trade, TradeStatus
from src.trading.service import TradeService

logger = logging.getLogger(__name__)


def to_response(trade: Trade) -> TradeResponse:
    return TradeResponse.model_validate(trade)


class TradeController:
    """Controller for trade operations."""

    def __init__(self, service: TradeService):
        self.service = service

    def propose(self, user: CurrentUser, request: TradeProposeRequest) -> TradeResponse:
        trade = self.service.propose(
            initiator_id=user.id,
            receiver_id=request.receiver_id,
            initiator_product_ids=request.offered_product_ids,
            receiver_product_ids=request.requested_product_ids,
            cash_amount=request.cash_amount,
            cash_payer_id=request.cash_payer_id,
            message=request.message,
        )
        return to_response(trade)

    def list_mine(self, user: CurrentUser, status: Optional[TradeStatus] = None) -> List[TradeResponse]:
        return [to_response(trade) for trade in self.service.list_user_trades(user.id, status)]

    def get(self, user: CurrentUser, trade_id: str) -> TradeResponse:
        return to_response(self.service.get_trade(trade_id, user.id))

    def accept(self, user: CurrentUser, trade_id: str) -> TradeResponse:
        return to_response(self.service.accept(trade_id, user.id))

    def reject(self, user: CurrentUser, trade_id: str, request: TradeReasonRequest) -> TradeResponse:
        return to_response(self.service.reject(trade_id, user.id, request.reason))

    def counter(self, user: CurrentUser, trade_id: str, request: TradeCounterRequest) -> CounterTradeResponse:
        original, counter = self.service.counter(
            trade_id,
            user.id,
            offered_product_ids=request.offered_product_ids,
            requested_product_ids=request.requested_product_ids,
            cash_amount=request.cash_amount,
            cash_payer_id=request.cash_payer_id,
            message=request.message,
        )
        return CounterTradeResponse(original=to_response(original), counter=to_response(counter))

    def cancel(self, user: CurrentUser, trade_id: str, request: TradeReasonRequest) -> TradeResponse:
        return to_response(self.service.cancel(trade_id, user.id, request.reason))

    def ship(self, user: CurrentUser, trade_id: str, request: TradeShipRequest) -> TradeResponse:
        return to_response(self.service.ship(trade_id, user.id, request.carrier, request.tracking_number))

    def confirm(self, user: CurrentUser, trade_id: str) -> TradeResponse:
        return to_response(self.service.confirm_receipt(trade_id, user.id))

    def dispute(self, user: CurrentUser, trade_id: str, request: TradeDisputeRequest) -> TradeResponse:
        trade = self.service.raise_dispute(
            trade_id,
            user.id,
            request.reason,
            description=request.description,
            evidence_urls=request.evidence_urls,
        )
        return to_response(trade)

    # Admin

    def list_all(self, status: Optional[TradeStatus], page: int, limit: int) -> TradeListResponse:
        trades, total = self.service.list_trades(status, page, limit)
        page, limit = self.service.policy.clamp_pagination(page, limit)
        return TradeListResponse(
            trades=[to_response(trade) for trade in trades],
            total=total,
            page=page,
            limit=limit,
            meta={"total_pages": (total + limit - 1) // limit},
        )

    def resolve(self, admin: CurrentUser, trade_id: str, request: ResolveDisputeRequest) -> TradeResponse:
        trade = self.service.resolve_dispute(trade_id, admin.id, request.resolution, request.note)
        logger.info(f"Admin {admin.id} resolved dispute on trade {trade_id} as {request.resolution}")
        return to_response(trade)

"""
Trade routes: proposal, responses, shipping, receipt and disputes.
"""

from fastapi import APIRouter, Depends
from typing import List, Optional

from api.auth import CurrentUser, get_current_user, public
from api.controllers.trades import TradeController
from api.models.trade import (
    TradeProposeRequest,
    TradeCounterRequest,
    TradeReasonRequest,
    TradeShipRequest,
    TradeDisputeRequest,
    TradeResponse,
    CounterTradeResponse,
)
from api.services.container import ServiceContainer, get_container
from src.models.trade import TradeStatus

router = APIRouter()


def get_trade_controller(container: ServiceContainer = Depends(get_container)) -> TradeController:
    return TradeController(container.trade_service)


@router.get("/trades/dispute-reasons", response_model=List[str])
@public
async def dispute_reasons(container: ServiceContainer = Depends(get_container)):
    """Suggested dispute reason codes."""
    return container.policy.get_dispute_reasons()


@router.post("/trades", response_model=TradeResponse, status_code=201)
async def propose_trade(
    request: TradeProposeRequest,
    user: CurrentUser = Depends(get_current_user),
    controller: TradeController = Depends(get_trade_controller)
):
    """
    Propose a trade to another user.

    Args:
        request: Products offered and requested, optional cash adjustment

    Returns:
        The new pending trade
    """
    return controller.propose(user, request)


@router.get("/trades", response_model=List[TradeResponse])
async def list_my_trades(
    status: Optional[TradeStatus] = None,
    user: CurrentUser = Depends(get_current_user),
    controller: TradeController = Depends(get_trade_controller)
):
    """List trades where the caller is a party, newest first."""
    return controller.list_mine(user, status)


@router.get("/trades/{trade_id}", response_model=TradeResponse)
async def get_trade(
    trade_id: str,
    user: CurrentUser = Depends(get_current_user),
    controller: TradeController = Depends(get_trade_controller)
):
    return controller.get(user, trade_id)


@router.post("/trades/{trade_id}/accept", response_model=TradeResponse)
async def accept_trade(
    trade_id: str,
    user: CurrentUser = Depends(get_current_user),
    controller: TradeController = Depends(get_trade_controller)
):
    return controller.accept(user, trade_id)


@router.post("/trades/{trade_id}/reject", response_model=TradeResponse)
async def reject_trade(
    trade_id: str,
    request: TradeReasonRequest = TradeReasonRequest(),
    user: CurrentUser = Depends(get_current_user),
    controller: TradeController = Depends(get_trade_controller)
):
    return controller.reject(user, trade_id, request)


@router.post("/trades/{trade_id}/counter", response_model=CounterTradeResponse, status_code=201)
async def counter_trade(
    trade_id: str,
    request: TradeCounterRequest,
    user: CurrentUser = Depends(get_current_user),
    controller: TradeController = Depends(get_trade_controller)
):
    """
    Counter a pending proposal.

    Returns:
        The original trade (now countered) and the new pending proposal
    """
    return controller.counter(user, trade_id, request)


@router.post("/trades/{trade_id}/cancel", response_model=TradeResponse)
async def cancel_trade(
    trade_id: str,
    request: TradeReasonRequest = TradeReasonRequest(),
    user: CurrentUser = Depends(get_current_user),
    controller: TradeController = Depends(get_trade_controller)
):
    return controller.cancel(user, trade_id, request)


@router.post("/trades/{trade_id}/ship", response_model=TradeResponse)
async def ship_trade(
    trade_id: str,
    request: TradeShipRequest,
    user: CurrentUser = Depends(get_current_user),
    controller: TradeController = Depends(get_trade_controller)
):
    """Record the caller's shipment. A tracking number is generated when omitted."""
    return controller.ship(user, trade_id, request)


@router.post("/trades/{trade_id}/confirm", response_model=TradeResponse)
async def confirm_trade(
    trade_id: str,
    user: CurrentUser = Depends(get_current_user),
    controller: TradeController = Depends(get_trade_controller)
):
    """Confirm receipt. The trade completes once both parties confirm."""
    return controller.confirm(user, trade_id)


@router.post("/trades/{trade_id}/dispute", response_model=TradeResponse)
async def dispute_trade(
    trade_id: str,
    request: TradeDisputeRequest,
    user: CurrentUser = Depends(get_current_user),
    controller: TradeController = Depends(get_trade_controller)
):
    return controller.dispute(user, trade_id, request)

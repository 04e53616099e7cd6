"""
Admin back-office routes. Every route requires the admin role.
"""

from datetime import datetime
from fastapi import APIRouter, Depends, Query
from typing import Optional

from api.auth import CurrentUser, require_admin
from api.controllers.admin import AdminController
from api.controllers.trades import TradeController
from api.models.admin import AuditLogListResponse
from api.models.trade import ResolveDisputeRequest, TradeResponse, TradeListResponse
from api.routes.trades import get_trade_controller
from api.services.container import ServiceContainer, get_container
from src.models.audit import AuditAction
from src.models.trade import TradeStatus

router = APIRouter(prefix="/admin", dependencies=[Depends(require_admin)])


def get_admin_controller(container: ServiceContainer = Depends(get_container)) -> AdminController:
    return AdminController(container.audit)


@router.get("/trades", response_model=TradeListResponse)
async def list_trades(
    status: Optional[TradeStatus] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    controller: TradeController = Depends(get_trade_controller)
):
    """All trades, optionally filtered by status, newest first."""
    return controller.list_all(status, page, limit)


@router.get("/trades/{trade_id}", response_model=TradeResponse)
async def get_trade(
    trade_id: str,
    admin: CurrentUser = Depends(require_admin),
    controller: TradeController = Depends(get_trade_controller)
):
    return controller.get(admin, trade_id)


@router.post("/trades/{trade_id}/resolve", response_model=TradeResponse)
async def resolve_dispute(
    trade_id: str,
    request: ResolveDisputeRequest,
    admin: CurrentUser = Depends(require_admin),
    controller: TradeController = Depends(get_trade_controller)
):
    """
    Resolve an open dispute.

    Args:
        request: complete_trade or cancel, with an optional note

    Returns:
        The trade after resolution
    """
    return controller.resolve(admin, trade_id, request)


@router.get("/audit-logs", response_model=AuditLogListResponse)
async def get_audit_logs(
    action: Optional[AuditAction] = None,
    admin_id: Optional[str] = None,
    from_date: Optional[datetime] = None,
    to_date: Optional[datetime] = None,
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1, le=200),
    controller: AdminController = Depends(get_admin_controller)
):
    """Admin audit log filtered by action, admin and date range, newest first."""
    return controller.audit_logs(action, admin_id, from_date, to_date, page, limit)

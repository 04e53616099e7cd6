"""
Order routes, including the payment gateway callback.
"""

from fastapi import APIRouter, Depends, Header, Request
from typing import Optional

from api.auth import CurrentUser, get_current_user, public
from api.controllers.orders import OrderController
from api.models.order import OrderCreateRequest, OrderShipRequest, OrderCancelRequest, OrderResponse
from api.services.container import ServiceContainer, get_container

router = APIRouter()


def get_order_controller(container: ServiceContainer = Depends(get_container)) -> OrderController:
    return OrderController(container.order_service)


@router.post("/orders", response_model=OrderResponse, status_code=201)
async def create_order(
    request: OrderCreateRequest,
    user: CurrentUser = Depends(get_current_user),
    controller: OrderController = Depends(get_order_controller)
):
    """Buy a product. The product is reserved until payment or cancellation."""
    return controller.create(user, request)


@router.post("/orders/payment-callback", response_model=OrderResponse)
@public
async def payment_callback(
    request: Request,
    x_payment_signature: Optional[str] = Header(None),
    controller: OrderController = Depends(get_order_controller)
):
    """
    Payment gateway callback.

    The body is verified against X-Payment-Signature (base64 HMAC-SHA256
    of the raw body with PAYMENT_WEBHOOK_SECRET) before it is parsed.
    """
    raw_body = await request.body()
    return controller.payment_callback(raw_body, x_payment_signature)


@router.get("/orders/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: str,
    user: CurrentUser = Depends(get_current_user),
    controller: OrderController = Depends(get_order_controller)
):
    return controller.get(user, order_id)


@router.post("/orders/{order_id}/ship", response_model=OrderResponse)
async def ship_order(
    order_id: str,
    request: OrderShipRequest,
    user: CurrentUser = Depends(get_current_user),
    controller: OrderController = Depends(get_order_controller)
):
    return controller.ship(user, order_id, request)


@router.post("/orders/{order_id}/delivered", response_model=OrderResponse)
async def mark_order_delivered(
    order_id: str,
    user: CurrentUser = Depends(get_current_user),
    controller: OrderController = Depends(get_order_controller)
):
    return controller.mark_delivered(user, order_id)


@router.post("/orders/{order_id}/confirm", response_model=OrderResponse)
async def confirm_order(
    order_id: str,
    user: CurrentUser = Depends(get_current_user),
    controller: OrderController = Depends(get_order_controller)
):
    return controller.confirm(user, order_id)


@router.post("/orders/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(
    order_id: str,
    request: OrderCancelRequest = OrderCancelRequest(),
    user: CurrentUser = Depends(get_current_user),
    controller: OrderController = Depends(get_order_controller)
):
    """Cancel an unpaid order, or refund a paid order that has not shipped."""
    return controller.cancel(user, order_id, request)

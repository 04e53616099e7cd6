"""
Order controller.
Order creation, the signed payment callback, and fulfilment steps.
"""

import logging
from typing import Optional

from api.auth import CurrentUser
from api.models.order import OrderCreateRequest, OrderShipRequest, OrderCancelRequest, OrderResponse
from src.orders.service import OrderService

logger = logging.getLogger(__name__)


class OrderController:
    """Controller for order operations."""

    def __init__(self, service: OrderService):
        self.service = service

    def create(self, user: CurrentUser, request: OrderCreateRequest) -> OrderResponse:
        return OrderResponse.model_validate(self.service.create_order(user.id, request.product_id))

    def get(self, user: CurrentUser, order_id: str) -> OrderResponse:
        return OrderResponse.model_validate(self.service.get_order(order_id, user.id))

    def payment_callback(self, raw_body: bytes, signature: Optional[str]) -> OrderResponse:
        """
        Apply a payment gateway callback.

        Args:
            raw_body: Exact request bytes, as signed by the gateway
            signature: Value of the X-Payment-Signature header

        Returns:
            The order after the callback was applied
        """
        order = self.service.handle_payment_callback(raw_body, signature)
        logger.info(f"Payment callback applied to order {order.id} (status={order.status.value})")
        return OrderResponse.model_validate(order)

    def ship(self, user: CurrentUser, order_id: str, request: OrderShipRequest) -> OrderResponse:
        order = self.service.ship(order_id, user.id, request.carrier, request.tracking_number)
        return OrderResponse.model_validate(order)

    def mark_delivered(self, user: CurrentUser, order_id: str) -> OrderResponse:
        return OrderResponse.model_validate(self.service.mark_delivered(order_id, user.id))

    def confirm(self, user: CurrentUser, order_id: str) -> OrderResponse:
        return OrderResponse.model_validate(self.service.confirm(order_id, user.id))

    def cancel(self, user: CurrentUser, order_id: str, request: OrderCancelRequest) -> OrderResponse:
        return OrderResponse.model_validate(self.service.cancel(order_id, user.id, request.reason))

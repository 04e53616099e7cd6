"""
Notification inbox routes.
"""

from fastapi import APIRouter, Depends, Query
from typing import Dict, Optional

from api.auth import CurrentUser, get_current_user, require_admin
from api.controllers.notifications import NotificationController
from api.models.notification import PushTokenRequest, UnreadCountResponse, MarkReadResponse
from api.services.container import ServiceContainer, get_container
from src.models.notification import InAppNotificationPage

router = APIRouter()


def get_notification_controller(container: ServiceContainer = Depends(get_container)) -> NotificationController:
    return NotificationController(container.dispatcher)


@router.get("/notifications", response_model=InAppNotificationPage)
async def list_notifications(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1, le=100),
    user: CurrentUser = Depends(get_current_user),
    controller: NotificationController = Depends(get_notification_controller)
):
    """In-app notifications, newest first, with the unread count."""
    return controller.inbox(user, page, limit)


@router.get("/notifications/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    user: CurrentUser = Depends(get_current_user),
    controller: NotificationController = Depends(get_notification_controller)
):
    return controller.unread_count(user)


@router.post("/notifications/read-all", response_model=MarkReadResponse)
async def mark_all_read(
    user: CurrentUser = Depends(get_current_user),
    controller: NotificationController = Depends(get_notification_controller)
):
    return controller.mark_all_read(user)


@router.post("/notifications/push-token")
async def register_push_token(
    request: PushTokenRequest,
    user: CurrentUser = Depends(get_current_user),
    controller: NotificationController = Depends(get_notification_controller)
):
    return controller.register_push_token(user, request)


@router.get("/notifications/providers", response_model=Dict[str, bool])
async def provider_status(
    admin: CurrentUser = Depends(require_admin),
    controller: NotificationController = Depends(get_notification_controller)
):
    """Which delivery channels are configured."""
    return controller.provider_status()


@router.post("/notifications/{notification_id}/read", response_model=MarkReadResponse)
async def mark_read(
    notification_id: str,
    user: CurrentUser = Depends(get_current_user),
    controller: NotificationController = Depends(get_notification_controller)
):
    return controller.mark_read(user, notification_id)

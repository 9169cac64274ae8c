"""
Notification API endpoints for the in-app inbox.
"""

from fastapi import APIRouter, Depends, Query, Path, status
from uuid import UUID

from renteasy.models.user import User
from renteasy.schemas.error import get_error_responses
from renteasy.schemas.notification import (
    NotificationListResponse,
    NotificationResponse,
    UnreadCountResponse,
)
from renteasy.services.notification import NotificationService
from renteasy.utils.dependencies import get_current_active_user, get_notification_service


router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get(
    "",
    response_model=NotificationListResponse,
    status_code=status.HTTP_200_OK,
    summary="List notifications",
    description="Newest notifications of the current user"
)
async def list_notifications(
    unread_only: bool = Query(False, description="Only unread notifications"),
    limit: int = Query(20, ge=1, le=50, description="Maximum number of notifications"),
    current_user: User = Depends(get_current_active_user),
    notification_service: NotificationService = Depends(get_notification_service)
) -> NotificationListResponse:
    notifications = await notification_service.list_notifications(
        current_user.id, unread_only=unread_only, limit=limit
    )
    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(n.to_dict()) for n in notifications]
    )


@router.get(
    "/unread-count",
    response_model=UnreadCountResponse,
    status_code=status.HTTP_200_OK,
    summary="Unread count"
)
async def unread_count(
    current_user: User = Depends(get_current_active_user),
    notification_service: NotificationService = Depends(get_notification_service)
) -> UnreadCountResponse:
    return UnreadCountResponse(unread_count=await notification_service.unread_count(current_user.id))


@router.post(
    "/{notification_id}/read",
    response_model=UnreadCountResponse,
    status_code=status.HTTP_200_OK,
    summary="Mark notification read",
    description="Returns the remaining unread count",
    responses=get_error_responses(401, 404)
)
async def mark_read(
    notification_id: UUID = Path(..., description="Notification ID"),
    current_user: User = Depends(get_current_active_user),
    notification_service: NotificationService = Depends(get_notification_service)
) -> UnreadCountResponse:
    remaining = await notification_service.mark_read(notification_id, current_user.id)
    return UnreadCountResponse(unread_count=remaining)


@router.post(
    "/read-all",
    response_model=UnreadCountResponse,
    status_code=status.HTTP_200_OK,
    summary="Mark all notifications read"
)
async def mark_all_read(
    current_user: User = Depends(get_current_active_user),
    notification_service: NotificationService = Depends(get_notification_service)
) -> UnreadCountResponse:
    remaining = await notification_service.mark_all_read(current_user.id)
    return UnreadCountResponse(unread_count=remaining)

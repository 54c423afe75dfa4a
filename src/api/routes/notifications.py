"""Notification API routes."""

from fastapi import APIRouter, Query

from src.api.deps import CurrentUser, NotificationServiceDep
from src.schemas.common import PaginatedResponse
from src.schemas.notification import NotificationResponse, SuccessResponse, UnreadCountResponse

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=PaginatedResponse, summary="List notifications")
async def list_notifications(
    user: CurrentUser,
    service: NotificationServiceDep,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
) -> PaginatedResponse:
    return await service.list_notifications(user.user_id, user.company_id, page=page, limit=limit)


@router.get("/unread-count", response_model=UnreadCountResponse, summary="Count unread notifications")
async def get_unread_count(user: CurrentUser, service: NotificationServiceDep) -> UnreadCountResponse:
    return UnreadCountResponse(unread=await service.get_unread_count(user.user_id))


@router.patch("/{notification_id}/read", response_model=NotificationResponse, summary="Mark as read")
async def mark_as_read(
    notification_id: str,
    user: CurrentUser,
    service: NotificationServiceDep,
) -> NotificationResponse:
    notification = await service.mark_as_read(notification_id, user.user_id)
    return NotificationResponse.model_validate(notification)


@router.post("/read-all", response_model=SuccessResponse, summary="Mark all as read")
async def mark_all_as_read(user: CurrentUser, service: NotificationServiceDep) -> SuccessResponse:
    await service.mark_all_as_read(user.user_id)
    return SuccessResponse()

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies.auth import get_current_user
from app.core.config import settings
from app.core.response import ResponseModel, paginated, success_response
from app.db.deps import get_db
from app.models.user import User
from app.services.notifications.notification_service import (
    list_notifications,
    mark_read,
    serialize_notification,
)


router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=ResponseModel)
async def my_notifications(
    unread_only: bool = Query(False),
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    rows, total = await list_notifications(
        db, current_user.id, unread_only=unread_only, page=page, page_size=page_size
    )
    return success_response(
        "Notifications fetched",
        data=paginated(
            [serialize_notification(n) for n in rows], page=page, page_size=page_size, total=total
        ),
    )


@router.post("/{notification_id}/read", response_model=ResponseModel)
async def read_notification(
    notification_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    notification = await mark_read(db, notification_id, current_user.id)
    return success_response("Notification marked as read", data=serialize_notification(notification))

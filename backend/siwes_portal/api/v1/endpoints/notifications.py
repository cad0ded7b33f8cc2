"""
The caller's own notification inbox.
"""
from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from siwes_portal.core.database import get_db
from siwes_portal.core.exceptions import ResourceNotFoundError
from siwes_portal.core.types import is_valid_uuid
from siwes_portal.models import Notification, User, UserNotification
from siwes_portal.modules.auth.dependencies import get_current_user
from siwes_portal.schemas.notification import MarkReadResponse, UserNotificationList
from siwes_portal.utils.pagination import count_rows, page_offset

router = APIRouter()


def inbox_item(delivery: UserNotification) -> dict:
    notification = delivery.notification
    return {
        "id": delivery.id,
        "notification_id": notification.id,
        "title": notification.title,
        "message": notification.message,
        "type": notification.type,
        "action_url": notification.action_url,
        "action_text": notification.action_text,
        "is_system_generated": notification.is_system_generated,
        "read": delivery.read,
        "read_at": delivery.read_at,
        "created_at": notification.created_at,
    }


def active_deliveries(user_id: str):
    return (
        select(UserNotification)
        .join(Notification, Notification.id == UserNotification.notification_id)
        .where(UserNotification.user_id == user_id, Notification.is_active.is_(True))
    )


@router.get("", response_model=UserNotificationList)
async def list_my_notifications(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    unread_only: bool = False,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Active notifications for the caller, unread first, then newest"""
    query = active_deliveries(current_user.id)
    if unread_only:
        query = query.where(UserNotification.read.is_(False))

    total = await count_rows(db, query)
    unread_count = await count_rows(
        db, active_deliveries(current_user.id).where(UserNotification.read.is_(False))
    )

    result = await db.execute(
        query.order_by(UserNotification.read.asc(), Notification.created_at.desc())
        .offset(page_offset(page, limit))
        .limit(limit)
    )
    return {
        "items": [inbox_item(d) for d in result.scalars().all()],
        "total": total,
        "unread_count": unread_count,
        "page": page,
        "limit": limit,
    }


@router.patch("/mark-all-read", response_model=MarkReadResponse)
async def mark_all_read(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    result = await db.execute(
        update(UserNotification)
        .where(UserNotification.user_id == current_user.id, UserNotification.read.is_(False))
        .values(read=True, read_at=datetime.utcnow())
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return {"message": "All notifications marked as read", "updated": result.rowcount or 0}


@router.patch("/{notification_id}/read", response_model=MarkReadResponse)
async def mark_read(
    notification_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Mark one notification read. Repeating the call keeps the first read time."""
    delivery = None
    if is_valid_uuid(notification_id):
        delivery = await db.scalar(
            select(UserNotification).where(
                UserNotification.user_id == current_user.id,
                UserNotification.notification_id == notification_id,
            )
        )
    if not delivery:
        raise ResourceNotFoundError("Notification not found")

    updated = 0
    if not delivery.read:
        delivery.read = True
        delivery.read_at = datetime.utcnow()
        updated = 1
        await db.commit()

    return {"message": "Notification marked as read", "updated": updated}

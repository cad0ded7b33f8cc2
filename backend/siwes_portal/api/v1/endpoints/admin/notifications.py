"""
Admin notification management.

System-generated notifications are visible here by id but are read-only:
they cannot be edited, toggled or deleted.
"""
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import case, delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from siwes_portal.core.database import get_db
from siwes_portal.core.exceptions import ResourceNotFoundError, ValidationFailedError
from siwes_portal.core.logging_config import logger
from siwes_portal.core.types import is_valid_uuid
from siwes_portal.models import (
    Notification,
    NotificationType,
    RecipientType,
    User,
    UserNotification,
)
from siwes_portal.modules.auth.dependencies import get_current_admin
from siwes_portal.schemas.notification import (
    AdminNotificationList,
    AdminNotificationResponse,
    NotificationCreate,
    NotificationCreateResponse,
    NotificationStats,
    NotificationUpdate,
)
from siwes_portal.services.notification_service import create_notification
from siwes_portal.utils.pagination import count_rows, page_offset, total_pages

router = APIRouter()


async def delivery_counts(db: AsyncSession, notification_ids: List[str]) -> Dict[str, tuple]:
    """notification id -> (recipient_count, read_count)"""
    if not notification_ids:
        return {}
    rows = (await db.execute(
        select(
            UserNotification.notification_id,
            func.count(UserNotification.id),
            func.sum(case((UserNotification.read.is_(True), 1), else_=0)),
        )
        .where(UserNotification.notification_id.in_(notification_ids))
        .group_by(UserNotification.notification_id)
    )).all()
    return {nid: (total, int(read or 0)) for nid, total, read in rows}


def with_counts(notification: Notification, counts: Dict[str, tuple]) -> dict:
    recipients, read = counts.get(notification.id, (0, 0))
    data = AdminNotificationResponse.model_validate(notification).model_dump()
    data.update(recipient_count=recipients, read_count=read)
    return data


async def get_notification_or_404(db: AsyncSession, notification_id: str) -> Notification:
    notification = None
    if is_valid_uuid(notification_id):
        notification = await db.scalar(select(Notification).where(Notification.id == notification_id))
    if not notification:
        raise ResourceNotFoundError("Notification not found")
    return notification


def ensure_editable(notification: Notification, action: str) -> None:
    if notification.is_system_generated:
        raise ValidationFailedError(f"System-generated notifications cannot be {action}")


@router.post("", response_model=NotificationCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_admin_notification(
    body: NotificationCreate,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    """Create a notification and deliver it to every resolved recipient"""
    notification, recipient_count = await create_notification(
        db,
        title=body.title.strip(),
        message=body.message.strip(),
        type=body.type,
        recipient_type=body.recipient_type,
        recipient_role=body.recipient_role,
        recipient_id=body.recipient_id,
        action_url=body.action_url,
        action_text=body.action_text,
        created_by=current_admin.id,
    )
    await db.commit()
    await db.refresh(notification)

    logger.log_audit_event(
        "create_notification", current_admin.id, "notification", notification.id,
        recipient_type=body.recipient_type.value, recipient_count=recipient_count,
    )
    return {
        "message": f"Notification sent to {recipient_count} recipient(s)",
        "notification": with_counts(notification, {notification.id: (recipient_count, 0)}),
        "recipient_count": recipient_count,
    }


@router.get("", response_model=AdminNotificationList)
async def list_admin_notifications(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    type: Optional[NotificationType] = None,
    active: Optional[bool] = None,
    search: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    """Admin-authored notifications, newest first"""
    query = select(Notification).where(Notification.is_system_generated.is_(False))
    if type is not None:
        query = query.where(Notification.type == type)
    if active is not None:
        query = query.where(Notification.is_active == active)
    if search and search.strip():
        term = f"%{search.strip()}%"
        query = query.where(or_(Notification.title.ilike(term), Notification.message.ilike(term)))

    total = await count_rows(db, query)
    result = await db.execute(
        query.order_by(Notification.created_at.desc()).offset(page_offset(page, limit)).limit(limit)
    )
    notifications = result.scalars().all()
    counts = await delivery_counts(db, [n.id for n in notifications])

    return {
        "items": [with_counts(n, counts) for n in notifications],
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": total_pages(total, limit),
    }


@router.get("/stats", response_model=NotificationStats)
async def notification_stats(
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    admin_authored = Notification.is_system_generated.is_(False)

    by_type = {t.value: 0 for t in NotificationType}
    for value, count in (await db.execute(
        select(Notification.type, func.count(Notification.id)).where(admin_authored).group_by(Notification.type)
    )).all():
        by_type[value.value] = count

    by_recipient_type = {r.value: 0 for r in RecipientType}
    for value, count in (await db.execute(
        select(Notification.recipient_type, func.count(Notification.id))
        .where(admin_authored)
        .group_by(Notification.recipient_type)
    )).all():
        by_recipient_type[value.value] = count

    total = sum(by_type.values())
    active = await db.scalar(
        select(func.count(Notification.id)).where(admin_authored, Notification.is_active.is_(True))
    ) or 0

    return {
        "total": total,
        "active": active,
        "inactive": total - active,
        "by_type": by_type,
        "by_recipient_type": by_recipient_type,
    }


@router.get("/{notification_id}", response_model=AdminNotificationResponse)
async def get_admin_notification(
    notification_id: str,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    notification = await get_notification_or_404(db, notification_id)
    return with_counts(notification, await delivery_counts(db, [notification.id]))


@router.patch("/{notification_id}", response_model=AdminNotificationResponse)
async def update_admin_notification(
    notification_id: str,
    body: NotificationUpdate,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    """Edit content or visibility. Recipients are fixed at creation."""
    notification = await get_notification_or_404(db, notification_id)
    ensure_editable(notification, "edited")

    updates = body.model_dump(exclude_unset=True)
    for field, value in updates.items():
        if field in ("title", "message") and value is not None:
            value = value.strip()
        setattr(notification, field, value)

    await db.commit()
    await db.refresh(notification)

    logger.log_audit_event("update_notification", current_admin.id, "notification", notification.id,
                           fields=sorted(updates))
    return with_counts(notification, await delivery_counts(db, [notification.id]))


@router.patch("/{notification_id}/toggle", response_model=AdminNotificationResponse)
async def toggle_admin_notification(
    notification_id: str,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    """Flip is_active. Inactive notifications disappear from users' lists."""
    notification = await get_notification_or_404(db, notification_id)
    ensure_editable(notification, "toggled")

    notification.is_active = not notification.is_active
    await db.commit()
    await db.refresh(notification)

    logger.log_audit_event("toggle_notification", current_admin.id, "notification", notification.id,
                           is_active=notification.is_active)
    return with_counts(notification, await delivery_counts(db, [notification.id]))


@router.delete("/{notification_id}")
async def delete_admin_notification(
    notification_id: str,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    """Delete a notification and every delivery of it"""
    notification = await get_notification_or_404(db, notification_id)
    ensure_editable(notification, "deleted")

    await db.execute(delete(UserNotification).where(UserNotification.notification_id == notification.id))
    await db.delete(notification)
    await db.commit()

    logger.log_audit_event("delete_notification", current_admin.id, "notification", notification_id)
    return {"message": "Notification deleted successfully"}

"""
Notification fan-out.

A notification is stored once and delivered through one UserNotification row
per recipient. The recipient set is resolved when the notification is created:
later users do not receive older broadcasts.
"""
from typing import List, Optional

from sqlalchemy import func, insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from siwes_portal.core.exceptions import ValidationFailedError
from siwes_portal.core.logging_config import logger
from siwes_portal.core.types import generate_uuid, is_valid_uuid
from siwes_portal.models.notification import (
    Notification,
    NotificationType,
    RecipientType,
    UserNotification,
)
from siwes_portal.models.user import User, UserRole


async def resolve_recipients(
    db: AsyncSession,
    recipient_type: RecipientType,
    recipient_role: Optional[UserRole] = None,
    recipient_id: Optional[str] = None,
) -> List[str]:
    """Ids of the active users a notification should reach"""
    query = select(User.id).where(User.is_active.is_(True))

    if recipient_type == RecipientType.ROLE:
        if recipient_role is None:
            raise ValidationFailedError("Recipient role is required for role-based notifications")
        query = query.where(User.role == recipient_role)
    elif recipient_type == RecipientType.INDIVIDUAL:
        if not recipient_id:
            raise ValidationFailedError("Recipient ID is required for individual notifications")
        if not is_valid_uuid(recipient_id):
            raise ValidationFailedError("Recipient not found or inactive")
        query = query.where(User.id == recipient_id)

    result = await db.execute(query.order_by(User.created_at))
    recipients = [str(row[0]) for row in result.all()]

    if recipient_type == RecipientType.INDIVIDUAL and not recipients:
        raise ValidationFailedError("Recipient not found or inactive")

    return recipients


async def fan_out(db: AsyncSession, notification: Notification, user_ids: List[str]) -> int:
    """Insert one delivery row per recipient in a single statement"""
    if not user_ids:
        return 0
    await db.execute(
        insert(UserNotification),
        [
            {"id": generate_uuid(), "user_id": user_id, "notification_id": notification.id, "read": False}
            for user_id in user_ids
        ],
    )
    return len(user_ids)


async def create_notification(
    db: AsyncSession,
    *,
    title: str,
    message: str,
    recipient_type: RecipientType,
    type: NotificationType = NotificationType.INFO,
    recipient_role: Optional[UserRole] = None,
    recipient_id: Optional[str] = None,
    action_url: Optional[str] = None,
    action_text: Optional[str] = None,
    created_by: Optional[str] = None,
    is_system_generated: bool = False,
) -> tuple:
    """
    Create a notification and deliver it.

    The notification row and its deliveries are flushed in the caller's
    transaction, so either both persist or neither does.

    Returns:
        (notification, recipient_count)
    """
    recipients = await resolve_recipients(db, recipient_type, recipient_role, recipient_id)

    notification = Notification(
        id=generate_uuid(),
        title=title,
        message=message,
        type=type,
        recipient_type=recipient_type,
        recipient_role=recipient_role if recipient_type == RecipientType.ROLE else None,
        user_id=recipient_id if recipient_type == RecipientType.INDIVIDUAL else None,
        action_url=action_url,
        action_text=action_text,
        created_by=created_by,
        is_system_generated=is_system_generated,
        is_active=True,
    )
    db.add(notification)
    await db.flush()

    count = await fan_out(db, notification, recipients)

    logger.info(
        f"[Notifications] '{title}' delivered to {count} recipient(s)",
        extra={
            "event_type": "notification_fanout",
            "notification_id": notification.id,
            "recipient_type": recipient_type.value,
            "recipient_count": count,
            "system_generated": is_system_generated,
        }
    )
    return notification, count


async def create_system_notification(
    db: AsyncSession,
    user_id: str,
    title: str,
    message: str,
    type: NotificationType = NotificationType.INFO,
    action_url: Optional[str] = None,
    action_text: Optional[str] = None,
) -> Optional[Notification]:
    """
    Deliver a system notification to one user.

    Inactive users are skipped silently: these notifications are side effects
    of another action and must never make that action fail.
    """
    active = await db.scalar(
        select(func.count()).select_from(User).where(User.id == user_id, User.is_active.is_(True))
    )
    if not active:
        logger.debug(f"[Notifications] Skipping system notification for inactive user {user_id}")
        return None

    notification, _ = await create_notification(
        db,
        title=title,
        message=message,
        type=type,
        recipient_type=RecipientType.INDIVIDUAL,
        recipient_id=user_id,
        action_url=action_url,
        action_text=action_text,
        is_system_generated=True,
    )
    return notification


async def notify_logbook_submitted(db: AsyncSession, student_id: str, entry_date) -> None:
    await create_system_notification(
        db,
        student_id,
        title="Logbook Entry Submitted",
        message=f"Your logbook entry for {entry_date.isoformat()} has been submitted for review.",
        type=NotificationType.SUCCESS,
        action_url="/student/logbook",
        action_text="View Logbook",
    )


async def notify_logbook_reviewed(db: AsyncSession, student_id: str, entry_date, approved: bool,
                                  comments: Optional[str] = None) -> None:
    outcome = "approved" if approved else "rejected"
    message = f"Your logbook entry for {entry_date.isoformat()} has been {outcome}."
    if comments:
        message += f" Comments: {comments}"
    await create_system_notification(
        db,
        student_id,
        title=f"Logbook Entry {outcome.capitalize()}",
        message=message,
        type=NotificationType.SUCCESS if approved else NotificationType.WARNING,
        action_url="/student/logbook",
        action_text="View Entry",
    )


async def notify_attendance_marked(db: AsyncSession, student_id: str, attendance_date, present: bool) -> None:
    await create_system_notification(
        db,
        student_id,
        title="Attendance Marked",
        message=(
            f"Your attendance for {attendance_date.isoformat()} has been marked as "
            f"{'present' if present else 'absent'}."
        ),
        type=NotificationType.INFO if present else NotificationType.WARNING,
    )


async def notify_supervisor_assigned(db: AsyncSession, student_id: str, supervisor_name: str, kind: str) -> None:
    await create_system_notification(
        db,
        student_id,
        title=f"{kind.capitalize()} Supervisor Assigned",
        message=f"{supervisor_name} has been assigned as your {kind} supervisor.",
        type=NotificationType.INFO,
    )

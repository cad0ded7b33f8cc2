from sqlalchemy import (
    Column, String, Boolean, DateTime, Text, ForeignKey, UniqueConstraint, Index,
    Enum as SQLEnum,
)
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from siwes_portal.core.database import Base
from siwes_portal.core.types import GUID, generate_uuid
from siwes_portal.models.user import UserRole


class NotificationType(str, enum.Enum):
    INFO = "INFO"
    SUCCESS = "SUCCESS"
    WARNING = "WARNING"
    ERROR = "ERROR"


class RecipientType(str, enum.Enum):
    """Who a notification is fanned out to"""
    ALL = "ALL"
    ROLE = "ROLE"
    INDIVIDUAL = "INDIVIDUAL"


class Notification(Base):
    """
    A message created once by an admin (or by the system) and delivered to
    each recipient through a UserNotification row.
    """
    __tablename__ = "notifications"
    __table_args__ = (
        Index("ix_notifications_recipient", "recipient_type", "recipient_role"),
        Index("ix_notifications_active_created", "is_active", "created_at"),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    type = Column(SQLEnum(NotificationType, name="notification_type"), default=NotificationType.INFO, nullable=False)

    recipient_type = Column(SQLEnum(RecipientType, name="recipient_type"), nullable=False)
    recipient_role = Column(
        SQLEnum(UserRole, values_callable=lambda roles: [r.value for r in roles], name="user_role"),
        nullable=True,
    )
    # Target of INDIVIDUAL notifications
    user_id = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    action_url = Column(String(500), nullable=True)
    action_text = Column(String(50), nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)
    is_system_generated = Column(Boolean, default=False, nullable=False)
    created_by = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    deliveries = relationship(
        "UserNotification",
        back_populates="notification",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    creator = relationship("User", foreign_keys=[created_by], lazy="selectin")

    def __repr__(self):
        return f"<Notification {self.title!r} ({self.recipient_type.value if self.recipient_type else '-'})>"


class UserNotification(Base):
    """Per-recipient delivery of a notification with its own read state"""
    __tablename__ = "user_notifications"
    __table_args__ = (
        UniqueConstraint("user_id", "notification_id", name="uq_user_notification"),
        Index("ix_user_notifications_user_read", "user_id", "read"),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    notification_id = Column(GUID, ForeignKey("notifications.id", ondelete="CASCADE"), nullable=False)
    read = Column(Boolean, default=False, nullable=False)
    read_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    notification = relationship("Notification", back_populates="deliveries", lazy="selectin")

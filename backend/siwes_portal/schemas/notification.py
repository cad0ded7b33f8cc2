from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List, Dict
from datetime import datetime

from siwes_portal.models.notification import NotificationType, RecipientType
from siwes_portal.models.user import UserRole


class NotificationCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=1000)
    type: NotificationType = NotificationType.INFO
    recipient_type: RecipientType
    recipient_role: Optional[UserRole] = None
    recipient_id: Optional[str] = None
    action_url: Optional[str] = Field(None, max_length=500)
    action_text: Optional[str] = Field(None, max_length=50)

    @model_validator(mode='after')
    def validate_recipient(self):
        """ROLE needs a role, INDIVIDUAL needs a user id"""
        if self.recipient_type == RecipientType.ROLE and self.recipient_role is None:
            raise ValueError("recipient_role is required when recipient_type is ROLE")
        if self.recipient_type == RecipientType.INDIVIDUAL and not self.recipient_id:
            raise ValueError("recipient_id is required when recipient_type is INDIVIDUAL")
        return self


class NotificationUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    message: Optional[str] = Field(None, min_length=1, max_length=1000)
    type: Optional[NotificationType] = None
    action_url: Optional[str] = Field(None, max_length=500)
    action_text: Optional[str] = Field(None, max_length=50)
    is_active: Optional[bool] = None

    @field_validator("title", "message", "type", "is_active")
    @classmethod
    def not_null(cls, v):
        # Only runs for fields present in the body; omitted ones keep their default
        if v is None:
            raise ValueError("Field cannot be null")
        return v


class NotificationResponse(BaseModel):
    id: str
    title: str
    message: str
    type: NotificationType
    recipient_type: RecipientType
    recipient_role: Optional[UserRole] = None
    user_id: Optional[str] = None
    action_url: Optional[str] = None
    action_text: Optional[str] = None
    is_active: bool
    is_system_generated: bool
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AdminNotificationResponse(NotificationResponse):
    recipient_count: int = 0
    read_count: int = 0


class NotificationCreateResponse(BaseModel):
    message: str
    notification: AdminNotificationResponse
    recipient_count: int


class AdminNotificationList(BaseModel):
    items: List[AdminNotificationResponse]
    total: int
    page: int
    limit: int
    total_pages: int


class NotificationStats(BaseModel):
    total: int
    active: int
    inactive: int
    by_type: Dict[str, int]
    by_recipient_type: Dict[str, int]


class UserNotificationItem(BaseModel):
    id: str
    notification_id: str
    title: str
    message: str
    type: NotificationType
    action_url: Optional[str] = None
    action_text: Optional[str] = None
    is_system_generated: bool
    read: bool
    read_at: Optional[datetime] = None
    created_at: datetime


class UserNotificationList(BaseModel):
    items: List[UserNotificationItem]
    total: int
    unread_count: int
    page: int
    limit: int


class MarkReadResponse(BaseModel):
    message: str
    updated: int

"""Notification domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...models import NOTIFICATION_PRIORITIES, NOTIFICATION_TYPES

REMINDER_TYPES = (
    "appointment_reminder",
    "pre_therapy_instruction",
    "post_therapy_instruction",
    "follow_up_reminder",
    "payment_reminder",
)


class NotificationCreate(BaseModel):
    """Schema for creating a notification for another user"""

    recipientId: int
    type: str
    title: str = Field(..., min_length=1, max_length=100)
    message: str = Field(..., min_length=1, max_length=500)
    relatedAppointmentId: Optional[int] = None
    relatedTherapyId: Optional[int] = None
    priority: str = "normal"
    scheduledFor: Optional[datetime] = None
    emailEnabled: bool = True
    smsEnabled: bool = False
    pushEnabled: bool = True

    @field_validator("type")
    @classmethod
    def validate_type(cls, v):
        if v not in NOTIFICATION_TYPES:
            raise ValueError(f"Type must be one of: {', '.join(NOTIFICATION_TYPES)}")
        return v

    @field_validator("priority")
    @classmethod
    def validate_priority(cls, v):
        if v not in NOTIFICATION_PRIORITIES:
            raise ValueError(f"Priority must be one of: {', '.join(NOTIFICATION_PRIORITIES)}")
        return v


class AppointmentReminderCreate(BaseModel):
    """Schema for scheduling a reminder about an existing appointment"""

    appointmentId: int
    reminderType: str = "appointment_reminder"
    scheduledFor: Optional[datetime] = None

    @field_validator("reminderType")
    @classmethod
    def validate_reminder_type(cls, v):
        if v not in REMINDER_TYPES:
            raise ValueError(f"Reminder type must be one of: {', '.join(REMINDER_TYPES)}")
        return v


class NotificationResponse(BaseModel):
    """Schema for notification response"""

    id: int
    recipientId: int
    senderId: Optional[int]
    type: str
    title: str
    message: str
    relatedAppointmentId: Optional[int]
    relatedTherapyId: Optional[int]
    emailEnabled: bool
    smsEnabled: bool
    pushEnabled: bool
    inAppEnabled: bool
    isRead: bool
    readAt: Optional[datetime]
    scheduledFor: Optional[datetime]
    priority: str
    status: str
    attempts: int
    createdAt: Optional[datetime]

    class Config:
        from_attributes = True


class NotificationListResponse(BaseModel):
    notifications: list[NotificationResponse]
    unreadCount: int


class NotificationTypeCount(BaseModel):
    type: str
    count: int
    unread: int


class NotificationStatsResponse(BaseModel):
    total: int
    unread: int
    byType: list[NotificationTypeCount]

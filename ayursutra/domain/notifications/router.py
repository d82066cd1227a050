"""Notification router - FastAPI endpoints for in-app notifications"""

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_roles
from ...database import get_db
from ...models import Notification, User
from .schemas import (
    AppointmentReminderCreate,
    NotificationCreate,
    NotificationListResponse,
    NotificationResponse,
    NotificationStatsResponse,
)
from .service import NotificationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["Notifications"])


def get_notification_service(request: Request, db: Session = Depends(get_db)) -> NotificationService:
    """Dependency injection for NotificationService"""
    return NotificationService(db, clock=request.app.state.clock)


def to_response(notification: Notification) -> NotificationResponse:
    return NotificationResponse(
        id=notification.id,
        recipientId=notification.recipient_id,
        senderId=notification.sender_id,
        type=notification.type,
        title=notification.title,
        message=notification.message,
        relatedAppointmentId=notification.related_appointment_id,
        relatedTherapyId=notification.related_therapy_id,
        emailEnabled=notification.email_enabled,
        smsEnabled=notification.sms_enabled,
        pushEnabled=notification.push_enabled,
        inAppEnabled=notification.in_app_enabled,
        isRead=notification.is_read,
        readAt=notification.read_at,
        scheduledFor=notification.scheduled_for,
        priority=notification.priority,
        status=notification.status,
        attempts=notification.attempts,
        createdAt=notification.created_at,
    )


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    """Get the current user's notifications, newest first"""
    notifications, unread = service.list_for_user(current_user)
    return NotificationListResponse(
        notifications=[to_response(n) for n in notifications],
        unreadCount=unread,
    )


@router.get("/stats", response_model=NotificationStatsResponse)
async def notification_stats(
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    return service.stats(current_user)


@router.post("", response_model=NotificationResponse, status_code=201)
async def create_notification(
    data: NotificationCreate,
    current_user: User = Depends(require_roles("practitioner", "admin")),
    service: NotificationService = Depends(get_notification_service),
):
    """Send a notification to another user"""
    return to_response(service.create(data, current_user))


@router.post("/appointment-reminders", response_model=NotificationResponse, status_code=201)
async def create_appointment_reminder(
    data: AppointmentReminderCreate,
    current_user: User = Depends(require_roles("practitioner", "admin")),
    service: NotificationService = Depends(get_notification_service),
):
    """Queue a reminder for the patient of an appointment"""
    notification = service.create_appointment_reminder(
        data.appointmentId, data.reminderType, data.scheduledFor, current_user
    )
    return to_response(notification)


@router.post("/read-all")
async def mark_all_as_read(
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    updated = service.mark_all_as_read(current_user)
    return {"message": "All notifications marked as read", "updated": updated}


@router.get("/{notification_id}", response_model=NotificationResponse)
async def get_notification(
    notification_id: int,
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    return to_response(service.get(notification_id, current_user))


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_as_read(
    notification_id: int,
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    return to_response(service.mark_as_read(notification_id, current_user))


@router.delete("/{notification_id}")
async def delete_notification(
    notification_id: int,
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    service.delete(notification_id, current_user)
    return {"message": "Notification deleted successfully"}

"""Notification service - Business logic for in-app notifications"""

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from sqlalchemy.orm import Session

from ...errors import ForbiddenError, NotFoundError, ValidationError
from ...models import Appointment, Notification, User
from ..appointments.repository import AppointmentRepository
from .repository import NotificationRepository
from .schemas import NotificationCreate

logger = logging.getLogger(__name__)

# Lifecycle event -> (title, message template)
APPOINTMENT_EVENTS = {
    "appointment_confirmation": (
        "Appointment Confirmed",
        "{therapy} session {session} of {total} is booked for {day} at {start}",
    ),
    "appointment_rescheduled": (
        "Appointment Rescheduled",
        "{therapy} session {session} of {total} now takes place on {day} at {start}",
    ),
    "appointment_cancelled": (
        "Appointment Cancelled",
        "{therapy} session {session} of {total} on {day} at {start} has been cancelled",
    ),
}


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_day(appointment: Appointment) -> str:
    return appointment.scheduled_date.strftime("%a %b %d %Y")


class NotificationService:
    """Service layer for notification business logic"""

    def __init__(self, db: Session, clock: Optional[Callable[[], datetime]] = None):
        self.db = db
        self.repo = NotificationRepository()
        self.clock = clock or utc_now

    def list_for_user(self, user: User) -> tuple[list[Notification], int]:
        """Notifications addressed to ``user``, newest first, with the unread count"""
        notifications = self.repo.list_for_recipient(self.db, user.id)
        unread = self.repo.count_unread(self.db, user.id)
        return notifications, unread

    def get(self, notification_id: int, user: User) -> Notification:
        notification = self.repo.get_by_id(self.db, notification_id)
        if not notification:
            raise NotFoundError("Notification not found")
        if notification.recipient_id != user.id and user.role != "admin":
            raise ForbiddenError("Not authorized to view this notification")
        return notification

    def create(self, data: NotificationCreate, user: User) -> Notification:
        """Create a notification on behalf of a practitioner or admin"""
        if user.role not in ("practitioner", "admin"):
            raise ForbiddenError("Only practitioners and admins can send notifications")

        recipient = self.db.query(User).filter(User.id == data.recipientId).first()
        if not recipient:
            raise NotFoundError("Recipient not found")

        notification = self.repo.create(
            self.db,
            recipient_id=recipient.id,
            sender_id=user.id,
            type=data.type,
            title=data.title,
            message=data.message,
            related_appointment_id=data.relatedAppointmentId,
            related_therapy_id=data.relatedTherapyId,
            priority=data.priority,
            scheduled_for=data.scheduledFor,
            email_enabled=data.emailEnabled,
            sms_enabled=data.smsEnabled,
            push_enabled=data.pushEnabled,
            in_app_enabled=True,
        )
        logger.info(f"✅ Notification {notification.id} ({data.type}) sent to user {recipient.id}")
        return notification

    def mark_as_read(self, notification_id: int, user: User) -> Notification:
        notification = self.get(notification_id, user)
        if notification.recipient_id != user.id:
            raise ForbiddenError("Not authorized to modify this notification")
        if notification.is_read:
            return notification
        return self.repo.mark_as_read(self.db, notification, self.clock())

    def mark_all_as_read(self, user: User) -> int:
        updated = self.repo.mark_all_as_read(self.db, user.id, self.clock())
        logger.info(f"✅ Marked {updated} notification(s) as read for user {user.id}")
        return updated

    def delete(self, notification_id: int, user: User) -> None:
        notification = self.repo.get_by_id(self.db, notification_id)
        if not notification:
            raise NotFoundError("Notification not found")
        if notification.recipient_id != user.id and user.role != "admin":
            raise ForbiddenError("Not authorized to delete this notification")
        self.repo.delete(self.db, notification)
        logger.info(f"🗑️ Notification {notification_id} deleted by user {user.id}")

    def stats(self, user: User) -> dict:
        return {
            "total": self.repo.count_for_recipient(self.db, user.id),
            "unread": self.repo.count_unread(self.db, user.id),
            "byType": [
                {"type": kind, "count": count, "unread": unread}
                for kind, count, unread in self.repo.count_by_type(self.db, user.id)
            ],
        }

    def create_appointment_reminder(
        self,
        appointment_id: int,
        reminder_type: str,
        scheduled_for: Optional[datetime],
        user: User,
    ) -> Notification:
        """Queue a reminder for the patient of an appointment"""
        appointment = AppointmentRepository.get_by_id(self.db, appointment_id)
        if not appointment:
            raise NotFoundError("Appointment not found")
        if appointment.practitioner_id != user.id and user.role != "admin":
            raise ForbiddenError("Only the appointment's practitioner can send reminders")
        if appointment.status in ("cancelled", "completed"):
            raise ValidationError(f"Cannot send reminders for a {appointment.status} appointment")

        therapy_name = appointment.therapy.name
        if reminder_type == "appointment_reminder":
            title = "Appointment Reminder"
            message = (
                f"Your {therapy_name} appointment is scheduled for "
                f"{format_day(appointment)} at {appointment.start_time}"
            )
        elif reminder_type == "pre_therapy_instruction":
            title = "Pre-Therapy Instructions"
            message = (
                f"Please follow the pre-therapy instructions for your upcoming "
                f"{therapy_name} session"
            )
        elif reminder_type == "post_therapy_instruction":
            title = "Post-Therapy Care"
            message = "Please follow the post-therapy care instructions for optimal results"
        else:
            title = "Appointment Notification"
            message = f"You have an upcoming appointment for {therapy_name}"

        notification = self.repo.create(
            self.db,
            recipient_id=appointment.patient_id,
            sender_id=user.id,
            type=reminder_type,
            title=title,
            message=message,
            related_appointment_id=appointment.id,
            related_therapy_id=appointment.therapy_id,
            scheduled_for=scheduled_for or self.clock(),
            priority="high",
        )
        logger.info(f"⏰ {reminder_type} queued for appointment {appointment.id}")
        return notification

    def notify_appointment_event(
        self, appointment: Appointment, event: str, sender: Optional[User] = None
    ) -> list[Notification]:
        """Record a lifecycle notification for both the patient and the practitioner"""
        title, template = APPOINTMENT_EVENTS[event]
        message = template.format(
            therapy=appointment.therapy.name,
            session=appointment.session_number,
            total=appointment.total_sessions,
            day=format_day(appointment),
            start=appointment.start_time,
        )

        notifications = [
            self.repo.create(
                self.db,
                commit=False,
                recipient_id=recipient_id,
                sender_id=sender.id if sender else None,
                type=event,
                title=title,
                message=message,
                related_appointment_id=appointment.id,
                related_therapy_id=appointment.therapy_id,
            )
            for recipient_id in (appointment.patient_id, appointment.practitioner_id)
        ]
        self.db.commit()
        logger.info(f"📨 {event} recorded for appointment {appointment.id}")
        return notifications

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base
from .domain.scheduling.time_calculator import format_time

USER_ROLES = ("patient", "practitioner", "admin")

APPOINTMENT_STATUSES = (
    "scheduled",
    "confirmed",
    "in-progress",
    "completed",
    "cancelled",
    "no-show",
    "rescheduled",
)
# Statuses that block a practitioner's time slot
OCCUPYING_STATUSES = ("scheduled", "confirmed", "in-progress")
# Statuses that accept no further scheduling/status mutation
TERMINAL_STATUSES = ("completed", "cancelled")

PAYMENT_STATUSES = ("pending", "paid", "partial", "refunded")
PAYMENT_METHODS = ("cash", "card", "upi", "bank_transfer", "insurance")
REFUND_STATUSES = ("none", "partial", "full", "pending")

THERAPY_CATEGORIES = ("Shodhana", "Shamana", "Rasayana", "Satwavajaya", "Other")
THERAPY_TYPES = (
    "Vamana",
    "Virechana",
    "Basti",
    "Nasya",
    "Raktamokshana",
    "Abhyanga",
    "Swedana",
    "Shirodhara",
    "Akshi Tarpana",
    "Karna Purana",
    "Other",
)
THERAPY_DIFFICULTIES = ("Beginner", "Intermediate", "Advanced")

NOTIFICATION_TYPES = (
    "appointment_reminder",
    "pre_therapy_instruction",
    "post_therapy_instruction",
    "appointment_confirmation",
    "appointment_cancelled",
    "appointment_rescheduled",
    "payment_reminder",
    "therapy_completed",
    "follow_up_reminder",
    "system_announcement",
    "welcome",
    "other",
)
NOTIFICATION_PRIORITIES = ("low", "normal", "high", "urgent")
NOTIFICATION_STATUSES = ("pending", "sent", "failed", "cancelled")
MAX_NOTIFICATION_ATTEMPTS = 3


def _in(column: str, values: tuple) -> str:
    quoted = ", ".join(f"'{v}'" for v in values)
    return f"{column} IN ({quoted})"


class User(Base):
    __tablename__ = "users"
    __table_args__ = (CheckConstraint(_in("role", USER_ROLES), name="ck_users_role"),)

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    phone = Column(String(20), nullable=True)
    role = Column(String(20), default="patient", nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<User(id={self.id}, role={self.role}, active={self.is_active})>"


class Therapy(Base):
    """Catalog entry for a treatment, soft-deleted through is_active"""

    __tablename__ = "therapies"
    __table_args__ = (
        CheckConstraint(_in("category", THERAPY_CATEGORIES), name="ck_therapies_category"),
        CheckConstraint(_in("therapy_type", THERAPY_TYPES), name="ck_therapies_type"),
        CheckConstraint(_in("difficulty", THERAPY_DIFFICULTIES), name="ck_therapies_difficulty"),
        CheckConstraint("session_minutes BETWEEN 15 AND 480", name="ck_therapies_session"),
        CheckConstraint("course_sessions BETWEEN 1 AND 100", name="ck_therapies_course"),
        CheckConstraint("price_per_session >= 0", name="ck_therapies_price"),
        CheckConstraint("days_between_sessions >= 0", name="ck_therapies_spacing"),
        Index("ix_therapies_category_type", "category", "therapy_type"),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False)
    sanskrit_name = Column(String(100), nullable=True)
    category = Column(String(20), nullable=False)
    therapy_type = Column(String(20), nullable=False)
    description = Column(Text, nullable=False)
    benefits = Column(JSON, default=list, nullable=False)
    indications = Column(JSON, default=list, nullable=False)  # Conditions it treats
    contraindications = Column(JSON, default=list, nullable=False)
    materials = Column(JSON, default=list, nullable=False)
    # {"pre_therapy": [...], "post_therapy": [...], "diet": [...], "lifestyle": [...]}
    preparation = Column(JSON, default=dict, nullable=False)

    session_minutes = Column(Integer, nullable=False)
    course_sessions = Column(Integer, nullable=False)  # Sessions in a complete course
    price_per_session = Column(Float, nullable=False)
    price_full_course = Column(Float, nullable=True)

    difficulty = Column(String(20), default="Beginner", nullable=False)
    preferred_time_slots = Column(JSON, default=list, nullable=False)  # e.g. ["morning"]
    days_between_sessions = Column(Integer, default=1, nullable=False)

    is_active = Column(Boolean, default=True, nullable=False, index=True)
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    created_by = relationship("User")

    @property
    def full_course_price(self) -> float:
        if self.price_full_course is not None:
            return self.price_full_course
        return self.price_per_session * self.course_sessions

    def is_suitable_for(self, condition: str) -> bool:
        needle = condition.lower()
        return any(needle in indication.lower() for indication in self.indications or [])

    def has_contraindication(self, condition: str) -> bool:
        needle = condition.lower()
        return any(needle in item.lower() for item in self.contraindications or [])


class Appointment(Base):
    """One scheduled therapy session; cancelled by status change, never deleted"""

    __tablename__ = "appointments"
    __table_args__ = (
        CheckConstraint(_in("status", APPOINTMENT_STATUSES), name="ck_appointments_status"),
        CheckConstraint("start_minute >= 0 AND start_minute < 1440", name="ck_appointments_start"),
        CheckConstraint("end_minute > start_minute AND end_minute <= 1440", name="ck_appointments_end"),
        CheckConstraint("duration >= 15", name="ck_appointments_duration"),
        CheckConstraint("session_number >= 1", name="ck_appointments_session_number"),
        CheckConstraint("total_sessions >= 1", name="ck_appointments_total_sessions"),
        CheckConstraint("payment_amount >= 0", name="ck_appointments_payment_amount"),
        CheckConstraint(_in("payment_status", PAYMENT_STATUSES), name="ck_appointments_payment_status"),
        CheckConstraint(_in("payment_method", PAYMENT_METHODS), name="ck_appointments_payment_method"),
        CheckConstraint(
            "refund_status IS NULL OR " + _in("refund_status", REFUND_STATUSES),
            name="ck_appointments_refund_status",
        ),
        CheckConstraint(
            "patient_rating IS NULL OR patient_rating BETWEEN 1 AND 5",
            name="ck_appointments_rating",
        ),
        CheckConstraint(
            "effectiveness IS NULL OR effectiveness BETWEEN 1 AND 5",
            name="ck_appointments_effectiveness",
        ),
        Index("ix_appointments_patient_date", "patient_id", "scheduled_date"),
        Index("ix_appointments_practitioner_date", "practitioner_id", "scheduled_date"),
        Index("ix_appointments_date_status", "scheduled_date", "status"),
    )

    id = Column(Integer, primary_key=True, index=True)

    patient_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    practitioner_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    therapy_id = Column(Integer, ForeignKey("therapies.id"), nullable=False, index=True)

    # Session details
    session_number = Column(Integer, nullable=False, default=1)
    total_sessions = Column(Integer, nullable=False)

    # Scheduling (times as minutes since midnight)
    scheduled_date = Column(Date, nullable=False)
    start_minute = Column(Integer, nullable=False)
    end_minute = Column(Integer, nullable=False)
    duration = Column(Integer, nullable=False)

    status = Column(String(20), default="scheduled", nullable=False, index=True)

    # Payment
    payment_amount = Column(Float, nullable=False)
    payment_status = Column(String(20), default="pending", nullable=False)
    payment_method = Column(String(20), default="cash", nullable=False)
    transaction_id = Column(String(255), nullable=True)
    paid_at = Column(DateTime, nullable=True)

    # Notes
    patient_notes = Column(Text, nullable=True)
    practitioner_notes = Column(Text, nullable=True)
    admin_notes = Column(Text, nullable=True)

    # Feedback
    patient_rating = Column(Integer, nullable=True)
    patient_review = Column(Text, nullable=True)
    practitioner_feedback = Column(Text, nullable=True)
    effectiveness = Column(Integer, nullable=True)

    # Cancellation (populated only when cancelled)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    cancellation_reason = Column(String(200), nullable=True)
    refund_status = Column(String(20), nullable=True)
    refund_amount = Column(Float, nullable=True)

    room = Column(String(100), default="Main Treatment Room", nullable=False)
    next_appointment_id = Column(Integer, ForeignKey("appointments.id"), nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    patient = relationship("User", foreign_keys=[patient_id])
    practitioner = relationship("User", foreign_keys=[practitioner_id])
    therapy = relationship("Therapy")

    @property
    def start_time(self) -> str:
        return format_time(self.start_minute)

    @property
    def end_time(self) -> str:
        return format_time(self.end_minute)

    @property
    def time_range(self) -> str:
        return f"{self.start_time} - {self.end_time}"

    def involves(self, user: User) -> bool:
        return user.id in (self.patient_id, self.practitioner_id)

    def __repr__(self):
        return (
            f"<Appointment(id={self.id}, practitioner={self.practitioner_id}, "
            f"{self.scheduled_date} {self.time_range}, status={self.status})>"
        )


class Notification(Base):
    """In-app notification record; delivery happens outside this service"""

    __tablename__ = "notifications"
    __table_args__ = (
        CheckConstraint(_in("type", NOTIFICATION_TYPES), name="ck_notifications_type"),
        CheckConstraint(_in("priority", NOTIFICATION_PRIORITIES), name="ck_notifications_priority"),
        CheckConstraint(_in("status", NOTIFICATION_STATUSES), name="ck_notifications_status"),
        CheckConstraint(
            f"attempts BETWEEN 0 AND {MAX_NOTIFICATION_ATTEMPTS}", name="ck_notifications_attempts"
        ),
        Index("ix_notifications_recipient_created", "recipient_id", "created_at"),
        Index("ix_notifications_recipient_read", "recipient_id", "is_read"),
    )

    id = Column(Integer, primary_key=True, index=True)
    recipient_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    sender_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    type = Column(String(40), nullable=False, index=True)
    title = Column(String(100), nullable=False)
    message = Column(String(500), nullable=False)

    related_appointment_id = Column(Integer, ForeignKey("appointments.id"), nullable=True)
    related_therapy_id = Column(Integer, ForeignKey("therapies.id"), nullable=True)

    # Channels
    email_enabled = Column(Boolean, default=True, nullable=False)
    sms_enabled = Column(Boolean, default=False, nullable=False)
    push_enabled = Column(Boolean, default=True, nullable=False)
    in_app_enabled = Column(Boolean, default=True, nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)
    read_at = Column(DateTime(timezone=True), nullable=True)

    scheduled_for = Column(DateTime(timezone=True), nullable=True)
    priority = Column(String(10), default="normal", nullable=False)
    status = Column(String(10), default="pending", nullable=False, index=True)
    attempts = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    sender = relationship("User", foreign_keys=[sender_id])

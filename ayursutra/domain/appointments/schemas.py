"""Appointment domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...models import PAYMENT_METHODS, PAYMENT_STATUSES
from ..scheduling.time_calculator import is_valid_time


class AppointmentStatus(str, Enum):
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no-show"
    RESCHEDULED = "rescheduled"


class ScheduledTime(BaseModel):
    """Start and end of a session as HH:MM (24-hour)"""

    start: str
    end: str

    @field_validator("start", "end")
    @classmethod
    def validate_time(cls, v):
        if not is_valid_time(v):
            raise ValueError("Time must be in HH:MM format")
        return v


class PatientNotes(BaseModel):
    patient: Optional[str] = Field(None, max_length=500)


class AppointmentNotes(BaseModel):
    patient: Optional[str] = Field(None, max_length=500)
    practitioner: Optional[str] = Field(None, max_length=500)
    admin: Optional[str] = None


class AppointmentFeedback(BaseModel):
    patientRating: Optional[int] = Field(None, ge=1, le=5)
    patientReview: Optional[str] = Field(None, max_length=1000)
    practitionerNotes: Optional[str] = Field(None, max_length=1000)
    effectiveness: Optional[int] = Field(None, ge=1, le=5)


class AppointmentCreate(BaseModel):
    """Schema for booking an appointment (the caller is the patient)"""

    practitionerId: int
    therapyId: int
    scheduledDate: date
    scheduledTime: ScheduledTime
    sessionNumber: int = Field(1, ge=1)
    totalSessions: Optional[int] = Field(None, ge=1)
    paymentMethod: str = "cash"
    notes: Optional[PatientNotes] = None

    @field_validator("paymentMethod")
    @classmethod
    def validate_payment_method(cls, v):
        if v not in PAYMENT_METHODS:
            raise ValueError(f"Payment method must be one of: {', '.join(PAYMENT_METHODS)}")
        return v


class AppointmentUpdate(BaseModel):
    """Schema for updating or rescheduling; omitted fields are left unchanged"""

    scheduledDate: Optional[date] = None
    scheduledTime: Optional[ScheduledTime] = None
    status: Optional[AppointmentStatus] = None
    sessionNumber: Optional[int] = Field(None, ge=1)
    totalSessions: Optional[int] = Field(None, ge=1)
    notes: Optional[AppointmentNotes] = None
    feedback: Optional[AppointmentFeedback] = None
    room: Optional[str] = Field(None, min_length=1, max_length=100)
    paymentStatus: Optional[str] = None
    paymentMethod: Optional[str] = None
    transactionId: Optional[str] = Field(None, max_length=255)
    nextAppointmentId: Optional[int] = None

    @field_validator("paymentStatus")
    @classmethod
    def validate_payment_status(cls, v):
        if v is not None and v not in PAYMENT_STATUSES:
            raise ValueError(f"Payment status must be one of: {', '.join(PAYMENT_STATUSES)}")
        return v

    @field_validator("paymentMethod")
    @classmethod
    def validate_payment_method(cls, v):
        if v is not None and v not in PAYMENT_METHODS:
            raise ValueError(f"Payment method must be one of: {', '.join(PAYMENT_METHODS)}")
        return v


class AppointmentCancel(BaseModel):
    reason: Optional[str] = Field(None, max_length=200)


class PaymentInfo(BaseModel):
    amount: float
    status: str
    method: str
    transactionId: Optional[str] = None
    paidAt: Optional[datetime] = None


class CancellationInfo(BaseModel):
    cancelledAt: Optional[datetime]
    cancelledBy: Optional[int]
    reason: Optional[str]
    refundStatus: Optional[str]
    refundAmount: Optional[float]


class AppointmentResponse(BaseModel):
    """Schema for appointment response"""

    id: int
    patientId: int
    practitionerId: int
    therapyId: int
    therapyName: Optional[str] = None
    sessionNumber: int
    totalSessions: int
    scheduledDate: date
    scheduledTime: ScheduledTime
    duration: int
    status: str
    payment: PaymentInfo
    notes: AppointmentNotes
    feedback: AppointmentFeedback
    cancellation: Optional[CancellationInfo] = None
    room: str
    nextAppointmentId: Optional[int] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    class Config:
        from_attributes = True


class CancelResponse(BaseModel):
    message: str
    refundAmount: float
    appointment: AppointmentResponse


class AvailableSlot(BaseModel):
    start: str
    end: str


class AvailableSlotsResponse(BaseModel):
    practitionerId: int
    scheduledDate: date
    slots: list[AvailableSlot]


class ProgressResponse(BaseModel):
    patientId: int
    therapyId: int
    totalSessions: int
    completedSessions: int
    inProgressSessions: int
    sessions: list[AppointmentResponse]

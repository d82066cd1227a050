"""Therapy domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...models import THERAPY_CATEGORIES, THERAPY_DIFFICULTIES, THERAPY_TYPES


def _one_of(value: Optional[str], allowed: tuple, label: str) -> Optional[str]:
    if value is not None and value not in allowed:
        raise ValueError(f"{label} must be one of: {', '.join(allowed)}")
    return value


class TherapyPreparation(BaseModel):
    preTherapy: list[str] = []
    postTherapy: list[str] = []
    diet: list[str] = []
    lifestyle: list[str] = []

    def to_record(self) -> dict:
        return {
            "pre_therapy": self.preTherapy,
            "post_therapy": self.postTherapy,
            "diet": self.diet,
            "lifestyle": self.lifestyle,
        }

    @classmethod
    def from_record(cls, record: Optional[dict]) -> "TherapyPreparation":
        record = record or {}
        return cls(
            preTherapy=record.get("pre_therapy", []),
            postTherapy=record.get("post_therapy", []),
            diet=record.get("diet", []),
            lifestyle=record.get("lifestyle", []),
        )


class TherapyCreate(BaseModel):
    """Schema for creating a therapy"""

    name: str = Field(..., min_length=2, max_length=100)
    sanskritName: Optional[str] = Field(None, max_length=100)
    category: str
    type: str
    description: str = Field(..., min_length=10, max_length=1000)
    benefits: list[str] = []
    indications: list[str] = []
    contraindications: list[str] = []
    materials: list[str] = []
    preparation: TherapyPreparation = TherapyPreparation()
    sessionMinutes: int = Field(..., ge=15, le=480)
    courseSessions: int = Field(..., ge=1, le=100)
    pricePerSession: float = Field(..., ge=0)
    priceFullCourse: Optional[float] = Field(None, ge=0)
    difficulty: str = "Beginner"
    preferredTimeSlots: list[str] = []
    daysBetweenSessions: int = Field(1, ge=0)

    @field_validator("name", "description")
    @classmethod
    def strip_text(cls, v):
        return v.strip()

    @field_validator("category")
    @classmethod
    def validate_category(cls, v):
        return _one_of(v, THERAPY_CATEGORIES, "Category")

    @field_validator("type")
    @classmethod
    def validate_type(cls, v):
        return _one_of(v, THERAPY_TYPES, "Type")

    @field_validator("difficulty")
    @classmethod
    def validate_difficulty(cls, v):
        return _one_of(v, THERAPY_DIFFICULTIES, "Difficulty")


class TherapyUpdate(BaseModel):
    """Schema for updating a therapy; omitted fields are left unchanged"""

    name: Optional[str] = Field(None, min_length=2, max_length=100)
    sanskritName: Optional[str] = Field(None, max_length=100)
    category: Optional[str] = None
    type: Optional[str] = None
    description: Optional[str] = Field(None, min_length=10, max_length=1000)
    benefits: Optional[list[str]] = None
    indications: Optional[list[str]] = None
    contraindications: Optional[list[str]] = None
    materials: Optional[list[str]] = None
    preparation: Optional[TherapyPreparation] = None
    sessionMinutes: Optional[int] = Field(None, ge=15, le=480)
    courseSessions: Optional[int] = Field(None, ge=1, le=100)
    pricePerSession: Optional[float] = Field(None, ge=0)
    priceFullCourse: Optional[float] = Field(None, ge=0)
    difficulty: Optional[str] = None
    preferredTimeSlots: Optional[list[str]] = None
    daysBetweenSessions: Optional[int] = Field(None, ge=0)

    @field_validator("category")
    @classmethod
    def validate_category(cls, v):
        return _one_of(v, THERAPY_CATEGORIES, "Category")

    @field_validator("type")
    @classmethod
    def validate_type(cls, v):
        return _one_of(v, THERAPY_TYPES, "Type")

    @field_validator("difficulty")
    @classmethod
    def validate_difficulty(cls, v):
        return _one_of(v, THERAPY_DIFFICULTIES, "Difficulty")


class TherapyResponse(BaseModel):
    """Schema for therapy response"""

    id: int
    name: str
    sanskritName: Optional[str]
    category: str
    type: str
    description: str
    benefits: list[str]
    indications: list[str]
    contraindications: list[str]
    materials: list[str]
    preparation: TherapyPreparation
    sessionMinutes: int
    courseSessions: int
    pricePerSession: float
    priceFullCourse: float
    difficulty: str
    preferredTimeSlots: list[str]
    daysBetweenSessions: int
    isActive: bool
    createdById: int
    createdAt: Optional[datetime] = None

    class Config:
        from_attributes = True

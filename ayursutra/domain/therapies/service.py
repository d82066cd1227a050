"""Therapy service - Business logic for the therapy catalog"""

import logging

from sqlalchemy.orm import Session

from ...errors import ForbiddenError, NotFoundError, ValidationError
from ...models import Therapy, User
from .repository import TherapyRepository
from .schemas import TherapyCreate, TherapyUpdate

logger = logging.getLogger(__name__)

MAX_RECOMMENDATIONS = 10

# API field -> model column for plain copies
FIELD_MAP = {
    "name": "name",
    "sanskritName": "sanskrit_name",
    "category": "category",
    "type": "therapy_type",
    "description": "description",
    "benefits": "benefits",
    "indications": "indications",
    "contraindications": "contraindications",
    "materials": "materials",
    "sessionMinutes": "session_minutes",
    "courseSessions": "course_sessions",
    "pricePerSession": "price_per_session",
    "priceFullCourse": "price_full_course",
    "difficulty": "difficulty",
    "preferredTimeSlots": "preferred_time_slots",
    "daysBetweenSessions": "days_between_sessions",
}


class TherapyService:
    """Service layer for therapy catalog business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = TherapyRepository()

    def list_therapies(self) -> list[Therapy]:
        return self.repo.list_active(self.db)

    def get_therapy(self, therapy_id: int) -> Therapy:
        therapy = self.repo.get_by_id(self.db, therapy_id)
        if not therapy:
            raise NotFoundError("Therapy not found")
        return therapy

    def create_therapy(self, data: TherapyCreate, user: User) -> Therapy:
        """Create a therapy owned by ``user`` (practitioner or admin)"""
        logger.info(f"📥 Creating therapy '{data.name}' for user_id: {user.id}")

        if user.role not in ("practitioner", "admin"):
            raise ForbiddenError("Only practitioners and admins can create therapies")
        if self.repo.get_by_name(self.db, data.name):
            logger.warning(f"⚠️ Duplicate therapy name: {data.name}")
            raise ValidationError(f"A therapy named '{data.name}' already exists")

        therapy_data = {column: getattr(data, field) for field, column in FIELD_MAP.items()}
        therapy_data["preparation"] = data.preparation.to_record()

        therapy = self.repo.create(self.db, created_by_id=user.id, is_active=True, **therapy_data)
        logger.info(f"✅ Therapy {therapy.id} created")
        return therapy

    def update_therapy(self, therapy_id: int, data: TherapyUpdate, user: User) -> Therapy:
        therapy = self.get_therapy(therapy_id)
        self._check_owner(therapy, user, "update")

        updates = {}
        for field, column in FIELD_MAP.items():
            value = getattr(data, field)
            if value is not None:
                updates[column] = value
        if data.preparation is not None:
            updates["preparation"] = data.preparation.to_record()

        new_name = updates.get("name")
        if new_name and new_name != therapy.name:
            existing = self.repo.get_by_name(self.db, new_name)
            if existing and existing.id != therapy.id:
                raise ValidationError(f"A therapy named '{new_name}' already exists")

        therapy = self.repo.update(self.db, therapy, **updates)
        logger.info(f"✅ Therapy {therapy.id} updated by user {user.id}")
        return therapy

    def delete_therapy(self, therapy_id: int, user: User) -> None:
        """Soft delete: the therapy leaves the catalog, past appointments keep it"""
        therapy = self.get_therapy(therapy_id)
        self._check_owner(therapy, user, "delete")
        self.repo.update(self.db, therapy, is_active=False)
        logger.info(f"🗑️ Therapy {therapy.id} deactivated by user {user.id}")

    def categories(self) -> list[str]:
        return self.repo.distinct_values(self.db, Therapy.category)

    def types(self) -> list[str]:
        return self.repo.distinct_values(self.db, Therapy.therapy_type)

    def recommended(self, condition: str) -> list[Therapy]:
        condition = condition.strip()
        if not condition:
            raise ValidationError("Condition is required")
        matches = [t for t in self.repo.list_active(self.db) if t.is_suitable_for(condition)]
        return matches[:MAX_RECOMMENDATIONS]

    @staticmethod
    def _check_owner(therapy: Therapy, user: User, action: str) -> None:
        if therapy.created_by_id != user.id and user.role != "admin":
            logger.warning(f"⚠️ User {user.id} tried to {action} therapy {therapy.id}")
            raise ForbiddenError(f"Not authorized to {action} this therapy")

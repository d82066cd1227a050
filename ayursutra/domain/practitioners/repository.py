"""Practitioner repository - Lookups of users acting as practitioners"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import User


class PractitionerRepository:
    """Repository for practitioner queries"""

    @staticmethod
    def get_active(db: Session, practitioner_id: int) -> Optional[User]:
        """Active user with the practitioner role, or None"""
        return (
            db.query(User)
            .filter(
                User.id == practitioner_id,
                User.role == "practitioner",
                User.is_active.is_(True),
            )
            .first()
        )

    @staticmethod
    def list_active(db: Session) -> list[User]:
        return (
            db.query(User)
            .filter(User.role == "practitioner", User.is_active.is_(True))
            .order_by(User.name)
            .all()
        )

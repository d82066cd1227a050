"""Therapy repository - Database operations for the therapy catalog"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Therapy


class TherapyRepository:
    """Repository for therapy database operations"""

    @staticmethod
    def list_active(db: Session) -> list[Therapy]:
        """Active therapies, newest first"""
        return (
            db.query(Therapy)
            .filter(Therapy.is_active.is_(True))
            .order_by(Therapy.created_at.desc(), Therapy.id.desc())
            .all()
        )

    @staticmethod
    def get_by_id(db: Session, therapy_id: int, active_only: bool = True) -> Optional[Therapy]:
        query = db.query(Therapy).filter(Therapy.id == therapy_id)
        if active_only:
            query = query.filter(Therapy.is_active.is_(True))
        return query.first()

    @staticmethod
    def get_by_name(db: Session, name: str) -> Optional[Therapy]:
        return db.query(Therapy).filter(Therapy.name == name).first()

    @staticmethod
    def distinct_values(db: Session, column) -> list[str]:
        rows = (
            db.query(column)
            .filter(Therapy.is_active.is_(True))
            .distinct()
            .order_by(column)
            .all()
        )
        return [row[0] for row in rows]

    @staticmethod
    def create(db: Session, **therapy_data) -> Therapy:
        therapy = Therapy(**therapy_data)
        db.add(therapy)
        db.commit()
        db.refresh(therapy)
        return therapy

    @staticmethod
    def update(db: Session, therapy: Therapy, **updates) -> Therapy:
        for key, value in updates.items():
            if hasattr(therapy, key):
                setattr(therapy, key, value)

        db.commit()
        db.refresh(therapy)
        return therapy

"""Notification repository - Database operations for notifications"""

from datetime import datetime
from typing import Optional

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from ...models import Notification


def _unread(recipient_id: int):
    return (
        Notification.recipient_id == recipient_id,
        Notification.is_read.is_(False),
        Notification.in_app_enabled.is_(True),
    )


class NotificationRepository:
    """Repository for notification database operations"""

    @staticmethod
    def get_by_id(db: Session, notification_id: int) -> Optional[Notification]:
        return db.query(Notification).filter(Notification.id == notification_id).first()

    @staticmethod
    def list_for_recipient(db: Session, recipient_id: int) -> list[Notification]:
        """Newest first"""
        return (
            db.query(Notification)
            .filter(Notification.recipient_id == recipient_id)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .all()
        )

    @staticmethod
    def count_for_recipient(db: Session, recipient_id: int) -> int:
        return db.query(Notification).filter(Notification.recipient_id == recipient_id).count()

    @staticmethod
    def count_unread(db: Session, recipient_id: int) -> int:
        return db.query(Notification).filter(*_unread(recipient_id)).count()

    @staticmethod
    def count_by_type(db: Session, recipient_id: int) -> list[tuple[str, int, int]]:
        """(type, total, unread) rows for one recipient"""
        unread = func.sum(case((Notification.is_read.is_(False), 1), else_=0))
        rows = (
            db.query(Notification.type, func.count(Notification.id), unread)
            .filter(Notification.recipient_id == recipient_id)
            .group_by(Notification.type)
            .order_by(Notification.type)
            .all()
        )
        return [(row[0], int(row[1]), int(row[2] or 0)) for row in rows]

    @staticmethod
    def create(db: Session, commit: bool = True, **notification_data) -> Notification:
        notification = Notification(**notification_data)
        db.add(notification)
        if commit:
            db.commit()
            db.refresh(notification)
        return notification

    @staticmethod
    def mark_as_read(db: Session, notification: Notification, read_at: datetime) -> Notification:
        notification.is_read = True
        notification.read_at = read_at
        db.commit()
        db.refresh(notification)
        return notification

    @staticmethod
    def mark_all_as_read(db: Session, recipient_id: int, read_at: datetime) -> int:
        updated = (
            db.query(Notification)
            .filter(*_unread(recipient_id))
            .update({"is_read": True, "read_at": read_at}, synchronize_session=False)
        )
        db.commit()
        return updated

    @staticmethod
    def delete(db: Session, notification: Notification) -> None:
        db.delete(notification)
        db.commit()

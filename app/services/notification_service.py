"""
In-app notification sink

Notification creation is fire-and-forget for callers: failures are logged and
never propagate into the attendance operation that triggered them.
"""
import logging
from datetime import date
from typing import List, Optional
from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from app.models.notification import Notification

logger = logging.getLogger(__name__)


def create_notification(
    db: Session,
    *,
    company_id: int,
    user_id: int,
    type: str,
    title: str,
    message: str,
    entity_id: Optional[int] = None,
    entity_type: Optional[str] = None,
    dedupe_date: Optional[date] = None,
) -> Optional[Notification]:
    """
    Create a notification inside a savepoint and commit.

    Returns the notification, or None when it could not be stored (for example
    a once-per-day notification that already exists).
    """
    try:
        with db.begin_nested():
            notification = Notification(
                company_id=company_id,
                user_id=user_id,
                type=type,
                title=title,
                message=message,
                entity_id=entity_id,
                entity_type=entity_type,
                dedupe_date=dedupe_date,
            )
            db.add(notification)
    except SQLAlchemyError as e:
        # savepoint already rolled back; the outer transaction is untouched
        logger.warning("Skipped %s notification for user %s: %s", type, user_id, e)
        return None

    try:
        db.commit()
    except SQLAlchemyError as e:
        logger.error("Failed to commit %s notification for user %s: %s", type, user_id, e)
        db.rollback()
        return None
    return notification


def notification_exists(db: Session, user_id: int, type: str, day: date) -> bool:
    return db.query(Notification.id).filter(
        Notification.user_id == user_id,
        Notification.type == type,
        Notification.dedupe_date == day,
    ).first() is not None


def list_notifications(db: Session, user_id: int, unread_only: bool = False, limit: int = 50) -> List[Notification]:
    query = db.query(Notification).filter(Notification.user_id == user_id)
    if unread_only:
        query = query.filter(Notification.is_read == False)  # noqa: E712
    return query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit).all()


def mark_read(db: Session, notification_id: int, user_id: int) -> Notification:
    notification = db.query(Notification).filter(
        Notification.id == notification_id,
        Notification.user_id == user_id,
    ).first()
    if not notification:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Notification not found"
        )
    notification.is_read = True
    db.commit()
    db.refresh(notification)
    return notification

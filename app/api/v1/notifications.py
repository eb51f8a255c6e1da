"""
In-app notification endpoints (own notifications only)
"""
from typing import List
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from app.core.deps import get_db, get_current_user
from app.models.employee import Employee
from app.schemas.notification import NotificationOut
from app.services import notification_service

router = APIRouter()


@router.get("", response_model=List[NotificationOut])
async def list_my_notifications(
    unread_only: bool = Query(False),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    return notification_service.list_notifications(db, current_user.id, unread_only=unread_only, limit=limit)


@router.put("/{notification_id}/read", response_model=NotificationOut)
async def mark_notification_read(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    return notification_service.mark_read(db, notification_id, current_user.id)

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from sitestock.app.api.deps import get_db
from sitestock.app.core.security import get_current_user
from sitestock.app.db.session import unit_of_work
from sitestock.app.schemas.auth import Actor
from sitestock.app.schemas.journal import NotificationRead
from sitestock.services import notifications

router = APIRouter(prefix="/notifications")


@router.get("", response_model=list[NotificationRead])
def list_notifications(db: Session = Depends(get_db), actor: Actor = Depends(get_current_user)):
    return notifications.list_notifications(db, actor)


@router.get("/unread-count")
def unread_count(db: Session = Depends(get_db), actor: Actor = Depends(get_current_user)):
    return {"unread": notifications.unread_count(db, actor)}


@router.patch("/mark-all-read")
def mark_all_read(db: Session = Depends(get_db), actor: Actor = Depends(get_current_user)):
    with unit_of_work(db):
        updated = notifications.mark_all_read(db, actor)
    return {"updated": updated}


@router.patch("/{notification_id}/read", response_model=NotificationRead)
def mark_read(notification_id: int, db: Session = Depends(get_db), actor: Actor = Depends(get_current_user)):
    with unit_of_work(db):
        n = notifications.mark_read(db, notification_id, actor)
    return NotificationRead.model_validate(n)

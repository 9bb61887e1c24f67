from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.db import get_db
from app.models.notification import Notification
from app.schemas.tracking import NotificationRead


router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/", response_model=list[NotificationRead])
def list_notifications(
    user_id: int = Query(...),
    unseen_only: bool = Query(False),
    db: Session = Depends(get_db),
):
    query = db.query(Notification).filter(Notification.user_id == user_id)
    if unseen_only:
        query = query.filter(Notification.seen.is_(False))
    return query.order_by(Notification.created_at.desc(), Notification.id.desc()).all()


@router.post("/{notification_id}/seen", response_model=NotificationRead)
def mark_notification_seen(
    notification_id: int,
    user_id: int = Query(...),
    db: Session = Depends(get_db),
):
    row = (
        db.query(Notification)
        .filter(Notification.id == notification_id)
        .filter(Notification.user_id == user_id)
        .first()
    )
    if not row:
        raise HTTPException(status_code=404, detail="Notification not found")
    row.seen = True
    db.commit()
    db.refresh(row)
    return row

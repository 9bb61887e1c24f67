"""Database persistence for tracking records and foster-parent notifications."""

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.constants import TRACKING_NOTIFICATION_MESSAGE
from app.models.foster_application import FosterApplication
from app.models.notification import Notification
from app.models.tracking_data import TrackingData


def approved_application_for_pet(db: Session, pet_id: int) -> FosterApplication | None:
    return (
        db.query(FosterApplication)
        .filter(FosterApplication.pet_id == pet_id)
        .filter(FosterApplication.status == "approved")
        .first()
    )


def notify_foster_parent(db: Session, pet_id: int) -> Notification | None:
    """Queue a notification for whoever currently fosters the pet (if anyone)."""
    application = approved_application_for_pet(db, pet_id)
    if not application:
        return None
    note = Notification(
        user_id=application.user_id,
        message=TRACKING_NOTIFICATION_MESSAGE,
        type="tracking",
        seen=False,
    )
    db.add(note)
    return note


def tracking_data_by_record_id(db: Session, record_id: str) -> TrackingData | None:
    return db.query(TrackingData).filter(TrackingData.record_id == record_id).first()


def save_tracking_data(db: Session, fields: dict, *, notify: bool = False) -> TrackingData:
    """Insert a tracking_data row; the timestamp is assigned by the database.

    When ``fields`` carries a ``record_id`` that is already stored, the
    existing row is returned and no notification is queued.
    """
    record_id = fields.get("record_id")
    if record_id:
        existing = tracking_data_by_record_id(db, record_id)
        if existing is not None:
            return existing

    row = TrackingData(**fields)
    if not row.tracking_method:
        row.tracking_method = "phone"
    db.add(row)
    if notify:
        notify_foster_parent(db, row.pet_id)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        # Lost a race with a concurrent insert of the same record
        existing = tracking_data_by_record_id(db, record_id) if record_id else None
        if existing is None:
            raise
        return existing
    db.refresh(row)
    return row

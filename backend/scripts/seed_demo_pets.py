from app.db import Base, SessionLocal, engine
from app.models.foster_application import FosterApplication
from app.models.notification import Notification  # noqa: F401  (create_all)
from app.models.pet import Pet
from app.models.tracking_data import TrackingData


DEMO_PETS = [
    # name, status, foster user id (approved application) or None
    ("Biscuit", "fostered", 1),
    ("Luna", "fostered", 2),
    ("Pepper", "available", None),
]


def clear_demo_pets(db) -> None:
    """Delete previously seeded pets and their rows so we can reseed cleanly.

    Child rows are removed explicitly; SQLite does not enforce ON DELETE CASCADE
    unless foreign keys are switched on.
    """
    names = [name for name, _, _ in DEMO_PETS]
    pet_ids = [pet_id for (pet_id,) in db.query(Pet.id).filter(Pet.name.in_(names)).all()]
    if pet_ids:
        db.query(TrackingData).filter(TrackingData.pet_id.in_(pet_ids)).delete(synchronize_session=False)
        db.query(FosterApplication).filter(FosterApplication.pet_id.in_(pet_ids)).delete(synchronize_session=False)
        db.query(Pet).filter(Pet.id.in_(pet_ids)).delete(synchronize_session=False)
    db.commit()


def seed_demo_pets(db) -> None:
    """Insert a few pets; fostered ones get an approved application."""
    for name, status, user_id in DEMO_PETS:
        pet = Pet(name=name, status=status)
        db.add(pet)
        db.flush()
        if user_id is not None:
            db.add(FosterApplication(pet_id=pet.id, user_id=user_id, status="approved"))
    db.commit()

    print(f"Seeded {len(DEMO_PETS)} demo pets")


def main():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        clear_demo_pets(db)
        seed_demo_pets(db)
    finally:
        db.close()


if __name__ == "__main__":
    main()

import os

# Use in-memory sqlite for tests; must be set before app modules are imported
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

import asyncio  # noqa: E402

import pytest  # noqa: E402

from app.core.config import Settings  # noqa: E402


def make_settings(**overrides) -> Settings:
    values = {
        "tracking_emit_interval_s": 3600.0,
        "tracking_retry_attempts": 1,
        "tracking_retry_base_delay_s": 0.0,
        "tracking_submit_timeout_s": 5.0,
    }
    values.update(overrides)
    return Settings(**values)


async def wait_until(predicate, timeout: float = 2.0, step: float = 0.005) -> None:
    """Poll until predicate() is true or fail the test."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(step)


@pytest.fixture()
def db_session():
    from app.db import Base, SessionLocal, engine
    import app.main  # noqa: F401  (registers every model)

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
        with engine.begin() as conn:
            for table in reversed(Base.metadata.sorted_tables):
                conn.execute(table.delete())


@pytest.fixture()
def seeded_pets(db_session):
    """A fostered pet (approved application for user 7) and an available one."""
    from app.models.foster_application import FosterApplication
    from app.models.pet import Pet

    fostered = Pet(name="Biscuit", status="fostered")
    available = Pet(name="Pepper", status="available")
    db_session.add_all([fostered, available])
    db_session.flush()
    db_session.add(FosterApplication(pet_id=fostered.id, user_id=7, status="approved"))
    db_session.add(FosterApplication(pet_id=fostered.id, user_id=8, status="rejected"))
    db_session.commit()
    return {"fostered": fostered.id, "available": available.id}

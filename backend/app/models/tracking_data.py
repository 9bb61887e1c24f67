from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.sql import func
from app.db import Base


class TrackingData(Base):
    __tablename__ = "tracking_data"

    id = Column(Integer, primary_key=True, index=True)
    pet_id = Column(Integer, ForeignKey("pets.id", ondelete="CASCADE"), nullable=False, index=True)

    location = Column(String, nullable=True)
    health_status = Column(String(20), nullable=True)   # monitoring, poor, fair, good, excellent
    activity_level = Column(String(20), nullable=True)  # low, moderate, high
    phone_coordinates = Column(String, nullable=True)   # "lat,lng"
    tracking_method = Column(String(30), nullable=False, server_default="phone")
    notes = Column(String, nullable=True)
    # Client-generated id; a resubmitted record is stored once
    record_id = Column(String(64), nullable=True, unique=True)

    # Assigned by the database, never by the client
    timestamp = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

from sqlalchemy import Column, Integer, String, ForeignKey
from app.db import Base


class FosterApplication(Base):
    __tablename__ = "foster_applications"

    id = Column(Integer, primary_key=True, index=True)
    pet_id = Column(Integer, ForeignKey("pets.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, nullable=False, index=True)

    # pending, approved, rejected
    status = Column(String(20), nullable=False, server_default="pending")

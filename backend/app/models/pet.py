from sqlalchemy import Column, Integer, String
from app.db import Base


class Pet(Base):
    __tablename__ = "pets"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)

    # available, fostered, adopted — only fostered pets can be live-tracked
    status = Column(
        String(20),
        nullable=False,
        server_default="available",
    )

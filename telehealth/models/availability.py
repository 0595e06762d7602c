"""Availability model definitions."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String

from telehealth.database import Base


class Availability(Base):
    """A doctor's recurring daily window. Only the time of day is meaningful."""
    __tablename__ = "availability"

    id = Column(Integer, primary_key=True)
    doctor_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    status = Column(String, nullable=False)

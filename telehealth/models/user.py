"""User model definitions."""

from sqlalchemy import Column, Integer, String

from telehealth.database import Base
from telehealth.models.enums import UserRole


class User(Base):
    """Represents a patient, doctor or admin account."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True)
    name = Column(String)
    role = Column(String, default=UserRole.UNASSIGNED.value)
    specialty = Column(String, index=True)
    verification_status = Column(String)  # doctors only
    credits = Column(Integer, default=0, nullable=False)
    plan = Column(String, default="free_user")

"""Credit ledger model definitions."""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String

from telehealth.database import Base


class CreditTransaction(Base):
    """One signed movement of credits on a user's balance."""
    __tablename__ = "credit_transactions"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    amount = Column(Integer, nullable=False)
    type = Column(String, nullable=False)
    package_id = Column(String)
    description = Column(String)
    created_at = Column(DateTime, default=datetime.now)

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from telehealth.auth.dependencies import get_current_user
from telehealth.database import get_db
from telehealth.models.user import User
from telehealth.services.credits import APPOINTMENT_CREDIT_COST, DEFAULT_PLAN, allocate_monthly_credits

router = APIRouter(tags=['credits'])


class CreditBalanceResponse(BaseModel):
    credits: int
    plan: str
    appointment_cost: int


@router.get('/balance', response_model=CreditBalanceResponse)
def get_credit_balance(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        user = allocate_monthly_credits(db, current_user, datetime.now())
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail='Database unavailable. Verify DATABASE_URL and Postgres credentials.',
        ) from exc

    return CreditBalanceResponse(
        credits=user.credits or 0,
        plan=user.plan or DEFAULT_PLAN,
        appointment_cost=APPOINTMENT_CREDIT_COST,
    )

"""Prepaid credit ledger: appointment transfers and monthly plan allocations."""

import logging
from datetime import datetime

from sqlalchemy.orm import Session

from telehealth.models.credit_transaction import CreditTransaction
from telehealth.models.enums import TransactionType, UserRole
from telehealth.models.user import User
from telehealth.services.errors import InsufficientCreditError

logger = logging.getLogger(__name__)

APPOINTMENT_CREDIT_COST = 2
DEFAULT_PLAN = 'free_user'
PLAN_CREDITS = {
    'free_user': 0,
    'standard': 10,
    'premium': 24,
}


def has_sufficient_credits(user: User) -> bool:
    return (user.credits or 0) >= APPOINTMENT_CREDIT_COST


def transfer_appointment_credits(db: Session, patient: User, doctor: User, now: datetime) -> None:
    """Move the appointment price from patient to doctor.

    Nothing is committed here; the caller commits together with the
    appointment row so a failed booking never leaves a debit behind.
    """
    if not has_sufficient_credits(patient):
        raise InsufficientCreditError(
            f'Insufficient credits to book an appointment. You need {APPOINTMENT_CREDIT_COST} credits.'
        )

    db.add_all([
        CreditTransaction(
            user_id=patient.id,
            amount=-APPOINTMENT_CREDIT_COST,
            type=TransactionType.APPOINTMENT_DEDUCTION.value,
            created_at=now,
        ),
        CreditTransaction(
            user_id=doctor.id,
            amount=APPOINTMENT_CREDIT_COST,
            type=TransactionType.APPOINTMENT_DEDUCTION.value,
            created_at=now,
        ),
    ])
    patient.credits = (patient.credits or 0) - APPOINTMENT_CREDIT_COST
    doctor.credits = (doctor.credits or 0) + APPOINTMENT_CREDIT_COST


def allocate_monthly_credits(db: Session, user: User, now: datetime) -> User:
    """Grant the plan's monthly credits once per calendar month.

    A plan change within the month triggers a new allocation for the new plan.
    """
    if user.role != UserRole.PATIENT.value:
        return user

    # Concurrent balance reads serialize on the user row.
    user = db.query(User).filter(User.id == user.id).with_for_update().populate_existing().one()

    plan = user.plan or DEFAULT_PLAN
    credits_to_allocate = PLAN_CREDITS.get(plan, PLAN_CREDITS[DEFAULT_PLAN])

    latest = db.query(CreditTransaction).filter(
        CreditTransaction.user_id == user.id,
        CreditTransaction.type == TransactionType.CREDIT_PURCHASE.value,
    ).order_by(CreditTransaction.created_at.desc(), CreditTransaction.id.desc()).first()

    if (
        latest is not None
        and latest.created_at.strftime('%Y-%m') == now.strftime('%Y-%m')
        and latest.package_id == plan
    ):
        return user

    if credits_to_allocate == 0:
        return user

    db.add(
        CreditTransaction(
            user_id=user.id,
            amount=credits_to_allocate,
            type=TransactionType.CREDIT_PURCHASE.value,
            package_id=plan,
            description=f'Monthly {plan} plan credits',
            created_at=now,
        )
    )
    user.credits = (user.credits or 0) + credits_to_allocate
    db.commit()
    db.refresh(user)

    logger.info('Allocated %s %s credits to user %s', credits_to_allocate, plan, user.id)
    return user

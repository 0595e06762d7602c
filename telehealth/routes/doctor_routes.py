from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from telehealth.database import get_db
from telehealth.models.enums import UserRole, VerificationStatus
from telehealth.models.user import User
from telehealth.services.scheduling import find_verified_doctor

router = APIRouter(tags=['doctors'])


class DoctorResponse(BaseModel):
    id: int
    name: str | None = None
    email: str | None = None
    specialty: str | None = None

    class Config:
        from_attributes = True


@router.get('', response_model=list[DoctorResponse])
def list_doctors(
    specialty: str | None = Query(default=None),
    db: Session = Depends(get_db),
):
    try:
        query = db.query(User).filter(
            User.role == UserRole.DOCTOR.value,
            User.verification_status == VerificationStatus.VERIFIED.value,
        )
        if specialty:
            query = query.filter(User.specialty == specialty.strip())

        return query.order_by(User.name.asc()).all()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail='Failed to fetch doctors',
        ) from exc


@router.get('/{doctor_id}', response_model=DoctorResponse)
def get_doctor(doctor_id: int, db: Session = Depends(get_db)):
    try:
        doctor = find_verified_doctor(db, doctor_id)
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail='Failed to fetch doctor details',
        ) from exc

    if doctor is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Doctor not found',
        )

    return doctor

import logging
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from telehealth.auth.dependencies import get_current_admin
from telehealth.database import get_db
from telehealth.models.enums import UserRole, VerificationStatus
from telehealth.models.user import User

router = APIRouter(tags=['admin'])

logger = logging.getLogger(__name__)


class PendingDoctorResponse(BaseModel):
    id: int
    name: str | None = None
    email: str | None = None
    specialty: str | None = None
    verification_status: str | None = None

    class Config:
        from_attributes = True


class DoctorStatusUpdateRequest(BaseModel):
    status: Literal['VERIFIED', 'REJECTED']


@router.get('/doctors/pending', response_model=list[PendingDoctorResponse])
def list_pending_doctors(
    current_admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    try:
        return db.query(User).filter(
            User.role == UserRole.DOCTOR.value,
            User.verification_status == VerificationStatus.PENDING.value,
        ).order_by(User.id.desc()).all()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail='Failed to fetch pending doctors',
        ) from exc


@router.post('/doctors/{doctor_id}/status', response_model=PendingDoctorResponse)
def update_doctor_status(
    doctor_id: int,
    data: DoctorStatusUpdateRequest,
    current_admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    try:
        doctor = db.query(User).filter(
            User.id == doctor_id,
            User.role == UserRole.DOCTOR.value,
        ).first()
        if doctor is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail='Doctor not found',
            )

        doctor.verification_status = data.status
        db.commit()
        db.refresh(doctor)
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail='Failed to update doctor status',
        ) from exc

    logger.info('Admin %s set doctor %s to %s', current_admin.id, doctor.id, doctor.verification_status)
    return doctor

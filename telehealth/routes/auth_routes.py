import logging
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, field_validator, model_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from telehealth.auth.dependencies import get_current_user
from telehealth.database import get_db
from telehealth.models.enums import UserRole, VerificationStatus
from telehealth.models.user import User

router = APIRouter(tags=['auth'])

logger = logging.getLogger(__name__)


class RoleSelectionRequest(BaseModel):
    role: Literal['PATIENT', 'DOCTOR']
    specialty: str | None = None

    @field_validator('specialty')
    @classmethod
    def normalize_specialty(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None

    @model_validator(mode='after')
    def require_doctor_specialty(self) -> 'RoleSelectionRequest':
        if self.role == UserRole.DOCTOR.value and not self.specialty:
            raise ValueError('Doctors must provide a specialty.')
        return self


class RoleSelectionResponse(BaseModel):
    id: int
    role: str
    specialty: str | None = None
    verification_status: str | None = None

    class Config:
        from_attributes = True


@router.get("/me")
def me(current_user: User = Depends(get_current_user)):
    return {
        "id": current_user.id,
        "email": current_user.email,
        "name": current_user.name,
        "role": current_user.role,
        "credits": current_user.credits,
    }


@router.post("/role", response_model=RoleSelectionResponse)
def select_role(
    data: RoleSelectionRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if current_user.role not in (None, UserRole.UNASSIGNED.value):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Role has already been selected.",
        )

    current_user.role = data.role
    if data.role == UserRole.DOCTOR.value:
        # Doctors stay out of the directory until an admin reviews them.
        current_user.specialty = data.specialty
        current_user.verification_status = VerificationStatus.PENDING.value

    try:
        db.commit()
        db.refresh(current_user)
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Failed to update user profile",
        ) from exc

    logger.info("User %s onboarded as %s", current_user.id, current_user.role)
    return current_user

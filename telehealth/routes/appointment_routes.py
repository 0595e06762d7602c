from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from telehealth.auth.dependencies import get_current_patient, get_current_user
from telehealth.database import get_db
from telehealth.models.user import User
from telehealth.routes.availability_routes import ensure_database_ready
from telehealth.services import appointments as appointment_service
from telehealth.services.booking import AppointmentResponse, BookAppointmentRequest, BookingResult, book_appointment
from telehealth.services.errors import BookingError
from telehealth.services.video import VideoSessionProvider, get_video_provider

router = APIRouter(tags=['appointments'])

MAX_APPOINTMENT_NOTES_LENGTH = 2000


class CompleteAppointmentRequest(BaseModel):
    notes: str | None = None

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if not normalized:
            return None

        if len(normalized) > MAX_APPOINTMENT_NOTES_LENGTH:
            raise ValueError(f'Notes must be {MAX_APPOINTMENT_NOTES_LENGTH} characters or fewer.')

        return normalized


def to_http_error(exc: BookingError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.message)


def database_unavailable() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail='Database unavailable. Verify DATABASE_URL and Postgres credentials.',
    )


@router.post('', response_model=BookingResult, status_code=status.HTTP_201_CREATED)
def create_appointment(
    data: BookAppointmentRequest,
    response: Response,
    current_patient: User = Depends(get_current_patient),
    db: Session = Depends(get_db),
    video_provider: VideoSessionProvider = Depends(get_video_provider),
):
    ensure_database_ready()

    result = book_appointment(db, current_patient.id, data, datetime.now(), video_provider)
    response.status_code = result.status_code
    return result


@router.get('/me', response_model=list[AppointmentResponse])
def list_my_appointments(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return appointment_service.list_user_appointments(db, current_user)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.post('/{appointment_id}/cancel', response_model=AppointmentResponse)
def cancel_appointment(
    appointment_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return appointment_service.cancel_appointment(db, current_user, appointment_id, datetime.now())
    except BookingError as exc:
        raise to_http_error(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.post('/{appointment_id}/complete', response_model=AppointmentResponse)
def complete_appointment(
    appointment_id: int,
    data: CompleteAppointmentRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return appointment_service.complete_appointment(
            db,
            current_user,
            appointment_id,
            datetime.now(),
            notes=data.notes,
        )
    except BookingError as exc:
        raise to_http_error(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.post('/{appointment_id}/video-token', response_model=appointment_service.VideoTokenResponse)
def create_video_token(
    appointment_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    video_provider: VideoSessionProvider = Depends(get_video_provider),
):
    ensure_database_ready()

    try:
        return appointment_service.issue_video_token(
            db,
            current_user,
            appointment_id,
            datetime.now(),
            video_provider,
        )
    except BookingError as exc:
        raise to_http_error(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

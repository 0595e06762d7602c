from datetime import date, datetime, time

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel, ValidationInfo, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from telehealth.auth.dependencies import get_current_doctor
from telehealth.database import ensure_appointment_schema, ensure_availability_schema, get_db
from telehealth.models.availability import Availability
from telehealth.models.enums import AvailabilityStatus
from telehealth.models.user import User
from telehealth.services.scheduling import AvailableSlotsResult, find_availability_window, get_available_time_slots

router = APIRouter(tags=['availability'])

# Window timestamps carry the time of day only; this date fills the unused part.
WINDOW_ANCHOR_DATE = date(2000, 1, 1)


class AvailabilityWindowRequest(BaseModel):
    start_time: time
    end_time: time

    @field_validator('start_time', 'end_time')
    @classmethod
    def truncate_seconds(cls, value: time) -> time:
        return value.replace(second=0, microsecond=0, tzinfo=None)

    @field_validator('end_time')
    @classmethod
    def validate_window_order(cls, value: time, info: ValidationInfo) -> time:
        start_time = info.data.get('start_time')
        if start_time is not None and value <= start_time:
            raise ValueError('End time must be after start time.')
        return value


class AvailabilityWindowResponse(BaseModel):
    id: int
    doctor_id: int
    start_time: time
    end_time: time
    status: str


def ensure_database_ready() -> None:
    try:
        ensure_availability_schema()
        ensure_appointment_schema()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail='Database unavailable. Verify DATABASE_URL and Postgres credentials.',
        ) from exc


def to_window_response(window: Availability) -> AvailabilityWindowResponse:
    return AvailabilityWindowResponse(
        id=window.id,
        doctor_id=window.doctor_id,
        start_time=window.start_time.time(),
        end_time=window.end_time.time(),
        status=window.status,
    )


@router.get('/doctors/{doctor_id}/slots', response_model=AvailableSlotsResult)
def list_available_slots(doctor_id: int, response: Response, db: Session = Depends(get_db)):
    ensure_database_ready()

    result = get_available_time_slots(db, doctor_id, datetime.now())
    response.status_code = result.status_code
    return result


@router.get('/window', response_model=AvailabilityWindowResponse)
def get_availability_window(
    current_doctor: User = Depends(get_current_doctor),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        window = find_availability_window(db, current_doctor.id)
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail='Database unavailable. Verify DATABASE_URL and Postgres credentials.',
        ) from exc

    if window is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Availability has not been set.',
        )

    return to_window_response(window)


@router.put('/window', response_model=AvailabilityWindowResponse)
def set_availability_window(
    data: AvailabilityWindowRequest,
    current_doctor: User = Depends(get_current_doctor),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        db.query(Availability).filter(
            Availability.doctor_id == current_doctor.id,
            Availability.status == AvailabilityStatus.AVAILABLE.value,
        ).delete(synchronize_session=False)

        window = Availability(
            doctor_id=current_doctor.id,
            start_time=datetime.combine(WINDOW_ANCHOR_DATE, data.start_time),
            end_time=datetime.combine(WINDOW_ANCHOR_DATE, data.end_time),
            status=AvailabilityStatus.AVAILABLE.value,
        )
        db.add(window)
        db.commit()
        db.refresh(window)

        return to_window_response(window)
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail='Database unavailable. Verify DATABASE_URL and Postgres credentials.',
        ) from exc

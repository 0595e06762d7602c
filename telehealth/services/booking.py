"""Appointment booking with an authoritative conflict re-check.

Slots shown to a patient are computed optimistically and may be stale by the
time the booking arrives. The booking path therefore re-validates the
candidate interval against the doctor's SCHEDULED appointments inside the
same transaction that debits credits and inserts the appointment. On Postgres
the doctor row is locked ``FOR UPDATE`` so two bookings for one doctor are
serialized and the second one sees the first one's appointment.
"""

import logging
from datetime import datetime, timedelta

from pydantic import BaseModel, Field, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from telehealth.core import config
from telehealth.models.appointment import Appointment
from telehealth.models.enums import AppointmentStatus, UserRole
from telehealth.models.user import User
from telehealth.services import credits
from telehealth.services.errors import (
    BookingError,
    DependencyFailureError,
    InsufficientCreditError,
    InvalidInputError,
    NotFoundError,
    SlotConflictError,
)
from telehealth.services.scheduling import find_scheduled_appointments, find_verified_doctor, has_conflict
from telehealth.services.video import VideoSessionError, VideoSessionProvider

logger = logging.getLogger(__name__)

MAX_DESCRIPTION_LENGTH = 1000
BOOKING_SUCCESS_MESSAGE = (
    'Appointment booked successfully! Video call will be available 30 minutes before your appointment.'
)
SLOT_CONFLICT_MESSAGE = 'This time slot is already booked. Please select a different time.'


def to_naive_local(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


class BookAppointmentRequest(BaseModel):
    doctor_id: int
    start_time: datetime
    end_time: datetime
    description: str | None = None

    @field_validator('start_time', 'end_time')
    @classmethod
    def normalize_timestamp(cls, value: datetime) -> datetime:
        return to_naive_local(value).replace(microsecond=0)

    @field_validator('description')
    @classmethod
    def validate_description(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if not normalized:
            return None

        if len(normalized) > MAX_DESCRIPTION_LENGTH:
            raise ValueError(f'Description must be {MAX_DESCRIPTION_LENGTH} characters or fewer.')

        return normalized


class AppointmentResponse(BaseModel):
    id: int
    patient_id: int
    doctor_id: int
    start_time: datetime
    end_time: datetime
    status: str
    patient_description: str | None = None
    notes: str | None = None
    video_session_id: str | None = None

    class Config:
        from_attributes = True


class BookingResult(BaseModel):
    success: bool
    appointment: AppointmentResponse | None = None
    message: str | None = None
    error: str | None = None
    status_code: int = Field(default=201, exclude=True)


def validate_booking_window(start_time: datetime, end_time: datetime, now: datetime) -> None:
    if start_time >= end_time:
        raise InvalidInputError('Start time must be before end time.')

    if start_time < now + timedelta(minutes=config.BOOKING_LOOKAHEAD_MINUTES):
        raise InvalidInputError(
            f'Appointments must be booked at least {config.BOOKING_LOOKAHEAD_MINUTES} minutes in advance.'
        )


def ensure_slot_is_free(db: Session, doctor_id: int, start_time: datetime, end_time: datetime) -> None:
    existing = find_scheduled_appointments(db, doctor_id, start_time, end_time)
    if has_conflict(start_time, end_time, existing):
        raise SlotConflictError(SLOT_CONFLICT_MESSAGE)


def _create_appointment(
    db: Session,
    patient_id: int,
    data: BookAppointmentRequest,
    now: datetime,
    video_provider: VideoSessionProvider,
) -> Appointment:
    validate_booking_window(data.start_time, data.end_time, now)

    patient = db.query(User).filter(
        User.id == patient_id,
        User.role == UserRole.PATIENT.value,
    ).with_for_update().populate_existing().first()
    if patient is None:
        raise NotFoundError('Patient not found')

    doctor = find_verified_doctor(db, data.doctor_id, for_update=True)
    if doctor is None:
        raise NotFoundError('Doctor not found or not verified')

    if not credits.has_sufficient_credits(patient):
        raise InsufficientCreditError(
            'Insufficient credits to book an appointment. '
            f'You need {credits.APPOINTMENT_CREDIT_COST} credits.'
        )

    ensure_slot_is_free(db, doctor.id, data.start_time, data.end_time)

    try:
        video_session = video_provider.create_session()
    except VideoSessionError as exc:
        raise DependencyFailureError(f'Failed to create video session: {exc}') from exc

    credits.transfer_appointment_credits(db, patient, doctor, now)

    appointment = Appointment(
        patient_id=patient.id,
        doctor_id=doctor.id,
        start_time=data.start_time,
        end_time=data.end_time,
        status=AppointmentStatus.SCHEDULED.value,
        patient_description=data.description,
        video_session_id=video_session.session_id,
        created_at=now,
        updated_at=now,
    )
    db.add(appointment)
    db.commit()
    db.refresh(appointment)
    return appointment


def book_appointment(
    db: Session,
    patient_id: int,
    data: BookAppointmentRequest,
    now: datetime,
    video_provider: VideoSessionProvider,
) -> BookingResult:
    try:
        appointment = _create_appointment(db, patient_id, data, now, video_provider)
    except BookingError as exc:
        db.rollback()
        return BookingResult(success=False, error=exc.message, status_code=exc.status_code)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to book appointment with doctor %s', data.doctor_id)
        return BookingResult(
            success=False,
            error=f'Failed to book appointment: {exc}',
            status_code=DependencyFailureError.status_code,
        )

    logger.info(
        'Appointment %s booked: patient=%s doctor=%s start=%s end=%s',
        appointment.id,
        appointment.patient_id,
        appointment.doctor_id,
        appointment.start_time,
        appointment.end_time,
    )
    return BookingResult(
        success=True,
        appointment=AppointmentResponse.model_validate(appointment),
        message=BOOKING_SUCCESS_MESSAGE,
    )

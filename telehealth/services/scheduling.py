"""Availability and slot generation for doctor bookings.

A doctor publishes one recurring daily window. For each day of the booking
horizon the window is anchored onto that calendar date and cut into fixed
30-minute slots; slots starting inside the look-ahead buffer or colliding
with a SCHEDULED appointment are dropped.

Intervals are half-open: ``[start, end)``. Two appointments that share a
boundary do not overlap.
"""

import logging
from collections.abc import Iterable
from datetime import date, datetime, timedelta

from fastapi import status
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from telehealth.core import config
from telehealth.models.appointment import Appointment
from telehealth.models.availability import Availability
from telehealth.models.enums import AppointmentStatus, AvailabilityStatus, UserRole, VerificationStatus
from telehealth.models.user import User

logger = logging.getLogger(__name__)


class TimeSlot(BaseModel):
    start_time: datetime
    end_time: datetime
    formatted: str
    day: str


class DaySlots(BaseModel):
    date: date
    display_date: str
    slots: list[TimeSlot]
    available_count: int


class DoctorSummary(BaseModel):
    id: int
    name: str | None = None
    specialty: str | None = None


class AvailableSlotsResult(BaseModel):
    success: bool
    days: list[DaySlots] = []
    doctor: DoctorSummary | None = None
    message: str | None = None
    error: str | None = None
    status_code: int = Field(default=200, exclude=True)


def intervals_overlap(start: datetime, end: datetime, other_start: datetime, other_end: datetime) -> bool:
    """Return True when ``[start, end)`` and ``[other_start, other_end)`` share an instant.

    Equivalent to the union of the four configurations: the candidate begins
    inside the other interval, ends inside it, contains it, or is contained
    by it.
    """
    return start < other_end and other_start < end


def has_conflict(start: datetime, end: datetime, appointments: Iterable) -> bool:
    """Return True if any appointment overlaps ``[start, end)``.

    ``appointments`` must already be narrowed to one doctor's SCHEDULED
    appointments; anything exposing ``start_time`` and ``end_time`` works.
    """
    return any(
        intervals_overlap(start, end, appointment.start_time, appointment.end_time)
        for appointment in appointments
    )


def format_time_label(value: datetime) -> str:
    return value.strftime('%I:%M %p').lstrip('0')


def format_slot_label(start: datetime, end: datetime) -> str:
    return f'{format_time_label(start)} - {format_time_label(end)}'


def format_day_label(value: date) -> str:
    return f'{value.strftime("%A, %B")} {value.day}'


def horizon_days(now: datetime) -> list[datetime]:
    return [now + timedelta(days=offset) for offset in range(config.SLOT_HORIZON_DAYS)]


def end_of_day(value: datetime) -> datetime:
    return datetime.combine(value.date(), datetime.max.time())


def anchor_window(window_start: datetime, window_end: datetime, day: datetime) -> tuple[datetime, datetime]:
    """Move the window's time of day onto ``day``'s calendar date."""
    day_start = datetime.combine(day.date(), window_start.time())
    day_end = datetime.combine(day.date(), window_end.time())
    return day_start, day_end


def generate_day_slots(
    window_start: datetime,
    window_end: datetime,
    day: datetime,
    appointments: list,
    now: datetime,
) -> DaySlots:
    slot_length = timedelta(minutes=config.SLOT_DURATION_MINUTES)
    earliest_start = now + timedelta(minutes=config.BOOKING_LOOKAHEAD_MINUTES)
    day_start, day_end = anchor_window(window_start, window_end, day)

    slots: list[TimeSlot] = []
    current = day_start
    # The last slot may end exactly at the window close.
    while current + slot_length <= day_end:
        following = current + slot_length

        if current >= earliest_start and not has_conflict(current, following, appointments):
            slots.append(
                TimeSlot(
                    start_time=current,
                    end_time=following,
                    formatted=format_slot_label(current, following),
                    day=format_day_label(current),
                )
            )

        current = following

    return DaySlots(
        date=day.date(),
        display_date=format_day_label(day.date()),
        slots=slots,
        available_count=len(slots),
    )


def generate_available_slots(
    window_start: datetime,
    window_end: datetime,
    appointments: list,
    now: datetime,
) -> list[DaySlots]:
    return [
        generate_day_slots(window_start, window_end, day, appointments, now)
        for day in horizon_days(now)
    ]


def find_verified_doctor(db: Session, doctor_id: int, *, for_update: bool = False) -> User | None:
    query = db.query(User).filter(
        User.id == doctor_id,
        User.role == UserRole.DOCTOR.value,
        User.verification_status == VerificationStatus.VERIFIED.value,
    )
    if for_update:
        query = query.with_for_update().populate_existing()
    return query.first()


def find_availability_window(db: Session, doctor_id: int) -> Availability | None:
    return db.query(Availability).filter(
        Availability.doctor_id == doctor_id,
        Availability.status == AvailabilityStatus.AVAILABLE.value,
    ).order_by(Availability.id.asc()).first()


def find_scheduled_appointments(
    db: Session,
    doctor_id: int,
    range_start: datetime,
    range_end: datetime,
) -> list[Appointment]:
    """SCHEDULED appointments of a doctor occurring at any point of the range."""
    return db.query(Appointment).filter(
        Appointment.doctor_id == doctor_id,
        Appointment.status == AppointmentStatus.SCHEDULED.value,
        Appointment.start_time < range_end,
        Appointment.end_time > range_start,
    ).order_by(Appointment.start_time.asc()).all()


def get_available_time_slots(db: Session, doctor_id: int, now: datetime) -> AvailableSlotsResult:
    try:
        doctor = find_verified_doctor(db, doctor_id)
        if doctor is None:
            return AvailableSlotsResult(
                success=False,
                error='Doctor not found or not verified',
                days=[],
                status_code=status.HTTP_404_NOT_FOUND,
            )

        availability = find_availability_window(db, doctor.id)
        if availability is None:
            return AvailableSlotsResult(
                success=True,
                days=[],
                message=f"Dr. {doctor.name} hasn't set availability yet. Please check back later.",
            )

        days = horizon_days(now)
        appointments = find_scheduled_appointments(db, doctor.id, now, end_of_day(days[-1]))
        logger.debug('Found %s scheduled appointments for doctor %s', len(appointments), doctor.id)

        slot_days = generate_available_slots(availability.start_time, availability.end_time, appointments, now)
    except SQLAlchemyError as exc:
        logger.exception('Failed to fetch available slots for doctor %s', doctor_id)
        return AvailableSlotsResult(
            success=False,
            error=f'Failed to fetch available time slots: {exc}',
            days=[],
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    return AvailableSlotsResult(
        success=True,
        days=slot_days,
        doctor=DoctorSummary(id=doctor.id, name=doctor.name, specialty=doctor.specialty),
    )

"""Status transitions and video access for existing appointments."""

import json
import logging
from datetime import datetime, timedelta

from pydantic import BaseModel
from sqlalchemy import or_
from sqlalchemy.orm import Session

from telehealth.core import config
from telehealth.models.appointment import Appointment
from telehealth.models.enums import AppointmentStatus
from telehealth.models.user import User
from telehealth.services.errors import (
    DependencyFailureError,
    InvalidInputError,
    NotFoundError,
    PermissionDeniedError,
)
from telehealth.services.scheduling import format_time_label
from telehealth.services.video import VideoSessionError, VideoSessionProvider

logger = logging.getLogger(__name__)


class VideoTokenResponse(BaseModel):
    video_session_id: str
    token: str
    appointment_id: int
    start_time: datetime
    end_time: datetime


def list_user_appointments(db: Session, user: User) -> list[Appointment]:
    return db.query(Appointment).filter(
        or_(Appointment.patient_id == user.id, Appointment.doctor_id == user.id),
    ).order_by(Appointment.start_time.asc()).all()


def get_participant_appointment(db: Session, user: User, appointment_id: int) -> Appointment:
    appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
    if appointment is None:
        raise NotFoundError('Appointment not found')

    if user.id not in (appointment.patient_id, appointment.doctor_id):
        raise PermissionDeniedError('You are not a participant of this appointment')

    return appointment


def _require_scheduled(appointment: Appointment) -> None:
    if appointment.status != AppointmentStatus.SCHEDULED.value:
        raise InvalidInputError('This appointment is not currently scheduled')


def cancel_appointment(db: Session, user: User, appointment_id: int, now: datetime) -> Appointment:
    appointment = get_participant_appointment(db, user, appointment_id)
    _require_scheduled(appointment)

    appointment.status = AppointmentStatus.CANCELLED.value
    appointment.updated_at = now
    db.commit()
    db.refresh(appointment)

    logger.info('Appointment %s cancelled by user %s', appointment.id, user.id)
    return appointment


def complete_appointment(
    db: Session,
    user: User,
    appointment_id: int,
    now: datetime,
    notes: str | None = None,
) -> Appointment:
    appointment = get_participant_appointment(db, user, appointment_id)
    if appointment.doctor_id != user.id:
        raise PermissionDeniedError('Only the doctor can complete this appointment')

    _require_scheduled(appointment)

    if now < appointment.start_time:
        raise InvalidInputError('Cannot complete an appointment before its scheduled start')

    appointment.status = AppointmentStatus.COMPLETED.value
    if notes:
        appointment.notes = notes
    appointment.updated_at = now
    db.commit()
    db.refresh(appointment)

    logger.info('Appointment %s completed', appointment.id)
    return appointment


def issue_video_token(
    db: Session,
    user: User,
    appointment_id: int,
    now: datetime,
    video_provider: VideoSessionProvider,
) -> VideoTokenResponse:
    appointment = get_participant_appointment(db, user, appointment_id)
    _require_scheduled(appointment)

    join_window = timedelta(minutes=config.VIDEO_JOIN_WINDOW_MINUTES)
    if now < appointment.start_time - join_window:
        raise InvalidInputError(
            f'The video call will be available {config.VIDEO_JOIN_WINDOW_MINUTES} minutes before '
            f'the scheduled time ({format_time_label(appointment.start_time)})'
        )

    if now > appointment.end_time + join_window:
        raise InvalidInputError('This appointment has ended. Video call is no longer available.')

    if not appointment.video_session_id:
        raise NotFoundError('No video session found for this appointment')

    connection_data = json.dumps({
        'name': user.name,
        'role': user.role,
        'user_id': user.id,
        'appointment_id': appointment.id,
    })
    expire_time = appointment.end_time + timedelta(hours=config.VIDEO_TOKEN_GRACE_HOURS)

    try:
        token = video_provider.generate_token(appointment.video_session_id, connection_data, expire_time)
    except VideoSessionError as exc:
        raise DependencyFailureError(f'Failed to generate video token: {exc}') from exc

    appointment.video_session_token = token
    appointment.updated_at = now
    db.commit()

    return VideoTokenResponse(
        video_session_id=appointment.video_session_id,
        token=token,
        appointment_id=appointment.id,
        start_time=appointment.start_time,
        end_time=appointment.end_time,
    )

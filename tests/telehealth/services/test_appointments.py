import json
from datetime import datetime

import jwt
import pytest

from telehealth.models.enums import AppointmentStatus
from telehealth.services.appointments import (
    cancel_appointment,
    complete_appointment,
    issue_video_token,
    list_user_appointments,
)
from telehealth.services.errors import (
    DependencyFailureError,
    InvalidInputError,
    NotFoundError,
    PermissionDeniedError,
)
from telehealth.services.scheduling import get_available_time_slots
from telehealth.services.video import VideoSessionProvider

START = datetime(2026, 1, 5, 10, 0)
END = datetime(2026, 1, 5, 10, 30)


@pytest.fixture
def video_provider() -> VideoSessionProvider:
    return VideoSessionProvider(api_key='key', api_secret='secret', session_id='session-123', application_id='app-1')


@pytest.fixture
def scheduled(make_doctor, make_patient, make_appointment):
    doctor = make_doctor()
    patient = make_patient()
    appointment = make_appointment(doctor, patient, START, END)
    return doctor, patient, appointment


def test_list_user_appointments_returns_both_sides(db, scheduled, make_patient) -> None:
    doctor, patient, appointment = scheduled
    stranger = make_patient(name='Stranger')

    assert [item.id for item in list_user_appointments(db, doctor)] == [appointment.id]
    assert [item.id for item in list_user_appointments(db, patient)] == [appointment.id]
    assert list_user_appointments(db, stranger) == []


def test_cancel_appointment_frees_the_slot(db, scheduled, make_window) -> None:
    doctor, patient, appointment = scheduled
    make_window(doctor)
    now = datetime(2026, 1, 5, 8, 0)

    before = get_available_time_slots(db, doctor.id, now)
    assert START not in [slot.start_time for slot in before.days[0].slots]

    cancelled = cancel_appointment(db, patient, appointment.id, now)

    assert cancelled.status == AppointmentStatus.CANCELLED.value
    after = get_available_time_slots(db, doctor.id, now)
    assert START in [slot.start_time for slot in after.days[0].slots]


def test_cancel_appointment_rejects_non_participant(db, scheduled, make_patient) -> None:
    _, _, appointment = scheduled

    with pytest.raises(PermissionDeniedError):
        cancel_appointment(db, make_patient(name='Stranger'), appointment.id, datetime(2026, 1, 5, 8, 0))


def test_cancel_appointment_returns_not_found_when_missing(db, scheduled) -> None:
    _, patient, _ = scheduled

    with pytest.raises(NotFoundError) as exception_info:
        cancel_appointment(db, patient, 999, datetime(2026, 1, 5, 8, 0))

    assert exception_info.value.message == 'Appointment not found'


def test_cancel_appointment_requires_scheduled_status(db, scheduled) -> None:
    _, patient, appointment = scheduled
    cancel_appointment(db, patient, appointment.id, datetime(2026, 1, 5, 8, 0))

    with pytest.raises(InvalidInputError):
        cancel_appointment(db, patient, appointment.id, datetime(2026, 1, 5, 8, 5))


def test_complete_appointment_by_doctor_stores_notes(db, scheduled) -> None:
    doctor, _, appointment = scheduled

    completed = complete_appointment(db, doctor, appointment.id, datetime(2026, 1, 5, 10, 40), notes='Follow up in 2 weeks')

    assert completed.status == AppointmentStatus.COMPLETED.value
    assert completed.notes == 'Follow up in 2 weeks'


def test_complete_appointment_rejects_patient(db, scheduled) -> None:
    _, patient, appointment = scheduled

    with pytest.raises(PermissionDeniedError):
        complete_appointment(db, patient, appointment.id, datetime(2026, 1, 5, 10, 40))


def test_complete_appointment_rejects_before_start(db, scheduled) -> None:
    doctor, _, appointment = scheduled

    with pytest.raises(InvalidInputError):
        complete_appointment(db, doctor, appointment.id, datetime(2026, 1, 5, 9, 0))


def test_issue_video_token_inside_join_window(db, scheduled, video_provider) -> None:
    _, patient, appointment = scheduled

    response = issue_video_token(db, patient, appointment.id, datetime(2026, 1, 5, 9, 35), video_provider)

    assert response.video_session_id == 'session-123'
    assert response.appointment_id == appointment.id
    db.refresh(appointment)
    assert appointment.video_session_token == response.token

    claims = jwt.decode(response.token, 'secret', algorithms=['HS256'], options={'verify_exp': False})
    assert claims['session_id'] == 'session-123'
    assert json.loads(claims['data'])['appointment_id'] == appointment.id
    assert claims['exp'] == int(datetime(2026, 1, 5, 13, 30).astimezone().timestamp())


@pytest.mark.parametrize(
    ('now', 'error'),
    [
        (datetime(2026, 1, 5, 9, 29), 'The video call will be available 30 minutes before the scheduled time (10:00 AM)'),
        (datetime(2026, 1, 5, 11, 1), 'This appointment has ended. Video call is no longer available.'),
    ],
)
def test_issue_video_token_outside_join_window(db, scheduled, video_provider, now: datetime, error: str) -> None:
    _, patient, appointment = scheduled

    with pytest.raises(InvalidInputError) as exception_info:
        issue_video_token(db, patient, appointment.id, now, video_provider)

    assert exception_info.value.message == error


def test_issue_video_token_requires_session(db, make_doctor, make_patient, make_appointment, video_provider) -> None:
    doctor = make_doctor()
    patient = make_patient()
    appointment = make_appointment(doctor, patient, START, END, video_session_id=None)

    with pytest.raises(NotFoundError):
        issue_video_token(db, doctor, appointment.id, datetime(2026, 1, 5, 10, 0), video_provider)


def test_issue_video_token_reports_provider_failure(db, scheduled) -> None:
    _, patient, appointment = scheduled
    provider = VideoSessionProvider(api_key='key', api_secret='', session_id='session-123', application_id='app-1')

    with pytest.raises(DependencyFailureError):
        issue_video_token(db, patient, appointment.id, datetime(2026, 1, 5, 10, 0), provider)

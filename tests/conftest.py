import os
from datetime import datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from telehealth.database import Base  # noqa: E402
from telehealth.models.appointment import Appointment  # noqa: E402
from telehealth.models.availability import Availability  # noqa: E402
from telehealth.models.credit_transaction import CreditTransaction  # noqa: E402, F401
from telehealth.models.enums import AppointmentStatus, AvailabilityStatus, UserRole, VerificationStatus  # noqa: E402
from telehealth.models.user import User  # noqa: E402


@pytest.fixture
def db():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def make_doctor(db):
    def _make_doctor(
        name: str = 'Ada Lovelace',
        specialty: str = 'Cardiology',
        verification_status: str = VerificationStatus.VERIFIED.value,
        email: str | None = None,
    ) -> User:
        doctor = User(
            email=email or f'{name.lower().replace(" ", ".")}@clinic.test',
            name=name,
            role=UserRole.DOCTOR.value,
            specialty=specialty,
            verification_status=verification_status,
            credits=0,
        )
        db.add(doctor)
        db.commit()
        db.refresh(doctor)
        return doctor

    return _make_doctor


@pytest.fixture
def make_patient(db):
    def _make_patient(name: str = 'Pat Doe', credits: int = 10, plan: str = 'free_user') -> User:
        patient = User(
            email=f'{name.lower().replace(" ", ".")}@mail.test',
            name=name,
            role=UserRole.PATIENT.value,
            credits=credits,
            plan=plan,
        )
        db.add(patient)
        db.commit()
        db.refresh(patient)
        return patient

    return _make_patient


@pytest.fixture
def make_window(db):
    def _make_window(doctor: User, start: tuple[int, int] = (9, 0), end: tuple[int, int] = (12, 0)) -> Availability:
        window = Availability(
            doctor_id=doctor.id,
            start_time=datetime(2000, 1, 1, *start),
            end_time=datetime(2000, 1, 1, *end),
            status=AvailabilityStatus.AVAILABLE.value,
        )
        db.add(window)
        db.commit()
        db.refresh(window)
        return window

    return _make_window


@pytest.fixture
def make_appointment(db):
    def _make_appointment(
        doctor: User,
        patient: User,
        start_time: datetime,
        end_time: datetime,
        status: str = AppointmentStatus.SCHEDULED.value,
        video_session_id: str | None = 'session-123',
    ) -> Appointment:
        appointment = Appointment(
            doctor_id=doctor.id,
            patient_id=patient.id,
            start_time=start_time,
            end_time=end_time,
            status=status,
            video_session_id=video_session_id,
            created_at=datetime(2025, 12, 1, 8, 0),
        )
        db.add(appointment)
        db.commit()
        db.refresh(appointment)
        return appointment

    return _make_appointment

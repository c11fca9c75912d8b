import os
from datetime import datetime
from types import SimpleNamespace

# antes de importar careflow: Settings exige JWT_SECRET y el engine lee DATABASE_URL
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from careflow.core.db import Base
from careflow.models import Doctor, Nurse, Patient, RoleEnum, User
from careflow.services.appointments import AppointmentService
from careflow.services.locks import CaregiverLocks
from careflow.services.policy import Actor

# "ahora" fijo para las reglas de cancelación
NOW = datetime(2030, 1, 1, 8, 0)


@pytest_asyncio.fixture
async def engine(tmp_path):
    # archivo (no :memory:) para poder abrir varias sesiones concurrentes
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'careflow.db'}")
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def locks():
    return CaregiverLocks()


@pytest.fixture
def service(locks):
    return AppointmentService(now=lambda: NOW, locks=locks)


@pytest_asyncio.fixture
async def seed(db):
    """Dos pacientes, dos doctores, un enfermero y un admin, cada uno con su usuario."""
    def user(email, name, role):
        return User(email=email, full_name=name, role=role, is_active=True)

    users = SimpleNamespace(
        admin=user("admin@clinic.test", "Ada Admin", RoleEnum.admin),
        patient=user("pat@clinic.test", "Paula Patient", RoleEnum.patient),
        other_patient=user("pat2@clinic.test", "Pedro Patient", RoleEnum.patient),
        doctor=user("doc@clinic.test", "Dana Doctor", RoleEnum.doctor),
        other_doctor=user("doc2@clinic.test", "Diego Doctor", RoleEnum.doctor),
        nurse=user("nurse@clinic.test", "Nora Nurse", RoleEnum.nurse),
    )
    db.add_all(vars(users).values())
    await db.flush()

    patient = Patient(user_id=users.patient.id, name="Paula Patient")
    other_patient = Patient(user_id=users.other_patient.id, name="Pedro Patient")
    doctor = Doctor(user_id=users.doctor.id, name="Dana Doctor", specialty="Cardiology")
    other_doctor = Doctor(user_id=users.other_doctor.id, name="Diego Doctor", specialty="Dermatology")
    nurse = Nurse(user_id=users.nurse.id, name="Nora Nurse", department="Ward A")
    db.add_all([patient, other_patient, doctor, other_doctor, nurse])
    await db.commit()
    # desacoplados: un rollback posterior en la misma sesión no los expira
    db.expunge_all()

    return SimpleNamespace(
        users=users,
        patient=patient,
        other_patient=other_patient,
        doctor=doctor,
        other_doctor=other_doctor,
        nurse=nurse,
        admin_actor=Actor(RoleEnum.admin, None, users.admin.id),
        patient_actor=Actor(RoleEnum.patient, patient.id, users.patient.id),
        other_patient_actor=Actor(RoleEnum.patient, other_patient.id, users.other_patient.id),
        doctor_actor=Actor(RoleEnum.doctor, doctor.id, users.doctor.id),
        other_doctor_actor=Actor(RoleEnum.doctor, other_doctor.id, users.other_doctor.id),
        nurse_actor=Actor(RoleEnum.nurse, nurse.id, users.nurse.id),
    )

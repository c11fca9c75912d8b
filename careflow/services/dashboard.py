from collections.abc import Callable
from datetime import date

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from careflow.models.appointment import Appointment, AppointmentStatus
from careflow.models.doctor import Doctor
from careflow.models.nurse import Nurse
from careflow.models.patient import Patient
from careflow.models.user import RoleEnum
from careflow.services.policy import Action, Actor, authorize

S = AppointmentStatus


async def _count(db: AsyncSession, *conditions, column=Appointment.id) -> int:
    q = select(func.count(column)).select_from(Appointment).where(*conditions)
    res = await db.execute(q)
    return int(res.scalar_one())


async def dashboard_stats(db: AsyncSession, actor: Actor, today: Callable[[], date] = date.today) -> dict:
    """Contadores de turnos según el rol del que consulta."""
    authorize(actor, Action.dashboard_read)
    day = today()

    if actor.role == RoleEnum.admin:
        users = {
            "total_patients": int((await db.execute(select(func.count(Patient.id)))).scalar_one()),
            "total_doctors": int((await db.execute(select(func.count(Doctor.id)))).scalar_one()),
            "total_nurses": int((await db.execute(select(func.count(Nurse.id)))).scalar_one()),
        }
        return {
            "users": users,
            "appointments": {
                "total": await _count(db),
                "pending": await _count(db, Appointment.status == S.PENDING_APPROVAL),
                "completed": await _count(db, Appointment.status == S.COMPLETED),
                "cancelled": await _count(db, Appointment.status == S.CANCELLED),
            },
        }

    if actor.role == RoleEnum.doctor:
        mine = Appointment.doctor_id == actor.profile_id
        return {
            "appointments": {
                "total": await _count(db, mine),
                "pending": await _count(db, mine, Appointment.status == S.PENDING_APPROVAL),
                "today": await _count(db, mine, Appointment.date == day),
            },
            "patients": {
                "total": await _count(db, mine, column=func.distinct(Appointment.patient_id)),
            },
        }

    if actor.role == RoleEnum.nurse:
        mine = Appointment.nurse_id == actor.profile_id
        return {
            "appointments": {
                "total": await _count(db, mine),
                "today": await _count(db, mine, Appointment.date == day),
            },
        }

    mine = Appointment.patient_id == actor.profile_id
    return {
        "appointments": {
            "total": await _count(db, mine),
            "upcoming": await _count(db, mine, Appointment.date >= day, Appointment.status == S.APPROVED),
            "completed": await _count(db, mine, Appointment.status == S.COMPLETED),
        },
        "doctors": {
            "visited": await _count(db, mine, column=func.distinct(Appointment.doctor_id)),
        },
    }

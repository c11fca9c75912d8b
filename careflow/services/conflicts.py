import enum
import logging
from datetime import date, datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from careflow.core.config import settings
from careflow.core.timefmt import calendar_day
from careflow.models.appointment import Appointment, RELEASED_STATUSES

logger = logging.getLogger(__name__)


class CaregiverKind(str, enum.Enum):
    doctor = "doctor"
    nurse = "nurse"


_COLUMNS = {
    CaregiverKind.doctor: Appointment.doctor_id,
    CaregiverKind.nurse: Appointment.nurse_id,
}


async def has_conflict(
    db: AsyncSession,
    person_id: str,
    person_type: CaregiverKind,
    day: date | datetime,
    start_time: str,
    end_time: str,
    exclude_appointment_id: str | None = None,
) -> bool:
    """
    True si el cuidador ya tiene un turno que se solapa con [start_time, end_time)
    ese mismo día. Intervalos semiabiertos: 09:00-09:30 y 09:30-10:00 no chocan.

    Llamar con el lock del cuidador tomado (ver services/locks.py).
    """
    kind = CaregiverKind(person_type)
    column = _COLUMNS[kind]
    q = select(Appointment.id).where(
        column == person_id,
        Appointment.date == calendar_day(day),
        Appointment.start_time < end_time,   # empieza antes de que termine el nuevo
        Appointment.end_time > start_time,   # termina después de que empieza el nuevo
    )
    if exclude_appointment_id:
        q = q.where(Appointment.id != exclude_appointment_id)
    if settings.CONFLICT_IGNORE_RELEASED:
        q = q.where(Appointment.status.not_in(RELEASED_STATUSES))

    res = await db.execute(q.limit(1))
    conflict_id = res.scalar_one_or_none()
    if conflict_id:
        logger.info(
            "Conflict for %s %s on %s %s-%s (existing appointment %s)",
            kind.value, person_id, calendar_day(day), start_time, end_time, conflict_id,
        )
    return conflict_id is not None

import uuid
import enum
import datetime as dt
from typing import ClassVar
from sqlalchemy import String, Enum, ForeignKey, DateTime, Boolean, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, declared_attr

from careflow.core.db import Base


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc).replace(tzinfo=None)


class DayOfWeek(str, enum.Enum):
    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"


class Shift(str, enum.Enum):
    MORNING = "Morning"
    AFTERNOON = "Afternoon"
    EVENING = "Evening"
    NIGHT = "Night"
    FULL_DAY = "Full Day"


class ShiftSlotMixin:
    """Columnas comunes a los turnos semanales de doctores y enfermeros."""

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    day_of_week: Mapped[DayOfWeek] = mapped_column(Enum(DayOfWeek))
    shift: Mapped[Shift] = mapped_column(Enum(Shift))
    start_time: Mapped[str] = mapped_column(String(5))
    end_time: Mapped[str] = mapped_column(String(5))
    is_available: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, default=_utcnow)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime, default=_utcnow, onupdate=_utcnow)

    # nombre de la columna del cuidador (doctor_id / nurse_id)
    caregiver_column: ClassVar[str]

    @property
    def caregiver_id(self) -> str:
        return getattr(self, self.caregiver_column)


class DoctorSchedule(ShiftSlotMixin, Base):
    __tablename__ = "doctor_schedules"
    __table_args__ = (
        UniqueConstraint("doctor_id", "day_of_week", "shift", name="uq_doctor_schedule_slot"),
    )
    caregiver_column = "doctor_id"

    @declared_attr
    def doctor_id(cls) -> Mapped[str]:
        return mapped_column(String(36), ForeignKey("doctors.id", ondelete="CASCADE"), index=True)


class NurseSchedule(ShiftSlotMixin, Base):
    __tablename__ = "nurse_schedules"
    __table_args__ = (
        UniqueConstraint("nurse_id", "day_of_week", "shift", name="uq_nurse_schedule_slot"),
    )
    caregiver_column = "nurse_id"

    @declared_attr
    def nurse_id(cls) -> Mapped[str]:
        return mapped_column(String(36), ForeignKey("nurses.id", ondelete="CASCADE"), index=True)

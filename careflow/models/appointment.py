import uuid
import enum
import datetime as dt
from sqlalchemy import String, Enum, ForeignKey, Date, DateTime, Boolean, Text, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from careflow.core.db import Base
from careflow.models.user import RoleEnum


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc).replace(tzinfo=None)


class AppointmentStatus(str, enum.Enum):
    PENDING_APPROVAL = "PENDING_APPROVAL"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"


TERMINAL_STATUSES = frozenset({
    AppointmentStatus.COMPLETED,
    AppointmentStatus.REJECTED,
    AppointmentStatus.CANCELLED,
    AppointmentStatus.NO_SHOW,
})

# estados que liberan el horario si CONFLICT_IGNORE_RELEASED está activo
RELEASED_STATUSES = frozenset({AppointmentStatus.CANCELLED, AppointmentStatus.REJECTED})


class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = (
        Index("ix_appt_doctor_date", "doctor_id", "date"),
        Index("ix_appt_nurse_date", "nurse_id", "date"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    patient_id: Mapped[str] = mapped_column(String(36), ForeignKey("patients.id"), index=True)
    doctor_id: Mapped[str] = mapped_column(String(36), ForeignKey("doctors.id"), index=True)
    nurse_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("nurses.id"), nullable=True, index=True)

    date: Mapped[dt.date] = mapped_column(Date, index=True)
    start_time: Mapped[str] = mapped_column(String(5))   # HH:MM
    end_time: Mapped[str] = mapped_column(String(5))     # HH:MM

    status: Mapped[AppointmentStatus] = mapped_column(
        Enum(AppointmentStatus), default=AppointmentStatus.PENDING_APPROVAL, index=True
    )

    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    cancel_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    is_first_visit: Mapped[bool] = mapped_column(Boolean, default=False)
    is_virtual: Mapped[bool] = mapped_column(Boolean, default=False)
    virtual_meeting_link: Mapped[str | None] = mapped_column(String(1024), nullable=True)

    reminder_sent: Mapped[dt.datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, default=_utcnow)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime, default=_utcnow, onupdate=_utcnow)

    patient = relationship("Patient")
    doctor = relationship("Doctor")
    nurse = relationship("Nurse")


class AppointmentStatusChange(Base):
    __tablename__ = "appointment_status_changes"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    appointment_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("appointments.id", ondelete="CASCADE"), index=True
    )
    from_status: Mapped[AppointmentStatus | None] = mapped_column(Enum(AppointmentStatus), nullable=True)
    to_status: Mapped[AppointmentStatus] = mapped_column(Enum(AppointmentStatus))
    actor_role: Mapped[RoleEnum] = mapped_column(Enum(RoleEnum))
    actor_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    forced: Mapped[bool] = mapped_column(Boolean, default=False)
    changed_at: Mapped[dt.datetime] = mapped_column(DateTime, default=_utcnow, index=True)

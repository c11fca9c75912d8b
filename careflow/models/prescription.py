from __future__ import annotations
import enum
import uuid
from datetime import datetime, timezone
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, DateTime, ForeignKey, Enum
from careflow.core.db import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class PrescriptionStatus(str, enum.Enum):
    issued = "issued"
    processing = "processing"
    fulfilled = "fulfilled"
    cancelled = "cancelled"


class Prescription(Base):
    __tablename__ = "prescriptions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    doctor_id: Mapped[str] = mapped_column(ForeignKey("doctors.id"), index=True)
    patient_id: Mapped[str] = mapped_column(ForeignKey("patients.id"), index=True)
    # sólo cambia vía reasignación explícita (services/records.py)
    appointment_id: Mapped[str] = mapped_column(ForeignKey("appointments.id"), index=True)

    medication_name: Mapped[str] = mapped_column(String(255))
    dosage: Mapped[str] = mapped_column(String(120))
    frequency: Mapped[str] = mapped_column(String(120))
    duration: Mapped[str] = mapped_column(String(120))
    instructions: Mapped[str | None] = mapped_column(Text)

    status: Mapped[PrescriptionStatus] = mapped_column(
        Enum(PrescriptionStatus), default=PrescriptionStatus.issued, index=True
    )
    fulfilled_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    fulfilled_by: Mapped[str | None] = mapped_column(String(36), nullable=True)   # nurse id

    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow)

import uuid
import enum
from datetime import datetime, timezone
from sqlalchemy import String, ForeignKey, DateTime, Enum, Text, Boolean
from sqlalchemy.orm import Mapped, mapped_column
from careflow.core.db import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Diagnosis(Base):
    __tablename__ = "diagnoses"
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    patient_id: Mapped[str] = mapped_column(String(36), ForeignKey("patients.id"), index=True)
    doctor_id:  Mapped[str] = mapped_column(String(36), ForeignKey("doctors.id"), index=True)
    # obligatorio: sin turno no hay diagnóstico
    appointment_id: Mapped[str] = mapped_column(String(36), ForeignKey("appointments.id"), index=True)

    diagnosis_name: Mapped[str] = mapped_column(String(255))
    diagnosis_code: Mapped[str | None] = mapped_column(String(32), nullable=True)   # CIE-10
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_chronic: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, index=True)


class LabReportStatus(str, enum.Enum):
    ordered = "ordered"
    sample_collected = "sample_collected"
    processing = "processing"
    completed = "completed"
    cancelled = "cancelled"


class LabReport(Base):
    __tablename__ = "lab_reports"
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    patient_id: Mapped[str] = mapped_column(String(36), ForeignKey("patients.id"), index=True)
    ordered_by_id: Mapped[str] = mapped_column(String(36), ForeignKey("doctors.id"), index=True)
    uploaded_by_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("nurses.id"), nullable=True)
    appointment_id: Mapped[str] = mapped_column(String(36), ForeignKey("appointments.id"), index=True)

    test_name: Mapped[str] = mapped_column(String(255))
    test_type: Mapped[str | None] = mapped_column(String(120), nullable=True)
    status: Mapped[LabReportStatus] = mapped_column(Enum(LabReportStatus), default=LabReportStatus.ordered, index=True)
    comments: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_urgent: Mapped[bool] = mapped_column(Boolean, default=False)
    results_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, index=True)

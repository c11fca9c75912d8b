"""initial scheduling schema

Revision ID: 5b2f0c9e1a7d
Revises:
Create Date: 2026-10-16 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '5b2f0c9e1a7d'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ROLE = sa.Enum("patient", "doctor", "nurse", "admin", name="roleenum")
SEX = sa.Enum("male", "female", "other", name="sexenum")
APPT_STATUS = sa.Enum(
    "PENDING_APPROVAL", "APPROVED", "REJECTED", "COMPLETED", "CANCELLED", "NO_SHOW",
    name="appointmentstatus",
)
DAY = sa.Enum("MONDAY", "TUESDAY", "WEDNESDAY", "THURSDAY", "FRIDAY", "SATURDAY", "SUNDAY", name="dayofweek")
SHIFT = sa.Enum("MORNING", "AFTERNOON", "EVENING", "NIGHT", "FULL_DAY", name="shift")
LAB_STATUS = sa.Enum("ordered", "sample_collected", "processing", "completed", "cancelled", name="labreportstatus")
RX_STATUS = sa.Enum("issued", "processing", "fulfilled", "cancelled", name="prescriptionstatus")


def _profile(name: str, *extra: sa.Column) -> None:
    op.create_table(
        name,
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id"), nullable=True, unique=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(50), nullable=True),
        *extra,
    )


def _schedule(name: str, owner: str, owner_table: str) -> None:
    op.create_table(
        name,
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(owner, sa.String(36), sa.ForeignKey(f"{owner_table}.id", ondelete="CASCADE"), nullable=False),
        sa.Column("day_of_week", DAY, nullable=False),
        sa.Column("shift", SHIFT, nullable=False),
        sa.Column("start_time", sa.String(5), nullable=False),
        sa.Column("end_time", sa.String(5), nullable=False),
        sa.Column("is_available", sa.Boolean, nullable=False),
        sa.Column("created_at", sa.DateTime, nullable=False),
        sa.Column("updated_at", sa.DateTime, nullable=False),
        sa.UniqueConstraint(owner, "day_of_week", "shift", name=f"uq_{owner.removesuffix('_id')}_schedule_slot"),
    )
    op.create_index(f"ix_{name}_{owner}", name, [owner])


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("role", ROLE, nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    _profile(
        "patients",
        sa.Column("blood_type", sa.String(8), nullable=True),
        sa.Column("sex", SEX, nullable=True),
        sa.Column("birth_date", sa.Date, nullable=True),
    )
    _profile(
        "doctors",
        sa.Column("specialty", sa.String(100), nullable=False),
        sa.Column("license", sa.String(64), nullable=True),
    )
    _profile(
        "nurses",
        sa.Column("department", sa.String(100), nullable=True),
        sa.Column("license", sa.String(64), nullable=True),
    )

    op.create_table(
        "appointments",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("patient_id", sa.String(36), sa.ForeignKey("patients.id"), nullable=False),
        sa.Column("doctor_id", sa.String(36), sa.ForeignKey("doctors.id"), nullable=False),
        sa.Column("nurse_id", sa.String(36), sa.ForeignKey("nurses.id"), nullable=True),
        sa.Column("date", sa.Date, nullable=False),
        sa.Column("start_time", sa.String(5), nullable=False),
        sa.Column("end_time", sa.String(5), nullable=False),
        sa.Column("status", APPT_STATUS, nullable=False),
        sa.Column("reason", sa.Text, nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("rejection_reason", sa.Text, nullable=True),
        sa.Column("cancel_reason", sa.Text, nullable=True),
        sa.Column("is_first_visit", sa.Boolean, nullable=False),
        sa.Column("is_virtual", sa.Boolean, nullable=False),
        sa.Column("virtual_meeting_link", sa.String(1024), nullable=True),
        sa.Column("reminder_sent", sa.DateTime, nullable=True),
        sa.Column("created_at", sa.DateTime, nullable=False),
        sa.Column("updated_at", sa.DateTime, nullable=False),
    )
    # solapamientos: siempre se filtra por cuidador + día
    op.create_index("ix_appt_doctor_date", "appointments", ["doctor_id", "date"])
    op.create_index("ix_appt_nurse_date", "appointments", ["nurse_id", "date"])
    op.create_index("ix_appointments_patient_id", "appointments", ["patient_id"])
    op.create_index("ix_appointments_doctor_id", "appointments", ["doctor_id"])
    op.create_index("ix_appointments_nurse_id", "appointments", ["nurse_id"])
    op.create_index("ix_appointments_date", "appointments", ["date"])
    op.create_index("ix_appointments_status", "appointments", ["status"])

    op.create_table(
        "appointment_status_changes",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("appointment_id", sa.String(36),
                  sa.ForeignKey("appointments.id", ondelete="CASCADE"), nullable=False),
        sa.Column("from_status", APPT_STATUS, nullable=True),
        sa.Column("to_status", APPT_STATUS, nullable=False),
        sa.Column("actor_role", ROLE, nullable=False),
        sa.Column("actor_id", sa.String(36), nullable=True),
        sa.Column("reason", sa.Text, nullable=True),
        sa.Column("forced", sa.Boolean, nullable=False),
        sa.Column("changed_at", sa.DateTime, nullable=False),
    )
    op.create_index("ix_appointment_status_changes_appointment_id", "appointment_status_changes", ["appointment_id"])
    op.create_index("ix_appointment_status_changes_changed_at", "appointment_status_changes", ["changed_at"])

    _schedule("doctor_schedules", "doctor_id", "doctors")
    _schedule("nurse_schedules", "nurse_id", "nurses")

    op.create_table(
        "diagnoses",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("patient_id", sa.String(36), sa.ForeignKey("patients.id"), nullable=False, index=True),
        sa.Column("doctor_id", sa.String(36), sa.ForeignKey("doctors.id"), nullable=False, index=True),
        sa.Column("appointment_id", sa.String(36), sa.ForeignKey("appointments.id"), nullable=False, index=True),
        sa.Column("diagnosis_name", sa.String(255), nullable=False),
        sa.Column("diagnosis_code", sa.String(32), nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("is_chronic", sa.Boolean, nullable=False),
        sa.Column("created_at", sa.DateTime, nullable=False, index=True),
    )

    op.create_table(
        "lab_reports",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("patient_id", sa.String(36), sa.ForeignKey("patients.id"), nullable=False, index=True),
        sa.Column("ordered_by_id", sa.String(36), sa.ForeignKey("doctors.id"), nullable=False, index=True),
        sa.Column("uploaded_by_id", sa.String(36), sa.ForeignKey("nurses.id"), nullable=True),
        sa.Column("appointment_id", sa.String(36), sa.ForeignKey("appointments.id"), nullable=False, index=True),
        sa.Column("test_name", sa.String(255), nullable=False),
        sa.Column("test_type", sa.String(120), nullable=True),
        sa.Column("status", LAB_STATUS, nullable=False, index=True),
        sa.Column("comments", sa.Text, nullable=True),
        sa.Column("is_urgent", sa.Boolean, nullable=False),
        sa.Column("results_date", sa.DateTime, nullable=True),
        sa.Column("created_at", sa.DateTime, nullable=False, index=True),
    )

    op.create_table(
        "prescriptions",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("doctor_id", sa.String(36), sa.ForeignKey("doctors.id"), nullable=False, index=True),
        sa.Column("patient_id", sa.String(36), sa.ForeignKey("patients.id"), nullable=False, index=True),
        sa.Column("appointment_id", sa.String(36), sa.ForeignKey("appointments.id"), nullable=False, index=True),
        sa.Column("medication_name", sa.String(255), nullable=False),
        sa.Column("dosage", sa.String(120), nullable=False),
        sa.Column("frequency", sa.String(120), nullable=False),
        sa.Column("duration", sa.String(120), nullable=False),
        sa.Column("instructions", sa.Text, nullable=True),
        sa.Column("status", RX_STATUS, nullable=False, index=True),
        sa.Column("fulfilled_date", sa.DateTime, nullable=True),
        sa.Column("fulfilled_by", sa.String(36), nullable=True),
        sa.Column("created_at", sa.DateTime, nullable=False),
    )


def downgrade() -> None:
    # orden inverso por las FKs
    op.drop_table("prescriptions")
    op.drop_table("lab_reports")
    op.drop_table("diagnoses")
    op.drop_table("nurse_schedules")
    op.drop_table("doctor_schedules")
    op.drop_table("appointment_status_changes")
    op.drop_table("appointments")
    op.drop_table("nurses")
    op.drop_table("doctors")
    op.drop_table("patients")
    op.drop_table("users")

"""
Downstream clinical records (diagnoses, lab reports, prescriptions).

None of them can exist without a resolvable appointment. Their
``appointment_id`` is fixed at creation and only changes through
:meth:`ClinicalRecordService.reassign_appointment`, which resolves the new
appointment again.
"""
import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from careflow.core.db import unit_of_work
from careflow.core.errors import InvalidArgumentError, NotFoundError, PreconditionFailedError
from careflow.models.appointment import Appointment
from careflow.models.clinical import Diagnosis, LabReport, LabReportStatus
from careflow.models.doctor import Doctor
from careflow.models.nurse import Nurse
from careflow.models.patient import Patient
from careflow.models.prescription import Prescription, PrescriptionStatus
from careflow.models.user import RoleEnum
from careflow.services.appointments import AppointmentService, appointment_service
from careflow.services.policy import Action, Actor, authorize, visible

logger = logging.getLogger(__name__)


class RecordGateway:
    """Resolves the appointment a clinical record hangs from."""

    def __init__(self, appointments: AppointmentService | None = None) -> None:
        self._appointments = appointments or appointment_service

    async def resolve(self, db: AsyncSession, appointment_id: str, patient_id: str | None = None) -> Appointment:
        ap = await self._appointments.get_for_record(db, appointment_id)
        if patient_id and ap.patient_id != patient_id:
            raise InvalidArgumentError("Appointment belongs to a different patient")
        return ap


class ClinicalRecordService:
    model: type
    label: str
    create_action: Action
    update_action: Action
    delete_action: Action
    status_enum: type | None = None
    # (campo, modelo, etiqueta) que deben existir al crear
    references: tuple = (("patient_id", Patient, "Patient"),)

    def __init__(self, gateway: RecordGateway | None = None) -> None:
        self.gateway = gateway or RecordGateway()

    # ---------- hooks ----------
    def _before_update(self, record, data: dict, actor: Actor) -> None:
        pass

    def _before_delete(self, record) -> None:
        pass

    # ---------- helpers ----------
    async def _get_or_404(self, db: AsyncSession, record_id: str):
        res = await db.execute(select(self.model).where(self.model.id == record_id))
        record = res.scalar_one_or_none()
        if not record:
            raise NotFoundError(f"{self.label} with ID {record_id} not found")
        return record

    async def _check_references(self, db: AsyncSession, data: dict) -> None:
        for field, model, what in self.references:
            ident = data.get(field)
            if ident is None:
                continue
            res = await db.execute(select(model.id).where(model.id == ident))
            if not res.scalar_one_or_none():
                raise NotFoundError(f"{what} with ID {ident} not found")

    # ---------- CRUD ----------
    async def create(self, db: AsyncSession, actor: Actor, payload):
        authorize(actor, self.create_action, payload)
        data = payload.model_dump()
        await self._check_references(db, data)
        await self.gateway.resolve(db, payload.appointment_id, payload.patient_id)

        record = self.model(**data)
        async with unit_of_work(db):
            db.add(record)
            await db.flush()
        logger.info("%s %s created for appointment %s", self.label, record.id, record.appointment_id)
        return record

    async def get(self, db: AsyncSession, actor: Actor, record_id: str):
        record = await self._get_or_404(db, record_id)
        authorize(actor, Action.record_read, record)
        return record

    async def list_for(
        self,
        db: AsyncSession,
        actor: Actor,
        patient_id: str | None = None,
        appointment_id: str | None = None,
    ):
        q = select(self.model).order_by(self.model.created_at.desc())
        if patient_id:
            q = q.where(self.model.patient_id == patient_id)
        if appointment_id:
            q = q.where(self.model.appointment_id == appointment_id)
        if actor.role == RoleEnum.patient:
            q = q.where(self.model.patient_id == actor.profile_id)
        rows = (await db.execute(q)).scalars().all()
        return visible(actor, rows, Action.record_read)

    async def _apply(self, db: AsyncSession, actor: Actor, record_id: str, data: dict):
        record = await self._get_or_404(db, record_id)
        authorize(actor, self.update_action, record)
        await self._check_references(db, data)
        self._before_update(record, data, actor)
        async with unit_of_work(db):
            for k, v in data.items():
                setattr(record, k, v)
        return record

    async def update(self, db: AsyncSession, actor: Actor, record_id: str, patch):
        data = {k: v for k, v in patch.model_dump(exclude_unset=True).items() if v is not None}
        return await self._apply(db, actor, record_id, data)

    async def set_status(self, db: AsyncSession, actor: Actor, record_id: str, status):
        record = await self._apply(db, actor, record_id, {"status": self.status_enum(status)})
        logger.info("%s %s -> %s", self.label, record.id, record.status.value)
        return record

    async def reassign_appointment(self, db: AsyncSession, actor: Actor, record_id: str, appointment_id: str):
        record = await self._get_or_404(db, record_id)
        authorize(actor, self.update_action, record)
        await self.gateway.resolve(db, appointment_id, record.patient_id)
        async with unit_of_work(db):
            record.appointment_id = appointment_id
        logger.info("%s %s moved to appointment %s", self.label, record.id, appointment_id)
        return record

    async def delete(self, db: AsyncSession, actor: Actor, record_id: str) -> None:
        record = await self._get_or_404(db, record_id)
        authorize(actor, self.delete_action, record)
        self._before_delete(record)
        async with unit_of_work(db):
            await db.delete(record)
        logger.info("%s %s deleted", self.label, record_id)


class DiagnosisService(ClinicalRecordService):
    model = Diagnosis
    label = "Diagnosis"
    create_action = Action.diagnosis_write
    update_action = Action.diagnosis_write
    delete_action = Action.diagnosis_write
    references = (("patient_id", Patient, "Patient"), ("doctor_id", Doctor, "Doctor"))


class LabReportService(ClinicalRecordService):
    model = LabReport
    label = "Lab report"
    status_enum = LabReportStatus
    create_action = Action.lab_report_create
    update_action = Action.lab_report_update
    delete_action = Action.lab_report_delete
    references = (
        ("patient_id", Patient, "Patient"),
        ("ordered_by_id", Doctor, "Doctor"),
        ("uploaded_by_id", Nurse, "Nurse"),
    )

    def _before_update(self, record: LabReport, data: dict, actor: Actor) -> None:
        new_status = data.get("status")
        if new_status is None:
            data.pop("status", None)
            return
        if new_status == LabReportStatus.completed and record.status != LabReportStatus.completed:
            data.setdefault("results_date", datetime.now())
            if actor.role == RoleEnum.nurse and not record.uploaded_by_id:
                data.setdefault("uploaded_by_id", actor.profile_id)

    def _before_delete(self, record: LabReport) -> None:
        if record.status == LabReportStatus.completed:
            raise PreconditionFailedError("Cannot delete a lab report that has already been completed")


class PrescriptionService(ClinicalRecordService):
    model = Prescription
    label = "Prescription"
    status_enum = PrescriptionStatus
    create_action = Action.prescription_create
    update_action = Action.prescription_update
    delete_action = Action.prescription_delete
    references = (("patient_id", Patient, "Patient"), ("doctor_id", Doctor, "Doctor"))

    def _before_update(self, record: Prescription, data: dict, actor: Actor) -> None:
        new_status = data.get("status")
        if new_status is None:
            data.pop("status", None)
            return
        if record.status == PrescriptionStatus.fulfilled and new_status != PrescriptionStatus.fulfilled:
            raise PreconditionFailedError("Cannot modify a prescription that has already been fulfilled")
        if new_status == PrescriptionStatus.fulfilled and record.status != PrescriptionStatus.fulfilled:
            data["fulfilled_date"] = datetime.now()
            if actor.role == RoleEnum.nurse:
                data["fulfilled_by"] = actor.profile_id

    def _before_delete(self, record: Prescription) -> None:
        if record.status == PrescriptionStatus.fulfilled:
            raise PreconditionFailedError("Cannot delete a prescription that has already been fulfilled")


diagnosis_service = DiagnosisService()
lab_report_service = LabReportService()
prescription_service = PrescriptionService()

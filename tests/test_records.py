from datetime import date

import pytest
import pytest_asyncio

from careflow.core.errors import ForbiddenError, InvalidArgumentError, NotFoundError, PreconditionFailedError
from careflow.models import LabReportStatus, PrescriptionStatus
from careflow.schemas.appointment import AppointmentCreate
from careflow.schemas.clinical import (
    DiagnosisCreate,
    DiagnosisUpdate,
    LabReportCreate,
    PrescriptionCreate,
    PrescriptionUpdate,
)
from careflow.services.records import diagnosis_service, lab_report_service, prescription_service


async def _appointment(service, db, seed, start, patient=None):
    patient = patient or seed.patient
    ap = await service.create(db, seed.admin_actor, AppointmentCreate(
        patient_id=patient.id, doctor_id=seed.doctor.id,
        date=date(2030, 1, 10), start_time=start, end_time=start[:3] + "30",
    ))
    return ap.id


@pytest_asyncio.fixture
async def appointment_id(service, db, seed):
    return await _appointment(service, db, seed, "09:00")


def _diagnosis(seed, appointment_id, **kw):
    return DiagnosisCreate(
        patient_id=kw.get("patient_id", seed.patient.id),
        doctor_id=seed.doctor.id,
        appointment_id=appointment_id,
        diagnosis_name="Hypertension",
        diagnosis_code="I10",
    )


def _prescription(seed, appointment_id):
    return PrescriptionCreate(
        patient_id=seed.patient.id, doctor_id=seed.doctor.id, appointment_id=appointment_id,
        medication_name="Enalapril", dosage="10 mg", frequency="every 12h", duration="30 days",
    )


def _lab(seed, appointment_id):
    return LabReportCreate(
        patient_id=seed.patient.id, ordered_by_id=seed.doctor.id, appointment_id=appointment_id,
        test_name="Lipid panel",
    )


# ---------- diagnoses ----------
@pytest.mark.asyncio
async def test_diagnosis_requires_existing_appointment(db, seed):
    with pytest.raises(NotFoundError, match="Appointment with ID ghost not found"):
        await diagnosis_service.create(db, seed.doctor_actor, _diagnosis(seed, "ghost"))


@pytest.mark.asyncio
async def test_diagnosis_appointment_must_belong_to_patient(db, seed, appointment_id):
    with pytest.raises(InvalidArgumentError):
        await diagnosis_service.create(
            db, seed.doctor_actor, _diagnosis(seed, appointment_id, patient_id=seed.other_patient.id)
        )


@pytest.mark.asyncio
async def test_diagnosis_written_by_its_doctor(db, seed, appointment_id):
    with pytest.raises(ForbiddenError):
        await diagnosis_service.create(db, seed.other_doctor_actor, _diagnosis(seed, appointment_id))
    with pytest.raises(ForbiddenError):
        await diagnosis_service.create(db, seed.nurse_actor, _diagnosis(seed, appointment_id))

    dx = await diagnosis_service.create(db, seed.doctor_actor, _diagnosis(seed, appointment_id))
    assert dx.appointment_id == appointment_id

    updated = await diagnosis_service.update(db, seed.doctor_actor, dx.id, DiagnosisUpdate(is_chronic=True))
    assert updated.is_chronic is True


@pytest.mark.asyncio
async def test_patient_only_sees_own_records(db, seed, service, appointment_id):
    other_ap = await _appointment(service, db, seed, "10:00", patient=seed.other_patient)
    await diagnosis_service.create(db, seed.doctor_actor, _diagnosis(seed, appointment_id))
    await diagnosis_service.create(
        db, seed.doctor_actor, _diagnosis(seed, other_ap, patient_id=seed.other_patient.id)
    )

    mine = await diagnosis_service.list_for(db, seed.patient_actor)
    assert [d.patient_id for d in mine] == [seed.patient.id]
    assert len(await diagnosis_service.list_for(db, seed.doctor_actor)) == 2
    assert len(await diagnosis_service.list_for(db, seed.admin_actor, appointment_id=other_ap)) == 1


# ---------- re-resolution ----------
@pytest.mark.asyncio
async def test_reassign_resolves_new_appointment(db, seed, service, appointment_id):
    second = await _appointment(service, db, seed, "11:00")
    dx_id = (await diagnosis_service.create(db, seed.doctor_actor, _diagnosis(seed, appointment_id))).id

    with pytest.raises(NotFoundError):
        await diagnosis_service.reassign_appointment(db, seed.doctor_actor, dx_id, "ghost")
    assert (await diagnosis_service.get(db, seed.admin_actor, dx_id)).appointment_id == appointment_id

    moved = await diagnosis_service.reassign_appointment(db, seed.doctor_actor, dx_id, second)
    assert moved.appointment_id == second


# ---------- prescriptions ----------
@pytest.mark.asyncio
async def test_fulfilled_prescription_is_locked(db, seed, appointment_id):
    rx = await prescription_service.create(db, seed.doctor_actor, _prescription(seed, appointment_id))
    assert rx.status == PrescriptionStatus.issued
    rx_id = rx.id

    fulfilled = await prescription_service.set_status(db, seed.nurse_actor, rx_id, "fulfilled")
    assert fulfilled.status == PrescriptionStatus.fulfilled
    assert fulfilled.fulfilled_date is not None
    assert fulfilled.fulfilled_by == seed.nurse.id

    with pytest.raises(PreconditionFailedError):
        await prescription_service.set_status(db, seed.doctor_actor, rx_id, PrescriptionStatus.cancelled)
    with pytest.raises(PreconditionFailedError):
        await prescription_service.update(db, seed.doctor_actor, rx_id,
                                          PrescriptionUpdate(status=PrescriptionStatus.issued))
    with pytest.raises(PreconditionFailedError, match="already been fulfilled"):
        await prescription_service.delete(db, seed.doctor_actor, rx_id)


@pytest.mark.asyncio
async def test_prescription_delete_by_prescriber(db, seed, appointment_id):
    rx_id = (await prescription_service.create(db, seed.doctor_actor, _prescription(seed, appointment_id))).id

    with pytest.raises(ForbiddenError):
        await prescription_service.delete(db, seed.nurse_actor, rx_id)
    await prescription_service.delete(db, seed.doctor_actor, rx_id)
    with pytest.raises(NotFoundError):
        await prescription_service.get(db, seed.admin_actor, rx_id)


# ---------- lab reports ----------
@pytest.mark.asyncio
async def test_completed_lab_report(db, seed, appointment_id):
    lab = await lab_report_service.create(db, seed.doctor_actor, _lab(seed, appointment_id))
    assert lab.status == LabReportStatus.ordered
    lab_id = lab.id

    done = await lab_report_service.set_status(db, seed.nurse_actor, lab_id, LabReportStatus.completed)
    assert done.results_date is not None
    assert done.uploaded_by_id == seed.nurse.id

    with pytest.raises(PreconditionFailedError):
        await lab_report_service.delete(db, seed.doctor_actor, lab_id)


@pytest.mark.asyncio
async def test_lab_report_unknown_nurse(db, seed, appointment_id):
    payload = _lab(seed, appointment_id)
    payload.uploaded_by_id = "ghost-nurse"
    with pytest.raises(NotFoundError, match="Nurse with ID ghost-nurse not found"):
        await lab_report_service.create(db, seed.doctor_actor, payload)

import asyncio

import pytest
from pydantic import ValidationError
from sqlalchemy import func, select

from careflow.core.errors import ConflictError, ForbiddenError, InvalidArgumentError, NotFoundError
from careflow.models import DayOfWeek, Doctor, DoctorSchedule, Shift
from careflow.schemas.schedule import DoctorScheduleCreate, NurseScheduleCreate, ShiftSlotUpdate
from careflow.services.conflicts import CaregiverKind
from careflow.services.policy import Action
from careflow.services.schedules import ShiftRegistry, doctor_shifts, nurse_shifts


def _doctor_slot(seed, day=DayOfWeek.MONDAY, shift=Shift.MORNING, start="07:00", end="13:00", **kw):
    return DoctorScheduleCreate(
        doctor_id=kw.pop("doctor_id", seed.doctor.id),
        day_of_week=day, shift=shift, start_time=start, end_time=end, **kw,
    )


@pytest.mark.asyncio
async def test_create_defaults_to_unavailable(db, seed):
    slot = await doctor_shifts.create(db, seed.doctor_actor, _doctor_slot(seed))
    assert slot.is_available is False
    assert slot.doctor_id == seed.doctor.id
    assert slot.caregiver_id == seed.doctor.id


@pytest.mark.asyncio
async def test_one_slot_per_day_and_shift(db, seed):
    await doctor_shifts.create(db, seed.admin_actor, _doctor_slot(seed))

    with pytest.raises(ConflictError, match="already has a schedule for Monday, Morning shift"):
        await doctor_shifts.create(db, seed.admin_actor, _doctor_slot(seed, start="08:00", end="12:00"))

    # otro turno el mismo día puede solaparse
    afternoon = await doctor_shifts.create(
        db, seed.admin_actor, _doctor_slot(seed, shift=Shift.AFTERNOON, start="12:00", end="18:00")
    )
    assert afternoon.shift == Shift.AFTERNOON

    # otro doctor, misma clave: sin conflicto
    await doctor_shifts.create(db, seed.admin_actor, _doctor_slot(seed, doctor_id=seed.other_doctor.id))


@pytest.mark.asyncio
async def test_update_checks_uniqueness_excluding_itself(db, seed):
    monday = await doctor_shifts.create(db, seed.admin_actor, _doctor_slot(seed))
    tuesday = await doctor_shifts.create(db, seed.admin_actor, _doctor_slot(seed, day=DayOfWeek.TUESDAY))
    monday_id, tuesday_id = monday.id, tuesday.id

    with pytest.raises(ConflictError):
        await doctor_shifts.update(db, seed.admin_actor, tuesday_id, ShiftSlotUpdate(day_of_week=DayOfWeek.MONDAY))

    same_key = await doctor_shifts.update(
        db, seed.admin_actor, monday_id, ShiftSlotUpdate(day_of_week=DayOfWeek.MONDAY, is_available=True)
    )
    assert same_key.is_available is True

    moved = await doctor_shifts.update(db, seed.admin_actor, tuesday_id, ShiftSlotUpdate(shift=Shift.NIGHT))
    assert moved.shift == Shift.NIGHT


def test_caregiver_cannot_be_changed():
    with pytest.raises(ValidationError):
        ShiftSlotUpdate(doctor_id="someone-else")


@pytest.mark.asyncio
async def test_time_format_is_validated(db, seed):
    with pytest.raises(ValidationError):
        _doctor_slot(seed, start="7:00")

    payload = _doctor_slot(seed)
    payload.end_time = "25:00"
    with pytest.raises(InvalidArgumentError):
        await doctor_shifts.create(db, seed.admin_actor, payload)


@pytest.mark.asyncio
async def test_ownership(db, seed):
    with pytest.raises(ForbiddenError):
        await doctor_shifts.create(db, seed.other_doctor_actor, _doctor_slot(seed))
    with pytest.raises(ForbiddenError):
        await doctor_shifts.create(db, seed.nurse_actor, _doctor_slot(seed))

    slot_id = (await doctor_shifts.create(db, seed.doctor_actor, _doctor_slot(seed))).id
    with pytest.raises(ForbiddenError):
        await doctor_shifts.delete(db, seed.other_doctor_actor, slot_id)
    with pytest.raises(ForbiddenError):
        await doctor_shifts.list_all(db, seed.patient_actor)

    await doctor_shifts.delete(db, seed.doctor_actor, slot_id)
    with pytest.raises(NotFoundError):
        await doctor_shifts.get(db, seed.admin_actor, slot_id)


@pytest.mark.asyncio
async def test_unknown_caregiver(db, seed):
    with pytest.raises(NotFoundError):
        await doctor_shifts.create(db, seed.admin_actor, _doctor_slot(seed, doctor_id="ghost"))
    with pytest.raises(NotFoundError):
        await nurse_shifts.list_by_caregiver(db, seed.admin_actor, "ghost")


@pytest.mark.asyncio
async def test_nurse_registry_is_independent(db, seed):
    await doctor_shifts.create(db, seed.admin_actor, _doctor_slot(seed))
    slot = await nurse_shifts.create(db, seed.nurse_actor, NurseScheduleCreate(
        nurse_id=seed.nurse.id, day_of_week=DayOfWeek.MONDAY, shift=Shift.MORNING,
        start_time="07:00", end_time="15:00", is_available=True,
    ))
    assert slot.nurse_id == seed.nurse.id
    assert [s.id for s in await nurse_shifts.list_by_caregiver(db, seed.doctor_actor, seed.nurse.id)] == [slot.id]


@pytest.mark.asyncio
async def test_listing_is_ordered_by_week(db, seed):
    registry: ShiftRegistry = doctor_shifts
    for day, shift in [
        (DayOfWeek.FRIDAY, Shift.MORNING),
        (DayOfWeek.MONDAY, Shift.NIGHT),
        (DayOfWeek.MONDAY, Shift.MORNING),
    ]:
        await registry.create(db, seed.admin_actor, _doctor_slot(seed, day=day, shift=shift))

    slots = await registry.list_by_caregiver(db, seed.nurse_actor, seed.doctor.id)
    assert [(s.day_of_week, s.shift) for s in slots] == [
        (DayOfWeek.MONDAY, Shift.MORNING),
        (DayOfWeek.MONDAY, Shift.NIGHT),
        (DayOfWeek.FRIDAY, Shift.MORNING),
    ]


@pytest.mark.asyncio
async def test_concurrent_creates_keep_one_slot_per_key(session_factory, seed, locks):
    registry = ShiftRegistry(DoctorSchedule, Doctor, CaregiverKind.doctor, Action.doctor_shift_write, locks=locks)

    async def create(start, end):
        async with session_factory() as session:
            return await registry.create(session, seed.doctor_actor, _doctor_slot(seed, start=start, end=end))

    results = await asyncio.gather(create("07:00", "13:00"), create("08:00", "12:00"), return_exceptions=True)

    assert sum(isinstance(r, DoctorSchedule) for r in results) == 1
    assert sum(isinstance(r, ConflictError) for r in results) == 1
    async with session_factory() as session:
        count = (await session.execute(select(func.count(DoctorSchedule.id)))).scalar_one()
    assert count == 1
    assert len(locks) == 0

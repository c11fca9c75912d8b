"""
Weekly shift registry for doctors and nurses.

Both caregiver kinds share the same rules but live in separate tables, so the
registry is instantiated once per kind. At most one slot per
(caregiver, day_of_week, shift); different shifts on the same day may overlap.
Booking does not consult this registry.
"""
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from careflow.core.db import unit_of_work
from careflow.core.errors import ConflictError, NotFoundError
from careflow.core.timefmt import parse_hhmm
from careflow.models.doctor import Doctor
from careflow.models.nurse import Nurse
from careflow.models.schedule import DayOfWeek, DoctorSchedule, NurseSchedule, Shift
from careflow.services.conflicts import CaregiverKind
from careflow.services.locks import CaregiverLocks, caregiver_locks
from careflow.services.policy import Action, Actor, authorize

logger = logging.getLogger(__name__)

_DAY_ORDER = {day: i for i, day in enumerate(DayOfWeek)}
_SHIFT_ORDER = {shift: i for i, shift in enumerate(Shift)}


class ShiftRegistry:
    def __init__(
        self,
        model: type[DoctorSchedule] | type[NurseSchedule],
        caregiver_model: type[Doctor] | type[Nurse],
        kind: CaregiverKind,
        write_action: Action,
        locks: CaregiverLocks | None = None,
    ) -> None:
        self.model = model
        self.caregiver_model = caregiver_model
        self.kind = kind
        self.write_action = write_action
        self.label = kind.value.capitalize()
        self._locks = locks or caregiver_locks

    @property
    def _caregiver_col(self):
        return getattr(self.model, self.model.caregiver_column)

    def _lock_key(self, caregiver_id: str) -> tuple[str, str]:
        return f"{self.kind.value}_shift", caregiver_id

    def _duplicate(self, day: DayOfWeek, shift: Shift) -> ConflictError:
        return ConflictError(
            f"{self.label} already has a schedule for {DayOfWeek(day).value}, {Shift(shift).value} shift."
        )

    async def _resolve_caregiver(self, db: AsyncSession, caregiver_id: str) -> None:
        res = await db.execute(select(self.caregiver_model.id).where(self.caregiver_model.id == caregiver_id))
        if not res.scalar_one_or_none():
            raise NotFoundError(f"{self.label} with ID {caregiver_id} not found")

    async def _ensure_unique(
        self, db: AsyncSession, caregiver_id: str, day: DayOfWeek, shift: Shift, exclude_id: str | None = None
    ) -> None:
        q = select(self.model.id).where(
            self._caregiver_col == caregiver_id,
            self.model.day_of_week == day,
            self.model.shift == shift,
        )
        if exclude_id:
            q = q.where(self.model.id != exclude_id)
        if (await db.execute(q.limit(1))).scalar_one_or_none():
            logger.warning("Duplicate %s shift %s/%s for %s", self.kind.value, day, shift, caregiver_id)
            raise self._duplicate(day, shift)

    # ---------- create ----------
    async def create(self, db: AsyncSession, actor: Actor, payload):
        parse_hhmm(payload.start_time, "start_time")
        parse_hhmm(payload.end_time, "end_time")
        authorize(actor, self.write_action, payload)

        caregiver_id = getattr(payload, self.model.caregiver_column)
        async with self._locks.hold(self._lock_key(caregiver_id)):
            try:
                async with unit_of_work(db):
                    await self._resolve_caregiver(db, caregiver_id)
                    await self._ensure_unique(db, caregiver_id, payload.day_of_week, payload.shift)
                    slot = self.model(**payload.model_dump())
                    db.add(slot)
                    await db.flush()
            except IntegrityError as exc:
                # carrera con otro proceso: la unique constraint manda
                raise self._duplicate(payload.day_of_week, payload.shift) from exc

        logger.info("%s shift %s created for %s (%s, %s)",
                    self.label, slot.id, caregiver_id, slot.day_of_week.value, slot.shift.value)
        return slot

    # ---------- read ----------
    async def _get_or_404(self, db: AsyncSession, slot_id: str):
        res = await db.execute(select(self.model).where(self.model.id == slot_id))
        slot = res.scalar_one_or_none()
        if not slot:
            raise NotFoundError(f"{self.label} schedule with ID {slot_id} not found")
        return slot

    async def get(self, db: AsyncSession, actor: Actor, slot_id: str):
        authorize(actor, Action.shift_read)
        return await self._get_or_404(db, slot_id)

    @staticmethod
    def _sorted(slots):
        return sorted(slots, key=lambda s: (_DAY_ORDER[s.day_of_week], _SHIFT_ORDER[s.shift], s.start_time))

    async def list_all(self, db: AsyncSession, actor: Actor):
        authorize(actor, Action.shift_read)
        res = await db.execute(select(self.model))
        return self._sorted(res.scalars().all())

    async def list_by_caregiver(self, db: AsyncSession, actor: Actor, caregiver_id: str):
        authorize(actor, Action.shift_read)
        await self._resolve_caregiver(db, caregiver_id)
        res = await db.execute(select(self.model).where(self._caregiver_col == caregiver_id))
        return self._sorted(res.scalars().all())

    # ---------- update ----------
    async def update(self, db: AsyncSession, actor: Actor, slot_id: str, patch):
        slot = await self._get_or_404(db, slot_id)
        authorize(actor, self.write_action, slot)

        data = patch.model_dump(exclude_unset=True)
        for field in ("day_of_week", "shift", "start_time", "end_time", "is_available"):
            if field in data and data[field] is None:
                data.pop(field)
        for field in ("start_time", "end_time"):
            if field in data:
                parse_hhmm(data[field], field)

        new_day = data.get("day_of_week", slot.day_of_week)
        new_shift = data.get("shift", slot.shift)
        key_changed = (new_day, new_shift) != (slot.day_of_week, slot.shift)

        async with self._locks.hold(self._lock_key(slot.caregiver_id)):
            try:
                async with unit_of_work(db):
                    if key_changed:
                        await self._ensure_unique(db, slot.caregiver_id, new_day, new_shift, exclude_id=slot.id)
                    for k, v in data.items():
                        setattr(slot, k, v)
            except IntegrityError as exc:
                raise self._duplicate(new_day, new_shift) from exc

        logger.info("%s shift %s updated (%s)", self.label, slot.id, ", ".join(sorted(data)))
        return slot

    # ---------- delete ----------
    async def delete(self, db: AsyncSession, actor: Actor, slot_id: str) -> None:
        slot = await self._get_or_404(db, slot_id)
        authorize(actor, self.write_action, slot)
        async with unit_of_work(db):
            await db.delete(slot)
        logger.info("%s shift %s deleted", self.label, slot_id)


doctor_shifts = ShiftRegistry(DoctorSchedule, Doctor, CaregiverKind.doctor, Action.doctor_shift_write)
nurse_shifts = ShiftRegistry(NurseSchedule, Nurse, CaregiverKind.nurse, Action.nurse_shift_write)

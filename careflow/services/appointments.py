"""
Appointment workflow: creation with double-booking checks, the status state
machine and its role-gated transitions, admin edits and lookups.

Guard order for every transition: lookup (NotFound) -> role/ownership
(Forbidden) -> current status (PreconditionFailed) -> arguments
(InvalidArgument). Nothing is written unless every guard passes.
"""
import logging
from collections.abc import Callable, Iterable
from datetime import datetime, timedelta

from sqlalchemy import select, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from careflow.core.config import settings
from careflow.core.db import unit_of_work
from careflow.core.errors import (
    ConflictError,
    InvalidArgumentError,
    NotFoundError,
    PreconditionFailedError,
)
from careflow.core.timefmt import calendar_day, scheduled_start, validate_interval
from careflow.models.appointment import Appointment, AppointmentStatus, AppointmentStatusChange
from careflow.models.doctor import Doctor
from careflow.models.nurse import Nurse
from careflow.models.patient import Patient
from careflow.models.user import RoleEnum
from careflow.schemas.appointment import AppointmentCreate, AppointmentUpdate
from careflow.services.conflicts import CaregiverKind, has_conflict
from careflow.services.locks import CaregiverLocks, caregiver_locks
from careflow.services.policy import Action, Actor, authorize, visible

logger = logging.getLogger(__name__)

S = AppointmentStatus

DEFAULT_CANCEL_REASON = "Cancelled by patient"

# campos que disparan un re-chequeo de solapamiento en la edición
_RESCHEDULE_FIELDS = ("doctor_id", "nurse_id", "date", "start_time", "end_time")


class AppointmentService:
    def __init__(
        self,
        now: Callable[[], datetime] | None = None,
        locks: CaregiverLocks | None = None,
    ) -> None:
        self._now = now or datetime.now
        self._locks = locks or caregiver_locks

    # ---------- helpers ----------
    @staticmethod
    def _query():
        return select(Appointment).options(
            selectinload(Appointment.patient),
            selectinload(Appointment.doctor),
            selectinload(Appointment.nurse),
        )

    async def _get_or_404(self, db: AsyncSession, appointment_id: str, *, for_update: bool = False) -> Appointment:
        q = self._query().where(Appointment.id == appointment_id).execution_options(populate_existing=True)
        if for_update:
            q = q.with_for_update()
        res = await db.execute(q)
        ap = res.scalar_one_or_none()
        if not ap:
            raise NotFoundError(f"Appointment with ID {appointment_id} not found")
        return ap

    @staticmethod
    async def _resolve(db: AsyncSession, model, ident: str, what: str, *, lock: bool = False):
        q = select(model).where(model.id == ident)
        if lock:
            # en MySQL serializa entre procesos sobre la fila del cuidador
            q = q.with_for_update()
        row = (await db.execute(q)).scalar_one_or_none()
        if not row:
            raise NotFoundError(f"{what} with ID {ident} not found")
        return row

    @staticmethod
    def _record(
        db: AsyncSession,
        ap: Appointment,
        from_status: AppointmentStatus | None,
        to_status: AppointmentStatus,
        actor: Actor,
        reason: str | None = None,
        forced: bool = False,
    ) -> None:
        db.add(AppointmentStatusChange(
            appointment_id=ap.id,
            from_status=from_status,
            to_status=to_status,
            actor_role=actor.role,
            actor_id=actor.profile_id or actor.user_id,
            reason=reason,
            forced=forced,
        ))

    async def _ensure_free(
        self,
        db: AsyncSession,
        doctor_id: str,
        nurse_id: str | None,
        day,
        start_time: str,
        end_time: str,
        exclude_appointment_id: str | None = None,
    ) -> None:
        # doctor primero; el enfermero sólo si viene
        await self._resolve(db, Doctor, doctor_id, "Doctor", lock=True)
        if await has_conflict(db, doctor_id, CaregiverKind.doctor, day, start_time, end_time,
                              exclude_appointment_id):
            logger.warning("Doctor %s already booked on %s %s-%s", doctor_id, day, start_time, end_time)
            raise ConflictError("Doctor already has an appointment at this time")
        if nurse_id:
            await self._resolve(db, Nurse, nurse_id, "Nurse", lock=True)
            if await has_conflict(db, nurse_id, CaregiverKind.nurse, day, start_time, end_time,
                                  exclude_appointment_id):
                logger.warning("Nurse %s already booked on %s %s-%s", nurse_id, day, start_time, end_time)
                raise ConflictError("Nurse already has an appointment at this time")

    def _caregiver_keys(self, doctor_id: str | None, nurse_id: str | None):
        return (CaregiverKind.doctor.value, doctor_id), (CaregiverKind.nurse.value, nurse_id)

    # ---------- create ----------
    async def create(self, db: AsyncSession, actor: Actor, payload: AppointmentCreate) -> Appointment:
        validate_interval(payload.start_time, payload.end_time)
        authorize(actor, Action.appointment_create, payload)

        day = calendar_day(payload.date)
        async with self._locks.hold(*self._caregiver_keys(payload.doctor_id, payload.nurse_id)):
            async with unit_of_work(db):
                await self._resolve(db, Patient, payload.patient_id, "Patient")
                await self._ensure_free(db, payload.doctor_id, payload.nurse_id, day,
                                        payload.start_time, payload.end_time)

                data = payload.model_dump()
                data["date"] = day
                ap = Appointment(**data, status=S.PENDING_APPROVAL)
                if not ap.is_virtual:
                    ap.virtual_meeting_link = None
                db.add(ap)
                await db.flush()
                self._record(db, ap, None, S.PENDING_APPROVAL, actor)

        logger.info("Appointment %s booked for doctor %s on %s %s-%s",
                    ap.id, ap.doctor_id, ap.date, ap.start_time, ap.end_time)
        return await self._get_or_404(db, ap.id)

    # ---------- queries ----------
    async def get(self, db: AsyncSession, actor: Actor, appointment_id: str) -> Appointment:
        ap = await self._get_or_404(db, appointment_id)
        authorize(actor, Action.appointment_read, ap)
        return ap

    async def get_for_record(self, db: AsyncSession, appointment_id: str) -> Appointment:
        """Lookup usado por diagnósticos / laboratorio / recetas antes de crear su registro."""
        return await self._get_or_404(db, appointment_id)

    async def _list(self, db: AsyncSession, *conditions) -> list[Appointment]:
        q = self._query().where(*conditions).order_by(Appointment.date, Appointment.start_time)
        res = await db.execute(q)
        return list(res.scalars().all())

    async def list_for(self, db: AsyncSession, actor: Actor) -> list[Appointment]:
        # alcance por rol
        if actor.role == RoleEnum.admin:
            rows = await self._list(db)
        elif not actor.profile_id:
            return []
        elif actor.role == RoleEnum.doctor:
            rows = await self._list(db, Appointment.doctor_id == actor.profile_id)
        elif actor.role == RoleEnum.nurse:
            rows = await self._list(db, Appointment.nurse_id == actor.profile_id)
        else:
            rows = await self._list(db, Appointment.patient_id == actor.profile_id)
        return visible(actor, rows)

    async def list_by_patient(self, db: AsyncSession, actor: Actor, patient_id: str) -> list[Appointment]:
        authorize(actor, Action.appointment_list_by_person)
        await self._resolve(db, Patient, patient_id, "Patient")
        return visible(actor, await self._list(db, Appointment.patient_id == patient_id))

    async def list_by_doctor(self, db: AsyncSession, actor: Actor, doctor_id: str) -> list[Appointment]:
        authorize(actor, Action.appointment_list_by_person)
        await self._resolve(db, Doctor, doctor_id, "Doctor")
        return visible(actor, await self._list(db, Appointment.doctor_id == doctor_id))

    async def list_by_nurse(self, db: AsyncSession, actor: Actor, nurse_id: str) -> list[Appointment]:
        authorize(actor, Action.appointment_list_by_person)
        await self._resolve(db, Nurse, nurse_id, "Nurse")
        return visible(actor, await self._list(db, Appointment.nurse_id == nurse_id))

    async def history(self, db: AsyncSession, actor: Actor, appointment_id: str) -> list[AppointmentStatusChange]:
        await self.get(db, actor, appointment_id)
        res = await db.execute(
            select(AppointmentStatusChange)
            .where(AppointmentStatusChange.appointment_id == appointment_id)
            .order_by(AppointmentStatusChange.changed_at)
        )
        return list(res.scalars().all())

    # ---------- transitions ----------
    async def _transition(
        self,
        db: AsyncSession,
        actor: Actor,
        appointment_id: str,
        action: Action,
        allowed_from: Iterable[AppointmentStatus],
        to_status: AppointmentStatus,
        reason: str | None = None,
        check: Callable[[Appointment], None] | None = None,
        **changes,
    ) -> Appointment:
        async with self._locks.hold(("appointment", appointment_id)):
            async with unit_of_work(db):
                ap = await self._get_or_404(db, appointment_id, for_update=True)
                authorize(actor, action, ap)
                if ap.status not in set(allowed_from):
                    logger.warning("Rejected %s on appointment %s in status %s",
                                   action.value, ap.id, ap.status.value)
                    raise PreconditionFailedError(
                        f"Appointment cannot be moved to {to_status.value} "
                        f"from its current status ({ap.status.value})"
                    )
                if check:
                    check(ap)
                from_status = ap.status
                ap.status = to_status
                for k, v in changes.items():
                    setattr(ap, k, v)
                self._record(db, ap, from_status, to_status, actor, reason)

        logger.info("Appointment %s: %s -> %s by %s %s",
                    ap.id, from_status.value, to_status.value, actor.role.value, actor.profile_id)
        return await self._get_or_404(db, ap.id)

    async def approve(self, db: AsyncSession, actor: Actor, appointment_id: str) -> Appointment:
        return await self._transition(
            db, actor, appointment_id, Action.appointment_approve, {S.PENDING_APPROVAL}, S.APPROVED,
        )

    async def reject(self, db: AsyncSession, actor: Actor, appointment_id: str, reason: str) -> Appointment:
        def _require_reason(_: Appointment) -> None:
            if not reason or not reason.strip():
                raise InvalidArgumentError("A rejection reason is required")

        return await self._transition(
            db, actor, appointment_id, Action.appointment_reject, {S.PENDING_APPROVAL}, S.REJECTED,
            reason=reason, check=_require_reason, rejection_reason=(reason or "").strip(),
        )

    async def cancel(
        self, db: AsyncSession, actor: Actor, appointment_id: str, reason: str | None = None
    ) -> Appointment:
        cutoff = timedelta(hours=settings.CANCELLATION_CUTOFF_HOURS)

        def _check_cutoff(ap: Appointment) -> None:
            remaining = scheduled_start(ap.date, ap.start_time) - self._now()
            if remaining < cutoff:
                logger.warning("Late cancellation refused for appointment %s (%s left)", ap.id, remaining)
                raise PreconditionFailedError(
                    f"Appointments can only be cancelled at least "
                    f"{settings.CANCELLATION_CUTOFF_HOURS} hours before the scheduled time"
                )

        cancel_reason = (reason or "").strip() or DEFAULT_CANCEL_REASON
        return await self._transition(
            db, actor, appointment_id, Action.appointment_cancel,
            {S.PENDING_APPROVAL, S.APPROVED}, S.CANCELLED,
            reason=cancel_reason, check=_check_cutoff, cancel_reason=cancel_reason,
        )

    async def complete(self, db: AsyncSession, actor: Actor, appointment_id: str) -> Appointment:
        return await self._transition(
            db, actor, appointment_id, Action.appointment_complete, {S.APPROVED}, S.COMPLETED,
        )

    async def mark_no_show(self, db: AsyncSession, actor: Actor, appointment_id: str) -> Appointment:
        return await self._transition(
            db, actor, appointment_id, Action.appointment_no_show, {S.APPROVED}, S.NO_SHOW,
        )

    async def force_status(
        self,
        db: AsyncSession,
        actor: Actor,
        appointment_id: str,
        status: AppointmentStatus,
        reason: str | None = None,
    ) -> Appointment:
        """Admin: fija cualquier estado salteando la máquina de estados (queda auditado)."""
        async with self._locks.hold(("appointment", appointment_id)):
            async with unit_of_work(db):
                ap = await self._get_or_404(db, appointment_id, for_update=True)
                authorize(actor, Action.appointment_force_status, ap)
                from_status = ap.status
                ap.status = AppointmentStatus(status)
                self._record(db, ap, from_status, ap.status, actor, reason, forced=True)

        logger.warning("Appointment %s status forced %s -> %s by %s",
                       ap.id, from_status.value, ap.status.value, actor.user_id or actor.profile_id)
        return await self._get_or_404(db, ap.id)

    # ---------- update ----------
    async def update(
        self, db: AsyncSession, actor: Actor, appointment_id: str, patch: AppointmentUpdate
    ) -> Appointment:
        # el lock del turno serializa ediciones y transiciones; los valores efectivos salen de la fila fresca
        async with self._locks.hold(("appointment", appointment_id)):
            ap = await self._get_or_404(db, appointment_id)
            authorize(actor, Action.appointment_update, ap)

            data = patch.model_dump(exclude_unset=True)
            for required in ("patient_id", "doctor_id", "date", "start_time", "end_time"):
                if required in data and data[required] is None:
                    raise InvalidArgumentError(f"{required} cannot be empty")
            # columnas NOT NULL: null significa "sin cambios"
            for flag in ("is_first_visit", "is_virtual"):
                if flag in data and data[flag] is None:
                    data.pop(flag)
            reschedule = any(field in data for field in _RESCHEDULE_FIELDS)

            eff_doctor_id = data.get("doctor_id", ap.doctor_id)
            eff_nurse_id = data["nurse_id"] if "nurse_id" in data else ap.nurse_id
            eff_date = calendar_day(data.get("date", ap.date))
            eff_start = data.get("start_time", ap.start_time)
            eff_end = data.get("end_time", ap.end_time)
            if reschedule:
                validate_interval(eff_start, eff_end)
                if "date" in data:
                    data["date"] = eff_date

            async with self._locks.hold(*self._caregiver_keys(eff_doctor_id, eff_nurse_id)):
                async with unit_of_work(db):
                    ap = await self._get_or_404(db, appointment_id, for_update=True)
                    if "patient_id" in data:
                        await self._resolve(db, Patient, data["patient_id"], "Patient")
                    if reschedule:
                        await self._ensure_free(db, eff_doctor_id, eff_nurse_id, eff_date, eff_start, eff_end,
                                                exclude_appointment_id=appointment_id)
                    for k, v in data.items():
                        setattr(ap, k, v)
                    if not ap.is_virtual:
                        ap.virtual_meeting_link = None

        logger.info("Appointment %s updated (%s)", appointment_id, ", ".join(sorted(data)))
        return await self._get_or_404(db, appointment_id)

    # ---------- delete ----------
    async def delete(self, db: AsyncSession, actor: Actor, appointment_id: str) -> None:
        ap = await self._get_or_404(db, appointment_id)
        authorize(actor, Action.appointment_delete, ap)
        try:
            async with unit_of_work(db):
                await db.execute(
                    delete(AppointmentStatusChange).where(AppointmentStatusChange.appointment_id == ap.id)
                )
                await db.execute(delete(Appointment).where(Appointment.id == ap.id))
        except IntegrityError as exc:
            raise PreconditionFailedError(
                "Appointment has clinical records attached and cannot be deleted"
            ) from exc
        logger.info("Appointment %s deleted by %s %s", ap.id, actor.role.value, actor.profile_id)


appointment_service = AppointmentService()

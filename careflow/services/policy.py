"""
Role -> action permission table.

Every mutation (and every read that returns records) goes through
:func:`authorize` / :func:`visible`. A role mapped to ``None`` is allowed
unconditionally; a role mapped to an attribute name is allowed only when that
attribute of the target equals the caller's profile id.
"""
import enum
import logging
from dataclasses import dataclass
from typing import Any, Iterable, TypeVar

from careflow.core.errors import ForbiddenError
from careflow.models.user import RoleEnum

T = TypeVar("T")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Actor:
    """Caller context. ``profile_id`` is the doctor/nurse/patient id for the role."""
    role: RoleEnum
    profile_id: str | None = None
    user_id: str | None = None


class Action(str, enum.Enum):
    appointment_create = "appointment.create"
    appointment_read = "appointment.read"
    appointment_list_by_person = "appointment.list_by_person"
    appointment_approve = "appointment.approve"
    appointment_reject = "appointment.reject"
    appointment_complete = "appointment.complete"
    appointment_no_show = "appointment.no_show"
    appointment_cancel = "appointment.cancel"
    appointment_update = "appointment.update"
    appointment_force_status = "appointment.force_status"
    appointment_delete = "appointment.delete"

    shift_read = "shift.read"
    doctor_shift_write = "doctor_shift.write"
    nurse_shift_write = "nurse_shift.write"

    diagnosis_write = "diagnosis.write"
    lab_report_create = "lab_report.create"
    lab_report_update = "lab_report.update"
    lab_report_delete = "lab_report.delete"
    prescription_create = "prescription.create"
    prescription_update = "prescription.update"
    prescription_delete = "prescription.delete"
    record_read = "record.read"

    dashboard_read = "dashboard.read"


ANY = None

_A, _D, _N, _P = RoleEnum.admin, RoleEnum.doctor, RoleEnum.nurse, RoleEnum.patient

POLICY: dict[Action, dict[RoleEnum, str | None]] = {
    # turnos
    Action.appointment_create: {_A: ANY, _D: ANY, _N: ANY, _P: "patient_id"},
    Action.appointment_read: {_A: ANY, _D: "doctor_id", _N: ANY, _P: "patient_id"},
    Action.appointment_list_by_person: {_A: ANY, _D: ANY, _N: ANY},
    Action.appointment_approve: {_D: "doctor_id"},
    Action.appointment_reject: {_D: "doctor_id"},
    Action.appointment_complete: {_D: "doctor_id"},
    Action.appointment_no_show: {_D: "doctor_id"},
    Action.appointment_cancel: {_P: "patient_id"},
    Action.appointment_update: {_A: ANY},
    Action.appointment_force_status: {_A: ANY},
    Action.appointment_delete: {_A: ANY, _D: "doctor_id"},
    # agenda semanal
    Action.shift_read: {_A: ANY, _D: ANY, _N: ANY},
    Action.doctor_shift_write: {_A: ANY, _D: "doctor_id"},
    Action.nurse_shift_write: {_A: ANY, _N: "nurse_id"},
    # registros clínicos
    Action.diagnosis_write: {_A: ANY, _D: "doctor_id"},
    Action.lab_report_create: {_A: ANY, _D: "ordered_by_id"},
    Action.lab_report_update: {_A: ANY, _D: ANY, _N: ANY},
    Action.lab_report_delete: {_A: ANY, _D: "ordered_by_id"},
    Action.prescription_create: {_A: ANY, _D: "doctor_id"},
    Action.prescription_update: {_A: ANY, _D: ANY, _N: ANY},
    Action.prescription_delete: {_A: ANY, _D: "doctor_id"},
    Action.record_read: {_A: ANY, _D: ANY, _N: ANY, _P: "patient_id"},
    Action.dashboard_read: {_A: ANY, _D: ANY, _N: ANY, _P: ANY},
}

_MESSAGES: dict[Action, str] = {
    Action.appointment_create: "Patients can only book appointments for themselves",
    Action.appointment_read: "You do not have access to this appointment",
    Action.appointment_approve: "Only the assigned doctor can approve this appointment",
    Action.appointment_reject: "Only the assigned doctor can reject this appointment",
    Action.appointment_complete: "Only the assigned doctor can complete this appointment",
    Action.appointment_no_show: "Only the assigned doctor can mark this appointment as no-show",
    Action.appointment_cancel: "Only the patient who owns this appointment can cancel it",
    Action.appointment_update: "Only administrators can edit appointments",
    Action.appointment_force_status: "Only administrators can force an appointment status",
    Action.appointment_delete: "Only administrators or the assigned doctor can delete this appointment",
    Action.doctor_shift_write: "Only administrators or the doctor can manage this schedule",
    Action.nurse_shift_write: "Only administrators or the nurse can manage this schedule",
}


def can(actor: Actor, action: Action, target: Any = None) -> bool:
    rules = POLICY.get(action, {})
    if actor.role not in rules:
        return False
    owner_attr = rules[actor.role]
    if owner_attr is ANY:
        return True
    if target is None or not actor.profile_id:
        return False
    return getattr(target, owner_attr, None) == actor.profile_id


def authorize(actor: Actor, action: Action, target: Any = None) -> None:
    if not can(actor, action, target):
        logger.warning("Denied %s to %s %s", action.value, actor.role.value, actor.profile_id)
        raise ForbiddenError(_MESSAGES.get(action, "Permission denied"))


def visible(actor: Actor, items: Iterable[T], action: Action = Action.appointment_read) -> list[T]:
    # filtrado posterior por identidad, no en la query
    return [item for item in items if can(actor, action, item)]

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
import datetime as dt

from careflow.core.timefmt import HHMM_PATTERN
from careflow.models.appointment import AppointmentStatus
from careflow.models.user import RoleEnum


class AppointmentCreate(BaseModel):
    patient_id: str
    doctor_id: str
    nurse_id: Optional[str] = None
    date: dt.date
    start_time: str = Field(..., pattern=HHMM_PATTERN, examples=["09:00"])
    end_time: str = Field(..., pattern=HHMM_PATTERN, examples=["09:30"])
    reason: Optional[str] = None
    notes: Optional[str] = None
    is_first_visit: bool = False
    is_virtual: bool = False
    virtual_meeting_link: Optional[str] = None


class AppointmentUpdate(BaseModel):
    """Edición de administrador. El estado NO se toca acá (ver force-status)."""
    model_config = ConfigDict(extra="forbid")

    patient_id: Optional[str] = None
    doctor_id: Optional[str] = None
    nurse_id: Optional[str] = None          # None explícito = quitar enfermero
    date: Optional[dt.date] = None
    start_time: Optional[str] = Field(None, pattern=HHMM_PATTERN)
    end_time: Optional[str] = Field(None, pattern=HHMM_PATTERN)
    reason: Optional[str] = None
    notes: Optional[str] = None
    is_first_visit: Optional[bool] = None
    is_virtual: Optional[bool] = None
    virtual_meeting_link: Optional[str] = None
    reminder_sent: Optional[dt.datetime] = None


class RejectRequest(BaseModel):
    reason: str = Field(..., min_length=1)


class CancelRequest(BaseModel):
    reason: Optional[str] = None


class ForceStatusRequest(BaseModel):
    status: AppointmentStatus
    reason: Optional[str] = None


class PersonRef(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    name: str


class AppointmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    patient_id: str
    doctor_id: str
    nurse_id: Optional[str] = None
    patient: Optional[PersonRef] = None
    doctor: Optional[PersonRef] = None
    nurse: Optional[PersonRef] = None
    date: dt.date
    start_time: str
    end_time: str
    status: AppointmentStatus
    reason: Optional[str] = None
    notes: Optional[str] = None
    rejection_reason: Optional[str] = None
    cancel_reason: Optional[str] = None
    is_first_visit: bool
    is_virtual: bool
    virtual_meeting_link: Optional[str] = None
    reminder_sent: Optional[dt.datetime] = None
    created_at: dt.datetime
    updated_at: dt.datetime


class StatusChangeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    from_status: Optional[AppointmentStatus] = None
    to_status: AppointmentStatus
    actor_role: RoleEnum
    actor_id: Optional[str] = None
    reason: Optional[str] = None
    forced: bool
    changed_at: dt.datetime

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime

from careflow.core.timefmt import HHMM_PATTERN
from careflow.models.schedule import DayOfWeek, Shift


class ShiftSlotBase(BaseModel):
    day_of_week: DayOfWeek
    shift: Shift
    start_time: str = Field(..., pattern=HHMM_PATTERN, examples=["07:00"])
    end_time: str = Field(..., pattern=HHMM_PATTERN, examples=["15:00"])
    is_available: bool = False


class DoctorScheduleCreate(ShiftSlotBase):
    doctor_id: str


class NurseScheduleCreate(ShiftSlotBase):
    nurse_id: str


class ShiftSlotUpdate(BaseModel):
    # el cuidador no se puede cambiar una vez creado el turno
    model_config = ConfigDict(extra="forbid")

    day_of_week: Optional[DayOfWeek] = None
    shift: Optional[Shift] = None
    start_time: Optional[str] = Field(None, pattern=HHMM_PATTERN)
    end_time: Optional[str] = Field(None, pattern=HHMM_PATTERN)
    is_available: Optional[bool] = None


class ShiftSlotOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    day_of_week: DayOfWeek
    shift: Shift
    start_time: str
    end_time: str
    is_available: bool
    created_at: datetime
    updated_at: datetime


class DoctorScheduleOut(ShiftSlotOut):
    doctor_id: str


class NurseScheduleOut(ShiftSlotOut):
    nurse_id: str

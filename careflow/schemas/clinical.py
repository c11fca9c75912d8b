from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional

from careflow.models.clinical import LabReportStatus
from careflow.models.prescription import PrescriptionStatus

# --- Diagnoses ---
class DiagnosisCreate(BaseModel):
    patient_id: str
    doctor_id: str
    appointment_id: str
    diagnosis_name: str = Field(..., min_length=1)
    diagnosis_code: Optional[str] = None
    notes: Optional[str] = None
    is_chronic: bool = False

class DiagnosisUpdate(BaseModel):
    diagnosis_name: str | None = None
    diagnosis_code: str | None = None
    notes: str | None = None
    is_chronic: bool | None = None

class DiagnosisOut(BaseModel):
    id: str
    patient_id: str
    doctor_id: str
    appointment_id: str
    diagnosis_name: str
    diagnosis_code: Optional[str] = None
    notes: Optional[str] = None
    is_chronic: bool
    created_at: datetime
    class Config:
        from_attributes = True

# --- Lab reports ---
class LabReportCreate(BaseModel):
    patient_id: str
    ordered_by_id: str
    appointment_id: str
    uploaded_by_id: Optional[str] = None
    test_name: str = Field(..., min_length=1)
    test_type: Optional[str] = None
    comments: Optional[str] = None
    is_urgent: bool = False

class LabReportUpdate(BaseModel):
    test_name: Optional[str] = None
    test_type: Optional[str] = None
    comments: Optional[str] = None
    is_urgent: Optional[bool] = None
    uploaded_by_id: Optional[str] = None
    status: Optional[LabReportStatus] = None

class LabReportOut(BaseModel):
    id: str
    patient_id: str
    ordered_by_id: str
    uploaded_by_id: Optional[str] = None
    appointment_id: str
    test_name: str
    test_type: Optional[str] = None
    status: LabReportStatus
    comments: Optional[str] = None
    is_urgent: bool
    results_date: Optional[datetime] = None
    created_at: datetime
    class Config:
        from_attributes = True

# --- Prescriptions ---
class PrescriptionCreate(BaseModel):
    patient_id: str
    doctor_id: str
    appointment_id: str
    medication_name: str = Field(..., min_length=1)
    dosage: str
    frequency: str
    duration: str
    instructions: Optional[str] = None

class PrescriptionUpdate(BaseModel):
    medication_name: Optional[str] = None
    dosage: Optional[str] = None
    frequency: Optional[str] = None
    duration: Optional[str] = None
    instructions: Optional[str] = None
    status: Optional[PrescriptionStatus] = None

class PrescriptionOut(BaseModel):
    id: str
    patient_id: str
    doctor_id: str
    appointment_id: str
    medication_name: str
    dosage: str
    frequency: str
    duration: str
    instructions: Optional[str] = None
    status: PrescriptionStatus
    fulfilled_date: Optional[datetime] = None
    fulfilled_by: Optional[str] = None
    created_at: datetime
    class Config:
        from_attributes = True

# --- comunes ---
class LabReportStatusUpdate(BaseModel):
    status: LabReportStatus

class PrescriptionStatusUpdate(BaseModel):
    status: PrescriptionStatus

class AppointmentReassign(BaseModel):
    appointment_id: str

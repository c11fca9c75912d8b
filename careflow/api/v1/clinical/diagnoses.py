from careflow.schemas.clinical import DiagnosisCreate, DiagnosisUpdate, DiagnosisOut
from careflow.services.records import diagnosis_service
from .common import record_router

router = record_router(
    "/clinical/diagnoses", "Clinical - Diagnoses", diagnosis_service,
    DiagnosisCreate, DiagnosisUpdate, DiagnosisOut,
)

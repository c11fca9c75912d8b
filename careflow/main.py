import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from careflow.core.config import settings
from careflow.core.errors import ClinicError
from careflow.core.logging import setup_logging
from careflow.api.v1.appointment import router as appointment_router
from careflow.api.v1.schedule import doctor_router as doctor_schedule_router
from careflow.api.v1.schedule import nurse_router as nurse_schedule_router
from careflow.api.v1.clinical.diagnoses import router as diagnoses_router
from careflow.api.v1.clinical.lab_reports import router as lab_reports_router
from careflow.api.v1.clinical.prescriptions import router as prescriptions_router
from careflow.api.v1.dashboard import router as dashboard_router

setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.APP_NAME, version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ClinicError)
async def clinic_error_handler(request: Request, exc: ClinicError):
    logger.info("%s %s -> %s: %s", request.method, request.url.path, exc.code, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail, "code": exc.code})


app.include_router(appointment_router)
app.include_router(doctor_schedule_router)
app.include_router(nurse_schedule_router)
app.include_router(diagnoses_router)
app.include_router(lab_reports_router)
app.include_router(prescriptions_router)
app.include_router(dashboard_router)


@app.get("/health")
async def health():
    return {"status": "ok"}

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from careflow.core.db import get_db
from careflow.api.deps import get_actor
from careflow.schemas.clinical import LabReportCreate, LabReportUpdate, LabReportOut, LabReportStatusUpdate
from careflow.services.policy import Actor
from careflow.services.records import lab_report_service
from .common import record_router

router = record_router(
    "/clinical/lab-reports", "Clinical - Lab reports", lab_report_service,
    LabReportCreate, LabReportUpdate, LabReportOut,
)

@router.patch("/{id}/status", response_model=LabReportOut)
async def update_lab_report_status(
    id: str,
    payload: LabReportStatusUpdate,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    return await lab_report_service.set_status(db, actor, id, payload.status)

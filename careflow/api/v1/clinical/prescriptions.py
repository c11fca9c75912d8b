from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from careflow.core.db import get_db
from careflow.api.deps import get_actor
from careflow.schemas.clinical import (
    PrescriptionCreate,
    PrescriptionUpdate,
    PrescriptionOut,
    PrescriptionStatusUpdate,
)
from careflow.services.policy import Actor
from careflow.services.records import prescription_service
from .common import record_router

router = record_router(
    "/clinical/prescriptions", "Clinical - Prescriptions", prescription_service,
    PrescriptionCreate, PrescriptionUpdate, PrescriptionOut,
)

@router.patch("/{id}/status", response_model=PrescriptionOut)
async def update_prescription_status(
    id: str,
    payload: PrescriptionStatusUpdate,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    return await prescription_service.set_status(db, actor, id, payload.status)

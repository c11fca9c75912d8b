from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from careflow.core.db import get_db
from careflow.api.deps import get_actor
from careflow.schemas.clinical import AppointmentReassign
from careflow.services.policy import Actor
from careflow.services.records import ClinicalRecordService


def record_router(
    prefix: str,
    tag: str,
    service: ClinicalRecordService,
    create_schema,
    update_schema,
    out_schema,
) -> APIRouter:
    """CRUD común de diagnósticos, laboratorio y recetas."""
    router = APIRouter(prefix=prefix, tags=[tag])

    @router.post("", response_model=out_schema, status_code=status.HTTP_201_CREATED)
    async def create_record(
        payload: create_schema,
        actor: Actor = Depends(get_actor),
        db: AsyncSession = Depends(get_db),
    ):
        return await service.create(db, actor, payload)

    @router.get("", response_model=list[out_schema])
    async def list_records(
        patient_id: str | None = Query(None),
        appointment_id: str | None = Query(None),
        actor: Actor = Depends(get_actor),
        db: AsyncSession = Depends(get_db),
    ):
        return await service.list_for(db, actor, patient_id=patient_id, appointment_id=appointment_id)

    @router.get("/{id}", response_model=out_schema)
    async def get_record(id: str, actor: Actor = Depends(get_actor), db: AsyncSession = Depends(get_db)):
        return await service.get(db, actor, id)

    @router.patch("/{id}", response_model=out_schema)
    async def update_record(
        id: str,
        patch: update_schema,
        actor: Actor = Depends(get_actor),
        db: AsyncSession = Depends(get_db),
    ):
        return await service.update(db, actor, id, patch)

    # el turno sólo cambia por acá, y se vuelve a resolver
    @router.patch("/{id}/appointment", response_model=out_schema)
    async def reassign_record(
        id: str,
        payload: AppointmentReassign,
        actor: Actor = Depends(get_actor),
        db: AsyncSession = Depends(get_db),
    ):
        return await service.reassign_appointment(db, actor, id, payload.appointment_id)

    @router.delete("/{id}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_record(id: str, actor: Actor = Depends(get_actor), db: AsyncSession = Depends(get_db)):
        await service.delete(db, actor, id)
        return None

    return router

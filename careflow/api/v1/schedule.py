from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from careflow.core.db import get_db
from careflow.api.deps import get_actor
from careflow.schemas.schedule import (
    DoctorScheduleCreate,
    DoctorScheduleOut,
    NurseScheduleCreate,
    NurseScheduleOut,
    ShiftSlotUpdate,
)
from careflow.services.policy import Actor
from careflow.services.schedules import ShiftRegistry, doctor_shifts, nurse_shifts


def _shift_router(prefix: str, tag: str, registry: ShiftRegistry, create_schema, out_schema) -> APIRouter:
    """Las agendas de médicos y enfermeros exponen las mismas rutas."""
    router = APIRouter(prefix=prefix, tags=[tag])
    owner = registry.model.caregiver_column.removesuffix("_id")

    @router.post("", response_model=out_schema, status_code=status.HTTP_201_CREATED)
    async def create_slot(
        payload: create_schema,
        actor: Actor = Depends(get_actor),
        db: AsyncSession = Depends(get_db),
    ):
        return await registry.create(db, actor, payload)

    @router.get("", response_model=list[out_schema])
    async def list_slots(actor: Actor = Depends(get_actor), db: AsyncSession = Depends(get_db)):
        return await registry.list_all(db, actor)

    @router.get(f"/{owner}/{{caregiver_id}}", response_model=list[out_schema])
    async def list_caregiver_slots(
        caregiver_id: str,
        actor: Actor = Depends(get_actor),
        db: AsyncSession = Depends(get_db),
    ):
        return await registry.list_by_caregiver(db, actor, caregiver_id)

    @router.get("/{id}", response_model=out_schema)
    async def get_slot(id: str, actor: Actor = Depends(get_actor), db: AsyncSession = Depends(get_db)):
        return await registry.get(db, actor, id)

    @router.patch("/{id}", response_model=out_schema)
    async def update_slot(
        id: str,
        payload: ShiftSlotUpdate,
        actor: Actor = Depends(get_actor),
        db: AsyncSession = Depends(get_db),
    ):
        return await registry.update(db, actor, id, payload)

    @router.delete("/{id}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_slot(id: str, actor: Actor = Depends(get_actor), db: AsyncSession = Depends(get_db)):
        await registry.delete(db, actor, id)
        return None

    return router


doctor_router = _shift_router(
    "/schedules/doctors", "doctor-schedules", doctor_shifts, DoctorScheduleCreate, DoctorScheduleOut
)
nurse_router = _shift_router(
    "/schedules/nurses", "nurse-schedules", nurse_shifts, NurseScheduleCreate, NurseScheduleOut
)

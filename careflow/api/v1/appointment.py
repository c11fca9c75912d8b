from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from careflow.core.db import get_db
from careflow.api.deps import get_actor
from careflow.schemas.appointment import (
    AppointmentCreate,
    AppointmentUpdate,
    AppointmentOut,
    RejectRequest,
    CancelRequest,
    ForceStatusRequest,
    StatusChangeOut,
)
from careflow.services.appointments import appointment_service as svc
from careflow.services.policy import Actor


router = APIRouter(prefix="/appointments", tags=["appointments"])

# ---------- create ----------
@router.post("", response_model=AppointmentOut, status_code=status.HTTP_201_CREATED)
async def create_appointment(
    payload: AppointmentCreate,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    return await svc.create(db, actor, payload)

# ---------- list ----------
@router.get("", response_model=list[AppointmentOut])
async def list_my_appointments(
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    # admin: todos; el resto: los propios según su rol
    return await svc.list_for(db, actor)

@router.get("/patient/{patient_id}", response_model=list[AppointmentOut])
async def list_by_patient(patient_id: str, actor: Actor = Depends(get_actor), db: AsyncSession = Depends(get_db)):
    return await svc.list_by_patient(db, actor, patient_id)

@router.get("/doctor/{doctor_id}", response_model=list[AppointmentOut])
async def list_by_doctor(doctor_id: str, actor: Actor = Depends(get_actor), db: AsyncSession = Depends(get_db)):
    return await svc.list_by_doctor(db, actor, doctor_id)

@router.get("/nurse/{nurse_id}", response_model=list[AppointmentOut])
async def list_by_nurse(nurse_id: str, actor: Actor = Depends(get_actor), db: AsyncSession = Depends(get_db)):
    return await svc.list_by_nurse(db, actor, nurse_id)

# ---------- read ----------
@router.get("/{id}", response_model=AppointmentOut)
async def get_appointment(id: str, actor: Actor = Depends(get_actor), db: AsyncSession = Depends(get_db)):
    return await svc.get(db, actor, id)

@router.get("/{id}/history", response_model=list[StatusChangeOut])
async def get_appointment_history(id: str, actor: Actor = Depends(get_actor), db: AsyncSession = Depends(get_db)):
    return await svc.history(db, actor, id)

# ---------- update (admin) ----------
@router.patch("/{id}", response_model=AppointmentOut)
async def update_appointment(
    id: str,
    payload: AppointmentUpdate,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    return await svc.update(db, actor, id, payload)

# ---------- transiciones ----------
@router.post("/{id}/approve", response_model=AppointmentOut)
async def approve_appointment(id: str, actor: Actor = Depends(get_actor), db: AsyncSession = Depends(get_db)):
    return await svc.approve(db, actor, id)

@router.post("/{id}/reject", response_model=AppointmentOut)
async def reject_appointment(
    id: str,
    payload: RejectRequest,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    return await svc.reject(db, actor, id, payload.reason)

@router.post("/{id}/cancel", response_model=AppointmentOut)
async def cancel_appointment(
    id: str,
    payload: CancelRequest | None = None,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    return await svc.cancel(db, actor, id, payload.reason if payload else None)

@router.post("/{id}/complete", response_model=AppointmentOut)
async def complete_appointment(id: str, actor: Actor = Depends(get_actor), db: AsyncSession = Depends(get_db)):
    return await svc.complete(db, actor, id)

@router.post("/{id}/no-show", response_model=AppointmentOut)
async def no_show_appointment(id: str, actor: Actor = Depends(get_actor), db: AsyncSession = Depends(get_db)):
    return await svc.mark_no_show(db, actor, id)

@router.post("/{id}/force-status", response_model=AppointmentOut)
async def force_appointment_status(
    id: str,
    payload: ForceStatusRequest,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    return await svc.force_status(db, actor, id, payload.status, payload.reason)

# ---------- delete ----------
@router.delete("/{id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_appointment(id: str, actor: Actor = Depends(get_actor), db: AsyncSession = Depends(get_db)):
    await svc.delete(db, actor, id)
    return None

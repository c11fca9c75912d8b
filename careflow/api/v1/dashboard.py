from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from careflow.core.db import get_db
from careflow.api.deps import get_actor
from careflow.services.dashboard import dashboard_stats
from careflow.services.policy import Actor

router = APIRouter(prefix="/dashboard", tags=["dashboard"])

@router.get("/stats")
async def get_stats(actor: Actor = Depends(get_actor), db: AsyncSession = Depends(get_db)):
    return await dashboard_stats(db, actor)

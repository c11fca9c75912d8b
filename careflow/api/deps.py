from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from careflow.core.db import get_db
from careflow.core.security import InvalidTokenError, decode_subject
from careflow.models.doctor import Doctor
from careflow.models.nurse import Nurse
from careflow.models.patient import Patient
from careflow.models.user import User, RoleEnum
from careflow.services.policy import Actor


bearer = HTTPBearer(auto_error=True)

# perfil vinculado según el rol
_PROFILE_MODELS = {
    RoleEnum.doctor: Doctor,
    RoleEnum.nurse: Nurse,
    RoleEnum.patient: Patient,
}


async def get_current_user(
    creds: HTTPAuthorizationCredentials = Depends(bearer),
    db: AsyncSession = Depends(get_db),
) -> User:
    try:
        sub = decode_subject(creds.credentials)
    except InvalidTokenError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    result = await db.execute(select(User).where(User.id == sub))
    user = result.scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")

    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Inactive user")

    return user


async def get_linked_profile_id(user: User, db: AsyncSession) -> str | None:
    model = _PROFILE_MODELS.get(user.role)
    if model is None:
        return None
    res = await db.execute(select(model.id).where(model.user_id == user.id))
    return res.scalar_one_or_none()


async def get_actor(
    current: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Actor:
    profile_id = await get_linked_profile_id(current, db)
    return Actor(role=current.role, profile_id=profile_id, user_id=current.id)

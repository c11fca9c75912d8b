from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import jwt, JWTError

from careflow.core.config import settings

ACCESS_TOKEN_EXPIRE_MINUTES = 60


class InvalidTokenError(Exception):
    pass


def create_access_token(
        subject: str,
        extra: Optional[dict] = None,
        expires_minutes: int | None = None
        ) -> str:
    """
    Emite un JWT firmado. El login vive en el servicio de identidad;
    acá sólo se usa para herramientas internas y tests.
    """
    to_encode = {"sub": subject, "iat": datetime.now(tz=timezone.utc)}
    if extra:
        to_encode.update(extra)
    expire = datetime.now(tz=timezone.utc) + timedelta(
        minutes=expires_minutes or ACCESS_TOKEN_EXPIRE_MINUTES
        )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_subject(token: str) -> str:
    """Devuelve el ``sub`` (id de usuario) de un token válido."""
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as exc:
        raise InvalidTokenError("Invalid or expired token") from exc
    sub = payload.get("sub")
    if not isinstance(sub, str) or not sub:
        raise InvalidTokenError("Invalid token payload")
    return sub

from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import HTTPException, status
from jose import JWTError
from jose.jwt import encode, decode

from api.config import get_settings
from api.schemas.auth_schemas import AuthTokenPayload
from api.utils.logger import configure_logging

logger = configure_logging()


def create_access_token(data: AuthTokenPayload) -> str:
    """Create a JWT access token."""
    settings = get_settings()
    if data.exp is None:
        data = data.model_copy(
            update={"exp": datetime.now(timezone.utc) + timedelta(minutes=settings.access_token_expire_minutes)}
        )
    return encode(data.model_dump(exclude_none=True), settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_token(token: Optional[str]) -> AuthTokenPayload:
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing token")
    settings = get_settings()
    try:
        payload = decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
        return AuthTokenPayload(**payload)
    except JWTError as e:
        logger.warning("invalid token: %s", e)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

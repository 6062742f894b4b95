from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
import uuid

from jose import JWTError, jwt
import structlog

from newsroom.core.config import settings
from newsroom.core.exceptions import AuthenticationError

logger = structlog.get_logger()


def create_access_token(
    user_id: str,
    expires_delta: Optional[timedelta] = None
) -> str:
    """Create JWT access token"""
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode = {
        "exp": expire,
        "sub": str(user_id),
        "user_id": str(user_id),
        "jti": str(uuid.uuid4()),
        "type": "access"
    }

    try:
        return jwt.encode(
            to_encode,
            settings.SECRET_KEY,
            algorithm=settings.ALGORITHM
        )
    except JWTError as e:
        logger.error("JWT encoding error", error=str(e))
        raise AuthenticationError("Failed to create access token")


def verify_token(token: str) -> Optional[Dict[str, Any]]:
    """Verify JWT token and return payload"""
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM]
        )
    except JWTError as e:
        logger.debug("JWT verification failed", error=str(e))
        return None

    if payload.get("type") != "access":
        return None

    return payload

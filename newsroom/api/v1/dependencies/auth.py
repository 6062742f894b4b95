from typing import Optional
from uuid import UUID

from fastapi import Depends, Query
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from newsroom.core.security import verify_token
from newsroom.core.exceptions import AuthenticationError
from newsroom.db.session import get_db
from newsroom.models.user import User
from newsroom.services.dispatcher import NotificationDispatcher
from newsroom.services.email import EmailSender, get_email_sender
from newsroom.services.realtime import RealtimePusher, get_realtime_pusher

logger = structlog.get_logger()
security = HTTPBearer(auto_error=False)


async def _user_from_token(token: Optional[str], db: AsyncSession) -> User:
    if not token:
        raise AuthenticationError("Token missing")

    payload = verify_token(token)
    if not payload:
        raise AuthenticationError("Invalid or expired token")

    user_id = payload.get("user_id")
    if not user_id:
        raise AuthenticationError("Invalid token payload")

    try:
        user = await db.get(User, UUID(user_id))
    except ValueError:
        raise AuthenticationError("Invalid token payload")

    if not user:
        raise AuthenticationError("User not found")
    if not user.is_active:
        logger.info("Rejected token for inactive user", user_id=user_id)
        raise AuthenticationError("User account is deactivated")

    return user


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> User:
    """Get current authenticated user"""
    if not credentials:
        raise AuthenticationError("Authorization header missing")

    return await _user_from_token(credentials.credentials, db)


async def get_user_from_query_token(
    token: Optional[str] = Query(None, description="Access token (EventSource cannot send headers)"),
    db: AsyncSession = Depends(get_db)
) -> User:
    """Authenticate the realtime stream from the ?token= query parameter"""
    return await _user_from_token(token, db)


def get_dispatcher(
    db: AsyncSession = Depends(get_db),
    email_sender: EmailSender = Depends(get_email_sender),
    pusher: RealtimePusher = Depends(get_realtime_pusher),
) -> NotificationDispatcher:
    """Notification dispatcher bound to the request's session"""
    return NotificationDispatcher(db, email_sender, pusher)

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from newsroom.api.v1.dependencies.auth import get_current_user, get_user_from_query_token
from newsroom.core.config import settings
from newsroom.models.user import User
from newsroom.services.permission import Permission, PermissionService
from newsroom.services.realtime import connection_registry, stream_events

router = APIRouter()

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


@router.get("/stream")
async def notification_stream(
    request: Request,
    current_user: User = Depends(get_user_from_query_token),
):
    """Server-sent event stream of the current user's notifications"""
    user_id = current_user.id
    connection = connection_registry.connect(user_id)

    async def event_source():
        try:
            async for frame in stream_events(
                connection,
                heartbeat_seconds=settings.REALTIME_HEARTBEAT_SECONDS,
                is_disconnected=request.is_disconnected,
            ):
                yield frame
        finally:
            connection_registry.disconnect(user_id, connection)

    return StreamingResponse(
        event_source(),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.get("/connections")
async def get_connection_stats(
    current_user: User = Depends(get_current_user),
):
    """Live connection count for this instance"""
    PermissionService.require_permission(current_user, Permission.SYSTEM_CONFIG)

    return {
        "active_connections": connection_registry.active_count,
        "connected_users": [str(user_id) for user_id in connection_registry.connected_users()],
    }

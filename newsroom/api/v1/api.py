from fastapi import APIRouter

from newsroom.api.v1.endpoints import articles, comments, notifications, realtime, users

api_router = APIRouter()

# Include routers
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(articles.router, prefix="/articles", tags=["articles"])
api_router.include_router(comments.router, prefix="/comments", tags=["comments"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["notifications"])
api_router.include_router(realtime.router, prefix="/realtime", tags=["realtime"])

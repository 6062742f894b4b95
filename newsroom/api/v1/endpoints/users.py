from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from newsroom.api.v1.dependencies.auth import get_current_user
from newsroom.core.exceptions import NotFoundError
from newsroom.db.session import get_db
from newsroom.models.user import User
from newsroom.repositories.user import UserRepository
from newsroom.schemas.user import UserResponse, UserRoleUpdate
from newsroom.services.permission import PermissionService

logger = structlog.get_logger()

router = APIRouter()


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    current_user: User = Depends(get_current_user)
):
    """Get current user information"""
    return current_user


@router.patch("/{user_id}/role", response_model=UserResponse)
async def update_user_role(
    user_id: UUID,
    role_update: UserRoleUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Change a user's role"""
    user_repo = UserRepository(db)
    user = await user_repo.get(user_id)
    if not user:
        raise NotFoundError("User not found")

    PermissionService.require_role_management(current_user, user.role, role_update.role)

    previous_role = user.role
    user = await user_repo.update_role(user, role_update.role)

    logger.info(
        "User role changed",
        user_id=str(user_id),
        old_role=previous_role.value,
        new_role=role_update.role.value,
        changed_by=str(current_user.id),
    )
    return user

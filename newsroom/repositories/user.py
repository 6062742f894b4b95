from typing import List

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from newsroom.constants.enums import Role
from newsroom.models.user import User
from newsroom.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """User repository"""

    def __init__(self, db: AsyncSession):
        super().__init__(User, db)

    async def get_active_by_role(self, role: Role) -> List[User]:
        """All active users holding a role"""
        query = select(User).where(
            and_(
                User.role == role,
                User.is_active == True
            )
        ).order_by(User.username)

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def update_role(self, user: User, role: Role) -> User:
        """Change a user's role"""
        return await self.update(user, role=role)

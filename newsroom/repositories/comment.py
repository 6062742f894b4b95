from sqlalchemy.ext.asyncio import AsyncSession

from newsroom.constants.enums import CommentStatus
from newsroom.models.comment import Comment
from newsroom.repositories.base import BaseRepository


class CommentRepository(BaseRepository[Comment]):
    """Comment repository"""

    def __init__(self, db: AsyncSession):
        super().__init__(Comment, db)

    async def update_status(self, comment: Comment, status: CommentStatus) -> Comment:
        return await self.update(comment, status=status)

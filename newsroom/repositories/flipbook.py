from sqlalchemy.ext.asyncio import AsyncSession

from newsroom.models.flipbook import Flipbook
from newsroom.repositories.base import BaseRepository


class FlipbookRepository(BaseRepository[Flipbook]):
    """Flipbook repository"""

    def __init__(self, db: AsyncSession):
        super().__init__(Flipbook, db)

from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy import and_, update
from sqlalchemy.ext.asyncio import AsyncSession

from newsroom.constants.enums import ArticleStatus
from newsroom.models.article import Article
from newsroom.repositories.base import BaseRepository


class ArticleRepository(BaseRepository[Article]):
    """Article repository"""

    def __init__(self, db: AsyncSession):
        super().__init__(Article, db)

    async def compare_and_set_status(
        self,
        article_id: UUID,
        expected_status: ArticleStatus,
        new_status: ArticleStatus,
        *,
        published_at: Optional[datetime] = None,
        scheduled_at: Optional[datetime] = None,
    ) -> bool:
        """
        Move an article to new_status only if it is still in expected_status.
        Returns False when another writer changed the status first.
        """
        values: Dict[str, Any] = {"status": new_status}
        if published_at is not None:
            values["published_at"] = published_at
        if scheduled_at is not None:
            values["scheduled_at"] = scheduled_at

        query = (
            update(Article)
            .where(
                and_(
                    Article.id == article_id,
                    Article.status == expected_status
                )
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )

        result = await self.db.execute(query)
        return result.rowcount == 1

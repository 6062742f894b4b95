"""
Shared test fixtures and configuration
"""
import os

# Settings are read at import time, so configure the environment first
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./newsroom_test.db")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["EMAIL_ENABLED"] = "false"
os.environ["REDIS_URL"] = ""
os.environ["LOG_FORMAT"] = "console"

from typing import AsyncGenerator, Iterable, List, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from newsroom.constants.enums import ArticleStatus, CommentStatus, Role
from newsroom.core.exceptions import ChannelDeliveryError
from newsroom.core.security import create_access_token
from newsroom.db.session import Base, get_db
from newsroom.main import app
from newsroom.models.article import Article
from newsroom.models.comment import Comment
from newsroom.models.flipbook import Flipbook
from newsroom.models.user import User
from newsroom.services.email import EmailSender, get_email_sender
from newsroom.services.realtime import (
    ConnectionRegistry,
    LocalBroker,
    RealtimePusher,
    get_realtime_pusher,
)
from newsroom.utils.background import BackgroundTaskTracker, background_tasks


class RecordingEmailSender(EmailSender):
    """Email sender that records messages, optionally failing for some addresses"""

    def __init__(self, fail_for: Iterable[str] = (), fail_all: bool = False):
        self.sent: List[tuple] = []
        self.fail_for = set(fail_for)
        self.fail_all = fail_all

    async def send(self, to: str, subject: str, html_body: str) -> bool:
        if self.fail_all or to in self.fail_for:
            raise ChannelDeliveryError("email", to, "SMTP relay unavailable")
        self.sent.append((to, subject, html_body))
        return True

    @property
    def recipients(self) -> List[str]:
        return [to for to, _, _ in self.sent]


class FailingPusher(RealtimePusher):
    """Realtime pusher whose broker always fails"""

    def __init__(self):
        super().__init__(broker=None)

    async def push_notification(self, user_id, notification) -> bool:
        raise ChannelDeliveryError("realtime", user_id, "broker unavailable")


# Database fixtures
@pytest_asyncio.fixture
async def test_engine(tmp_path):
    """Fresh SQLite database per test"""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'newsroom.db'}", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Test database session"""
    async with session_factory() as session:
        try:
            yield session
        finally:
            if session.in_transaction():
                await session.rollback()


# Data helpers
async def create_user(
    db: AsyncSession,
    role: Role,
    username: str,
    is_active: bool = True,
) -> User:
    user = User(
        username=username,
        email=f"{username}@example.com",
        first_name=username.split("_")[0].title(),
        last_name="Tester",
        role=role,
        is_active=is_active,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def create_article(
    db: AsyncSession,
    author: User,
    status: ArticleStatus = ArticleStatus.DRAFT,
    title: str = "City council passes budget",
) -> Article:
    article = Article(title=title, status=status, author_id=author.id)
    db.add(article)
    await db.commit()
    await db.refresh(article)
    return article


async def create_comment(
    db: AsyncSession,
    article: Article,
    author: User,
    content: str = "Great reporting.",
    status: CommentStatus = CommentStatus.PENDING,
) -> Comment:
    comment = Comment(article_id=article.id, author_id=author.id, content=content, status=status)
    db.add(comment)
    await db.commit()
    await db.refresh(comment)
    return comment


async def create_flipbook(db: AsyncSession, creator: Optional[User], name: str = "Spring Issue") -> Flipbook:
    flipbook = Flipbook(name=name, created_by_id=creator.id if creator else None)
    db.add(flipbook)
    await db.commit()
    await db.refresh(flipbook)
    return flipbook


# User fixtures
@pytest_asyncio.fixture
async def staff_user(db_session: AsyncSession) -> User:
    return await create_user(db_session, Role.STAFF, "staff_writer")


@pytest_asyncio.fixture
async def other_staff_user(db_session: AsyncSession) -> User:
    return await create_user(db_session, Role.STAFF, "other_writer")


@pytest_asyncio.fixture
async def section_heads(db_session: AsyncSession) -> List[User]:
    return [
        await create_user(db_session, Role.SECTION_HEAD, "news_head"),
        await create_user(db_session, Role.SECTION_HEAD, "sports_head"),
    ]


@pytest_asyncio.fixture
async def section_head(section_heads: List[User]) -> User:
    return section_heads[0]


@pytest_asyncio.fixture
async def inactive_section_head(db_session: AsyncSession) -> User:
    return await create_user(db_session, Role.SECTION_HEAD, "retired_head", is_active=False)


@pytest_asyncio.fixture
async def editor_in_chief(db_session: AsyncSession) -> User:
    return await create_user(db_session, Role.EDITOR_IN_CHIEF, "chief_editor")


@pytest_asyncio.fixture
async def adviser(db_session: AsyncSession) -> User:
    return await create_user(db_session, Role.ADVISER, "faculty_adviser")


@pytest_asyncio.fixture
async def system_admin(db_session: AsyncSession) -> User:
    return await create_user(db_session, Role.SYSTEM_ADMIN, "site_admin")


@pytest_asyncio.fixture
async def newsroom_staff(
    staff_user, section_heads, editor_in_chief, adviser, system_admin
) -> dict:
    """One or more users for every role"""
    return {
        Role.STAFF: staff_user,
        Role.SECTION_HEAD: section_heads[0],
        Role.EDITOR_IN_CHIEF: editor_in_chief,
        Role.ADVISER: adviser,
        Role.SYSTEM_ADMIN: system_admin,
    }


# Article fixtures
@pytest_asyncio.fixture
async def draft_article(db_session: AsyncSession, staff_user: User) -> Article:
    return await create_article(db_session, staff_user, ArticleStatus.DRAFT)


@pytest_asyncio.fixture
async def in_review_article(db_session: AsyncSession, staff_user: User) -> Article:
    return await create_article(db_session, staff_user, ArticleStatus.IN_REVIEW)


@pytest_asyncio.fixture
async def approved_article(db_session: AsyncSession, staff_user: User) -> Article:
    return await create_article(db_session, staff_user, ArticleStatus.APPROVED)


@pytest_asyncio.fixture
async def published_article(db_session: AsyncSession, staff_user: User) -> Article:
    return await create_article(db_session, staff_user, ArticleStatus.PUBLISHED)


# Channel fixtures
@pytest.fixture
def email_sender() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture
def registry() -> ConnectionRegistry:
    return ConnectionRegistry(queue_size=10)


@pytest.fixture
def pusher(registry: ConnectionRegistry) -> RealtimePusher:
    return RealtimePusher(LocalBroker(registry))


@pytest.fixture
def task_tracker() -> BackgroundTaskTracker:
    return BackgroundTaskTracker()


# API fixtures
@pytest_asyncio.fixture
async def client(session_factory, email_sender, pusher) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to the test database and recording channels"""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_email_sender] = lambda: email_sender
    app.dependency_overrides[get_realtime_pusher] = lambda: pusher

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    await background_tasks.drain()
    app.dependency_overrides.clear()


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(str(user.id))}"}


# Factory fixtures, so test modules do not import from conftest
@pytest.fixture
def make_user(db_session):
    async def _make(role: Role, username: str, is_active: bool = True) -> User:
        return await create_user(db_session, role, username, is_active=is_active)
    return _make


@pytest.fixture
def make_article(db_session):
    async def _make(author: User, status: ArticleStatus = ArticleStatus.DRAFT, title: str = "City council passes budget") -> Article:
        return await create_article(db_session, author, status, title=title)
    return _make


@pytest.fixture
def make_comment(db_session):
    async def _make(article: Article, author: User, content: str = "Great reporting.") -> Comment:
        return await create_comment(db_session, article, author, content=content)
    return _make


@pytest.fixture
def make_flipbook(db_session):
    async def _make(creator: Optional[User], name: str = "Spring Issue") -> Flipbook:
        return await create_flipbook(db_session, creator, name=name)
    return _make


@pytest.fixture
def failing_email_sender() -> RecordingEmailSender:
    return RecordingEmailSender(fail_all=True)


@pytest.fixture
def failing_pusher() -> FailingPusher:
    return FailingPusher()


@pytest.fixture
def headers_for():
    return auth_headers


@pytest.fixture
def email_sender_failing_for():
    def _make(*addresses: str) -> RecordingEmailSender:
        return RecordingEmailSender(fail_for=addresses)
    return _make

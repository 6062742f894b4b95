"""
Comment moderation, user role, realtime and health API tests
"""
from uuid import uuid4

import pytest
from sqlalchemy import select

from newsroom.constants.enums import CommentStatus, NotificationType, Role
from newsroom.models.notification import Notification
from newsroom.models.user import User
from newsroom.utils.background import background_tasks

API = "/api/v1"


@pytest.mark.asyncio
class TestCommentModeration:

    async def test_section_head_approves_and_author_is_notified(
        self, client, headers_for, session_factory, published_article, other_staff_user,
        section_head, make_comment, email_sender,
    ):
        comment = await make_comment(published_article, other_staff_user)

        response = await client.patch(
            f"{API}/comments/{comment.id}/status",
            json={"status": "approved"},
            headers=headers_for(section_head),
        )
        await background_tasks.drain()

        assert response.status_code == 200
        assert response.json()["status"] == "approved"

        async with session_factory() as session:
            result = await session.execute(
                select(Notification).where(Notification.user_id == other_staff_user.id)
            )
            [notification] = result.scalars().all()
        assert notification.type == NotificationType.SUCCESS
        assert notification.data["status"] == CommentStatus.APPROVED.value
        assert email_sender.recipients == [other_staff_user.email]

    async def test_staff_cannot_moderate(self, client, headers_for, published_article, staff_user, other_staff_user, make_comment):
        comment = await make_comment(published_article, other_staff_user)

        response = await client.patch(
            f"{API}/comments/{comment.id}/status",
            json={"status": "rejected"},
            headers=headers_for(staff_user),
        )

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "PERMISSION_DENIED"

    async def test_unknown_comment(self, client, headers_for, section_head):
        response = await client.patch(
            f"{API}/comments/{uuid4()}/status",
            json={"status": "approved"},
            headers=headers_for(section_head),
        )

        assert response.status_code == 404


@pytest.mark.asyncio
class TestUserEndpoints:

    async def test_me(self, client, headers_for, staff_user):
        response = await client.get(f"{API}/users/me", headers=headers_for(staff_user))

        assert response.status_code == 200
        assert response.json()["username"] == staff_user.username
        assert response.json()["role"] == "staff"

    async def test_editor_in_chief_promotes_staff(self, client, headers_for, session_factory, staff_user, editor_in_chief):
        response = await client.patch(
            f"{API}/users/{staff_user.id}/role",
            json={"role": "section_head"},
            headers=headers_for(editor_in_chief),
        )

        assert response.status_code == 200
        assert response.json()["role"] == "section_head"
        async with session_factory() as session:
            assert (await session.get(User, staff_user.id)).role == Role.SECTION_HEAD

    async def test_editor_in_chief_cannot_grant_system_admin(self, client, headers_for, staff_user, editor_in_chief):
        response = await client.patch(
            f"{API}/users/{staff_user.id}/role",
            json={"role": "system_admin"},
            headers=headers_for(editor_in_chief),
        )

        assert response.status_code == 403

    async def test_section_head_cannot_change_roles(self, client, headers_for, staff_user, section_head):
        response = await client.patch(
            f"{API}/users/{staff_user.id}/role",
            json={"role": "section_head"},
            headers=headers_for(section_head),
        )

        assert response.status_code == 403

    async def test_unknown_user(self, client, headers_for, system_admin):
        response = await client.patch(
            f"{API}/users/{uuid4()}/role",
            json={"role": "staff"},
            headers=headers_for(system_admin),
        )

        assert response.status_code == 404


@pytest.mark.asyncio
class TestRealtimeEndpoints:

    async def test_stream_requires_token(self, client):
        missing = await client.get(f"{API}/realtime/stream")
        invalid = await client.get(f"{API}/realtime/stream", params={"token": "not-a-jwt"})

        assert missing.status_code == 401
        assert invalid.status_code == 401

    async def test_connection_stats_require_system_config(self, client, headers_for, adviser, editor_in_chief):
        allowed = await client.get(f"{API}/realtime/connections", headers=headers_for(adviser))
        denied = await client.get(f"{API}/realtime/connections", headers=headers_for(editor_in_chief))

        assert allowed.status_code == 200
        assert "active_connections" in allowed.json()
        assert denied.status_code == 403


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"

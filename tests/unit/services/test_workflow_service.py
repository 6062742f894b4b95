"""
Workflow service unit tests
"""
import asyncio
from datetime import datetime, timedelta, timezone
from itertools import product

import pytest

from newsroom.constants.enums import ArticleStatus, Role
from newsroom.core.exceptions import (
    InvalidTransitionError,
    NotFoundError,
    OwnershipError,
    PermissionDeniedError,
    ValidationError,
)
from newsroom.models.article import Article
from newsroom.schemas.events import TransitionEvent
from newsroom.services.workflow import WorkflowService

BOARD = {Role.EDITOR_IN_CHIEF, Role.ADVISER, Role.SYSTEM_ADMIN}
REVIEWERS = BOARD | {Role.SECTION_HEAD}
TOP_TWO = {Role.ADVISER, Role.SYSTEM_ADMIN}
EVERYONE = set(Role)

# Who may take each edge, written out independently of the service's tables
EXPECTED_EDGES = {
    (ArticleStatus.DRAFT, ArticleStatus.IN_REVIEW): EVERYONE,
    (ArticleStatus.NEEDS_REVISION, ArticleStatus.IN_REVIEW): EVERYONE,
    (ArticleStatus.IN_REVIEW, ArticleStatus.APPROVED): REVIEWERS,
    (ArticleStatus.IN_REVIEW, ArticleStatus.NEEDS_REVISION): REVIEWERS,
    (ArticleStatus.APPROVED, ArticleStatus.SCHEDULED): BOARD,
    (ArticleStatus.APPROVED, ArticleStatus.PUBLISHED): BOARD,
    (ArticleStatus.SCHEDULED, ArticleStatus.PUBLISHED): BOARD,
    (ArticleStatus.PUBLISHED, ArticleStatus.ARCHIVED): REVIEWERS,
    (ArticleStatus.APPROVED, ArticleStatus.IN_REVIEW): BOARD,
    (ArticleStatus.ARCHIVED, ArticleStatus.IN_REVIEW): TOP_TWO,
}


class TestCheckTransition:
    """Pure edge and role checks"""

    @pytest.mark.parametrize(
        "current,target,role",
        list(product(ArticleStatus, ArticleStatus, Role)),
    )
    def test_edge_table_for_owner(self, current, target, role):
        allowed_roles = EXPECTED_EDGES.get((current, target))

        if allowed_roles is None:
            with pytest.raises(InvalidTransitionError):
                WorkflowService.check_transition(current, target, role, is_owner=True)
        elif role not in allowed_roles:
            with pytest.raises(PermissionDeniedError):
                WorkflowService.check_transition(current, target, role, is_owner=True)
        else:
            WorkflowService.check_transition(current, target, role, is_owner=True)

    @pytest.mark.parametrize("edge", list(EXPECTED_EDGES))
    def test_non_owner(self, edge):
        current, target = edge
        for role in EXPECTED_EDGES[edge]:
            if role == Role.STAFF:
                with pytest.raises(OwnershipError):
                    WorkflowService.check_transition(current, target, role, is_owner=False)
            else:
                WorkflowService.check_transition(current, target, role, is_owner=False)

    def test_missing_edge_is_reported_before_role(self):
        with pytest.raises(InvalidTransitionError):
            WorkflowService.check_transition(
                ArticleStatus.PUBLISHED, ArticleStatus.IN_REVIEW, Role.STAFF, is_owner=False
            )

    def test_editor_in_chief_cannot_restore_archived(self):
        with pytest.raises(PermissionDeniedError):
            WorkflowService.check_transition(
                ArticleStatus.ARCHIVED, ArticleStatus.IN_REVIEW, Role.EDITOR_IN_CHIEF, is_owner=True
            )
        WorkflowService.check_transition(
            ArticleStatus.ARCHIVED, ArticleStatus.IN_REVIEW, Role.ADVISER, is_owner=False
        )

    def test_role_is_reported_before_ownership(self):
        with pytest.raises(PermissionDeniedError):
            WorkflowService.check_transition(
                ArticleStatus.IN_REVIEW, ArticleStatus.APPROVED, Role.STAFF, is_owner=False
            )

    def test_allowed_transitions_include_back_edges(self):
        assert WorkflowService.get_allowed_transitions(ArticleStatus.APPROVED) == sorted(
            [ArticleStatus.IN_REVIEW, ArticleStatus.PUBLISHED, ArticleStatus.SCHEDULED],
            key=lambda s: s.value,
        )
        assert WorkflowService.get_allowed_transitions(ArticleStatus.ARCHIVED) == [ArticleStatus.IN_REVIEW]


@pytest.mark.asyncio
class TestRequestTransition:
    """Transitions against the database"""

    async def test_submit_draft(self, db_session, draft_article, staff_user):
        workflow_service = WorkflowService(db_session)

        event = await workflow_service.request_transition(
            draft_article, ArticleStatus.IN_REVIEW, staff_user
        )

        assert event.article_id == draft_article.id
        assert event.old_status == ArticleStatus.DRAFT
        assert event.new_status == ArticleStatus.IN_REVIEW
        assert event.actor_role == Role.STAFF
        assert draft_article.status == ArticleStatus.IN_REVIEW

    async def test_approve_twice_is_rejected(self, db_session, in_review_article, section_head):
        workflow_service = WorkflowService(db_session)

        await workflow_service.request_transition(in_review_article, ArticleStatus.APPROVED, section_head)
        await db_session.commit()

        with pytest.raises(InvalidTransitionError):
            await workflow_service.request_transition(in_review_article, ArticleStatus.APPROVED, section_head)

        await db_session.refresh(in_review_article)
        assert in_review_article.status == ArticleStatus.APPROVED

    async def test_staff_cannot_submit_someone_elses_draft(self, db_session, draft_article, other_staff_user):
        workflow_service = WorkflowService(db_session)

        with pytest.raises(OwnershipError):
            await workflow_service.request_transition(draft_article, ArticleStatus.IN_REVIEW, other_staff_user)

    async def test_publish_sets_published_at_once(self, db_session, approved_article, editor_in_chief, adviser, section_head):
        workflow_service = WorkflowService(db_session)

        await workflow_service.request_transition(approved_article, ArticleStatus.PUBLISHED, editor_in_chief)
        await db_session.commit()
        first_published_at = approved_article.published_at
        assert first_published_at is not None

        # Archive, restore, approve and publish again: the original date stays
        await workflow_service.request_transition(approved_article, ArticleStatus.ARCHIVED, editor_in_chief)
        await workflow_service.request_transition(approved_article, ArticleStatus.IN_REVIEW, adviser)
        await workflow_service.request_transition(approved_article, ArticleStatus.APPROVED, section_head)
        await workflow_service.request_transition(approved_article, ArticleStatus.PUBLISHED, adviser)
        await db_session.commit()

        assert approved_article.status == ArticleStatus.PUBLISHED
        assert approved_article.published_at == first_published_at

    async def test_schedule_requires_future_aware_time(self, db_session, approved_article, editor_in_chief):
        workflow_service = WorkflowService(db_session)

        with pytest.raises(ValidationError):
            await workflow_service.request_transition(approved_article, ArticleStatus.SCHEDULED, editor_in_chief)
        with pytest.raises(ValidationError):
            await workflow_service.request_transition(
                approved_article, ArticleStatus.SCHEDULED, editor_in_chief,
                scheduled_at=datetime.now() + timedelta(days=1),
            )
        with pytest.raises(ValidationError):
            await workflow_service.request_transition(
                approved_article, ArticleStatus.SCHEDULED, editor_in_chief,
                scheduled_at=datetime.now(timezone.utc) - timedelta(minutes=5),
            )

        await workflow_service.request_transition(
            approved_article, ArticleStatus.SCHEDULED, editor_in_chief,
            scheduled_at=datetime.now(timezone.utc) + timedelta(days=1),
        )
        assert approved_article.status == ArticleStatus.SCHEDULED
        assert approved_article.scheduled_at is not None

    async def test_invalid_edge_does_not_write(self, db_session, published_article, editor_in_chief):
        workflow_service = WorkflowService(db_session)

        with pytest.raises(InvalidTransitionError):
            await workflow_service.request_transition(published_article, ArticleStatus.IN_REVIEW, editor_in_chief)

        await db_session.refresh(published_article)
        assert published_article.status == ArticleStatus.PUBLISHED

    async def test_concurrent_approvals_only_one_wins(self, session_factory, in_review_article, section_heads):
        first_head, second_head = section_heads

        async with session_factory() as first, session_factory() as second:
            first_copy = await first.get(Article, in_review_article.id)
            second_copy = await second.get(Article, in_review_article.id)
            assert first_copy.status == second_copy.status == ArticleStatus.IN_REVIEW

            await WorkflowService(first).request_transition(first_copy, ArticleStatus.APPROVED, first_head)
            await first.commit()

            with pytest.raises(InvalidTransitionError):
                await WorkflowService(second).request_transition(second_copy, ArticleStatus.APPROVED, second_head)
            await second.rollback()

        async with session_factory() as check:
            article = await check.get(Article, in_review_article.id)
            assert article.status == ArticleStatus.APPROVED

    async def test_interleaved_approvals_only_one_wins(self, session_factory, in_review_article, section_heads):
        async def approve(session, head, article):
            try:
                event = await WorkflowService(session).request_transition(article, ArticleStatus.APPROVED, head)
                await session.commit()
                return event
            except InvalidTransitionError:
                await session.rollback()
                raise

        async with session_factory() as first, session_factory() as second:
            first_copy = await first.get(Article, in_review_article.id)
            second_copy = await second.get(Article, in_review_article.id)

            results = await asyncio.gather(
                approve(first, section_heads[0], first_copy),
                approve(second, section_heads[1], second_copy),
                return_exceptions=True,
            )

        events = [r for r in results if isinstance(r, TransitionEvent)]
        failures = [r for r in results if isinstance(r, InvalidTransitionError)]
        assert len(events) == 1
        assert len(failures) == 1
        assert events[0].old_status == ArticleStatus.IN_REVIEW

        async with session_factory() as check:
            article = await check.get(Article, in_review_article.id)
            assert article.status == ArticleStatus.APPROVED

    async def test_apply_transition_unknown_article(self, db_session, staff_user):
        from uuid import uuid4

        with pytest.raises(NotFoundError):
            await WorkflowService(db_session).apply_transition(uuid4(), ArticleStatus.IN_REVIEW, staff_user)

    async def test_available_transitions_depend_on_role(self, db_session, approved_article, section_head, editor_in_chief):
        workflow_service = WorkflowService(db_session)

        assert workflow_service.get_available_transitions(approved_article, section_head) == []
        assert set(workflow_service.get_available_transitions(approved_article, editor_in_chief)) == {
            ArticleStatus.IN_REVIEW,
            ArticleStatus.SCHEDULED,
            ArticleStatus.PUBLISHED,
        }


@pytest.mark.asyncio
class TestEditArticle:
    """Content edits outside the workflow"""

    async def test_edit_keeps_status_and_describes_it(self, db_session, in_review_article, section_head):
        article, event = await WorkflowService(db_session).edit_article(
            in_review_article.id, section_head, "Sharper headline"
        )

        assert article.title == "Sharper headline"
        assert article.status == ArticleStatus.IN_REVIEW
        assert event.status == ArticleStatus.IN_REVIEW
        assert event.actor_role == Role.SECTION_HEAD

    async def test_edit_checks_permission_before_writing(self, db_session, session_factory, in_review_article, staff_user):
        original_title = in_review_article.title

        with pytest.raises(PermissionDeniedError):
            await WorkflowService(db_session).edit_article(in_review_article.id, staff_user, "Changed")

        async with session_factory() as check:
            assert (await check.get(Article, in_review_article.id)).title == original_title

    async def test_edit_unknown_article(self, db_session, staff_user):
        from uuid import uuid4

        with pytest.raises(NotFoundError):
            await WorkflowService(db_session).edit_article(uuid4(), staff_user, "Anything")

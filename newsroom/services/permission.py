"""
Role based access control.

A static capability matrix mapping each role to the permission tokens it
holds. Workflow edges, comment moderation, user role changes and the
realtime connection stats all consult this module instead of comparing
roles inline.
"""
from enum import Enum
from typing import Dict, FrozenSet, Iterable, List

import structlog

from newsroom.constants.enums import ArticleStatus, Role
from newsroom.core.exceptions import OwnershipError, PermissionDeniedError
from newsroom.models.article import Article
from newsroom.models.user import User

logger = structlog.get_logger()


class Permission(str, Enum):
    """Permission tokens"""
    # User management
    USER_CREATE = "user:create"
    USER_READ = "user:read"
    USER_UPDATE = "user:update"
    USER_DELETE = "user:delete"
    USER_ACTIVATE = "user:activate"
    USER_DEACTIVATE = "user:deactivate"
    USER_ROLE_CHANGE = "user:role_change"

    # Articles
    ARTICLE_CREATE = "article:create"
    ARTICLE_READ = "article:read"
    ARTICLE_UPDATE = "article:update"
    ARTICLE_DELETE = "article:delete"
    ARTICLE_SUBMIT = "article:submit"
    ARTICLE_REVIEW = "article:review"
    ARTICLE_APPROVE = "article:approve"
    ARTICLE_REJECT = "article:reject"
    ARTICLE_PUBLISH = "article:publish"
    ARTICLE_SCHEDULE = "article:schedule"
    ARTICLE_ARCHIVE = "article:archive"
    ARTICLE_RETURN = "article:return"
    ARTICLE_RESTORE = "article:restore"

    # Categories and tags
    CATEGORY_CREATE = "category:create"
    CATEGORY_READ = "category:read"
    CATEGORY_UPDATE = "category:update"
    CATEGORY_DELETE = "category:delete"
    TAG_CREATE = "tag:create"
    TAG_READ = "tag:read"
    TAG_UPDATE = "tag:update"
    TAG_DELETE = "tag:delete"

    # Comments
    COMMENT_READ = "comment:read"
    COMMENT_DELETE = "comment:delete"
    COMMENT_MODERATE = "comment:moderate"

    # Media
    MEDIA_UPLOAD = "media:upload"
    MEDIA_READ = "media:read"
    MEDIA_DELETE = "media:delete"

    # Analytics and reports
    ANALYTICS_READ = "analytics:read"
    REPORTS_GENERATE = "reports:generate"

    # System administration
    SYSTEM_CONFIG = "system:config"
    SYSTEM_BACKUP = "system:backup"
    SYSTEM_LOGS = "system:logs"
    SYSTEM_MAINTENANCE = "system:maintenance"

    # Announcements
    ANNOUNCEMENT_CREATE = "announcement:create"
    ANNOUNCEMENT_READ = "announcement:read"
    ANNOUNCEMENT_UPDATE = "announcement:update"
    ANNOUNCEMENT_DELETE = "announcement:delete"
    ANNOUNCEMENT_PUBLISH = "announcement:publish"

    # Editorial notes
    EDITORIAL_NOTE_CREATE = "editorial_note:create"
    EDITORIAL_NOTE_READ = "editorial_note:read"
    EDITORIAL_NOTE_UPDATE = "editorial_note:update"
    EDITORIAL_NOTE_DELETE = "editorial_note:delete"


_SYSTEM_OPERATIONS = frozenset({
    Permission.SYSTEM_CONFIG,
    Permission.SYSTEM_BACKUP,
    Permission.SYSTEM_LOGS,
    Permission.SYSTEM_MAINTENANCE,
})

_EDITORIAL_BOARD = frozenset(Permission) - _SYSTEM_OPERATIONS

ROLE_PERMISSIONS: Dict[Role, FrozenSet[Permission]] = {
    Role.SYSTEM_ADMIN: frozenset(Permission),

    Role.ADVISER: _EDITORIAL_BOARD | {Permission.SYSTEM_CONFIG},

    # Restoring archived articles is reserved for the top two roles
    Role.EDITOR_IN_CHIEF: _EDITORIAL_BOARD - {Permission.ARTICLE_RESTORE},

    Role.SECTION_HEAD: frozenset({
        Permission.ARTICLE_CREATE,
        Permission.ARTICLE_READ,
        Permission.ARTICLE_UPDATE,
        Permission.ARTICLE_SUBMIT,
        Permission.ARTICLE_REVIEW,
        Permission.ARTICLE_APPROVE,
        Permission.ARTICLE_REJECT,
        Permission.ARTICLE_ARCHIVE,
        Permission.CATEGORY_READ,
        Permission.CATEGORY_UPDATE,
        Permission.TAG_READ,
        Permission.TAG_UPDATE,
        Permission.COMMENT_READ,
        Permission.COMMENT_MODERATE,
        Permission.MEDIA_UPLOAD,
        Permission.MEDIA_READ,
        Permission.EDITORIAL_NOTE_CREATE,
        Permission.EDITORIAL_NOTE_READ,
        Permission.EDITORIAL_NOTE_UPDATE,
    }),

    Role.STAFF: frozenset({
        Permission.USER_READ,
        Permission.ARTICLE_CREATE,
        Permission.ARTICLE_READ,
        Permission.ARTICLE_UPDATE,
        Permission.ARTICLE_SUBMIT,
        Permission.CATEGORY_READ,
        Permission.TAG_READ,
        Permission.MEDIA_UPLOAD,
        Permission.MEDIA_READ,
        Permission.MEDIA_DELETE,
        Permission.EDITORIAL_NOTE_READ,
    }),
}

ROLE_HIERARCHY: Dict[Role, int] = {
    Role.STAFF: 0,
    Role.SECTION_HEAD: 1,
    Role.EDITOR_IN_CHIEF: 2,
    Role.ADVISER: 3,
    Role.SYSTEM_ADMIN: 4,
}

# Statuses in which roles without review rights may edit their own articles
AUTHOR_EDITABLE_STATUSES: FrozenSet[ArticleStatus] = frozenset({
    ArticleStatus.DRAFT,
    ArticleStatus.NEEDS_REVISION,
})

# Roles that may administer user accounts, and the roles they may assign
_ROLE_MANAGERS: Dict[Role, FrozenSet[Role]] = {
    Role.SYSTEM_ADMIN: frozenset(Role),
    Role.ADVISER: frozenset(Role) - {Role.SYSTEM_ADMIN},
    Role.EDITOR_IN_CHIEF: frozenset(Role) - {Role.SYSTEM_ADMIN},
}


def has_permission(role: Role, permission: Permission) -> bool:
    """Check if a role holds a permission"""
    return permission in ROLE_PERMISSIONS.get(role, frozenset())


def has_any_permission(role: Role, permissions: Iterable[Permission]) -> bool:
    return any(has_permission(role, permission) for permission in permissions)


def has_all_permissions(role: Role, permissions: Iterable[Permission]) -> bool:
    return all(has_permission(role, permission) for permission in permissions)


def get_role_permissions(role: Role) -> List[Permission]:
    """All permissions held by a role, sorted by token"""
    return sorted(ROLE_PERMISSIONS.get(role, frozenset()), key=lambda p: p.value)


def get_role_level(role: Role) -> int:
    """Hierarchy level, higher means more privileges"""
    return ROLE_HIERARCHY.get(role, 0)


def can_manage_role(manager_role: Role, target_role: Role) -> bool:
    """Check if manager_role may change the role of a user holding (or receiving) target_role"""
    return target_role in _ROLE_MANAGERS.get(manager_role, frozenset())


def can_create_user_role(creator_role: Role, target_role: Role) -> bool:
    """Check if creator_role may create accounts with target_role"""
    return target_role in _ROLE_MANAGERS.get(creator_role, frozenset())


class PermissionService:
    """Raises on failed access checks"""

    @staticmethod
    def require_permission(user: User, permission: Permission) -> None:
        if not has_permission(user.role, permission):
            logger.warning(
                "Permission denied",
                user_id=str(user.id),
                role=user.role.value,
                permission=permission.value,
            )
            raise PermissionDeniedError(
                f"Role {user.role.value} lacks permission {permission.value}"
            )

    @staticmethod
    def require_any_permission(user: User, permissions: Iterable[Permission]) -> None:
        permissions = list(permissions)
        if not has_any_permission(user.role, permissions):
            raise PermissionDeniedError(
                f"Role {user.role.value} lacks all of: "
                + ", ".join(p.value for p in permissions)
            )

    @staticmethod
    def require_article_ownership(user: User, article: Article) -> None:
        """Roles without review rights may only act on their own articles"""
        if has_permission(user.role, Permission.ARTICLE_REVIEW):
            return
        if article.author_id != user.id:
            raise OwnershipError("You can only act on your own articles")

    @staticmethod
    def require_article_edit(user: User, article: Article) -> None:
        """Reviewers may edit any article; authors only their own, before review"""
        PermissionService.require_permission(user, Permission.ARTICLE_UPDATE)
        if has_permission(user.role, Permission.ARTICLE_REVIEW):
            return
        PermissionService.require_article_ownership(user, article)
        if article.status not in AUTHOR_EDITABLE_STATUSES:
            raise PermissionDeniedError(
                f"Articles in {article.status.value} can only be edited by reviewers"
            )

    @staticmethod
    def require_role_management(manager: User, current_role: Role, new_role: Role) -> None:
        """Check a role change against both the user's present and requested role"""
        PermissionService.require_permission(manager, Permission.USER_ROLE_CHANGE)
        for role in (current_role, new_role):
            if not can_manage_role(manager.role, role):
                raise PermissionDeniedError(
                    f"Role {manager.role.value} cannot manage role {role.value}"
                )

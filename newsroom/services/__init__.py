from newsroom.services.dispatcher import NotificationDispatcher
from newsroom.services.notification import NotificationService
from newsroom.services.permission import PermissionService
from newsroom.services.recipients import RecipientResolver
from newsroom.services.workflow import WorkflowService

__all__ = [
    "NotificationDispatcher",
    "NotificationService",
    "PermissionService",
    "RecipientResolver",
    "WorkflowService",
]

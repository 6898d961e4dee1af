"""Domain models and protocols."""

from .models import (
    Comment,
    EditorBuffer,
    MentionToken,
    Notification,
    NotificationType,
    ParentType,
    Person,
    ThreadState,
)
from .protocols import (
    CollaborationService,
    IdentityDirectory,
    NotificationWriter,
)
from .exceptions import ServiceError
from .policy import AccessPolicy

__all__ = [
    "Comment",
    "EditorBuffer",
    "MentionToken",
    "Notification",
    "NotificationType",
    "ParentType",
    "Person",
    "ThreadState",
    "CollaborationService",
    "IdentityDirectory",
    "NotificationWriter",
    "ServiceError",
    "AccessPolicy",
]

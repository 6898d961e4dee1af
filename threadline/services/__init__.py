"""Service layer implementations."""

from .comment_thread import CommentThreadController, DispatchHandle
from .mention_service import MentionNotifier
from .notification_center import NotificationCenter

__all__ = [
    "CommentThreadController",
    "DispatchHandle",
    "MentionNotifier",
    "NotificationCenter",
]

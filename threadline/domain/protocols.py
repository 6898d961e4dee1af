"""Protocol definitions for dependency injection."""

from typing import Protocol, runtime_checkable, Optional, Sequence

from .models import Comment, Notification, NotificationType, ParentType, Person


@runtime_checkable
class CollaborationService(Protocol):
    """Persistence operations consumed by the thread and notification components.

    Implementations raise ``ServiceError`` for transport or storage failures.
    """

    async def fetch_comments(
        self, parent_type: ParentType, parent_id: str
    ) -> Sequence[Comment]:
        """Comments for a parent record, oldest first."""
        ...

    async def create_comment(
        self,
        parent_type: ParentType,
        parent_id: str,
        author_id: str,
        body: str,
    ) -> Optional[Comment]:
        """Persist a comment, return it or None when the backend refused."""
        ...

    async def create_mention_notifications(
        self,
        body: str,
        author_id: str,
        parent_type: ParentType,
        parent_id: str,
    ) -> None:
        """Resolve mentions in body and notify each person (author excluded)."""
        ...

    async def fetch_notifications(self, recipient_id: str) -> Sequence[Notification]:
        """All notifications for a recipient."""
        ...

    async def mark_notification_as_read(self, notification_id: str) -> bool:
        """Mark a notification read, return True if successful."""
        ...

    async def mark_all_notifications_as_read(self, recipient_id: str) -> bool:
        """Mark every notification of a recipient read."""
        ...


@runtime_checkable
class IdentityDirectory(Protocol):
    """Lookup of people that can be mentioned."""

    async def list_people(self) -> Sequence[Person]:
        """Return every known person."""
        ...


@runtime_checkable
class NotificationWriter(Protocol):
    """Creates notification records."""

    async def create_notification(
        self,
        recipient_id: str,
        type: NotificationType,
        payload: dict,
    ) -> Optional[Notification]:
        """Create a notification, return it or None on refusal."""
        ...

"""In-memory implementation of the collaboration service for testing."""

import uuid
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional, Sequence

from ..domain.models import (
    Comment,
    Notification,
    NotificationType,
    ParentType,
    Person,
)
from ..parsers.mention_parser import MentionParser
from ..services.mention_service import MentionNotifier


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryCollaborationService:
    """Comments, notifications and people kept in process memory."""

    def __init__(
        self,
        people: Iterable[Person] = (),
        *,
        parser: Optional[MentionParser] = None,
        preview_length: int = 100,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._comments: list[Comment] = []
        self._notifications: dict[str, Notification] = {}
        self._people: list[Person] = list(people)
        self._clock = clock
        self._notifier = MentionNotifier(
            self, self, parser, preview_length=preview_length
        )

    def add_person(self, person: Person) -> None:
        self._people.append(person)

    async def list_people(self) -> Sequence[Person]:
        return list(self._people)

    async def fetch_comments(
        self, parent_type: ParentType, parent_id: str
    ) -> Sequence[Comment]:
        matching = [
            c for c in self._comments
            if c.parent_type == parent_type and c.parent_id == parent_id
        ]
        return sorted(matching, key=lambda c: c.created_at)

    async def create_comment(
        self,
        parent_type: ParentType,
        parent_id: str,
        author_id: str,
        body: str,
    ) -> Optional[Comment]:
        if not parent_id:
            raise ValueError("parent_id is required")
        comment = Comment(
            id=str(uuid.uuid4()),
            parent_type=parent_type,
            parent_id=parent_id,
            author_id=author_id,
            body=body,
            created_at=self._clock(),
        )
        self._comments.append(comment)
        return comment

    async def create_notification(
        self,
        recipient_id: str,
        type: NotificationType,
        payload: dict,
    ) -> Optional[Notification]:
        notification = Notification(
            id=str(uuid.uuid4()),
            recipient_id=recipient_id,
            type=type,
            payload=dict(payload),
            created_at=self._clock(),
        )
        self._notifications[notification.id] = notification
        return notification

    async def create_mention_notifications(
        self,
        body: str,
        author_id: str,
        parent_type: ParentType,
        parent_id: str,
    ) -> None:
        await self._notifier.notify(body, author_id, parent_type, parent_id)

    async def fetch_notifications(self, recipient_id: str) -> Sequence[Notification]:
        matching = [
            n for n in self._notifications.values() if n.recipient_id == recipient_id
        ]
        return sorted(matching, key=lambda n: n.created_at, reverse=True)

    async def mark_notification_as_read(self, notification_id: str) -> bool:
        notification = self._notifications.get(notification_id)
        if notification is None:
            return False
        notification.mark_read()
        return True

    async def mark_all_notifications_as_read(self, recipient_id: str) -> bool:
        for notification in self._notifications.values():
            if notification.recipient_id == recipient_id:
                notification.mark_read()
        return True

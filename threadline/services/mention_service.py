"""Service for resolving mentions and creating mention notifications."""

import logging
from typing import Optional, Sequence

from ..domain.models import (
    Notification,
    NotificationType,
    ParentType,
    Person,
)
from ..domain.protocols import IdentityDirectory, NotificationWriter
from ..parsers.mention_parser import MentionParser

logger = logging.getLogger(__name__)


class MentionNotifier:
    """Turns the mentions in a comment body into notifications."""

    def __init__(
        self,
        directory: IdentityDirectory,
        writer: NotificationWriter,
        parser: Optional[MentionParser] = None,
        *,
        preview_length: int = 100,
    ) -> None:
        self._directory = directory
        self._writer = writer
        self._parser = parser or MentionParser()
        self._preview_length = preview_length

    @staticmethod
    def resolve(names: set[str], people: Sequence[Person]) -> list[Person]:
        """People matching any of the names, case-insensitively, in directory order."""
        wanted = {name.lower() for name in names}
        return [person for person in people if wanted & person.mention_keys()]

    @staticmethod
    def suggest(people: Sequence[Person], prefix: str, limit: int = 5) -> list[Person]:
        """Autocomplete candidates for a partially typed mention."""
        prefix = prefix.lower()
        return [
            person
            for person in people
            if prefix in person.first_name.lower() or prefix in person.name.lower()
        ][:limit]

    def build_payload(
        self,
        body: str,
        author_id: str,
        parent_type: ParentType,
        parent_id: str,
    ) -> dict:
        """Payload carrying enough to describe the mention without the comment."""
        preview = body[: self._preview_length]
        if len(body) > self._preview_length:
            preview += "..."
        return {
            "commentText": preview,
            "parentType": parent_type.value,
            "parentId": parent_id,
            "authorId": author_id,
        }

    async def notify(
        self,
        body: str,
        author_id: str,
        parent_type: ParentType,
        parent_id: str,
    ) -> list[Notification]:
        """Create one mention notification per resolved person.

        The author is never notified. Unresolved names are dropped. A failure
        for one recipient is logged and does not stop the others.
        """
        names = self._parser.extract_mention_targets(body)
        if not names:
            return []

        try:
            people = await self._directory.list_people()
        except Exception as e:
            logger.error(f"Could not load people for mentions: {e}")
            return []

        payload = self.build_payload(body, author_id, parent_type, parent_id)
        created: list[Notification] = []
        notified: set[str] = set()
        for person in self.resolve(names, people):
            if author_id in (person.id, person.email) or person.id in notified:
                continue
            notified.add(person.id)
            try:
                notification = await self._writer.create_notification(
                    person.id, NotificationType.MENTION, dict(payload)
                )
            except Exception as e:
                logger.error(f"Mention notification for {person.id} failed: {e}")
                continue
            if notification is not None:
                created.append(notification)

        logger.info(
            f"Created {len(created)} mention notification(s) for "
            f"{parent_type.value} {parent_id}"
        )
        return created

"""Domain models for comment threads and notifications."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class ParentType(Enum):
    """Kind of record a comment thread hangs off."""

    TASK = "task"
    RESPONSIBILITY = "responsibility"


class NotificationType(Enum):
    """Notification categories."""

    MENTION = "mention"
    ASSIGNMENT = "assignment"
    OTHER = "other"

    @classmethod
    def parse(cls, value: str) -> "NotificationType":
        """Map a stored type value, falling back to OTHER for unknown kinds."""
        try:
            return cls(value)
        except ValueError:
            return cls.OTHER


class ThreadState(Enum):
    """Comment thread controller states."""

    EMPTY = "empty"
    LOADING = "loading"
    LOADED = "loaded"
    POSTING = "posting"


@dataclass(frozen=True)
class Comment:
    """A posted comment. Never mutated after creation."""

    id: str
    parent_type: ParentType
    parent_id: str
    author_id: str
    body: str
    created_at: datetime


@dataclass(frozen=True)
class MentionToken:
    """A mention found in a comment body."""

    raw_match: str  # including the trigger, e.g. "@grace"
    referenced_name: str
    start: int = 0
    end: int = 0


@dataclass(frozen=True)
class Person:
    """Identity record used to resolve mention names."""

    id: str
    name: str
    email: str = ""

    @property
    def first_name(self) -> str:
        parts = self.name.split()
        return parts[0] if parts else ""

    def mention_keys(self) -> set[str]:
        """Lowercase names this person can be mentioned by."""
        keys = set()
        name = self.name.strip().lower()
        if name:
            keys.add(name.split()[0])
            keys.add("".join(name.split()))
            keys.add(".".join(name.split()))
        if "@" in self.email:
            keys.add(self.email.split("@", 1)[0].lower())
        return keys


@dataclass
class Notification:
    """Notification delivered to a single recipient."""

    id: str
    recipient_id: str
    type: NotificationType
    created_at: datetime
    payload: dict = field(default_factory=dict)
    read: bool = False

    def mark_read(self) -> None:
        """Flag as read. There is no way back to unread."""
        self.read = True

    def describe(self) -> str:
        """Human readable summary built from the payload alone."""
        payload = self.payload or {}
        if self.type == NotificationType.MENTION:
            author = payload.get("authorName") or payload.get("authorId")
            parent = payload.get("parentType") or "comment"
            text = payload.get("commentText")
            line = (
                f"{author} mentioned you on a {parent}"
                if author
                else "You were mentioned in a comment"
            )
            return f"{line}: {text}" if text else line
        if self.type == NotificationType.ASSIGNMENT:
            task = payload.get("taskName")
            if task:
                return f"You were assigned to task: {task}"
            return "You were assigned to a task"
        return payload.get("message") or "New notification"


@dataclass
class EditorBuffer:
    """Live state of a rich text surface."""

    rendered_markup: str = ""
    is_programmatic_update: bool = False
    last_error: Optional[str] = None

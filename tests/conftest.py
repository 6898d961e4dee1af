"""Shared pytest fixtures."""

import pytest
from datetime import datetime, timezone
from typing import Callable, Optional

from threadline.domain.models import (
    Comment,
    Notification,
    NotificationType,
    ParentType,
    Person,
)


class ManualTicker:
    """Ticker fired by hand from tests."""

    def __init__(self) -> None:
        self.callback: Optional[Callable[[], None]] = None
        self.interval: Optional[float] = None
        self.started = 0
        self.stopped = 0

    def start(self, callback: Callable[[], None], interval: float) -> None:
        self.callback = callback
        self.interval = interval
        self.started += 1

    def stop(self) -> None:
        self.stopped += 1

    def fire(self) -> None:
        assert self.callback is not None
        self.callback()


@pytest.fixture
def people() -> list[Person]:
    """People that can be mentioned."""
    return [
        Person(id="u-james", name="James Strutt", email="james.strutt@example.com"),
        Person(id="u-grace", name="Grace Zhuang", email="grace.zhuang@example.com"),
        Person(id="u-ada", name="Ada Lovelace", email="ada@example.com"),
    ]


@pytest.fixture
def sample_comment() -> Comment:
    """Create a sample comment."""
    return Comment(
        id="c-1",
        parent_type=ParentType.TASK,
        parent_id="task-42",
        author_id="u-ada",
        body="Looks good",
        created_at=datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc),
    )


@pytest.fixture
def make_notification() -> Callable[..., Notification]:
    """Factory for notifications with sensible defaults."""

    def _make(
        id: str,
        minute: int = 0,
        read: bool = False,
        recipient_id: str = "u-grace",
        type: NotificationType = NotificationType.MENTION,
        payload: Optional[dict] = None,
    ) -> Notification:
        return Notification(
            id=id,
            recipient_id=recipient_id,
            type=type,
            created_at=datetime(2024, 1, 1, 10, minute, tzinfo=timezone.utc),
            payload=payload if payload is not None else {"authorId": "u-james"},
            read=read,
        )

    return _make


@pytest.fixture
def manual_ticker() -> ManualTicker:
    return ManualTicker()

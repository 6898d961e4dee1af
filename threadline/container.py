"""Dependency injection container."""

from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, TypeVar

from .domain.models import ParentType
from .domain.policy import AccessPolicy
from .domain.protocols import CollaborationService
from .parsers.mention_parser import MentionParser


T = TypeVar("T")


class Provider(Generic[T]):
    """Lazy provider that creates instance on first access."""

    def __init__(self, factory: Callable[[], T]) -> None:
        self._factory = factory
        self._instance: Optional[T] = None

    def get(self) -> T:
        """Get the instance, creating it if necessary."""
        if self._instance is None:
            self._instance = self._factory()
        return self._instance

    def reset(self) -> None:
        """Reset the instance (for testing)."""
        self._instance = None

    def override(self, instance: T) -> None:
        """Override with a specific instance (for testing)."""
        self._instance = instance


@dataclass
class Container:
    """Dependency injection container.

    Holds the shared collaboration service and builds per-view components
    (threads, notification centers, editor surfaces) wired to it.
    """

    _service: Optional[Provider[CollaborationService]] = None
    _settings: Optional[Any] = None
    _mention_parser: Optional[MentionParser] = None

    @property
    def service(self) -> CollaborationService:
        """Get the collaboration service."""
        if self._service is None:
            raise RuntimeError("Collaboration service not configured")
        return self._service.get()

    @property
    def settings(self) -> Any:
        """Get application settings."""
        if self._settings is None:
            from .config.settings import get_settings

            self._settings = get_settings()
        return self._settings

    @property
    def access_policy(self) -> AccessPolicy:
        return self.settings.access.to_policy()

    @property
    def mention_parser(self) -> MentionParser:
        if self._mention_parser is None:
            self._mention_parser = MentionParser(self.settings.mention.trigger)
        return self._mention_parser

    def comment_thread(self, parent_type: ParentType, parent_id: Optional[str]) -> Any:
        """Create a comment thread controller for one parent record."""
        from .services.comment_thread import CommentThreadController

        return CommentThreadController(
            self.service,
            parent_type,
            parent_id,
            parser=self.mention_parser,
            policy=self.access_policy,
        )

    def notification_center(self) -> Any:
        """Create a notification center polling the configured service."""
        from .services.notification_center import NotificationCenter

        return NotificationCenter(
            self.service,
            poll_interval=self.settings.notification.poll_interval_seconds,
        )

    def rich_text_surface(self, value: str = "") -> Any:
        """Create an editor surface holding value."""
        from .editor.surface import RichTextSurface

        return RichTextSurface(
            value, history_limit=self.settings.editor.history_limit
        )

    def configure_service(
        self, factory: Callable[[], CollaborationService]
    ) -> "Container":
        """Configure the collaboration service."""
        self._service = Provider(factory)
        return self

    def reset(self) -> None:
        """Reset all providers (for testing)."""
        if self._service:
            self._service.reset()
        self._service = None
        self._settings = None
        self._mention_parser = None


# Global container instance
container = Container()


def get_container() -> Container:
    """Get the global container instance."""
    return container


def reset_container() -> None:
    """Reset the global container (for testing)."""
    global container
    container.reset()
    container = Container()

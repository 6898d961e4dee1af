"""Comment thread controller for one parent record."""

import asyncio
import logging
from typing import Callable, Optional

from ..domain.models import Comment, ParentType, ThreadState
from ..domain.policy import AccessPolicy
from ..domain.protocols import CollaborationService
from ..parsers.mention_parser import MentionParser

logger = logging.getLogger(__name__)


class DispatchHandle:
    """Tracks the background mention dispatch started after a post."""

    def __init__(self, comment_id: str, task: "asyncio.Task[bool]") -> None:
        self.comment_id = comment_id
        self._task = task

    @property
    def done(self) -> bool:
        return self._task.done()

    @property
    def succeeded(self) -> bool:
        return (
            self._task.done()
            and not self._task.cancelled()
            and self._task.result()
        )

    def cancel(self) -> None:
        self._task.cancel()

    async def wait(self) -> bool:
        """Wait for the dispatch; True if it completed without error."""
        try:
            return await self._task
        except asyncio.CancelledError:
            if not self._task.cancelled():
                raise
            return False


class CommentThreadController:
    """Loads and posts comments for a task or responsibility.

    States: ``EMPTY -> LOADING -> LOADED`` and ``LOADED -> POSTING -> LOADED``.
    Posted comments are appended in completion order; the list is never
    re-sorted locally.
    """

    def __init__(
        self,
        service: CollaborationService,
        parent_type: ParentType,
        parent_id: Optional[str],
        *,
        parser: Optional[MentionParser] = None,
        policy: Optional[AccessPolicy] = None,
        on_scroll_to_latest: Optional[Callable[[], None]] = None,
    ) -> None:
        self._service = service
        self._parent_type = parent_type
        self._parent_id = parent_id or ""
        self._parser = parser or MentionParser()
        self._policy = policy
        self._on_scroll_to_latest = on_scroll_to_latest

        self._state = ThreadState.EMPTY
        self._comments: list[Comment] = []
        self._has_loaded = False
        self._posts_in_flight = 0
        self._load_failed = False
        self._dispatches: list[DispatchHandle] = []

    @property
    def parent_type(self) -> ParentType:
        return self._parent_type

    @property
    def parent_id(self) -> str:
        return self._parent_id

    @property
    def state(self) -> ThreadState:
        return self._state

    @property
    def comments(self) -> tuple[Comment, ...]:
        return tuple(self._comments)

    @property
    def loading(self) -> bool:
        return self._state == ThreadState.LOADING

    @property
    def posting(self) -> bool:
        return self._state == ThreadState.POSTING

    @property
    def load_failed(self) -> bool:
        return self._load_failed

    @property
    def dispatches(self) -> tuple[DispatchHandle, ...]:
        """Mention dispatches still running."""
        return tuple(self._dispatches)

    async def load(self) -> None:
        """Fetch the thread. Does nothing without a parent id."""
        if not self._parent_id:
            return
        if self._state in (ThreadState.LOADING, ThreadState.POSTING):
            logger.debug(f"Load skipped for {self._describe()}: {self._state.value}")
            return

        self._state = ThreadState.LOADING
        try:
            comments = await self._service.fetch_comments(
                self._parent_type, self._parent_id
            )
        except Exception as e:
            logger.error(f"Error loading comments for {self._describe()}: {e}")
            self._load_failed = True
            self._state = self._resting_state()
            return

        self._comments = list(comments)
        self._has_loaded = True
        self._load_failed = False
        self._state = ThreadState.LOADED
        self._scroll_to_latest()

    async def post(self, author_id: Optional[str], raw_body: Optional[str]) -> Optional[Comment]:
        """Persist a comment and append it to the thread.

        Returns the created comment, or None when the input was rejected or
        the service failed. Mention notifications are dispatched in the
        background; their failure never affects the posted comment.
        """
        body = (raw_body or "").strip()
        if not body or not author_id or not self._parent_id:
            return None
        if self._policy is not None and not self._policy.can_comment(author_id):
            logger.info(f"Comment from read-only identity {author_id} rejected")
            return None
        if self._state == ThreadState.LOADING:
            return None

        self._posts_in_flight += 1
        self._state = ThreadState.POSTING
        try:
            comment = await self._service.create_comment(
                self._parent_type, self._parent_id, author_id, body
            )
            if comment is None:
                logger.error(f"Failed to create comment on {self._describe()}: no comment returned")
        except Exception as e:
            logger.error(f"Error posting comment on {self._describe()}: {e}")
            comment = None
        finally:
            self._posts_in_flight -= 1

        if comment is None:
            if not self._posts_in_flight:
                self._state = self._resting_state()
            return None

        self._comments.append(comment)
        if not self._posts_in_flight:
            self._state = ThreadState.LOADED
        self._scroll_to_latest()

        if self._parser.extract_mention_targets(body):
            self._start_dispatch(comment, body, author_id)
        return comment

    async def drain(self) -> list[bool]:
        """Wait for every outstanding mention dispatch."""
        handles, self._dispatches = self._dispatches, []
        return [await handle.wait() for handle in handles]

    async def aclose(self) -> None:
        """Cancel outstanding mention dispatches."""
        for handle in list(self._dispatches):
            handle.cancel()
        await self.drain()

    def _start_dispatch(self, comment: Comment, body: str, author_id: str) -> None:
        task = asyncio.create_task(self._dispatch(body, author_id))
        handle = DispatchHandle(comment.id, task)
        self._dispatches.append(handle)
        task.add_done_callback(lambda _: self._forget(handle))

    def _forget(self, handle: DispatchHandle) -> None:
        if handle in self._dispatches:
            self._dispatches.remove(handle)

    async def _dispatch(self, body: str, author_id: str) -> bool:
        try:
            await self._service.create_mention_notifications(
                body, author_id, self._parent_type, self._parent_id
            )
        except Exception as e:
            logger.error(f"Error creating mention notifications: {e}")
            return False
        return True

    def _resting_state(self) -> ThreadState:
        if self._has_loaded or self._comments:
            return ThreadState.LOADED
        return ThreadState.EMPTY

    def _scroll_to_latest(self) -> None:
        if self._on_scroll_to_latest is None:
            return
        try:
            self._on_scroll_to_latest()
        except Exception:
            logger.exception("Scroll callback failed")

    def _describe(self) -> str:
        return f"{self._parent_type.value} {self._parent_id}"

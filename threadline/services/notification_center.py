"""Notification center: polling, ordering and read state for one recipient."""

import asyncio
import logging
from dataclasses import replace
from typing import Callable, Optional, Sequence

from ..domain.models import Notification
from ..domain.protocols import CollaborationService
from ..scheduler.ticker import IntervalTicker, Ticker

logger = logging.getLogger(__name__)

ChangeHandler = Callable[["NotificationCenter"], None]


class NotificationCenter:
    """Keeps the notification list of the active recipient up to date.

    Fetches immediately on :meth:`start` and then on every tick. Polling is
    single-flight: a tick that fires while a fetch is outstanding is skipped.
    Results that arrive after :meth:`stop` or after the recipient changed are
    discarded.

    Read state is optimistic. :meth:`mark_read` flips the local flag first
    and never rolls it back, even when the service refuses. Only a fetch
    started after the mark call settled may report the entry unread again.
    """

    def __init__(
        self,
        service: CollaborationService,
        *,
        poll_interval: float = 30.0,
        ticker_factory: Optional[Callable[[], Ticker]] = None,
    ) -> None:
        self._service = service
        self._poll_interval = poll_interval
        self._ticker_factory = ticker_factory or (lambda: IntervalTicker(job_id="notifications"))
        self._ticker: Optional[Ticker] = None

        self._recipient_id: Optional[str] = None
        self._generation = 0
        self._fetch_seq = 0
        self._inflight: Optional[asyncio.Task] = None
        self._skipped_ticks = 0

        self._notifications: list[Notification] = []
        # id -> fetch seq when the mark settled, None while it is outstanding
        self._pending_reads: dict[str, Optional[int]] = {}
        self._loading = False
        self._load_failed = False
        self._handlers: list[ChangeHandler] = []

    @property
    def recipient_id(self) -> Optional[str]:
        return self._recipient_id

    @property
    def running(self) -> bool:
        return self._recipient_id is not None

    @property
    def notifications(self) -> tuple[Notification, ...]:
        """Newest first."""
        return tuple(self._notifications)

    @property
    def unread_count(self) -> int:
        return sum(1 for n in self._notifications if not n.read)

    @property
    def badge_label(self) -> str:
        count = self.unread_count
        if count == 0:
            return ""
        return "9+" if count > 9 else str(count)

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def load_failed(self) -> bool:
        return self._load_failed

    @property
    def fetch_in_flight(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    @property
    def skipped_ticks(self) -> int:
        return self._skipped_ticks

    def on_change(self, handler: ChangeHandler) -> Callable[[], None]:
        """Subscribe to list and read-state changes."""
        self._handlers.append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return unsubscribe

    def start(self, recipient_id: Optional[str]) -> None:
        """Begin polling for a recipient. Must be called from a running loop."""
        if not recipient_id:
            return
        if recipient_id == self._recipient_id:
            return
        self.stop()

        self._recipient_id = recipient_id
        self._notifications = []
        self._pending_reads.clear()
        self._load_failed = False
        generation = self._generation

        self.tick()
        self._ticker = self._ticker_factory()
        self._ticker.start(lambda: self._tick_for(generation), self._poll_interval)
        logger.info(f"Notification polling started for {recipient_id}")

    def stop(self) -> None:
        """Stop polling. Safe to call repeatedly."""
        self._generation += 1
        if self._ticker is not None:
            self._ticker.stop()
            self._ticker = None
        if self._inflight is not None and not self._inflight.done():
            self._inflight.cancel()
        self._inflight = None
        self._loading = False
        if self._recipient_id is not None:
            logger.info(f"Notification polling stopped for {self._recipient_id}")
        self._recipient_id = None

    def tick(self) -> None:
        """Poll now unless a fetch is already outstanding."""
        self._tick_for(self._generation)

    async def refresh(self) -> bool:
        """Fetch outside the tick cadence; True when the list was replaced.

        Joins the outstanding fetch instead of starting a second one.
        """
        if self._recipient_id is None:
            return False
        if not self.fetch_in_flight:
            self.tick()
        task = self._inflight
        if task is None:
            return False
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            if task.cancelled():
                return False
            raise

    async def mark_read(self, notification_id: str) -> bool:
        """Mark a notification read; returns whether the service confirmed.

        The local flag is set before the call and kept regardless of the
        outcome.
        """
        entry = self._find(notification_id)
        if entry is not None:
            if entry.read:
                return True
            entry.mark_read()
            self._pending_reads[notification_id] = None
            self._emit()

        try:
            confirmed = await self._service.mark_notification_as_read(notification_id)
        except Exception as e:
            logger.error(f"Error marking notification {notification_id} as read: {e}")
            confirmed = False
        finally:
            self._settle_reads([notification_id])
        if not confirmed:
            logger.warning(f"Read state for {notification_id} not confirmed by the service")
        return confirmed

    async def mark_all_read(self) -> bool:
        """Mark every loaded notification read, best effort."""
        recipient_id = self._recipient_id
        if recipient_id is None:
            return False
        unread = [n for n in self._notifications if not n.read]
        for entry in unread:
            entry.mark_read()
            self._pending_reads[entry.id] = None
        if unread:
            self._emit()

        try:
            confirmed = await self._service.mark_all_notifications_as_read(recipient_id)
        except Exception as e:
            logger.error(f"Error marking notifications of {recipient_id} as read: {e}")
            confirmed = False
        finally:
            self._settle_reads([entry.id for entry in unread])
        if not confirmed:
            logger.warning(f"Bulk read state for {recipient_id} not confirmed by the service")
        return confirmed

    @staticmethod
    def order(notifications: Sequence[Notification]) -> list[Notification]:
        """Newest first, ties broken by id."""
        by_id = sorted(notifications, key=lambda n: n.id)
        return sorted(by_id, key=lambda n: n.created_at, reverse=True)

    def _tick_for(self, generation: int) -> None:
        if generation != self._generation or self._recipient_id is None:
            return
        if self.fetch_in_flight:
            self._skipped_ticks += 1
            logger.debug("Notification poll skipped: previous fetch still running")
            return
        self._fetch_seq += 1
        self._loading = True
        self._inflight = asyncio.create_task(
            self._poll(self._recipient_id, generation, self._fetch_seq)
        )

    async def _poll(self, recipient_id: str, generation: int, seq: int) -> bool:
        try:
            fetched = await self._service.fetch_notifications(recipient_id)
        except Exception as e:
            if generation != self._generation:
                return False
            logger.error(f"Error fetching notifications for {recipient_id}: {e}")
            self._loading = False
            self._load_failed = True
            self._emit()
            return False

        if generation != self._generation:
            logger.debug(f"Discarding stale notifications for {recipient_id}")
            return False

        notifications = [replace(n, payload=dict(n.payload)) for n in fetched]
        for entry in notifications:
            if entry.id not in self._pending_reads:
                continue
            settled_at = self._pending_reads[entry.id]
            if settled_at is None or seq <= settled_at:
                # fetch started before the mark settled
                entry.mark_read()
        self._pending_reads = {
            key: settled_at
            for key, settled_at in self._pending_reads.items()
            if settled_at is None or settled_at >= seq
        }
        self._notifications = self.order(notifications)
        self._loading = False
        self._load_failed = False
        self._emit()
        return True

    def _settle_reads(self, notification_ids: Sequence[str]) -> None:
        for notification_id in notification_ids:
            if notification_id in self._pending_reads and self._pending_reads[notification_id] is None:
                self._pending_reads[notification_id] = self._fetch_seq

    def _find(self, notification_id: str) -> Optional[Notification]:
        return next((n for n in self._notifications if n.id == notification_id), None)

    def _emit(self) -> None:
        for handler in list(self._handlers):
            handler(self)

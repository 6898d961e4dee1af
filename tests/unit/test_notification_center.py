"""Tests for the notification center."""

import asyncio
import pytest
from unittest.mock import AsyncMock, MagicMock

from threadline.domain.exceptions import ServiceError
from threadline.services.notification_center import NotificationCenter


async def settle(rounds: int = 5) -> None:
    """Let pending tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def service():
    """Collaboration service double."""
    service = MagicMock()
    service.fetch_notifications = AsyncMock(return_value=[])
    service.mark_notification_as_read = AsyncMock(return_value=True)
    service.mark_all_notifications_as_read = AsyncMock(return_value=True)
    return service


@pytest.fixture
def center(service, manual_ticker) -> NotificationCenter:
    center = NotificationCenter(
        service, poll_interval=5.0, ticker_factory=lambda: manual_ticker
    )
    yield center
    center.stop()


class TestPolling:
    """Tests for start, stop and ticks."""

    @pytest.mark.asyncio
    async def test_start_fetches_immediately(self, service, center, manual_ticker, make_notification):
        """Should fetch on start and order newest first."""
        service.fetch_notifications.return_value = [
            make_notification("n-1", minute=1),
            make_notification("n-2", minute=5),
            make_notification("n-0", minute=5, read=True),
        ]

        center.start("u-grace")
        await settle()

        service.fetch_notifications.assert_awaited_once_with("u-grace")
        assert [n.id for n in center.notifications] == ["n-0", "n-2", "n-1"]
        assert center.unread_count == 2
        assert center.badge_label == "2"
        assert manual_ticker.interval == 5.0
        assert center.running

    @pytest.mark.asyncio
    async def test_start_ignores_empty_recipient(self, service, center):
        """Should not poll without a recipient."""
        center.start("")
        center.start(None)
        await settle()
        service.fetch_notifications.assert_not_awaited()
        assert not center.running

    @pytest.mark.asyncio
    async def test_start_same_recipient_is_noop(self, service, center, manual_ticker):
        """Should not restart for the same recipient."""
        center.start("u-grace")
        await settle()
        center.start("u-grace")
        await settle()
        assert manual_ticker.started == 1
        assert service.fetch_notifications.await_count == 1

    @pytest.mark.asyncio
    async def test_ticks_refetch(self, service, center, manual_ticker):
        """Should fetch again on each tick."""
        center.start("u-grace")
        await settle()
        manual_ticker.fire()
        await settle()
        assert service.fetch_notifications.await_count == 2

    @pytest.mark.asyncio
    async def test_single_flight(self, service, center, manual_ticker):
        """Ticks during an outstanding fetch should be skipped."""
        gate = asyncio.Event()

        async def slow_fetch(recipient_id):
            await gate.wait()
            return []

        service.fetch_notifications.side_effect = slow_fetch
        center.start("u-grace")
        await settle()

        manual_ticker.fire()
        manual_ticker.fire()
        center.tick()
        await settle()

        assert service.fetch_notifications.await_count == 1
        assert center.skipped_ticks == 3
        assert center.fetch_in_flight
        gate.set()
        await settle()
        assert not center.fetch_in_flight

    @pytest.mark.asyncio
    async def test_stop_prevents_further_ticks(self, service, center, manual_ticker):
        """Should ignore ticks after stop."""
        center.start("u-grace")
        await settle()
        center.stop()
        center.stop()

        manual_ticker.fire()
        await settle()

        assert service.fetch_notifications.await_count == 1
        assert manual_ticker.stopped == 1
        assert not center.running

    @pytest.mark.asyncio
    async def test_stale_result_discarded_after_stop(self, service, center, make_notification):
        """A fetch that completes after stop must not update the list."""
        gate = asyncio.Event()

        async def stubborn_fetch(recipient_id):
            try:
                await gate.wait()
            except asyncio.CancelledError:
                pass
            return [make_notification("n-late")]

        service.fetch_notifications.side_effect = stubborn_fetch
        handler = MagicMock()
        center.on_change(handler)
        center.start("u-grace")
        await settle()

        center.stop()
        gate.set()
        await settle()

        assert center.notifications == ()
        handler.assert_not_called()

    @pytest.mark.asyncio
    async def test_switching_recipient_discards_old_results(self, service, center, make_notification):
        """Should discard results for the previous recipient."""
        gate = asyncio.Event()

        async def fetch(recipient_id):
            if recipient_id == "u-grace":
                try:
                    await gate.wait()
                except asyncio.CancelledError:
                    pass
                return [make_notification("n-grace")]
            return [make_notification("n-james", recipient_id="u-james")]

        service.fetch_notifications.side_effect = fetch
        center.start("u-grace")
        await settle()
        center.start("u-james")
        await settle()
        gate.set()
        await settle()

        assert center.recipient_id == "u-james"
        assert [n.id for n in center.notifications] == ["n-james"]

    @pytest.mark.asyncio
    async def test_fetch_failure_keeps_list(self, service, center, manual_ticker, make_notification):
        """Should keep the list and flag the failure."""
        service.fetch_notifications.return_value = [make_notification("n-1")]
        center.start("u-grace")
        await settle()

        service.fetch_notifications.side_effect = ServiceError("fetch_notifications", "HTTP 502")
        manual_ticker.fire()
        await settle()

        assert center.load_failed
        assert not center.loading
        assert [n.id for n in center.notifications] == ["n-1"]

    @pytest.mark.asyncio
    async def test_fetch_fully_replaces_list(self, service, center, manual_ticker, make_notification):
        """Should replace the list with each fetch."""
        service.fetch_notifications.return_value = [make_notification("n-1")]
        center.start("u-grace")
        await settle()
        service.fetch_notifications.return_value = [make_notification("n-2")]
        manual_ticker.fire()
        await settle()
        assert [n.id for n in center.notifications] == ["n-2"]

    @pytest.mark.asyncio
    async def test_refresh(self, service, center, make_notification):
        """Should fetch outside the tick cadence."""
        center.start("u-grace")
        await settle()
        service.fetch_notifications.return_value = [make_notification("n-1")]

        assert await center.refresh() is True
        assert [n.id for n in center.notifications] == ["n-1"]

    @pytest.mark.asyncio
    async def test_refresh_joins_outstanding_fetch(self, service, center):
        """Should join the outstanding fetch instead of starting another."""
        gate = asyncio.Event()

        async def slow_fetch(recipient_id):
            await gate.wait()
            return []

        service.fetch_notifications.side_effect = slow_fetch
        center.start("u-grace")
        await settle()

        refreshing = asyncio.create_task(center.refresh())
        await settle()
        gate.set()

        assert await refreshing is True
        assert service.fetch_notifications.await_count == 1

    @pytest.mark.asyncio
    async def test_refresh_when_stopped(self, center):
        """Should return False when not polling."""
        assert await center.refresh() is False


class TestReadState:
    """Tests for optimistic read state."""

    @pytest.mark.asyncio
    async def test_mark_read(self, service, center, make_notification):
        """Should mark read locally and call the service."""
        service.fetch_notifications.return_value = [make_notification("n-1")]
        center.start("u-grace")
        await settle()
        handler = MagicMock()
        center.on_change(handler)

        assert await center.mark_read("n-1") is True

        assert center.unread_count == 0
        assert center.badge_label == ""
        service.mark_notification_as_read.assert_awaited_once_with("n-1")
        handler.assert_called_once_with(center)

    @pytest.mark.asyncio
    async def test_mark_read_already_read(self, service, center, make_notification):
        """Should not call the service for a read entry."""
        service.fetch_notifications.return_value = [make_notification("n-1", read=True)]
        center.start("u-grace")
        await settle()

        assert await center.mark_read("n-1") is True
        service.mark_notification_as_read.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failed_mark_read_not_rolled_back(self, service, center, make_notification):
        """Should keep the entry read when the service refuses."""
        service.fetch_notifications.return_value = [make_notification("n-1")]
        service.mark_notification_as_read.return_value = False
        center.start("u-grace")
        await settle()

        assert await center.mark_read("n-1") is False
        assert center.notifications[0].read is True
        assert center.unread_count == 0

    @pytest.mark.asyncio
    async def test_mark_read_service_error_not_rolled_back(self, service, center, make_notification):
        """Should keep the entry read when the service raises."""
        service.fetch_notifications.return_value = [make_notification("n-1")]
        service.mark_notification_as_read.side_effect = ServiceError("mark", "down")
        center.start("u-grace")
        await settle()

        assert await center.mark_read("n-1") is False
        assert center.unread_count == 0

    @pytest.mark.asyncio
    async def test_fetch_started_before_mark_keeps_read(self, service, center, manual_ticker, make_notification):
        """A fetch already in flight when marking must not resurrect the entry."""
        service.fetch_notifications.return_value = [make_notification("n-1")]
        center.start("u-grace")
        await settle()

        gate = asyncio.Event()

        async def slow_fetch(recipient_id):
            await gate.wait()
            return [make_notification("n-1")]

        service.fetch_notifications.side_effect = slow_fetch
        manual_ticker.fire()
        await settle()
        await center.mark_read("n-1")
        gate.set()
        await settle()

        assert center.notifications[0].read is True

        # a fresh fetch is server truth
        service.fetch_notifications.side_effect = None
        service.fetch_notifications.return_value = [make_notification("n-1")]
        manual_ticker.fire()
        await settle()
        assert center.notifications[0].read is False

    @pytest.mark.asyncio
    async def test_fetch_during_outstanding_mark_keeps_read(self, service, center, manual_ticker, make_notification):
        """Should keep an entry read while its mark call has not settled."""
        service.fetch_notifications.return_value = [make_notification("n-1")]
        center.start("u-grace")
        await settle()

        gate = asyncio.Event()

        async def slow_mark(notification_id):
            await gate.wait()
            return True

        service.mark_notification_as_read.side_effect = slow_mark
        marking = asyncio.create_task(center.mark_read("n-1"))
        await settle()

        manual_ticker.fire()
        await settle()
        assert center.notifications[0].read is True
        assert center.unread_count == 0

        # a fetch started before the mark settled is still protected
        fetch_gate = asyncio.Event()

        async def slow_fetch(recipient_id):
            await fetch_gate.wait()
            return [make_notification("n-1")]

        service.fetch_notifications.side_effect = slow_fetch
        manual_ticker.fire()
        await settle()
        gate.set()
        assert await marking is True
        fetch_gate.set()
        await settle()
        assert center.notifications[0].read is True

    @pytest.mark.asyncio
    async def test_mark_all_read_outstanding_keeps_entries_read(self, service, center, manual_ticker, make_notification):
        """Should keep every entry read while the bulk mark is outstanding."""
        service.fetch_notifications.return_value = [
            make_notification("n-1"),
            make_notification("n-2", minute=2),
        ]
        center.start("u-grace")
        await settle()

        gate = asyncio.Event()

        async def slow_mark_all(recipient_id):
            await gate.wait()
            return True

        service.mark_all_notifications_as_read.side_effect = slow_mark_all
        marking = asyncio.create_task(center.mark_all_read())
        await settle()
        manual_ticker.fire()
        await settle()

        assert center.unread_count == 0
        gate.set()
        assert await marking is True

    @pytest.mark.asyncio
    async def test_fetched_entries_are_copies(self, service, center, make_notification):
        """Should not mutate the fetched notifications."""
        stored = make_notification("n-1")
        service.fetch_notifications.return_value = [stored]
        center.start("u-grace")
        await settle()

        await center.mark_read("n-1")
        assert stored.read is False

    @pytest.mark.asyncio
    async def test_mark_all_read(self, service, center, make_notification):
        """Should mark every entry read."""
        service.fetch_notifications.return_value = [
            make_notification("n-1"),
            make_notification("n-2", minute=2),
        ]
        center.start("u-grace")
        await settle()

        assert await center.mark_all_read() is True

        assert center.unread_count == 0
        service.mark_all_notifications_as_read.assert_awaited_once_with("u-grace")

    @pytest.mark.asyncio
    async def test_mark_all_read_when_stopped(self, service, center):
        """Should do nothing when not polling."""
        assert await center.mark_all_read() is False
        service.mark_all_notifications_as_read.assert_not_awaited()


class TestBadgeAndOrder:
    """Tests for derived presentation state."""

    @pytest.mark.asyncio
    async def test_badge_caps_at_nine(self, service, center, make_notification):
        """Should show 9+ above nine unread."""
        service.fetch_notifications.return_value = [
            make_notification(f"n-{i}", minute=i) for i in range(10)
        ]
        center.start("u-grace")
        await settle()
        assert center.unread_count == 10
        assert center.badge_label == "9+"

    def test_order_newest_first_with_id_tiebreak(self, make_notification):
        """Should order newest first and break ties by id."""
        ordered = NotificationCenter.order([
            make_notification("b", minute=1),
            make_notification("c", minute=3),
            make_notification("a", minute=1),
        ])
        assert [n.id for n in ordered] == ["c", "a", "b"]

    def test_unsubscribe(self, service):
        """Should stop calling an unsubscribed handler."""
        center = NotificationCenter(service)
        handler = MagicMock()
        unsubscribe = center.on_change(handler)
        unsubscribe()
        center._emit()
        handler.assert_not_called()

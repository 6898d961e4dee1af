"""Tests for mention resolution and notification dispatch."""

import pytest
from unittest.mock import AsyncMock, MagicMock

from threadline.domain.models import NotificationType, ParentType, Person
from threadline.services.mention_service import MentionNotifier


class TestResolveAndSuggest:
    """Tests for the static lookup helpers."""

    def test_resolve_by_joined_name(self, people):
        """Should resolve dotted full names and first names."""
        resolved = MentionNotifier.resolve({"james.strutt", "Grace"}, people)
        assert [p.id for p in resolved] == ["u-james", "u-grace"]

    def test_resolve_unknown_names(self, people):
        """Should skip names that match nobody."""
        assert MentionNotifier.resolve({"nobody"}, people) == []

    def test_suggest_by_prefix(self, people):
        """Should suggest people whose keys start with the prefix."""
        assert [p.id for p in MentionNotifier.suggest(people, "gr")] == ["u-grace"]

    def test_suggest_limit(self, people):
        """Should return at most limit suggestions."""
        assert len(MentionNotifier.suggest(people, "a", limit=2)) == 2


class TestMentionNotifier:
    """Tests for MentionNotifier.notify."""

    @pytest.fixture
    def directory(self, people):
        directory = MagicMock()
        directory.list_people = AsyncMock(return_value=people)
        return directory

    @pytest.fixture
    def writer(self):
        writer = MagicMock()
        writer.create_notification = AsyncMock(
            side_effect=lambda recipient_id, type, payload: MagicMock(recipient_id=recipient_id)
        )
        return writer

    @pytest.fixture
    def notifier(self, directory, writer) -> MentionNotifier:
        return MentionNotifier(directory, writer, preview_length=10)

    def test_build_payload_truncates(self, notifier):
        """Should truncate long bodies in the payload preview."""
        payload = notifier.build_payload("0123456789abc", "u-ada", ParentType.TASK, "t-1")
        assert payload == {
            "commentText": "0123456789...",
            "parentType": "task",
            "parentId": "t-1",
            "authorId": "u-ada",
        }

    def test_build_payload_short_body(self, notifier):
        """Should keep short bodies whole."""
        payload = notifier.build_payload("short", "u-ada", ParentType.RESPONSIBILITY, "r-1")
        assert payload["commentText"] == "short"
        assert payload["parentType"] == "responsibility"

    @pytest.mark.asyncio
    async def test_notifies_each_mentioned_person(self, notifier, writer):
        """Should create one notification per mentioned person."""
        created = await notifier.notify(
            "Hey @james.strutt and @grace.zhuang", "u-ada", ParentType.TASK, "t-1"
        )

        assert len(created) == 2
        recipients = [c.kwargs.get("recipient_id", c.args[0]) for c in writer.create_notification.call_args_list]
        assert recipients == ["u-james", "u-grace"]
        args = writer.create_notification.call_args_list[0].args
        assert args[1] == NotificationType.MENTION
        assert args[2]["authorId"] == "u-ada"

    @pytest.mark.asyncio
    async def test_author_is_never_notified(self, notifier, writer):
        """Self-mentions should not produce a notification."""
        created = await notifier.notify("note to self @ada", "u-ada", ParentType.TASK, "t-1")
        assert created == []
        writer.create_notification.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_author_matched_by_email(self, notifier, writer):
        """Should not notify the author matched by e-mail."""
        await notifier.notify("@ada @grace", "ada@example.com", ParentType.TASK, "t-1")
        assert writer.create_notification.await_count == 1

    @pytest.mark.asyncio
    async def test_same_person_notified_once(self, notifier, writer):
        """Should notify a person once for several matching names."""
        await notifier.notify("@grace @grace.zhuang @Grace", "u-ada", ParentType.TASK, "t-1")
        assert writer.create_notification.await_count == 1

    @pytest.mark.asyncio
    async def test_no_mentions_skips_directory(self, notifier, directory):
        """Should not query the directory without mentions."""
        assert await notifier.notify("nothing here", "u-ada", ParentType.TASK, "t-1") == []
        directory.list_people.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_directory_failure(self, notifier, directory, writer):
        """Should return nothing when the directory fails."""
        directory.list_people.side_effect = RuntimeError("down")
        assert await notifier.notify("@grace", "u-ada", ParentType.TASK, "t-1") == []
        writer.create_notification.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_one_failure_does_not_stop_others(self, notifier, writer):
        """Should keep notifying after one recipient fails."""
        writer.create_notification.side_effect = [
            RuntimeError("insert failed"),
            MagicMock(recipient_id="u-grace"),
        ]
        created = await notifier.notify("@james @grace", "u-ada", ParentType.TASK, "t-1")
        assert len(created) == 1
        assert writer.create_notification.await_count == 2

    @pytest.mark.asyncio
    async def test_refused_notification_not_returned(self, notifier, writer):
        """Should leave out notifications the writer refused."""
        writer.create_notification.side_effect = None
        writer.create_notification.return_value = None
        assert await notifier.notify("@grace", "u-ada", ParentType.TASK, "t-1") == []

    @pytest.mark.asyncio
    async def test_unknown_names_dropped(self, directory, writer):
        """Should drop names that resolve to nobody."""
        notifier = MentionNotifier(directory, writer)
        directory.list_people.return_value = [Person(id="u-x", name="Xavier")]
        assert await notifier.notify("@grace", "u-ada", ParentType.TASK, "t-1") == []

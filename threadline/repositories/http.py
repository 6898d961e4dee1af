"""REST (PostgREST-style) implementation of the collaboration service."""

import logging
import re
from datetime import datetime
from typing import Any, Optional, Sequence

import httpx

from ..domain.exceptions import ServiceError
from ..domain.models import (
    Comment,
    Notification,
    NotificationType,
    ParentType,
    Person,
)
from ..parsers.mention_parser import MentionParser
from ..services.mention_service import MentionNotifier

logger = logging.getLogger(__name__)


_FRACTION = re.compile(r"\.(\d+)")


def _parse_timestamp(value: str) -> datetime:
    # Postgres trims trailing zeros from fractional seconds
    value = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), value, count=1)
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


class HttpCollaborationService:
    """Talks to ``comments``, ``notifications`` and ``people`` tables over REST.

    Rows use the snake_case columns of the backing tables. Reads and writes
    raise ``ServiceError`` on transport errors or non-2xx responses, except
    the read-state updates, which report failure as ``False``.
    """

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        *,
        timeout: float = 10.0,
        fetch_limit: int = 50,
        parser: Optional[MentionParser] = None,
        preview_length: int = 100,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize the REST service.

        Args:
            base_url: REST root, e.g. ``https://example.org/rest/v1``
            api_key: API key sent as ``apikey`` and bearer token
            timeout: Per-request timeout in seconds
            fetch_limit: Maximum notifications returned per fetch
            parser: Mention parser used for notification dispatch
            preview_length: Comment preview length in mention payloads
            http_client: Optional HTTP client for testing
        """
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._fetch_limit = fetch_limit
        self._http_client = http_client
        self._owns_client = http_client is None
        self._notifier = MentionNotifier(
            self, self, parser, preview_length=preview_length
        )

    def _get_headers(self) -> dict:
        """Get API request headers."""
        headers = {
            "Content-Type": "application/json",
            "Prefer": "return=representation",
        }
        if self._api_key:
            headers["apikey"] = self._api_key
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    async def _request(
        self,
        operation: str,
        method: str,
        table: str,
        *,
        params: Optional[dict] = None,
        json: Any = None,
    ) -> Any:
        """Send a request and return the decoded JSON body."""
        client = self._http_client or httpx.AsyncClient()
        try:
            response = await client.request(
                method,
                f"{self._base_url}/{table}",
                headers=self._get_headers(),
                params=params,
                json=json,
                timeout=self._timeout,
            )
            response.raise_for_status()
            if not response.content:
                return None
            return response.json()
        except httpx.HTTPStatusError as e:
            raise ServiceError(
                operation,
                f"HTTP {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise ServiceError(operation, str(e) or type(e).__name__) from e
        finally:
            if self._owns_client and not self._http_client:
                await client.aclose()

    async def fetch_comments(
        self, parent_type: ParentType, parent_id: str
    ) -> Sequence[Comment]:
        rows = await self._request(
            "fetch_comments",
            "GET",
            "comments",
            params={
                "parent_type": f"eq.{parent_type.value}",
                "parent_id": f"eq.{parent_id}",
                "order": "created_at.asc",
            },
        )
        return [self._row_to_comment(row) for row in rows or []]

    async def create_comment(
        self,
        parent_type: ParentType,
        parent_id: str,
        author_id: str,
        body: str,
    ) -> Optional[Comment]:
        rows = await self._request(
            "create_comment",
            "POST",
            "comments",
            json=[{
                "parent_type": parent_type.value,
                "parent_id": parent_id,
                "author_id": author_id,
                "body": body,
            }],
        )
        if not rows:
            return None
        return self._row_to_comment(rows[0])

    async def list_people(self) -> Sequence[Person]:
        rows = await self._request(
            "list_people",
            "GET",
            "people",
            params={"select": "id,name,email", "order": "created_at.asc"},
        )
        return [
            Person(id=str(row["id"]), name=row.get("name") or "", email=row.get("email") or "")
            for row in rows or []
        ]

    async def create_notification(
        self,
        recipient_id: str,
        type: NotificationType,
        payload: dict,
    ) -> Optional[Notification]:
        rows = await self._request(
            "create_notification",
            "POST",
            "notifications",
            json=[{
                "recipient_id": recipient_id,
                "type": type.value,
                "payload": payload,
                "read": False,
            }],
        )
        if not rows:
            return None
        return self._row_to_notification(rows[0])

    async def create_mention_notifications(
        self,
        body: str,
        author_id: str,
        parent_type: ParentType,
        parent_id: str,
    ) -> None:
        await self._notifier.notify(body, author_id, parent_type, parent_id)

    async def fetch_notifications(self, recipient_id: str) -> Sequence[Notification]:
        rows = await self._request(
            "fetch_notifications",
            "GET",
            "notifications",
            params={
                "recipient_id": f"eq.{recipient_id}",
                "order": "created_at.desc",
                "limit": str(self._fetch_limit),
            },
        )
        return [self._row_to_notification(row) for row in rows or []]

    async def mark_notification_as_read(self, notification_id: str) -> bool:
        try:
            await self._request(
                "mark_notification_as_read",
                "PATCH",
                "notifications",
                params={"id": f"eq.{notification_id}"},
                json={"read": True},
            )
        except ServiceError as e:
            logger.error(f"Error marking notification as read: {e}")
            return False
        return True

    async def mark_all_notifications_as_read(self, recipient_id: str) -> bool:
        try:
            await self._request(
                "mark_all_notifications_as_read",
                "PATCH",
                "notifications",
                params={"recipient_id": f"eq.{recipient_id}", "read": "eq.false"},
                json={"read": True},
            )
        except ServiceError as e:
            logger.error(f"Error marking all notifications as read: {e}")
            return False
        return True

    def _row_to_comment(self, row: dict) -> Comment:
        try:
            return Comment(
                id=str(row["id"]),
                parent_type=ParentType(row["parent_type"]),
                parent_id=str(row["parent_id"]),
                author_id=str(row["author_id"]),
                body=row.get("body") or "",
                created_at=_parse_timestamp(row["created_at"]),
            )
        except (KeyError, ValueError) as e:
            raise ServiceError("decode_comment", f"malformed row: {e}") from e

    def _row_to_notification(self, row: dict) -> Notification:
        try:
            return Notification(
                id=str(row["id"]),
                recipient_id=str(row["recipient_id"]),
                type=NotificationType.parse(row.get("type", "")),
                payload=row.get("payload") or {},
                read=bool(row.get("read", False)),
                created_at=_parse_timestamp(row["created_at"]),
            )
        except (KeyError, ValueError) as e:
            raise ServiceError("decode_notification", f"malformed row: {e}") from e

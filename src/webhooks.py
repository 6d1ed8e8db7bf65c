"""Content webhooks: react to publish / unpublish / delete notifications.

The content service POSTs a notification whenever an entry or asset
changes.  ``WebhookManager`` routes each event to the listeners registered
for its type.  Events are processed one at a time in arrival order; a
listener that raises is logged and skipped, the remaining listeners still
run.
"""

from __future__ import annotations

import inspect
import logging
from collections import deque
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class WebhookEventType(StrEnum):
    ENTRY_PUBLISH = "Entry.publish"
    ENTRY_UNPUBLISH = "Entry.unpublish"
    ENTRY_DELETE = "Entry.delete"
    ENTRY_AUTO_SAVE = "Entry.auto_save"
    ASSET_PUBLISH = "Asset.publish"
    ASSET_UNPUBLISH = "Asset.unpublish"
    ASSET_DELETE = "Asset.delete"


class WebhookSys(BaseModel):
    """``sys`` block of a notification; ``type`` carries the event type."""

    type: str
    id: str
    space_id: str = ""
    environment_id: str = "master"
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class WebhookEvent(BaseModel):
    sys: WebhookSys
    tags: list[str] = Field(default_factory=list)
    fields: dict[str, Any] = Field(default_factory=dict)

    @property
    def event_type(self) -> str:
        return self.sys.type

    @classmethod
    def from_payload(cls, payload: dict[str, Any], topic: str | None = None) -> WebhookEvent:
        """Build an event from a raw notification body.

        Args:
            payload: JSON body with a ``sys`` block shaped like upstream records.
            topic:   Optional topic header (``ContentManagement.Entry.publish``);
                     its last two segments override ``sys.type``.
        """
        sys = payload.get("sys") or {}
        event_type = sys.get("type", "")
        if topic:
            event_type = ".".join(topic.split(".")[-2:])
        return cls(
            sys=WebhookSys(
                type=event_type,
                id=sys.get("id", ""),
                space_id=((sys.get("space") or {}).get("sys") or {}).get("id", ""),
                environment_id=((sys.get("environment") or {}).get("sys") or {}).get("id", "master"),
                **({"created_at": sys["createdAt"]} if sys.get("createdAt") else {}),
            ),
            tags=[
                t.get("sys", {}).get("id", "") if isinstance(t, dict) else str(t)
                for t in (payload.get("metadata") or {}).get("tags", [])
            ],
            fields=payload.get("fields") or {},
        )


WebhookListener = Callable[[WebhookEvent], Awaitable[None] | None]


class WebhookManager:
    """Route webhook events to listeners, sequentially."""

    def __init__(self) -> None:
        self._listeners: dict[str, list[WebhookListener]] = {}
        self._queue: deque[WebhookEvent] = deque()
        self._processing = False

    def on(self, event_type: WebhookEventType | str, listener: WebhookListener) -> None:
        listeners = self._listeners.setdefault(str(event_type), [])
        if listener not in listeners:
            listeners.append(listener)

    def off(self, event_type: WebhookEventType | str, listener: WebhookListener) -> None:
        listeners = self._listeners.get(str(event_type), [])
        if listener in listeners:
            listeners.remove(listener)

    def listener_count(self, event_type: WebhookEventType | str) -> int:
        return len(self._listeners.get(str(event_type), []))

    async def process_event(self, event: WebhookEvent) -> None:
        """Queue *event*; drain the queue unless a drain is already running."""
        self._queue.append(event)
        if self._processing:
            return
        self._processing = True
        try:
            while self._queue:
                await self._dispatch(self._queue.popleft())
        finally:
            self._processing = False

    async def _dispatch(self, event: WebhookEvent) -> None:
        listeners = list(self._listeners.get(event.event_type, []))
        if not listeners:
            logger.debug("No webhook listeners for %s (%s)", event.event_type, event.sys.id)
            return
        for listener in listeners:
            try:
                result = listener(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Webhook listener failed for %s (%s)", event.event_type, event.sys.id)

    def clear_all(self) -> None:
        self._listeners.clear()
        self._queue.clear()


REFRESH_EVENTS = (
    WebhookEventType.ENTRY_PUBLISH,
    WebhookEventType.ENTRY_UNPUBLISH,
    WebhookEventType.ENTRY_DELETE,
    WebhookEventType.ASSET_PUBLISH,
)


def setup_content_refresh_listeners(
    refresh: Callable[[], Awaitable[None] | None],
    manager: WebhookManager,
) -> None:
    """Call *refresh* whenever published content changes."""

    async def _on_change(event: WebhookEvent) -> None:
        logger.info("Content changed (%s %s); refreshing", event.event_type, event.sys.id)
        result = refresh()
        if inspect.isawaitable(result):
            await result

    for event_type in REFRESH_EVENTS:
        manager.on(event_type, _on_change)

"""Change feed contract and in-process implementation.

The backing store pushes a tagged notification for every mutation of a time
card entry or a roster record. Notifications carry no guaranteed payload
beyond the tag; consumers re-read the data they need.
"""

from __future__ import annotations

import time
import traceback
import uuid
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

from ..observability.loguru_config import get_logger

__all__ = [
    "ALL_RESOURCES",
    "ChangeEvent",
    "ChangeFeed",
    "ChangeKind",
    "CloseHandler",
    "EventHandler",
    "InProcessChangeFeed",
    "Resource",
    "SubscriptionError",
    "SubscriptionHandle",
    "create_change_feed",
]


class SubscriptionError(Exception):
    """Raised when the feed handshake fails or the channel is dropped."""

    pass


class ChangeKind(str, Enum):
    """Mutation type."""

    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


class Resource(str, Enum):
    """Collection the mutation touched."""

    ENTRY = "entry"
    ROSTER = "roster"


ALL_RESOURCES: frozenset[Resource] = frozenset(Resource)


@dataclass(frozen=True)
class ChangeEvent:
    """Tagged change notification."""

    kind: ChangeKind
    resource: Resource
    payload: dict[str, Any] | None = None
    correlation_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: float = field(default_factory=time.time)


EventHandler = Callable[[ChangeEvent], Any]
"""Type alias for change handlers."""

CloseHandler = Callable[[Exception | None], Any]
"""Called once when the channel closes; receives the transport error, if any."""


@dataclass
class SubscriptionHandle:
    """Handle for one live subscription."""

    subscription_id: str
    topics: frozenset[Resource]
    handler: EventHandler
    on_close: CloseHandler | None = None
    active: bool = True

    def should_handle(self, event: ChangeEvent) -> bool:
        """Check if this subscription should receive the event."""
        return self.active and event.resource in self.topics


class ChangeFeed(Protocol):
    """Subscription side of the change feed.

    Implementations raise ``SubscriptionError`` when the handshake fails and
    call ``on_close`` when an established channel goes away.
    """

    async def subscribe(
        self,
        topics: Iterable[Resource],
        on_event: EventHandler,
        *,
        on_close: CloseHandler | None = None,
    ) -> SubscriptionHandle:
        """Open a subscription."""
        ...

    async def unsubscribe(self, handle: SubscriptionHandle) -> bool:
        """Release a subscription. Returns True if it was still open."""
        ...


class InProcessChangeFeed:
    """Lightweight in-process change feed.

    Delivery is synchronous, in subscription order, on the caller's event
    loop. A failing handler is logged and does not stop delivery to the
    remaining subscribers.

    Example:
        >>> feed = InProcessChangeFeed()
        >>> handle = await feed.subscribe([Resource.ENTRY], print)
        >>> feed.publish(ChangeEvent(ChangeKind.INSERT, Resource.ENTRY))
        1
    """

    def __init__(self, logger: Any = None) -> None:
        """Initialize change feed.

        Parameters
        ----------
        logger
            Optional loguru logger (defaults to the ``feed`` component)
        """
        self._subscriptions: dict[str, SubscriptionHandle] = {}
        self._logger = logger or get_logger("feed")
        self._available = True
        self._delivery_stats: dict[str, int] = {"published": 0, "delivered": 0, "failed": 0}

    @property
    def available(self) -> bool:
        """Whether new handshakes succeed."""
        return self._available

    def set_available(self, available: bool) -> None:
        """Simulate the transport going down (handshakes fail) or coming back."""
        self._available = available

    async def subscribe(
        self,
        topics: Iterable[Resource],
        on_event: EventHandler,
        *,
        on_close: CloseHandler | None = None,
    ) -> SubscriptionHandle:
        """Subscribe to changes on the given collections.

        Raises
        ------
        SubscriptionError
            If the feed is unavailable or no topic was given
        """
        topic_set = frozenset(Resource(t) for t in topics)
        if not topic_set:
            raise SubscriptionError("At least one topic is required")
        if not self._available:
            raise SubscriptionError("Change feed unavailable")

        handle = SubscriptionHandle(
            subscription_id=str(uuid.uuid4()),
            topics=topic_set,
            handler=on_event,
            on_close=on_close,
        )
        self._subscriptions[handle.subscription_id] = handle

        self._logger.debug(
            "Subscription created",
            subscription_id=handle.subscription_id,
            topics=sorted(t.value for t in topic_set),
        )
        return handle

    async def unsubscribe(self, handle: SubscriptionHandle) -> bool:
        """Release a subscription.

        Returns
        -------
        bool
            True if the subscription was found and removed
        """
        removed = self._subscriptions.pop(handle.subscription_id, None) is not None
        handle.active = False

        if removed:
            self._logger.debug("Subscription removed", subscription_id=handle.subscription_id)

        return removed

    def publish(self, event: ChangeEvent) -> int:
        """Deliver an event to matching subscribers.

        Returns
        -------
        int
            Number of handlers that received the event
        """
        self._delivery_stats["published"] += 1
        delivered = 0

        # Copy: handlers may unsubscribe while we iterate
        for handle in list(self._subscriptions.values()):
            if not handle.should_handle(event):
                continue
            try:
                handle.handler(event)
            except Exception as exc:
                self._delivery_stats["failed"] += 1
                self._logger.error(
                    f"Change handler failed: {event.resource.value}.{event.kind.value}",
                    correlation_id=event.correlation_id,
                    error=str(exc),
                    traceback=traceback.format_exc(),
                )
                continue
            self._delivery_stats["delivered"] += 1
            delivered += 1

        return delivered

    def close(self, error: Exception | None = None) -> int:
        """Drop every open channel, as a transport failure would.

        Returns
        -------
        int
            Number of subscriptions closed
        """
        handles = list(self._subscriptions.values())
        self._subscriptions.clear()

        for handle in handles:
            handle.active = False
            if handle.on_close is not None:
                handle.on_close(error)

        if handles:
            self._logger.warning(
                "Change feed closed",
                count=len(handles),
                error=str(error) if error else None,
            )
        return len(handles)

    def subscription_count(self) -> int:
        """Number of open subscriptions."""
        return len(self._subscriptions)

    def get_stats(self) -> dict[str, int]:
        """Get delivery statistics."""
        return dict(self._delivery_stats)


def create_change_feed(logger: Any = None) -> InProcessChangeFeed:
    """Factory function to create an in-process change feed."""
    return InProcessChangeFeed(logger=logger)

"""Change-feed listener for the weekly dashboard.

States: disconnected (initial) → connected → disconnected.

The listener owns at most one subscription. It never touches the matrix:
every entry/roster notification is turned into a bare "re-aggregate now"
signal for the controller.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable
from enum import Enum
from typing import TYPE_CHECKING, Any

from ..core.events import ALL_RESOURCES, ChangeEvent, Resource, SubscriptionError
from ..observability.loguru_config import get_logger

if TYPE_CHECKING:
    from types import TracebackType

    from ..core.events import ChangeFeed, SubscriptionHandle

__all__ = [
    "ChangeFeedListener",
    "ConnectionState",
]


class ConnectionState(str, Enum):
    """Subscription health, independent of fetch success."""

    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


class ChangeFeedListener:
    """Scoped subscription to the entry and roster collections.

    Use as an async context manager so the subscription is released on
    every exit path:

        >>> async with ChangeFeedListener(feed, on_change=controller.on_feed_event):
        ...     await run_view()
    """

    def __init__(
        self,
        feed: ChangeFeed,
        on_change: Callable[[ChangeEvent], Any],
        *,
        on_state_change: Callable[[ConnectionState], Any] | None = None,
        topics: Iterable[Resource] = ALL_RESOURCES,
    ) -> None:
        """Initialize listener.

        Parameters
        ----------
        feed
            Change feed to subscribe to
        on_change
            Called once per relevant notification
        on_state_change
            Called on every connected/disconnected transition
        topics
            Collections to watch (entries and roster by default)
        """
        self.feed = feed
        self.on_change = on_change
        self.on_state_change = on_state_change
        self.topics = frozenset(topics)
        self._state = ConnectionState.DISCONNECTED
        self._handle: SubscriptionHandle | None = None
        self._lock = asyncio.Lock()
        self._log = get_logger("feed")

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    @property
    def handle(self) -> SubscriptionHandle | None:
        return self._handle

    async def acquire(self) -> bool:
        """Open the subscription, or reuse the live one.

        Returns
        -------
        bool
            True when connected afterwards. A failed handshake is logged
            and only reflected in ``state``.
        """
        async with self._lock:
            if self._handle is not None and self._handle.active:
                return True

            # A closed handle is replaced, never kept alongside a new one
            if self._handle is not None:
                await self._drop_handle()

            # Close callbacks are tied to the handle they were registered with
            opened: list[SubscriptionHandle] = []

            def on_close(error: Exception | None) -> None:
                self._handle_close(opened[0] if opened else None, error)

            try:
                handle = await self.feed.subscribe(
                    self.topics,
                    self._handle_event,
                    on_close=on_close,
                )
                opened.append(handle)
            except SubscriptionError as exc:
                self._log.warning("Change feed subscription failed", error=str(exc))
                self._set_state(ConnectionState.DISCONNECTED)
                return False

            self._handle = handle
            self._set_state(ConnectionState.CONNECTED)
            return True

    async def release(self) -> None:
        """Release the subscription. Safe to call more than once."""
        async with self._lock:
            await self._drop_handle()
            self._set_state(ConnectionState.DISCONNECTED)

    async def __aenter__(self) -> ChangeFeedListener:
        await self.acquire()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.release()

    async def _drop_handle(self) -> None:
        handle, self._handle = self._handle, None
        if handle is None:
            return
        try:
            await self.feed.unsubscribe(handle)
        except SubscriptionError as exc:
            self._log.warning("Change feed unsubscribe failed", subscription_id=handle.subscription_id, error=str(exc))
        finally:
            handle.active = False

    def _handle_event(self, event: ChangeEvent) -> None:
        # Late delivery after release
        if self._handle is None or not self._handle.active:
            return
        if event.resource not in self.topics:
            return

        self._log.debug(
            "Change received",
            resource=event.resource.value,
            kind=event.kind.value,
            correlation_id=event.correlation_id,
        )
        self.on_change(event)

    def _handle_close(self, handle: SubscriptionHandle | None, error: Exception | None) -> None:
        if handle is None or handle is not self._handle:
            return

        self._log.warning("Change feed channel closed", error=str(error) if error else None)
        handle.active = False
        self._handle = None
        self._set_state(ConnectionState.DISCONNECTED)

    def _set_state(self, state: ConnectionState) -> None:
        if state is self._state:
            return
        self._log.info(f"Change feed {state.value}", previous=self._state.value)
        self._state = state
        if self.on_state_change is not None:
            self.on_state_change(state)

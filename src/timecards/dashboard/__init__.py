"""Weekly dashboard: change-feed listener and view state controller."""

from .controller import WeekView, WeekViewController
from .feed_listener import ChangeFeedListener, ConnectionState

__all__ = [
    "ChangeFeedListener",
    "ConnectionState",
    "WeekView",
    "WeekViewController",
]

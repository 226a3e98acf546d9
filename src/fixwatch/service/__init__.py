"""Service layer: configuration, feed polling, snapshots and the realtime channel."""

from .annotations import AnnotationBoard
from .config import FixwatchConfig
from .feed_client import FeedClient, FeedError, parse_feed_payload
from .feed_cycle import CycleScheduler, FeedCycle
from .snapshot import Snapshot, SnapshotHolder

__all__ = [
    "AnnotationBoard",
    "CycleScheduler",
    "FeedClient",
    "FeedCycle",
    "FeedError",
    "FixwatchConfig",
    "Snapshot",
    "SnapshotHolder",
    "parse_feed_payload",
]


def __getattr__(name):
    if name == "BoardServer":
        from .server import BoardServer

        return BoardServer
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

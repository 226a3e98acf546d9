"""Fetch-classify-publish cycle and the fixed-interval scheduler that drives it."""

from __future__ import annotations

import logging
import threading
import time
from datetime import datetime
from typing import Callable, List, Optional

from fixwatch.engine.eta import utc_now
from fixwatch.engine.tracks import AircraftSample, RouteClassificationEngine

from .feed_client import FeedError
from .snapshot import Snapshot, SnapshotHolder

logger = logging.getLogger(__name__)

Fetcher = Callable[[], List[AircraftSample]]
Publisher = Callable[[Snapshot], None]


class FeedCycle:
    """One fetch-classify-publish pass per call; passes never overlap.

    A call made while another pass is still running returns ``None`` straight
    away, so the published snapshot always comes from a single feed snapshot.
    """

    def __init__(
        self,
        engine: RouteClassificationEngine,
        fetch: Fetcher,
        holder: SnapshotHolder,
        *,
        publish: Optional[Publisher] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.engine = engine
        self.fetch = fetch
        self.holder = holder
        self.publish = publish
        self.clock = clock
        self._running = threading.Lock()
        self._cycle = holder.current.cycle
        self.stats = {"completed": 0, "failed_fetches": 0, "skipped_ticks": 0}

    def run_once(self) -> Optional[Snapshot]:
        if not self._running.acquire(blocking=False):
            self.stats["skipped_ticks"] += 1
            logger.warning("Previous cycle still running; skipping this tick.")
            return None
        try:
            return self._run()
        finally:
            self._running.release()

    def _run(self) -> Optional[Snapshot]:
        try:
            samples = self.fetch()
        except FeedError as exc:
            self.stats["failed_fetches"] += 1
            logger.error("Feed fetch failed; keeping previous lists: %s", exc)
            return None

        now = self.clock()
        result = self.engine.process_batch(samples, now=now)
        self._cycle += 1
        snapshot = Snapshot(
            inbound=tuple(result.inbound),
            outbound=tuple(result.outbound),
            produced_at=now,
            cycle=self._cycle,
            stats=dict(result.stats),
        )
        self.holder.replace(snapshot)
        self.stats["completed"] += 1
        logger.info(
            "Cycle %d: %d samples -> %d inbound, %d outbound",
            snapshot.cycle,
            result.stats.get("samples", 0),
            len(snapshot.inbound),
            len(snapshot.outbound),
        )
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Cycle %d drop counts: %s", snapshot.cycle, result.stats)
        if self.publish is not None:
            self.publish(snapshot)
        return snapshot


class CycleScheduler:
    """Runs a :class:`FeedCycle` every ``interval_seconds`` until stopped."""

    def __init__(
        self,
        cycle: FeedCycle,
        interval_seconds: float,
        *,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive.")
        self.cycle = cycle
        self.interval_seconds = float(interval_seconds)
        self.sleep = sleep
        self._stop = threading.Event()

    def stop(self) -> None:
        self._stop.set()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def run_forever(self, max_cycles: Optional[int] = None) -> None:
        ticks = 0
        while not self._stop.is_set():
            started = time.monotonic()
            try:
                self.cycle.run_once()
            except Exception:
                logger.exception("Cycle crashed; the next tick will retry")
            ticks += 1
            if max_cycles is not None and ticks >= max_cycles:
                break
            elapsed = time.monotonic() - started
            self.sleep(max(0.0, self.interval_seconds - elapsed))

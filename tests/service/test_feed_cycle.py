from __future__ import annotations

import pytest

from fixwatch.engine.tracks import AircraftSample
from fixwatch.service.feed_client import FeedError
from fixwatch.service.feed_cycle import CycleScheduler, FeedCycle
from fixwatch.service.snapshot import EMPTY_SNAPSHOT, SnapshotHolder

OUTBOUND = AircraftSample(
    id="1",
    callsign="JBU1",
    route="TJSJ SJU L327 NUCAR KJFK",
    destination="KJFK",
    latitude=21.0,
    longitude=-63.0,
    heading=300.0,
    groundspeed=450.0,
)


class _ScriptedFetch:
    """Returns queued results in order; exceptions in the queue are raised."""

    def __init__(self, *results):
        self.results = list(results)
        self.calls = 0

    def __call__(self):
        self.calls += 1
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


def test_successful_cycle_replaces_and_publishes(engine, noon):
    holder = SnapshotHolder()
    published = []
    cycle = FeedCycle(engine, _ScriptedFetch([OUTBOUND]), holder, publish=published.append, clock=lambda: noon)

    snapshot = cycle.run_once()

    assert snapshot is holder.current
    assert snapshot.cycle == 1
    assert snapshot.produced_at == noon
    assert [track.id for track in snapshot.outbound] == ["1"]
    assert snapshot.inbound == ()
    assert published == [snapshot]
    assert cycle.stats["completed"] == 1


def test_failed_fetch_keeps_previous_snapshot(engine, noon, caplog):
    holder = SnapshotHolder()
    published = []
    fetch = _ScriptedFetch([OUTBOUND], FeedError("timeout"), [])
    cycle = FeedCycle(engine, fetch, holder, publish=published.append, clock=lambda: noon)

    first = cycle.run_once()
    assert cycle.run_once() is None
    assert holder.current is first
    assert cycle.stats["failed_fetches"] == 1
    assert "Feed fetch failed" in caplog.text

    third = cycle.run_once()
    assert third.cycle == 2
    assert third.outbound == ()
    assert published == [first, third]


def test_overlapping_run_is_skipped(engine, noon):
    holder = SnapshotHolder()
    nested = []

    def reentrant_fetch():
        nested.append(cycle.run_once())
        return [OUTBOUND]

    cycle = FeedCycle(engine, reentrant_fetch, holder, clock=lambda: noon)
    snapshot = cycle.run_once()

    assert nested == [None]
    assert cycle.stats["skipped_ticks"] == 1
    assert snapshot.cycle == 1
    assert holder.current is snapshot


def test_other_fetch_errors_propagate_and_release_the_guard(engine, noon):
    holder = SnapshotHolder()
    cycle = FeedCycle(engine, _ScriptedFetch(RuntimeError("bug"), []), holder, clock=lambda: noon)
    with pytest.raises(RuntimeError):
        cycle.run_once()
    assert holder.current is EMPTY_SNAPSHOT

    assert cycle.run_once().cycle == 1
    assert cycle.stats["skipped_ticks"] == 0


def test_scheduler_runs_cycles_and_sleeps_between_ticks(engine, noon):
    holder = SnapshotHolder()
    fetch = _ScriptedFetch([OUTBOUND], RuntimeError("bug"), [OUTBOUND])
    cycle = FeedCycle(engine, fetch, holder, clock=lambda: noon)
    sleeps = []
    scheduler = CycleScheduler(cycle, 15, sleep=sleeps.append)

    scheduler.run_forever(max_cycles=3)

    assert fetch.calls == 3
    assert len(sleeps) == 2
    assert all(0.0 <= delay <= 15.0 for delay in sleeps)
    assert holder.current.cycle == 2


def test_scheduler_stop():
    class _Cycle:
        def __init__(self):
            self.runs = 0

        def run_once(self):
            self.runs += 1
            scheduler.stop()

    stub = _Cycle()
    scheduler = CycleScheduler(stub, 1, sleep=lambda _: None)
    scheduler.run_forever()
    assert stub.runs == 1
    assert scheduler.stopped


def test_scheduler_rejects_bad_interval():
    with pytest.raises(ValueError):
        CycleScheduler(object(), 0)

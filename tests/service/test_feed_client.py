from __future__ import annotations

from datetime import datetime, timezone

import pytest
import requests

from fixwatch.service.feed_client import FeedClient, FeedError, parse_feed_payload, parse_pilot

PILOT = {
    "cid": 1234567,
    "callsign": "JBU1234",
    "latitude": 21.0,
    "longitude": -63.0,
    "altitude": 35012,
    "groundspeed": 452,
    "heading": 300,
    "flight_plan": {"route": "SJU L327 NUCAR", "arrival": "KJFK", "departure": "TJSJ"},
    "last_updated": "2024-03-01T11:59:45.1234567Z",
}


class _StubResponse:
    def __init__(self, payload=None, *, status_error=None, json_error=None):
        self._payload = payload
        self._status_error = status_error
        self._json_error = json_error

    def raise_for_status(self):
        if self._status_error is not None:
            raise self._status_error

    def json(self):
        if self._json_error is not None:
            raise self._json_error
        return self._payload


class _StubSession:
    def __init__(self, response=None, error=None):
        self.headers = {}
        self.calls = []
        self._response = response
        self._error = error

    def get(self, url, timeout=None):
        self.calls.append((url, timeout))
        if self._error is not None:
            raise self._error
        return self._response


def test_parse_pilot_maps_feed_fields():
    sample = parse_pilot(PILOT)

    assert sample.id == "1234567"
    assert sample.callsign == "JBU1234"
    assert sample.route == "SJU L327 NUCAR"
    assert sample.destination == "KJFK"
    assert (sample.latitude, sample.longitude) == (21.0, -63.0)
    assert sample.heading == 300.0
    assert sample.groundspeed == 452.0
    assert sample.altitude == 35012.0
    assert sample.observed_at == datetime(2024, 3, 1, 11, 59, 45, 123456, tzinfo=timezone.utc)


def test_parse_pilot_tolerates_missing_optional_fields():
    sample = parse_pilot({"cid": "42", "latitude": "n/a", "heading": None, "flight_plan": None})

    assert sample.id == "42"
    assert sample.route is None
    assert sample.destination is None
    assert sample.latitude is None
    assert sample.heading is None
    assert sample.observed_at is None


@pytest.mark.parametrize("entry", [{"callsign": "NOID"}, {"cid": "  "}, "garbage"])
def test_parse_pilot_rejects_entries_without_id(entry):
    with pytest.raises(ValueError):
        parse_pilot(entry)


def test_parse_feed_payload_skips_malformed_entries():
    samples = parse_feed_payload({"general": {}, "pilots": [PILOT, {"callsign": "X"}, 17]})
    assert [sample.id for sample in samples] == ["1234567"]


@pytest.mark.parametrize("payload", [None, [], {"controllers": []}, {"pilots": {"a": 1}}])
def test_parse_feed_payload_rejects_non_snapshots(payload):
    with pytest.raises(FeedError):
        parse_feed_payload(payload)


def test_fetch_returns_samples():
    session = _StubSession(_StubResponse({"pilots": [PILOT]}))
    client = FeedClient("http://feed.test/data.json", timeout_seconds=3, session=session)

    samples = client.fetch()

    assert [sample.callsign for sample in samples] == ["JBU1234"]
    assert session.calls == [("http://feed.test/data.json", 3)]
    assert session.headers["Accept"] == "application/json"


@pytest.mark.parametrize(
    "session",
    [
        _StubSession(error=requests.ConnectionError("refused")),
        _StubSession(error=requests.Timeout("slow")),
        _StubSession(_StubResponse(status_error=requests.HTTPError("503 Server Error"))),
        _StubSession(_StubResponse(json_error=ValueError("Expecting value"))),
        _StubSession(_StubResponse(["not", "a", "snapshot"])),
    ],
)
def test_fetch_failures_raise_feed_error(session):
    client = FeedClient("http://feed.test/data.json", session=session)
    with pytest.raises(FeedError):
        client.fetch()

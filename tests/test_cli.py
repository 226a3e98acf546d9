from __future__ import annotations

import json

import pytest
from rich.console import Console

from fixwatch import cli
from fixwatch.service.config import DEFAULT_CONFIG_PATH, FixwatchConfig


def _feed(tmp_path, pilots):
    path = tmp_path / "feed.json"
    path.write_text(json.dumps({"general": {"version": 3}, "pilots": pilots}), encoding="utf-8")
    return path


PILOTS = [
    {
        "cid": 1,
        "callsign": "JBU1",
        "latitude": 21.0,
        "longitude": -63.0,
        "altitude": 35000,
        "groundspeed": 450,
        "heading": 300,
        "flight_plan": {"route": "TJSJ SJU L327 NUCAR KJFK", "arrival": "KJFK"},
        "last_updated": "2024-03-01T11:59:45Z",
    },
    {
        "cid": 2,
        "callsign": "AAL2",
        "latitude": 21.0,
        "longitude": -64.0,
        "groundspeed": 450,
        "heading": 180,
        "flight_plan": {"route": "KJFK NUCAR L327 SJU TJSJ", "arrival": "TJSJ"},
        "last_updated": "2024-03-01T11:59:50Z",
    },
    {"cid": 3, "callsign": "NOPOS", "flight_plan": {"route": "KEEKA"}},
]


def test_parse_args_defaults():
    args = cli.parse_args(["classify"])
    assert args.command == "classify"
    assert args.feed_file is None
    assert args.log_level == "INFO"

    args = cli.parse_args(["--log-level", "DEBUG", "serve", "--port", "8080"])
    assert (args.command, args.port, args.host) == ("serve", 8080, None)


def test_run_classify_prints_both_lists(config, tmp_path):
    console = Console(record=True, width=160)

    snapshot = cli.run_classify(config, str(_feed(tmp_path, PILOTS)), console)

    assert [track.callsign for track in snapshot.outbound] == ["JBU1"]
    assert [track.callsign for track in snapshot.inbound] == ["AAL2"]
    assert snapshot.stats["no_position"] == 1
    text = console.export_text()
    assert "Inbound (cycle 1)" in text
    assert "Outbound (cycle 1)" in text
    assert "JBU1" in text and "OPAUL" in text


def test_main_classify(tmp_path, capsys):
    cli.main(["classify", "--feed-file", str(_feed(tmp_path, PILOTS))])
    assert "AAL2" in capsys.readouterr().out


def test_bad_inputs_exit(tmp_path, config):
    with pytest.raises(SystemExit, match="Invalid configuration"):
        cli.main(["--config", str(tmp_path / "missing.yaml"), "classify"])

    bad_json = tmp_path / "bad.json"
    bad_json.write_text("{not json", encoding="utf-8")
    with pytest.raises(SystemExit, match="not valid JSON"):
        cli.run_classify(config, str(bad_json), Console(record=True))

    not_a_feed = tmp_path / "list.json"
    not_a_feed.write_text("[]", encoding="utf-8")
    with pytest.raises(SystemExit, match="not a JSON object"):
        cli.run_classify(config, str(not_a_feed), Console(record=True))


def test_malformed_boundary_file_exits_with_message(tmp_path):
    boundaries = tmp_path / "boundaries.geojson"
    boundaries.write_text(json.dumps({"type": "FeatureCollection", "features": ["oops"]}), encoding="utf-8")
    config = FixwatchConfig.from_mapping(
        {
            "reference": {
                "boundaries_path": str(boundaries),
                "airways_path": str(DEFAULT_CONFIG_PATH.parent / "airways.csv"),
            },
            "classification": {"region_priority": ["TJZS"]},
            "boundary_fixes": {"OPAUL": [21.856597, -63.846578]},
            "facilities": {"TJZS": {"role": "far_side", "outbound": {"arc": [280, 60]}}},
        },
        base_dir=tmp_path,
    )
    with pytest.raises(SystemExit, match="Could not load reference data"):
        cli.run_classify(config, str(_feed(tmp_path, PILOTS)), Console(record=True))


def test_common_options_accepted_after_subcommand():
    args = cli.parse_args(["classify", "--config", "x.yaml", "--log-level", "DEBUG"])
    assert (args.config, args.log_level) == ("x.yaml", "DEBUG")

    args = cli.parse_args(["--config", "before.yaml", "serve", "--log-level", "WARNING"])
    assert (args.config, args.log_level) == ("before.yaml", "WARNING")

    args = cli.parse_args(["--log-level", "ERROR", "serve"])
    assert args.log_level == "ERROR"
    assert args.config.endswith("fixwatch.yaml")

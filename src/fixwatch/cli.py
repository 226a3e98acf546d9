"""Command-line entry point for the boundary-fix board."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import List, Sequence

from rich.console import Console
from rich.table import Table

from fixwatch.engine.tracks import AircraftSample
from fixwatch.service.annotations import AnnotationBoard
from fixwatch.service.config import DEFAULT_CONFIG_PATH, FixwatchConfig
from fixwatch.service.feed_client import FeedClient, FeedError, parse_feed_payload
from fixwatch.service.feed_cycle import CycleScheduler, FeedCycle
from fixwatch.service.server import BoardServer
from fixwatch.service.snapshot import Snapshot, SnapshotHolder

logger = logging.getLogger(__name__)


def _common_options(*, with_defaults: bool) -> argparse.ArgumentParser:
    """Options accepted both before and after the subcommand.

    Subcommand copies suppress their defaults so a value given before the
    subcommand is not reset.
    """
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        default=str(DEFAULT_CONFIG_PATH) if with_defaults else argparse.SUPPRESS,
        help="YAML configuration (feed, reference data, facility heading arcs).",
    )
    common.add_argument(
        "--log-level",
        default="INFO" if with_defaults else argparse.SUPPRESS,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    return common


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__, parents=[_common_options(with_defaults=True)])
    sub = parser.add_subparsers(dest="command", required=True)
    sub_common = _common_options(with_defaults=False)

    serve = sub.add_parser("serve", parents=[sub_common], help="Poll the feed and publish the board to viewers.")
    serve.add_argument("--host", default=None, help="Override server.host from the config.")
    serve.add_argument("--port", type=int, default=None, help="Override server.port from the config.")

    classify = sub.add_parser("classify", parents=[sub_common], help="Run a single cycle and print both lists.")
    classify.add_argument(
        "--feed-file",
        default=None,
        help="Saved feed JSON to classify instead of fetching the live feed.",
    )
    return parser.parse_args(argv)


def _load_config(path: str) -> FixwatchConfig:
    try:
        return FixwatchConfig.from_yaml(path)
    except (FileNotFoundError, TypeError, ValueError) as exc:
        raise SystemExit(f"Invalid configuration {path}: {exc}") from exc


def _build_engine(config: FixwatchConfig):
    try:
        return config.build_engine()
    except (FileNotFoundError, TypeError, ValueError) as exc:
        raise SystemExit(f"Could not load reference data: {exc}") from exc


def _samples_from_file(path: str | Path) -> List[AircraftSample]:
    feed_path = Path(path)
    with feed_path.open("r", encoding="utf-8") as handle:
        try:
            payload = json.load(handle)
        except json.JSONDecodeError as exc:
            raise SystemExit(f"{feed_path} is not valid JSON: {exc}") from exc
    try:
        return parse_feed_payload(payload)
    except FeedError as exc:
        raise SystemExit(f"{feed_path}: {exc}") from exc


def _render_table(title: str, rows: Sequence[dict]) -> Table:
    table = Table(title=title)
    for column in ("Callsign", "Waypoint", "Center Estimate", "Heading", "Altitude", "Mach"):
        table.add_column(column)
    for row in rows:
        heading = row.get("Heading")
        table.add_row(
            str(row.get("Callsign", "")),
            str(row.get("Waypoint", "")),
            str(row.get("Center Estimate", "")),
            "" if heading is None else f"{heading:03.0f}",
            str(row.get("Altitude", "")),
            str(row.get("Mach", "")),
        )
    return table


def run_classify(config: FixwatchConfig, feed_file: str | None, console: Console) -> Snapshot:
    engine = _build_engine(config)
    if feed_file:
        samples = _samples_from_file(feed_file)

        def fetch() -> List[AircraftSample]:
            return samples

    else:
        fetch = FeedClient(config.feed_url, timeout_seconds=config.feed_timeout_seconds).fetch
    holder = SnapshotHolder()
    snapshot = FeedCycle(engine, fetch, holder).run_once()
    if snapshot is None:
        raise SystemExit("Feed fetch failed; nothing to classify.")
    console.print(_render_table(f"Inbound (cycle {snapshot.cycle})", snapshot.inbound_payload()))
    console.print(_render_table(f"Outbound (cycle {snapshot.cycle})", snapshot.outbound_payload()))
    return snapshot


def run_serve(config: FixwatchConfig, host: str | None, port: int | None) -> None:
    engine = _build_engine(config)
    holder = SnapshotHolder()
    server = BoardServer(
        holder,
        AnnotationBoard(),
        boundaries=engine.regions.feature_collection(config.display_regions),
        cors_allowed_origins=config.cors_allowed_origins,
    )
    client = FeedClient(config.feed_url, timeout_seconds=config.feed_timeout_seconds)
    cycle = FeedCycle(engine, client.fetch, holder, publish=server.publish)
    scheduler = CycleScheduler(cycle, config.interval_seconds, sleep=server.socketio.sleep)
    server.socketio.start_background_task(scheduler.run_forever)
    try:
        server.run(host or config.server_host, port or config.server_port)
    finally:
        scheduler.stop()


def main(argv: Sequence[str] | None = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    config = _load_config(args.config)
    if args.command == "classify":
        run_classify(config, args.feed_file, Console())
    else:
        run_serve(config, args.host, args.port)


if __name__ == "__main__":
    main()

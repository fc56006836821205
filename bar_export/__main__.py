"""Unified entry point for bar_export."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from bar_export.export import (
    ExporterRobot,
    ExportJob,
    FrameBarSource,
    MT5Host,
    MT5Settings,
    StaticHost,
    build_parser,
    load_csv_bars,
)

log = logging.getLogger(__name__)

USAGE = (
    "Usage: python -m bar_export <command> [args...]\n"
    "Available commands:\n"
    "  bulk    - Export the trailing N bars of a CSV snapshot or an MT5 terminal\n"
    "  replay  - Replay CSV bars as a backtest, appending each closed bar once"
)


def _setup_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s  %(levelname)-8s  %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stdout,
    )


def _csv_paths(items: list[str]) -> list[Path]:
    paths: list[Path] = []
    for item in items:
        p = Path(item)
        paths.extend(sorted(p.glob("*.csv")) if p.is_dir() else [p])
    return paths


def run_bulk(argv: list[str]) -> int:
    p = build_parser("Bulk export of the most recent N bars.")
    p.add_argument("inputs", nargs="*", help="CSV files or snapshot directories")
    p.add_argument("--mt5", action="store_true", help="Read bars from a running MT5 terminal")
    p.add_argument("--mt5-path", default=None, help="Path to terminal64.exe")
    p.add_argument("--login", default=None, type=int, help="MT5 login id")
    p.add_argument("--server", default=None, help="MT5 server name")
    p.add_argument("--password", default=None, help="MT5 password")
    args = p.parse_args(argv)
    _setup_logging(args.debug)

    job = ExportJob.from_args(args, mode="bulk")

    if args.mt5:
        settings = MT5Settings(
            path=args.mt5_path, login=args.login, server=args.server, password=args.password,
        )
        with MT5Host(job.symbol, job.timeframe, job.bar_count, settings) as host:
            result = ExporterRobot(host, job).export_now()
        return 0 if result is not None else 1

    paths = _csv_paths(args.inputs)
    if not paths:
        log.error("No CSV input given (pass files/directories or --mt5)")
        return 2
    host = StaticHost(job.symbol, job.timeframe, FrameBarSource(load_csv_bars(paths)))
    result = ExporterRobot(host, job).export_now()
    return 0 if result is not None else 1


def run_replay(argv: list[str]) -> int:
    from bar_export.replay import ReplayHost

    p = build_parser("Replay CSV bars as a backtest and stream closed bars to disk.")
    p.add_argument("inputs", nargs="+", help="CSV files or snapshot directories")
    p.add_argument("--stop-after", default=None, type=int, help="Interrupt after N bars")
    args = p.parse_args(argv)
    _setup_logging(args.debug)

    job = ExportJob.from_args(args, mode="stream")
    paths = _csv_paths(args.inputs)
    if not paths:
        log.error("No CSV files found in %s", args.inputs)
        return 2

    host = ReplayHost(load_csv_bars(paths), job.symbol, job.timeframe)
    robot = ExporterRobot(host, job)
    host.run(robot, stop_after=args.stop_after)

    session = robot.session
    if session is None or session.path is None:
        return 1
    return 0 if session.write_errors == 0 else 1


COMMANDS = {
    "bulk": run_bulk,
    "replay": run_replay,
}


def main(argv: list[str] | None = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    if not argv or argv[0] not in COMMANDS:
        logging.basicConfig(level=logging.INFO)
        if argv:
            log.error("Unknown command: %s", argv[0])
        log.error(USAGE)
        return 1
    try:
        return COMMANDS[argv[0]](argv[1:])
    except (ValueError, RuntimeError, OSError) as exc:
        log.error("%s", exc)
        return 2


if __name__ == "__main__":
    sys.exit(main())

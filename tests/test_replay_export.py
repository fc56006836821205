"""Integration tests: ReplayHost -> ExporterRobot -> output file."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path

import pandas as pd
import pytest

from bar_export.export import ExporterRobot, ExportJob, FrameBarSource, StaticHost
from bar_export.replay import ReplayHost

log = logging.getLogger(__name__)

HEADER = "timestamp;open;high;low;close;volume"


def _create_synthetic_bars(n_rows: int = 10) -> pd.DataFrame:
    """5-minute bars with distinct prices so every row is recognisable."""
    times = pd.date_range("2024-01-01", periods=n_rows, freq="5min", tz="UTC")
    return pd.DataFrame({
        "time": times,
        "open":  [100.0 + i for i in range(n_rows)],
        "high":  [105.0 + i for i in range(n_rows)],
        "low":   [95.0 + i for i in range(n_rows)],
        "close": [101.0 + i for i in range(n_rows)],
        "spread": 1,
        "tick_volume": [10 * i for i in range(n_rows)],
    })


def _job(out_dir: Path, **kw) -> ExportJob:
    return ExportJob(symbol="TEST/SYM", timeframe="M5", output_dir=out_dir, **kw)


def _keys(path: Path) -> list[str]:
    rows = path.read_text(encoding="utf-8").splitlines()
    assert rows[0] == HEADER
    assert rows.count(HEADER) == 1
    return [r.split(";")[0] for r in rows[1:]]


def _expected_keys(df: pd.DataFrame, n: int) -> list[str]:
    return [t.strftime("%Y-%m-%d %H:%M:%S") for t in df["time"].iloc[:n]]


def test_full_replay_exports_every_closed_bar(tmp_path: Path):
    df = _create_synthetic_bars(10)
    host = ReplayHost(df, "TEST/SYM", "M5")
    robot = ExporterRobot(host, _job(tmp_path))

    assert host.run(robot) == 10

    path = robot.session.path
    assert path.name == "testsym_m5_20240101_000000.csv"
    # the last bar is still forming when the replay ends
    assert _keys(path) == _expected_keys(df, 9)
    assert not robot.running


def test_redelivered_notifications_write_once(tmp_path: Path):
    df = _create_synthetic_bars(6)
    host = ReplayHost(df, "TEST/SYM", "M5")
    robot = ExporterRobot(host, _job(tmp_path))

    host.run(robot, deliveries=3)

    assert _keys(robot.session.path) == _expected_keys(df, 5)
    assert robot.session.rows_skipped == 10


def test_interrupted_replay_resumes_without_duplicates(tmp_path: Path):
    df = _create_synthetic_bars(12)

    host = ReplayHost(df, "TEST/SYM", "M5")
    first = ExporterRobot(host, _job(tmp_path))
    host.run(first, stop_after=5)
    path = first.session.path
    assert _keys(path) == _expected_keys(df, 4)

    host = ReplayHost(df, "TEST/SYM", "M5")
    second = ExporterRobot(host, _job(tmp_path))
    host.run(second)

    assert second.session.path == path
    assert _keys(path) == _expected_keys(df, 11)
    assert second.session.rows_skipped == 4
    assert second.session.rows_written == 7


def test_distinct_start_times_give_distinct_files(tmp_path: Path):
    df = _create_synthetic_bars(4)
    start = datetime(2024, 6, 1, 9, 30, 0, tzinfo=timezone.utc)
    host = ReplayHost(df, "TEST/SYM", "M5", start_time=start)
    robot = ExporterRobot(host, _job(tmp_path))
    host.run(robot)

    assert robot.session.path.name == "testsym_m5_20240601_093000.csv"


def test_stream_mode_refuses_non_backtest_host(tmp_path: Path, caplog):
    out_dir = tmp_path / "out"
    host = StaticHost("TEST/SYM", "M5", FrameBarSource(_create_synthetic_bars(3)))
    robot = ExporterRobot(host, _job(out_dir))

    with caplog.at_level(logging.ERROR):
        robot.on_start()
        robot.on_bar()
        robot.on_stop()

    assert not robot.running
    assert not out_dir.exists()
    assert any("backtest mode only" in r.getMessage() for r in caplog.records)


def test_bulk_mode_auto_start(tmp_path: Path):
    run = datetime(2024, 2, 1, tzinfo=timezone.utc)
    host = StaticHost("TEST/SYM", "M5", FrameBarSource(_create_synthetic_bars(8)), run_time=run)
    robot = ExporterRobot(host, _job(tmp_path, mode="bulk", bar_count=3))

    robot.on_start()
    robot.on_stop()

    assert robot.last_result.rows == 3
    assert _keys(robot.last_result.path) == _expected_keys(_create_synthetic_bars(8), 8)[-3:]


def test_bulk_mode_manual_trigger(tmp_path: Path):
    host = StaticHost("TEST/SYM", "M5", FrameBarSource(_create_synthetic_bars(8)))
    robot = ExporterRobot(host, _job(tmp_path, mode="bulk", bar_count=3, auto_start=False))

    robot.on_start()
    assert list(tmp_path.iterdir()) == []

    result = robot.export_now()
    assert result.rows == 3


def test_export_now_unavailable_in_stream_mode(tmp_path: Path):
    host = ReplayHost(_create_synthetic_bars(3), "TEST/SYM", "M5")
    robot = ExporterRobot(host, _job(tmp_path))
    assert robot.export_now() is None


def test_replay_rejects_unordered_input():
    df = _create_synthetic_bars(3).iloc[::-1]
    with pytest.raises(ValueError, match="monotonic"):
        ReplayHost(df, "TEST/SYM", "M5")


def test_revealed_bars_hide_the_future():
    host = ReplayHost(_create_synthetic_bars(3), "TEST/SYM", "M5")
    assert len(host.bars) == 0
    with pytest.raises(IndexError):
        host.bars.bar(0)


def test_stop_fires_when_start_raises():
    calls: list[str] = []

    class _FailingRobot:
        def on_start(self) -> None:
            calls.append("start")
            raise RuntimeError("host refused")

        def on_bar(self) -> None:
            calls.append("bar")

        def on_stop(self) -> None:
            calls.append("stop")

    host = ReplayHost(_create_synthetic_bars(3), "TEST/SYM", "M5")
    with pytest.raises(RuntimeError, match="host refused"):
        host.run(_FailingRobot())

    assert calls == ["start", "stop"]

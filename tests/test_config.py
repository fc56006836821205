"""Tests for ExportJob construction from kwargs, YAML and CLI."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from bar_export.export import ExportJob


def _write_yaml(path: Path, data: dict) -> Path:
    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(data, f)
    return path


def test_defaults():
    job = ExportJob()
    assert job.mode == "stream"
    assert job.streaming
    assert job.delimiter == ";"
    assert job.include_volume is True
    assert job.precision == 5
    assert job.output_dir == Path("exports")


def test_output_dir_coerced_to_path():
    assert ExportJob(output_dir="out/data").output_dir == Path("out/data")


@pytest.mark.parametrize("kwargs,match", [
    ({"delimiter": "|"}, "Unsupported delimiter"),
    ({"mode": "live"}, "Unknown mode"),
    ({"precision": 4}, "precision is fixed"),
    ({"rounding": "banker"}, "Unknown rounding mode"),
    ({"symbol": ""}, "symbol"),
    ({"mode": "bulk", "bar_count": 0}, "bar_count must be positive"),
])
def test_invalid_values_rejected(kwargs, match):
    with pytest.raises(ValueError, match=match):
        ExportJob(**kwargs)


def test_from_yaml(tmp_path: Path):
    path = _write_yaml(tmp_path / "job.yaml", {
        "symbol": "GBP/USD",
        "timeframe": "h1",
        "output_dir": str(tmp_path / "out"),
        "mode": "bulk",
        "bar_count": 250,
        "delimiter": ",",
    })
    job = ExportJob.from_yaml(path)

    assert job.symbol == "GBP/USD"
    assert job.mode == "bulk"
    assert job.bar_count == 250
    assert job.delimiter == ","
    assert job.output_dir == tmp_path / "out"


def test_from_yaml_overrides_win(tmp_path: Path):
    path = _write_yaml(tmp_path / "job.yaml", {"symbol": "GBPUSD", "delimiter": ","})
    job = ExportJob.from_yaml(path, delimiter=";", symbol=None)
    assert job.delimiter == ";"
    assert job.symbol == "GBPUSD"


def test_from_yaml_unknown_key(tmp_path: Path):
    path = _write_yaml(tmp_path / "job.yaml", {"symbol": "GBPUSD", "compress": True})
    with pytest.raises(ValueError, match="unknown keys"):
        ExportJob.from_yaml(path)


def test_from_cli_flags():
    job = ExportJob.from_cli([
        "--symbol", "XAUUSD", "--timeframe", "m1", "--bars", "50",
        "--delimiter", ",", "--no-volume", "--exclude-forming-bar",
    ], mode="bulk")

    assert job.symbol == "XAUUSD"
    assert job.timeframe == "m1"
    assert job.bar_count == 50
    assert job.delimiter == ","
    assert job.include_volume is False
    assert job.exclude_forming_bar is True


def test_from_cli_on_top_of_yaml(tmp_path: Path):
    path = _write_yaml(tmp_path / "job.yaml", {"symbol": "GBPUSD", "include_volume": False})
    job = ExportJob.from_cli(["--config", str(path), "--timeframe", "h4"])

    assert job.symbol == "GBPUSD"
    assert job.timeframe == "h4"
    assert job.include_volume is False

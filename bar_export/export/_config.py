"""Immutable configuration for a single export run."""

from __future__ import annotations

import argparse
from dataclasses import dataclass, fields
from pathlib import Path

import yaml

from ._formatter import ROUNDING_MODES

MODES = ("bulk", "stream")
DELIMITERS = (";", ",")
PRICE_PRECISION = 5


@dataclass(frozen=True)
class ExportJob:
    """Immutable bag of settings for a single export run."""

    symbol: str = "EURUSD"
    timeframe: str = "m5"
    output_dir: Path = Path("exports")
    mode: str = "stream"
    bar_count: int = 1000           # bulk mode only
    include_volume: bool = True
    delimiter: str = ";"
    precision: int = PRICE_PRECISION
    rounding: str = "half_up"
    exclude_forming_bar: bool = False  # bulk window ends at len-2 instead of len-1
    auto_start: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "output_dir", Path(self.output_dir))
        if not self.symbol:
            raise ValueError("symbol must not be empty")
        if not self.timeframe:
            raise ValueError("timeframe must not be empty")
        if self.mode not in MODES:
            raise ValueError(f"Unknown mode '{self.mode}'. Expected one of {MODES}")
        if self.delimiter not in DELIMITERS:
            raise ValueError(f"Unsupported delimiter {self.delimiter!r}. Expected one of {DELIMITERS}")
        if self.precision != PRICE_PRECISION:
            raise ValueError(f"precision is fixed at {PRICE_PRECISION}, got {self.precision}")
        if self.rounding not in ROUNDING_MODES:
            raise ValueError(
                f"Unknown rounding mode '{self.rounding}'. Known: {sorted(ROUNDING_MODES)}"
            )
        if self.mode == "bulk" and self.bar_count <= 0:
            raise ValueError(f"bar_count must be positive, got {self.bar_count}")

    @property
    def streaming(self) -> bool:
        return self.mode == "stream"

    # -- Builders ----------------------------------------------------------

    @classmethod
    def from_yaml(cls, path: Path | str, **overrides) -> ExportJob:
        """Build a job from a YAML mapping; keyword *overrides* win."""
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{path}: expected a mapping at top level")

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"{path}: unknown keys {unknown}")

        data.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**data)

    @classmethod
    def from_cli(cls, argv: list[str] | None = None, mode: str | None = None) -> ExportJob:
        """Build a job from command-line arguments (optionally on top of ``--config``)."""
        args = build_parser().parse_args(argv)
        return cls.from_args(args, mode=mode)

    @classmethod
    def from_args(cls, args: argparse.Namespace, mode: str | None = None) -> ExportJob:
        overrides = {
            "symbol": args.symbol,
            "timeframe": args.timeframe,
            "output_dir": args.output_dir,
            "mode": mode,
            "bar_count": args.bars,
            "include_volume": args.include_volume,
            "delimiter": args.delimiter,
            "rounding": args.rounding,
            "exclude_forming_bar": args.exclude_forming_bar,
        }
        if args.config:
            return cls.from_yaml(args.config, **overrides)
        return cls(**{k: v for k, v in overrides.items() if v is not None})


def build_parser(description: str = "Export OHLCV bars to a delimited text file.") -> argparse.ArgumentParser:
    """Shared argument parser; unset flags stay ``None`` so YAML values survive."""
    p = argparse.ArgumentParser(description=description)
    p.add_argument("--config",     default=None,           help="YAML job file")
    p.add_argument("--symbol",     default=None,           help="Symbol name (default: EURUSD)")
    p.add_argument("--timeframe",  default=None,           help="Timeframe label (default: m5)")
    p.add_argument("--output-dir", default=None, type=Path, help="Output directory (default: exports)")
    p.add_argument("--bars",       default=None, type=int, help="Bulk mode: number of trailing bars")
    p.add_argument("--delimiter",  default=None, choices=DELIMITERS, help="Field delimiter")
    p.add_argument("--rounding",   default=None, choices=sorted(ROUNDING_MODES), help="Price rounding")
    p.add_argument("--no-volume",  dest="include_volume", action="store_const", const=False,
                   default=None, help="Omit the volume column")
    p.add_argument("--exclude-forming-bar", action="store_const", const=True, default=None,
                   help="Bulk mode: stop the window before the bar still forming")
    p.add_argument("--debug",      action="store_true",    help="Verbose logging")
    return p

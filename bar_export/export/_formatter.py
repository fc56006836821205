"""Bar -> canonical text line.

Prices go through ``decimal.Decimal`` so the output never depends on the
process locale or on binary float artefacts (``1.000005`` stays ``1.00001``).
"""

from __future__ import annotations

import math
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal

from ._models import KEY_FORMAT, BarRecord

PRICE_COLS: list[str] = ["open", "high", "low", "close"]

ROUNDING_MODES: dict[str, str] = {
    "half_up": ROUND_HALF_UP,
    "truncate": ROUND_DOWN,
}


def header_columns(include_volume: bool = True) -> list[str]:
    cols = ["timestamp", *PRICE_COLS]
    if include_volume:
        cols.append("volume")
    return cols


def header_line(include_volume: bool = True, delimiter: str = ";") -> str:
    """Header row; depends only on the volume flag and the delimiter."""
    return delimiter.join(header_columns(include_volume))


def format_price(value: float, precision: int = 5, rounding: str = "half_up") -> str:
    """Render *value* with exactly *precision* fractional digits and a ``.``.

    ``half_up`` rounds (``1.23456789`` -> ``1.23457``); ``truncate`` keeps
    the leading digits unchanged (``1.23456789`` -> ``1.23456``).
    """
    if rounding not in ROUNDING_MODES:
        raise ValueError(
            f"Unknown rounding mode '{rounding}'. Known: {sorted(ROUNDING_MODES)}"
        )
    value = float(value)
    if not math.isfinite(value):
        raise ValueError(f"Cannot format non-finite price: {value}")
    # repr() gives the shortest string that round-trips, i.e. the value the
    # host meant rather than its nearest binary approximation.
    quantum = Decimal(1).scaleb(-precision)
    dec = Decimal(repr(value)).quantize(quantum, rounding=ROUNDING_MODES[rounding])
    if dec.is_zero():
        dec = abs(dec)
    return format(dec, "f")


def format_line(
    bar: BarRecord,
    include_volume: bool = True,
    delimiter: str = ";",
    precision: int = 5,
    rounding: str = "half_up",
) -> str:
    """Format one bar as ``timestamp, open, high, low, close[, volume]``.

    No quoting or escaping is applied: every field is a timestamp or a
    number, so neither delimiter can appear inside a field.
    """
    fields = [bar.open_time.strftime(KEY_FORMAT)]
    fields.extend(
        format_price(getattr(bar, col), precision, rounding) for col in PRICE_COLS
    )
    if include_volume:
        fields.append(str(int(bar.volume)))
    return delimiter.join(fields)

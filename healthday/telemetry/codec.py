"""Time-series codec for packed fixed-interval encodings.

Providers ship intraday data as compact strings or arrays: one value per
fixed-width bin, with bin zero at an anchor timestamp.  This module turns
them into clock-anchored samples.  It knows nothing about calendar days,
only about an anchor and a bin width.

Usage::

    bins = decode_bins("4|4|3|2", "|")
    points = map_to_clock_hours(bins, "2024-01-01T22:00:00+01:00", 5)
    xs = [shift_into_window(p.hour, 20) for p in points]
"""

from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import NamedTuple, Sequence

from healthday.telemetry.errors import MalformedEncodingError

logger = logging.getLogger("healthday.telemetry.codec")

DEFAULT_DELIMITER = "|"
DEFAULT_BIN_WIDTH_MINUTES = 5

_HOURS_PER_DAY = 24


class ClockSample(NamedTuple):
    """A decoded bin: fractional clock hour (not reduced mod 24) and value."""

    hour: float
    value: float


def _parse_token(token: str, position: int) -> float:
    try:
        number = int(token)
    except ValueError:
        try:
            number = float(token)
        except ValueError:
            raise MalformedEncodingError(token, position) from None
        if not math.isfinite(number):
            raise MalformedEncodingError(token, position)
    return number


def decode_bins(encoded: str | None, delimiter: str = DEFAULT_DELIMITER) -> list[float]:
    """Split a packed string into numeric bin values.

    An empty ``delimiter`` means one character per bin (the provider's native
    ``"4433..."`` form).  Whitespace around tokens is ignored.  An empty
    interior token keeps its slot and decodes to 0, so every later bin stays
    at its position; a trailing delimiter is ignored.

    Args:
        encoded:   The packed string.  None or empty yields ``[]``.
        delimiter: Token separator.

    Returns:
        List of bin values (ints where the token is integral).

    Raises:
        MalformedEncodingError: If any token is not numeric.
    """
    if not encoded:
        return []
    tokens = list(encoded) if delimiter == "" else encoded.split(delimiter)
    if tokens and not tokens[-1].strip():
        tokens.pop()
    values: list[float] = []
    for position, raw in enumerate(tokens):
        token = raw.strip()
        values.append(_parse_token(token, position) if token else 0)
    return values


def encode_bins(values: Sequence[float], delimiter: str = DEFAULT_DELIMITER) -> str:
    """Inverse of ``decode_bins`` for the canonical delimited form."""
    return delimiter.join(
        str(int(v)) if float(v).is_integer() else repr(float(v)) for v in values
    )


def parse_anchor(anchor: str | datetime | None) -> datetime | None:
    """Parse an anchor timestamp, keeping its wall-clock time.

    Offsets are not converted: ``22:00+01:00`` anchors at 22.0.
    Returns None when missing or unparseable.
    """
    if anchor is None:
        return None
    if isinstance(anchor, datetime):
        return anchor
    if not isinstance(anchor, str) or not anchor.strip():
        return None
    try:
        return datetime.fromisoformat(anchor.strip().replace("Z", "+00:00"))
    except ValueError:
        logger.debug("Unparseable anchor timestamp %r", anchor)
        return None


def clock_hour(moment: datetime) -> float:
    """Fractional wall-clock hour of a datetime (hour + minute/60)."""
    return moment.hour + moment.minute / 60


def map_to_clock_hours(
    bins: Sequence[float],
    anchor: str | datetime | None,
    bin_width_minutes: float = DEFAULT_BIN_WIDTH_MINUTES,
) -> list[ClockSample]:
    """Anchor bins to the clock.

    Bin ``i`` lands at ``anchor.hour + anchor.minute/60 + i * width/60``.
    The result is not reduced modulo 24; callers apply windowing.

    Args:
        bins:              Decoded bin values.
        anchor:            Timestamp of bin zero (ISO string or datetime).
        bin_width_minutes: Width of one bin.

    Returns:
        One ``ClockSample`` per bin, or ``[]`` if the anchor is unusable.
    """
    start = parse_anchor(anchor)
    if start is None or not bins:
        return []
    base = clock_hour(start)
    step = bin_width_minutes / 60
    return [ClockSample(hour=base + i * step, value=value) for i, value in enumerate(bins)]


def shift_into_window(hour: float, window_start: float) -> float:
    """Move ``hour`` by whole days into ``[window_start, window_start + 24)``.

    Closed form, so anchors far from the window cost the same as near ones.
    """
    shifted = window_start + math.fmod(hour - window_start, _HOURS_PER_DAY)
    if shifted < window_start:
        shifted += _HOURS_PER_DAY
    if shifted >= window_start + _HOURS_PER_DAY:
        shifted -= _HOURS_PER_DAY
    return shifted


def format_hour(hour: float) -> str:
    """Render a fractional hour as ``HH:MM`` (taken modulo 24 for display)."""
    total_minutes = int(round(hour * 60)) % (_HOURS_PER_DAY * 60)
    return f"{total_minutes // 60:02d}:{total_minutes % 60:02d}"

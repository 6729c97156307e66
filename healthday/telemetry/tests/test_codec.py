"""Tests for the packed timeseries codec."""

from __future__ import annotations

from datetime import datetime

import pytest

from healthday.telemetry.codec import (
    ClockSample,
    decode_bins,
    encode_bins,
    format_hour,
    map_to_clock_hours,
    parse_anchor,
    shift_into_window,
)
from healthday.telemetry.errors import MalformedEncodingError


class TestDecodeBins:
    def test_pipe_delimited(self) -> None:
        assert decode_bins("4|4|3|2") == [4, 4, 3, 2]

    def test_char_per_bin(self) -> None:
        assert decode_bins("4433", "") == [4, 4, 3, 3]

    def test_empty_and_none(self) -> None:
        assert decode_bins("") == []
        assert decode_bins(None) == []

    def test_whitespace_and_trailing_delimiter_ignored(self) -> None:
        assert decode_bins(" 1 | 2 |3|") == [1, 2, 3]

    def test_empty_interior_token_keeps_its_slot(self) -> None:
        bins = decode_bins("1||3")
        assert bins == [1, 0, 3]
        samples = map_to_clock_hours(bins, "2024-01-01T22:00:00", 5)
        assert samples[2].value == 3
        assert samples[2].hour == pytest.approx(22 + 10 / 60)

    def test_float_tokens(self) -> None:
        assert decode_bins("1.5|2") == [1.5, 2]

    def test_non_numeric_token_raises(self) -> None:
        with pytest.raises(MalformedEncodingError) as exc_info:
            decode_bins("1|a|3")
        assert exc_info.value.token == "a"
        assert exc_info.value.position == 1

    def test_non_finite_token_raises(self) -> None:
        with pytest.raises(MalformedEncodingError):
            decode_bins("1|nan")

    def test_malformed_encoding_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            decode_bins("x", "")

    def test_encode_matches_canonical_form(self) -> None:
        assert encode_bins([4, 4.0, 2.5]) == "4|4|2.5"


class TestMapToClockHours:
    def test_bins_anchor_on_wall_clock(self) -> None:
        samples = map_to_clock_hours([4, 3, 2], "2024-03-01T22:00:00+01:00", 5)
        assert [s.value for s in samples] == [4, 3, 2]
        assert samples[0].hour == pytest.approx(22.0)
        assert samples[1].hour == pytest.approx(22 + 5 / 60)
        assert samples[2].hour == pytest.approx(22 + 10 / 60)

    def test_not_reduced_modulo_24(self) -> None:
        samples = map_to_clock_hours([1] * 30, "2024-03-01T23:00:00", 5)
        assert samples[-1].hour == pytest.approx(23 + 29 * 5 / 60)
        assert samples[-1].hour > 24

    def test_custom_bin_width(self) -> None:
        samples = map_to_clock_hours([1.0, 2.0], "2024-03-01T04:00:00Z", 1)
        assert samples[1].hour == pytest.approx(4 + 1 / 60)

    def test_missing_anchor_yields_empty(self) -> None:
        assert map_to_clock_hours([1, 2], None) == []

    def test_unparseable_anchor_yields_empty(self) -> None:
        assert map_to_clock_hours([1, 2], "yesterday-ish") == []

    def test_empty_bins(self) -> None:
        assert map_to_clock_hours([], "2024-03-01T22:00:00") == []

    def test_accepts_datetime_anchor(self) -> None:
        samples = map_to_clock_hours([7], datetime(2024, 3, 1, 6, 30))
        assert samples == [ClockSample(hour=6.5, value=7)]

    def test_parse_anchor_keeps_offset_wall_time(self) -> None:
        anchor = parse_anchor("2024-03-01T22:15:00-05:00")
        assert anchor is not None
        assert (anchor.hour, anchor.minute) == (22, 15)


class TestShiftIntoWindow:
    @pytest.mark.parametrize(
        ("hour", "window_start", "expected"),
        [
            (22.0, 20, 22.0),
            (1.5, 20, 25.5),
            (20.0, 20, 20.0),
            (44.0, 20, 20.0),
            (-30.0, 20, 42.0),
            (1000.5, 0, 16.5),
            (23.5, 0, 23.5),
            (24.25, 0, 0.25),
        ],
    )
    def test_lands_in_window(self, hour: float, window_start: float, expected: float) -> None:
        assert shift_into_window(hour, window_start) == pytest.approx(expected)

    @pytest.mark.parametrize("hour", [-500.25, -24.0, 0.0, 3.75, 47.9, 123456.5])
    def test_result_always_in_range(self, hour: float) -> None:
        result = shift_into_window(hour, 6)
        assert 6 <= result < 30
        # whole-day shift only
        assert (result - hour) / 24 == pytest.approx(round((result - hour) / 24))


class TestFormatHour:
    def test_formats_fractional_hour(self) -> None:
        assert format_hour(22.5) == "22:30"

    def test_wraps_past_midnight(self) -> None:
        assert format_hour(25.5) == "01:30"

    def test_rounds_to_minute(self) -> None:
        assert format_hour(23.999) == "00:00"
        assert format_hour(7 + 5 / 60) == "07:05"

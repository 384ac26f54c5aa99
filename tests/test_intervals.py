"""Tests for half-open interval helpers."""

import pytest
from datetime import datetime, timedelta, timezone

from blockplanner.engine.intervals import InvalidRangeError, assert_valid_range, overlaps, parse_instant


T0 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


def _t(minutes: int) -> datetime:
    return T0 + timedelta(minutes=minutes)


class TestOverlaps:
    def test_classic_overlap(self):
        assert overlaps(_t(0), _t(60), _t(30), _t(90)) is True

    def test_containment(self):
        assert overlaps(_t(0), _t(120), _t(30), _t(60)) is True

    def test_touching_ranges_do_not_overlap(self):
        assert overlaps(_t(0), _t(60), _t(60), _t(120)) is False
        assert overlaps(_t(60), _t(120), _t(0), _t(60)) is False

    def test_disjoint(self):
        assert overlaps(_t(0), _t(30), _t(45), _t(90)) is False

    @pytest.mark.parametrize(
        "a,b",
        [
            ((0, 60), (30, 90)),
            ((0, 60), (60, 90)),
            ((0, 30), (45, 90)),
            ((10, 20), (0, 100)),
        ],
    )
    def test_symmetric(self, a, b):
        assert overlaps(_t(a[0]), _t(a[1]), _t(b[0]), _t(b[1])) == overlaps(_t(b[0]), _t(b[1]), _t(a[0]), _t(a[1]))

    def test_accepts_iso_strings(self):
        assert overlaps("2026-03-02T09:00:00Z", "2026-03-02T10:00:00Z", _t(30), _t(45)) is True

    def test_mixed_offsets_compare_as_instants(self):
        # 10:30+01:00 is 09:30 UTC
        assert overlaps(_t(0), _t(60), "2026-03-02T10:30:00+01:00", "2026-03-02T11:00:00+01:00") is True

    def test_unparseable_raises(self):
        with pytest.raises(InvalidRangeError):
            overlaps("not-a-time", _t(60), _t(0), _t(30))


class TestParseInstant:
    def test_naive_is_utc(self):
        assert parse_instant(datetime(2026, 3, 2, 9, 0)) == T0

    def test_z_suffix(self):
        assert parse_instant("2026-03-02T09:00:00Z") == T0


class TestAssertValidRange:
    def test_valid_range(self):
        assert assert_valid_range(_t(0), _t(1)) is None

    def test_equal_bounds_rejected(self):
        with pytest.raises(InvalidRangeError, match="End time must be after start time"):
            assert_valid_range(_t(0), _t(0))

    def test_reversed_bounds_rejected(self):
        with pytest.raises(InvalidRangeError, match="End time must be after start time"):
            assert_valid_range(_t(60), _t(0))

    def test_bad_start(self):
        with pytest.raises(InvalidRangeError, match="Invalid start time"):
            assert_valid_range("yesterday", _t(0))

    def test_bad_end(self):
        with pytest.raises(InvalidRangeError, match="Invalid end time"):
            assert_valid_range(_t(0), "2026-13-45T00:00:00Z")

    def test_is_a_value_error(self):
        assert issubclass(InvalidRangeError, ValueError)

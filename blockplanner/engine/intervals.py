"""Interval helpers for blockplanner.

Ranges are half-open: [start, end). Touching ranges do not overlap.
"""

from datetime import datetime
from typing import Union

from blockplanner.models.timeutil import ensure_utc


Instant = Union[datetime, str]


class InvalidRangeError(ValueError):
    """A time bound failed to parse, or start is not strictly before end."""


def parse_instant(value: Instant) -> datetime:
    """Parse an instant given as a datetime or an ISO-8601 string.

    Returns an aware UTC datetime. Naive inputs are taken to be UTC.

    Raises:
        InvalidRangeError: If the value cannot be parsed
    """
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, str):
        text = value.strip()
        # fromisoformat() only accepts a trailing "Z" from Python 3.11 on
        if text.endswith("Z") or text.endswith("z"):
            text = text[:-1] + "+00:00"
        try:
            return ensure_utc(datetime.fromisoformat(text))
        except ValueError as e:
            raise InvalidRangeError(f"Invalid instant: {value!r}") from e
    raise InvalidRangeError(f"Invalid instant: {value!r}")


def overlaps(start1: Instant, end1: Instant, start2: Instant, end2: Instant) -> bool:
    """Whether [start1, end1) and [start2, end2) intersect."""
    s1 = parse_instant(start1)
    e1 = parse_instant(end1)
    s2 = parse_instant(start2)
    e2 = parse_instant(end2)
    return s1 < e2 and s2 < e1


def assert_valid_range(start: Instant, end: Instant) -> None:
    """Raise InvalidRangeError unless both bounds parse and start < end."""
    try:
        start_dt = parse_instant(start)
    except InvalidRangeError as e:
        raise InvalidRangeError("Invalid start time") from e
    try:
        end_dt = parse_instant(end)
    except InvalidRangeError as e:
        raise InvalidRangeError("Invalid end time") from e
    if not start_dt < end_dt:
        raise InvalidRangeError("End time must be after start time")

"""
Time field helpers.

Epoch fields are normalized to seconds. RFC3339 strings are parsed with
datetime.fromisoformat; a string without a UTC designator is read as a
wall-clock value.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Union


# Above this magnitude an epoch value is in milliseconds (1e11 s is year 5138)
EPOCH_MS_THRESHOLD = 1.0e11


def parse_number(text: str) -> Union[int, float]:
    """Parse an integer if the text is one, otherwise a float."""
    try:
        return int(text)
    except ValueError:
        return float(text)


def epoch_to_seconds(text: str) -> float:
    """
    Convert an epoch field to seconds.

    >>> epoch_to_seconds("1700000000")
    1700000000.0
    >>> epoch_to_seconds("1700000000500")
    1700000000.5
    """
    value = parse_number(text)
    if abs(value) > EPOCH_MS_THRESHOLD:
        return value / 1000.0
    return float(value)


def parse_rfc3339(text: str) -> datetime:
    """Parse an RFC3339 / ISO-8601 timestamp. Raises ValueError."""
    text = text.strip()
    if "T" not in text and " " not in text:
        raise ValueError(f"not a date-time: {text!r}")
    return datetime.fromisoformat(text)


def instant_seconds(value: datetime) -> float:
    """Epoch seconds of the instant; naive values are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp()


def wall_clock_seconds(value: datetime) -> float:
    """Epoch seconds of the wall-clock fields, ignoring any UTC offset."""
    return value.replace(tzinfo=timezone.utc).timestamp()


def utc_offset_seconds(value: datetime) -> Optional[float]:
    offset = value.utcoffset()
    if offset is None:
        return None
    return offset.total_seconds()


def to_utc_datetime(seconds: float) -> datetime:
    return datetime.fromtimestamp(seconds, timezone.utc)


def to_local_datetime(local_seconds: float, tz_offset_s: Optional[float] = None) -> datetime:
    """
    Datetime for a local wall-clock epoch value.

    Aware with a fixed offset when the offset is known, naive otherwise.
    """
    naive = datetime(1970, 1, 1) + timedelta(seconds=local_seconds)
    if tz_offset_s is None or abs(tz_offset_s) >= 86400:
        return naive
    return naive.replace(tzinfo=timezone(timedelta(seconds=tz_offset_s)))

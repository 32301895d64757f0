"""
Record models (source-format, undecoded).

The tokenizer produces RawRecord instances; the reconstructors turn the
anchor and delta records into the typed records below before decoding.
Field positions follow the line layout with the tag at index 0.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from tracksalvage.utils.timeparse import epoch_to_seconds, parse_number


class StreamKind(Enum):
    """Which member of the container a record came from."""

    GPS = "gps"
    ACC = "acc"


class RecordKind(Enum):
    """Record tag, the first field of every line."""

    USERNAME = "U"
    FORMAT_VERSION = "V"
    APP_VERSION = "A"      # GPS file only
    DEVICE_ID = "I"
    ANCHOR = "H"
    DELTA = "D"


HEADER_KINDS = frozenset({
    RecordKind.USERNAME,
    RecordKind.FORMAT_VERSION,
    RecordKind.APP_VERSION,
    RecordKind.DEVICE_ID,
})


@dataclass(frozen=True)
class RawRecord:
    """A classified line. `fields` excludes the tag."""

    kind: RecordKind
    fields: tuple[str, ...]
    line_number: int


@dataclass(frozen=True)
class SessionHeaders:
    """Per-file session metadata collected from U/V/A/I records."""

    username: Optional[str] = None
    format_version: Optional[str] = None
    app_version: Optional[str] = None
    device_id: tuple[str, ...] = field(default_factory=tuple)

    def is_empty(self) -> bool:
        return (
            self.username is None
            and self.format_version is None
            and self.app_version is None
            and not self.device_id
        )


@dataclass(frozen=True)
class GpsAnchor:
    """GPS `H` record: absolute fix with both clocks."""

    utc_epoch_s: float
    latitude: float
    longitude: float
    elevation_m: float
    local_epoch_s: float
    utc_rfc3339: str
    local_rfc3339: str
    line_number: int

    @classmethod
    def from_raw(cls, record: RawRecord) -> "GpsAnchor":
        f = record.fields
        return cls(
            utc_epoch_s=epoch_to_seconds(f[0]),
            latitude=float(f[1]),
            longitude=float(f[2]),
            elevation_m=float(f[3]),
            local_epoch_s=epoch_to_seconds(f[4]),
            utc_rfc3339=f[5],
            local_rfc3339=f[6],
            line_number=record.line_number,
        )

    @property
    def offset_s(self) -> float:
        """Local minus UTC for this anchor alone."""
        return self.local_epoch_s - self.utc_epoch_s


@dataclass(frozen=True)
class GpsDelta:
    """GPS `D` record, relative to the most recent anchor."""

    delta_ms: int
    raw_field_2: str
    raw_field_3: str
    delta_elevation_mm: float
    speed_mps: float
    raw_heading: str
    line_number: int

    @classmethod
    def from_raw(cls, record: RawRecord) -> "GpsDelta":
        f = record.fields
        return cls(
            delta_ms=int(f[0]),
            raw_field_2=f[1],
            raw_field_3=f[2],
            delta_elevation_mm=float(parse_number(f[3])),
            speed_mps=float(f[4]),
            raw_heading=f[5],
            line_number=record.line_number,
        )


@dataclass(frozen=True)
class AccAnchor:
    """Accelerometer `H` record: counter of unknown epoch plus local clock."""

    monotonic_ms: int
    local_epoch_s: float
    local_rfc3339: str
    line_number: int

    @classmethod
    def from_raw(cls, record: RawRecord) -> "AccAnchor":
        f = record.fields
        return cls(
            monotonic_ms=int(f[0]),
            local_epoch_s=epoch_to_seconds(f[1]),
            local_rfc3339=f[2],
            line_number=record.line_number,
        )


@dataclass(frozen=True)
class AccDelta:
    """Accelerometer `D` record: elapsed ms and a 3-axis reading."""

    delta_ms: int
    raw_x: str
    raw_y: str
    raw_z: str
    line_number: int

    @classmethod
    def from_raw(cls, record: RawRecord) -> "AccDelta":
        f = record.fields
        return cls(
            delta_ms=int(f[0]),
            raw_x=f[1],
            raw_y=f[2],
            raw_z=f[3],
            line_number=record.line_number,
        )

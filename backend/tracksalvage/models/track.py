"""
Canonical track model.

All decoded session data ends up in this structure with:
- absolute UTC / local instants (epoch seconds)
- per-field confidence tags for fields whose meaning is unconfirmed
- diagnostics kept apart from fatal stream errors

The GPS and accelerometer sequences are independent; nothing here merges
them. Time-window selection and DataFrame views are provided so that an
exporter can correlate them.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from tracksalvage.models.records import SessionHeaders, StreamKind
from tracksalvage.utils.coordinates import haversine_distance
from tracksalvage.utils.timeparse import to_local_datetime, to_utc_datetime


MPS_TO_MPH = 2.2369363


class Confidence(Enum):
    """How sure we are of a decoded field's meaning."""

    CONFIRMED = "confirmed"
    PROBABLE = "probable"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Interpreted:
    """A field value together with where its meaning came from."""

    name: str
    value: Any
    raw: str
    confidence: Confidence
    unit: Optional[str] = None

    @property
    def confirmed(self) -> bool:
        return self.confidence is Confidence.CONFIRMED

    @property
    def numeric(self) -> Optional[float]:
        if isinstance(self.value, (int, float)) and not isinstance(self.value, bool):
            return float(self.value)
        return None


class WarningCode(Enum):
    TZ_OFFSET_MISMATCH = "tz-offset-mismatch"
    RFC3339_MISMATCH = "rfc3339-mismatch"
    RFC3339_OFFSET_MISMATCH = "rfc3339-offset-mismatch"
    ANCHOR_OUT_OF_ORDER = "anchor-out-of-order"
    DELTA_OUT_OF_RANGE = "delta-out-of-range"
    SKIPPED_RECORD = "skipped-record"
    UNEXPECTED_HEADER = "unexpected-header"


@dataclass(frozen=True)
class ConsistencyWarning:
    """Non-fatal finding recorded against a line of one stream."""

    stream: StreamKind
    code: WarningCode
    message: str
    line_number: Optional[int] = None

    def __str__(self) -> str:
        where = f"{self.stream.value}:{self.line_number}" if self.line_number else self.stream.value
        return f"[{where}] {self.code.value}: {self.message}"


@dataclass(frozen=True)
class StreamFailure:
    """Recorded form of an error that aborted one stream."""

    stream: StreamKind
    error: str
    message: str
    line_number: Optional[int] = None

    @classmethod
    def from_error(cls, stream: StreamKind, exc: Exception) -> "StreamFailure":
        return cls(
            stream=stream,
            error=type(exc).__name__,
            message=getattr(exc, "message", str(exc)),
            line_number=getattr(exc, "line_number", None),
        )


@dataclass(frozen=True)
class TrackPoint:
    """
    One decoded GPS fix.

    Anchors produce a point with delta_ms == 0 and no speed/heading.
    """

    utc_time: float        # epoch seconds
    local_time: float      # local wall clock as epoch seconds
    latitude: float
    longitude: float
    elevation_m: float
    speed_mps: Optional[float]
    heading: Optional[Interpreted]
    field_2: Optional[Interpreted]
    field_3: Optional[Interpreted]
    delta_ms: int
    from_anchor: bool
    line_number: int

    @property
    def heading_deg(self) -> Optional[float]:
        return self.heading.numeric if self.heading is not None else None

    @property
    def provenance(self) -> dict[str, Confidence]:
        result = {}
        for key in ("field_2", "field_3", "heading"):
            value = getattr(self, key)
            if value is not None:
                result[key] = value.confidence
        return result

    @property
    def utc_datetime(self) -> datetime:
        return to_utc_datetime(self.utc_time)

    @property
    def local_datetime(self) -> datetime:
        return to_local_datetime(self.local_time, self.local_time - self.utc_time)


@dataclass(frozen=True)
class Sample:
    """One decoded accelerometer reading."""

    local_time: float      # local wall clock as epoch seconds
    accel_x: Interpreted
    accel_y: Interpreted   # vertical axis
    accel_z: Interpreted
    cumulative_ms: int
    line_number: int

    @property
    def vector(self) -> tuple[Any, Any, Any]:
        return (self.accel_x.value, self.accel_y.value, self.accel_z.value)

    @property
    def provenance(self) -> dict[str, Confidence]:
        return {
            "x": self.accel_x.confidence,
            "y": self.accel_y.confidence,
            "z": self.accel_z.confidence,
        }

    @property
    def local_datetime(self) -> datetime:
        return to_local_datetime(self.local_time)


@dataclass(frozen=True)
class StreamResult:
    """Output of decoding one member of the container."""

    stream: StreamKind
    headers: SessionHeaders = field(default_factory=SessionHeaders)
    items: tuple = ()
    warnings: tuple[ConsistencyWarning, ...] = ()
    failure: Optional[StreamFailure] = None
    record_count: int = 0
    tz_offset_s: Optional[float] = None


@dataclass(frozen=True)
class TrackModel:
    """
    Canonical representation of one decoded session.

    Sample.local_time and TrackPoint.local_time share a clock basis only if
    both files were written with the same local clock; that is not assumed.
    """

    session_id: Optional[str]
    recorded_at: Optional[datetime]

    gps_headers: SessionHeaders
    acc_headers: SessionHeaders

    trackpoints: tuple[TrackPoint, ...]
    samples: tuple[Sample, ...]

    warnings: tuple[ConsistencyWarning, ...] = ()
    errors: tuple[StreamFailure, ...] = ()
    notes: tuple[str, ...] = ()

    # Local minus UTC, from the first GPS anchor
    tz_offset_s: Optional[float] = None

    @property
    def has_gps(self) -> bool:
        return len(self.trackpoints) > 0

    @property
    def has_acc(self) -> bool:
        return len(self.samples) > 0

    def failed(self, stream: StreamKind) -> bool:
        return any(e.stream is stream for e in self.errors)

    def utc_times(self) -> NDArray[np.float64]:
        return np.array([p.utc_time for p in self.trackpoints], dtype=np.float64)

    def sample_times(self) -> NDArray[np.float64]:
        return np.array([s.local_time for s in self.samples], dtype=np.float64)

    def sample_utc_times(self) -> Optional[NDArray[np.float64]]:
        """
        Sample instants on the UTC axis, using the GPS timezone offset.

        None when no GPS anchor established an offset.
        """
        if self.tz_offset_s is None:
            return None
        return self.sample_times() - self.tz_offset_s

    def get_time_range(self) -> tuple[float, float]:
        """UTC range covered by the trackpoints."""
        if not self.trackpoints:
            return (0.0, 0.0)
        times = self.utc_times()
        return (float(np.min(times)), float(np.max(times)))

    def get_sample_time_range(self) -> tuple[float, float]:
        """Local-clock range covered by the accelerometer samples."""
        if not self.samples:
            return (0.0, 0.0)
        times = self.sample_times()
        return (float(np.min(times)), float(np.max(times)))

    def points_between(self, start: float, end: float) -> tuple[TrackPoint, ...]:
        """Trackpoints with start <= utc_time <= end (stream order preserved)."""
        return _select_window(self.trackpoints, self.utc_times(), start, end)

    def samples_between(self, start: float, end: float) -> tuple[Sample, ...]:
        """Samples with start <= local_time <= end (stream order preserved)."""
        return _select_window(self.samples, self.sample_times(), start, end)

    def max_speed_mps(self) -> Optional[float]:
        speeds = [p.speed_mps for p in self.trackpoints if p.speed_mps is not None]
        if not speeds:
            return None
        return float(max(speeds))

    def total_distance_m(self) -> float:
        """Great-circle length of the trackpoint sequence."""
        if len(self.trackpoints) < 2:
            return 0.0
        lat = np.array([p.latitude for p in self.trackpoints], dtype=np.float64)
        lon = np.array([p.longitude for p in self.trackpoints], dtype=np.float64)
        steps = haversine_distance(lat[:-1], lon[:-1], lat[1:], lon[1:])
        return float(np.nansum(steps))

    def trackpoints_frame(self) -> pd.DataFrame:
        rows = [
            {
                "utc_time": p.utc_time,
                "local_time": p.local_time,
                "latitude": p.latitude,
                "longitude": p.longitude,
                "elevation_m": p.elevation_m,
                "speed_mps": p.speed_mps,
                "heading_deg": p.heading_deg,
                "heading_confidence": p.heading.confidence.value if p.heading else None,
                "field_2": p.field_2.value if p.field_2 else None,
                "field_2_confidence": p.field_2.confidence.value if p.field_2 else None,
                "field_3": p.field_3.value if p.field_3 else None,
                "field_3_confidence": p.field_3.confidence.value if p.field_3 else None,
                "delta_ms": p.delta_ms,
                "from_anchor": p.from_anchor,
                "line_number": p.line_number,
            }
            for p in self.trackpoints
        ]
        return pd.DataFrame(rows, columns=_TRACKPOINT_COLUMNS)

    def samples_frame(self) -> pd.DataFrame:
        rows = [
            {
                "local_time": s.local_time,
                "accel_x": s.accel_x.value,
                "accel_y": s.accel_y.value,
                "accel_z": s.accel_z.value,
                "x_confidence": s.accel_x.confidence.value,
                "y_confidence": s.accel_y.confidence.value,
                "z_confidence": s.accel_z.confidence.value,
                "cumulative_ms": s.cumulative_ms,
                "line_number": s.line_number,
            }
            for s in self.samples
        ]
        frame = pd.DataFrame(rows, columns=_SAMPLE_COLUMNS)
        utc = self.sample_utc_times()
        if utc is not None:
            frame["utc_time"] = utc
        return frame


_TRACKPOINT_COLUMNS = [
    "utc_time", "local_time", "latitude", "longitude", "elevation_m",
    "speed_mps", "heading_deg", "heading_confidence",
    "field_2", "field_2_confidence", "field_3", "field_3_confidence",
    "delta_ms", "from_anchor", "line_number",
]

_SAMPLE_COLUMNS = [
    "local_time", "accel_x", "accel_y", "accel_z",
    "x_confidence", "y_confidence", "z_confidence",
    "cumulative_ms", "line_number",
]


def _select_window(items: tuple, times: NDArray[np.float64], start: float, end: float) -> tuple:
    if not items or start > end:
        return ()
    # Streams are usually ordered; fall back to a mask when they are not
    if np.all(np.diff(times) >= 0):
        lo = int(np.searchsorted(times, start, side="left"))
        hi = int(np.searchsorted(times, end, side="right"))
        return tuple(items[lo:hi])
    mask = (times >= start) & (times <= end)
    return tuple(item for item, keep in zip(items, mask) if keep)


@dataclass
class SessionSummary:
    """Lightweight summary of a session for listing."""

    id: str
    name: str
    source_file: str
    recorded_at: Optional[str]
    trackpoint_count: int
    sample_count: int
    warning_count: int
    error_count: int
    duration_s: float

    @classmethod
    def from_track(cls, session_key: str, name: str, source_file: str, track: TrackModel) -> "SessionSummary":
        start, end = track.get_time_range()
        return cls(
            id=session_key,
            name=name,
            source_file=source_file,
            recorded_at=track.recorded_at.isoformat() if track.recorded_at else None,
            trackpoint_count=len(track.trackpoints),
            sample_count=len(track.samples),
            warning_count=len(track.warnings),
            error_count=len(track.errors),
            duration_s=end - start,
        )

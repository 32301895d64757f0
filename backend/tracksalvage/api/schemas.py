"""
API schemas (Pydantic models) for request/response validation.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field


# ============================================================================
# Session Schemas
# ============================================================================

class SessionSummaryResponse(BaseModel):
    """Summary of a decoded session for listing."""
    id: str
    name: str
    source_file: str
    recorded_at: Optional[str] = None
    duration_s: float
    trackpoint_count: int
    sample_count: int
    warning_count: int
    error_count: int


class HeadersResponse(BaseModel):
    """Session header fields of one stream."""
    username: Optional[str] = None
    format_version: Optional[str] = None
    app_version: Optional[str] = None
    device_id: list[str] = Field(default_factory=list)


class SessionMetadataResponse(BaseModel):
    """Full metadata for a decoded session."""
    id: str
    name: str
    source_file: str
    session_id: Optional[str] = None
    recorded_at: Optional[str] = None
    tz_offset_s: Optional[float] = None
    gps_headers: HeadersResponse
    acc_headers: HeadersResponse
    trackpoint_count: int
    sample_count: int
    time_range: tuple[float, float]  # UTC (start_s, end_s)
    sample_time_range: tuple[float, float]  # local clock (start_s, end_s)
    max_speed_mps: Optional[float] = None
    max_speed_mph: Optional[float] = None
    total_distance_m: float
    warning_count: int
    error_count: int
    notes: list[str]


class FieldResponse(BaseModel):
    """A decoded field with its confidence tag."""
    name: str
    value: Any
    raw: str
    confidence: str
    unit: Optional[str] = None


class TrackPointResponse(BaseModel):
    utc_time: float
    local_time: float
    latitude: float
    longitude: float
    elevation_m: float
    speed_mps: Optional[float] = None
    heading: Optional[FieldResponse] = None
    field_2: Optional[FieldResponse] = None
    field_3: Optional[FieldResponse] = None
    delta_ms: int
    from_anchor: bool
    line_number: int


class SampleResponse(BaseModel):
    local_time: float
    accel_x: FieldResponse
    accel_y: FieldResponse
    accel_z: FieldResponse
    cumulative_ms: int
    line_number: int


class TrackPointsResponse(BaseModel):
    """Trackpoints of a session within a UTC window."""
    session_id: str
    start: float
    end: float
    count: int
    trackpoints: list[TrackPointResponse]


class SamplesResponse(BaseModel):
    """Accelerometer samples of a session within a local-clock window."""
    session_id: str
    start: float
    end: float
    count: int
    truncated: bool
    samples: list[SampleResponse]


class WarningResponse(BaseModel):
    stream: str
    code: str
    message: str
    line_number: Optional[int] = None


class FailureResponse(BaseModel):
    stream: str
    error: str
    message: str
    line_number: Optional[int] = None


class DiagnosticsResponse(BaseModel):
    """Warnings, stream failures and notes of a decoded session."""
    session_id: str
    warnings: list[WarningResponse]
    errors: list[FailureResponse]
    notes: list[str]


class SessionReloadRequest(BaseModel):
    """Request to decode a session again with different options."""
    strict: Optional[bool] = None
    require_both_members: Optional[bool] = None


# ============================================================================
# Folder Management Schemas
# ============================================================================

class SetFolderRequest(BaseModel):
    """Request to set the data folder."""
    path: str


class FolderInfoResponse(BaseModel):
    """Information about the current data folder."""
    path: Optional[str]
    session_count: int


# ============================================================================
# Error Schemas
# ============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    detail: str
    code: Optional[str] = None

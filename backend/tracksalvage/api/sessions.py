"""
API routes for decoded sessions.
"""

import dataclasses
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from tracksalvage.api.schemas import (
    DiagnosticsResponse,
    ErrorResponse,
    FailureResponse,
    FieldResponse,
    FolderInfoResponse,
    HeadersResponse,
    SampleResponse,
    SamplesResponse,
    SessionMetadataResponse,
    SessionReloadRequest,
    SessionSummaryResponse,
    SetFolderRequest,
    TrackPointResponse,
    TrackPointsResponse,
    WarningResponse,
)
from tracksalvage.models.records import SessionHeaders
from tracksalvage.models.track import MPS_TO_MPH, Interpreted, Sample, TrackModel, TrackPoint
from tracksalvage.services.repository import get_repository


router = APIRouter(prefix="/sessions", tags=["sessions"])


def _get_track(session_id: str) -> TrackModel:
    track = get_repository().get_session(session_id)
    if track is None:
        raise HTTPException(status_code=404, detail=f"Session not found: {session_id}")
    return track


def _field(value: Optional[Interpreted]) -> Optional[FieldResponse]:
    if value is None:
        return None
    return FieldResponse(
        name=value.name,
        value=value.value,
        raw=value.raw,
        confidence=value.confidence.value,
        unit=value.unit,
    )


def _headers(headers: SessionHeaders) -> HeadersResponse:
    return HeadersResponse(
        username=headers.username,
        format_version=headers.format_version,
        app_version=headers.app_version,
        device_id=list(headers.device_id),
    )


def _trackpoint(p: TrackPoint) -> TrackPointResponse:
    return TrackPointResponse(
        utc_time=p.utc_time,
        local_time=p.local_time,
        latitude=p.latitude,
        longitude=p.longitude,
        elevation_m=p.elevation_m,
        speed_mps=p.speed_mps,
        heading=_field(p.heading),
        field_2=_field(p.field_2),
        field_3=_field(p.field_3),
        delta_ms=p.delta_ms,
        from_anchor=p.from_anchor,
        line_number=p.line_number,
    )


def _sample(s: Sample) -> SampleResponse:
    return SampleResponse(
        local_time=s.local_time,
        accel_x=_field(s.accel_x),
        accel_y=_field(s.accel_y),
        accel_z=_field(s.accel_z),
        cumulative_ms=s.cumulative_ms,
        line_number=s.line_number,
    )


def _build_metadata_response(session_id: str, track: TrackModel) -> SessionMetadataResponse:
    source = get_repository().get_source_file(session_id)
    max_speed = track.max_speed_mps()
    return SessionMetadataResponse(
        id=session_id,
        name=source.stem if source else session_id,
        source_file=source.name if source else "",
        session_id=track.session_id,
        recorded_at=track.recorded_at.isoformat() if track.recorded_at else None,
        tz_offset_s=track.tz_offset_s,
        gps_headers=_headers(track.gps_headers),
        acc_headers=_headers(track.acc_headers),
        trackpoint_count=len(track.trackpoints),
        sample_count=len(track.samples),
        time_range=track.get_time_range(),
        sample_time_range=track.get_sample_time_range(),
        max_speed_mps=max_speed,
        max_speed_mph=max_speed * MPS_TO_MPH if max_speed is not None else None,
        total_distance_m=track.total_distance_m(),
        warning_count=len(track.warnings),
        error_count=len(track.errors),
        notes=list(track.notes),
    )


@router.get("", response_model=list[SessionSummaryResponse])
async def list_sessions():
    """
    List all decodable sessions.

    Returns summaries sorted by recording date (newest first).
    """
    summaries = get_repository().list_sessions()
    return [SessionSummaryResponse(**dataclasses.asdict(s)) for s in summaries]


@router.get("/{session_id}", response_model=SessionMetadataResponse)
async def get_session_metadata(session_id: str):
    track = _get_track(session_id)
    return _build_metadata_response(session_id, track)


@router.get("/{session_id}/trackpoints", response_model=TrackPointsResponse)
async def get_trackpoints(
    session_id: str,
    start: Optional[float] = Query(None, description="UTC start, epoch seconds"),
    end: Optional[float] = Query(None, description="UTC end, epoch seconds"),
):
    """
    Get trackpoints with start <= utc_time <= end.

    Missing bounds default to the session's own time range.
    """
    track = _get_track(session_id)
    first, last = track.get_time_range()
    start = first if start is None else start
    end = last if end is None else end

    if start > end:
        raise HTTPException(status_code=400, detail="Invalid time range")

    points = track.points_between(start, end)
    return TrackPointsResponse(
        session_id=session_id,
        start=start,
        end=end,
        count=len(points),
        trackpoints=[_trackpoint(p) for p in points],
    )


@router.get("/{session_id}/samples", response_model=SamplesResponse)
async def get_samples(
    session_id: str,
    start: Optional[float] = Query(None, description="Local-clock start, epoch seconds"),
    end: Optional[float] = Query(None, description="Local-clock end, epoch seconds"),
    limit: int = Query(10000, ge=1, le=1000000, description="Maximum samples returned"),
):
    """
    Get accelerometer samples with start <= local_time <= end.

    Sample streams are dense (~100 Hz), so the response is capped at
    `limit` samples and flagged as truncated.
    """
    track = _get_track(session_id)
    first, last = track.get_sample_time_range()
    start = first if start is None else start
    end = last if end is None else end

    if start > end:
        raise HTTPException(status_code=400, detail="Invalid time range")

    samples = track.samples_between(start, end)
    return SamplesResponse(
        session_id=session_id,
        start=start,
        end=end,
        count=len(samples),
        truncated=len(samples) > limit,
        samples=[_sample(s) for s in samples[:limit]],
    )


@router.get("/{session_id}/diagnostics", response_model=DiagnosticsResponse)
async def get_diagnostics(session_id: str):
    track = _get_track(session_id)
    return DiagnosticsResponse(
        session_id=session_id,
        warnings=[
            WarningResponse(
                stream=w.stream.value,
                code=w.code.value,
                message=w.message,
                line_number=w.line_number,
            )
            for w in track.warnings
        ],
        errors=[
            FailureResponse(
                stream=e.stream.value,
                error=e.error,
                message=e.message,
                line_number=e.line_number,
            )
            for e in track.errors
        ],
        notes=list(track.notes),
    )


@router.post(
    "/{session_id}/reload",
    response_model=SessionMetadataResponse,
    responses={422: {"model": ErrorResponse}},
)
async def reload_session(session_id: str, request: SessionReloadRequest):
    """
    Decode a session again with strict / require-both overrides.

    Use strict mode to find the first malformed line of a stream, or
    require_both_members to reject archives missing a member.
    """
    repo = get_repository()

    if session_id not in repo:
        raise HTTPException(status_code=404, detail=f"Session not found: {session_id}")

    overrides = {
        key: value
        for key, value in request.model_dump().items()
        if value is not None
    }
    options = dataclasses.replace(repo.options, **overrides)

    track = repo.reload_session(session_id, options)
    if track is None:
        raise HTTPException(status_code=422, detail="Failed to decode session with the requested options")

    return _build_metadata_response(session_id, track)


# ============================================================================
# Folder Management Routes
# ============================================================================

folder_router = APIRouter(prefix="/folder", tags=["folder"])


@folder_router.get("", response_model=FolderInfoResponse)
async def get_folder_info():
    """Get information about the current data folder."""
    repo = get_repository()

    return FolderInfoResponse(
        path=str(repo.data_folder) if repo.data_folder else None,
        session_count=repo.session_count,
    )


@folder_router.post("", response_model=FolderInfoResponse)
async def set_folder(request: SetFolderRequest):
    """
    Set the data folder to scan for session archives.

    This will clear the current cache and re-scan.
    """
    repo = get_repository()

    path = Path(request.path)
    if not path.exists():
        raise HTTPException(status_code=400, detail=f"Folder does not exist: {request.path}")
    if not path.is_dir():
        raise HTTPException(status_code=400, detail=f"Path is not a directory: {request.path}")

    count = repo.set_data_folder(path)

    return FolderInfoResponse(
        path=str(path),
        session_count=count,
    )


@folder_router.post("/rescan", response_model=FolderInfoResponse)
async def rescan_folder():
    """Rescan the current data folder for new archives."""
    repo = get_repository()

    if repo.data_folder is None:
        raise HTTPException(status_code=400, detail="No data folder set")

    count = repo.rescan()

    return FolderInfoResponse(
        path=str(repo.data_folder),
        session_count=count,
    )

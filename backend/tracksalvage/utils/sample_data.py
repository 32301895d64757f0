"""
Sample data generator for testing.

Builds synthetic session archives in the recorded layout: a ZIP holding
data-YYYY-MM-DD-hh-mm-ss.gps and .acc, with one anchor per minute and
deltas in between.
"""

import io
import zipfile
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

import numpy as np

from tracksalvage.utils.coordinates import bearing_degrees


DEFAULT_START_UTC = 1700000000  # 2023-11-14T22:13:20Z


def _rfc3339_utc(epoch_s: float) -> str:
    return datetime.fromtimestamp(epoch_s, timezone.utc).isoformat().replace("+00:00", "Z")


def _rfc3339_local(local_epoch_s: float, tz_offset_s: int) -> str:
    tz = timezone(timedelta(seconds=tz_offset_s))
    wall = datetime(1970, 1, 1) + timedelta(seconds=local_epoch_s)
    return wall.replace(tzinfo=tz).isoformat()


def header_lines(
    username: str = "runner",
    format_version: str = "1",
    device_id: tuple[str, ...] = ("Nokia", "N95"),
    app_version: Optional[str] = None,
) -> list[str]:
    lines = [f"U,{username}", f"V,{format_version}"]
    if app_version is not None:
        lines.append(f"A,{app_version}")
    lines.append("I," + ",".join(device_id))
    return lines


def gps_anchor_line(
    utc_epoch_s: int,
    lat: float,
    lon: float,
    elevation_m: float,
    tz_offset_s: int = 3600,
) -> str:
    local = utc_epoch_s + tz_offset_s
    return (
        f"H,{utc_epoch_s},{lat:.6f},{lon:.6f},{elevation_m:g},{local},"
        f"{_rfc3339_utc(utc_epoch_s)},{_rfc3339_local(local, tz_offset_s)}"
    )


def acc_anchor_line(monotonic_ms: int, local_epoch_s: int, tz_offset_s: int = 3600) -> str:
    return f"H,{monotonic_ms},{local_epoch_s},{_rfc3339_local(local_epoch_s, tz_offset_s)}"


def generate_gps_lines(
    duration_s: float = 180.0,
    start_utc: int = DEFAULT_START_UTC,
    tz_offset_s: int = 3600,
    start_lat: float = 46.5,
    start_lon: float = 7.0,
    start_elevation_m: float = 1200.0,
    delta_interval_ms: int = 1000,
    anchor_interval_s: int = 60,
    speed_mps: float = 3.2,
) -> list[str]:
    """
    GPS member lines for a straight climb heading north-east.

    Deltas carry "?" in fields 2/3 since their meaning is not known.
    """
    n_anchors = max(1, int(np.ceil(duration_s / anchor_interval_s)))
    anchor_times = start_utc + np.arange(n_anchors) * anchor_interval_s

    # ~speed_mps along a 45 degree bearing, 1 m of climb per minute
    metres = speed_mps * (anchor_times - start_utc)
    lat = start_lat + metres * np.cos(np.radians(45.0)) / 111000.0
    lon = start_lon + metres * np.sin(np.radians(45.0)) / (111000.0 * np.cos(np.radians(start_lat)))
    elevation = start_elevation_m + (anchor_times - start_utc) / 60.0

    heading = np.append(bearing_degrees(lat[:-1], lon[:-1], lat[1:], lon[1:]), 45.0)

    lines = header_lines(app_version="2.1.0")
    deltas_per_anchor = int(anchor_interval_s * 1000 // delta_interval_ms)
    for i, t in enumerate(anchor_times):
        lines.append(gps_anchor_line(int(t), lat[i], lon[i], elevation[i], tz_offset_s))
        for k in range(1, deltas_per_anchor):
            delta_ms = k * delta_interval_ms
            if t + delta_ms / 1000.0 > start_utc + duration_s:
                break
            climb_mm = int(round(delta_ms / 60.0))
            lines.append(f"D,{delta_ms},?,?,{climb_mm},{speed_mps:g},{heading[i]:.1f}")
    return lines


def generate_acc_lines(
    duration_s: float = 180.0,
    start_utc: int = DEFAULT_START_UTC,
    tz_offset_s: int = 3600,
    delta_interval_ms: int = 10,
    anchor_interval_s: int = 60,
    counter_start_ms: int = 5_000_000,
) -> list[str]:
    """Accelerometer member lines: gravity on y plus a slow sway on x/z."""
    n_anchors = max(1, int(np.ceil(duration_s / anchor_interval_s)))
    per_anchor = int(anchor_interval_s * 1000 // delta_interval_ms)

    lines = header_lines()
    for i in range(n_anchors):
        local = start_utc + tz_offset_s + i * anchor_interval_s
        lines.append(acc_anchor_line(counter_start_ms + i * anchor_interval_s * 1000, local, tz_offset_s))
        phase = np.arange(1, per_anchor) * delta_interval_ms / 1000.0
        x = 0.2 * np.sin(2 * np.pi * 0.5 * phase)
        z = 0.1 * np.cos(2 * np.pi * 0.5 * phase)
        for k in range(per_anchor - 1):
            if i * anchor_interval_s + phase[k] > duration_s:
                break
            lines.append(f"D,{delta_interval_ms},{x[k]:.3f},9.81,{z[k]:.3f}")
    return lines


def session_member_names(start_utc: int = DEFAULT_START_UTC, tz_offset_s: int = 3600) -> tuple[str, str]:
    stamp = (datetime(1970, 1, 1) + timedelta(seconds=start_utc + tz_offset_s)).strftime("%Y-%m-%d-%H-%M-%S")
    return (f"data-{stamp}.gps", f"data-{stamp}.acc")


def build_session_archive(
    gps_lines: Optional[list[str]] = None,
    acc_lines: Optional[list[str]] = None,
    member_names: Optional[tuple[str, str]] = None,
) -> bytes:
    """ZIP bytes holding the given member lines; None leaves a member out."""
    gps_name, acc_name = member_names or session_member_names()
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
        if gps_lines is not None:
            zf.writestr(gps_name, "\n".join(gps_lines) + "\n")
        if acc_lines is not None:
            zf.writestr(acc_name, "\n".join(acc_lines) + "\n")
    return buffer.getvalue()


def generate_session_archive(
    output_path: Path,
    duration_s: float = 180.0,
    start_utc: int = DEFAULT_START_UTC,
    tz_offset_s: int = 3600,
) -> Path:
    """Write a complete synthetic session archive to output_path."""
    data = build_session_archive(
        generate_gps_lines(duration_s, start_utc, tz_offset_s),
        generate_acc_lines(duration_s, start_utc, tz_offset_s),
        session_member_names(start_utc, tz_offset_s),
    )
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(data)
    return output_path


def generate_test_data_set(output_folder: Path) -> list[Path]:
    """Generate a set of session archives."""
    output_folder.mkdir(parents=True, exist_ok=True)

    return [
        generate_session_archive(output_folder / "session_001_short.zip", duration_s=90.0),
        generate_session_archive(
            output_folder / "session_002_long.zip",
            duration_s=600.0,
            start_utc=DEFAULT_START_UTC + 86400,
        ),
        generate_session_archive(
            output_folder / "session_003_utc_minus5.zip",
            duration_s=240.0,
            start_utc=DEFAULT_START_UTC + 2 * 86400,
            tz_offset_s=-5 * 3600,
        ),
    ]


if __name__ == "__main__":
    output = Path("./data/sessions")
    files = generate_test_data_set(output)
    print(f"Generated {len(files)} session archives in {output}")
    for f in files:
        print(f"  - {f.name}")

"""
Command-line decoder.

Decodes one session archive and prints what was found in it:

    tracksalvage-decode session.zip --show-warnings
"""

import argparse
import dataclasses
import logging
import sys
from pathlib import Path
from typing import Optional

from tracksalvage.config import DecodeOptions
from tracksalvage.errors import ContainerError
from tracksalvage.models.records import SessionHeaders, StreamKind
from tracksalvage.models.track import MPS_TO_MPH, TrackModel
from tracksalvage.services.container import Container, load_container
from tracksalvage.services.decoder import decode_container


logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tracksalvage-decode",
        description="Decode a recorded GPS + accelerometer session archive",
    )
    parser.add_argument("archive", help="Path to the session archive (.zip)")
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Abort a stream on its first malformed line instead of skipping it"
    )
    parser.add_argument(
        "--require-both",
        action="store_true",
        help="Fail when the archive lacks a .gps or .acc member"
    )
    parser.add_argument(
        "--sequential",
        action="store_true",
        help="Decode the two streams one after the other"
    )
    parser.add_argument(
        "--show-warnings",
        action="store_true",
        help="List every consistency warning"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging"
    )
    return parser


def options_from_args(args: argparse.Namespace) -> DecodeOptions:
    options = DecodeOptions.from_env()
    overrides = {}
    if args.strict:
        overrides["strict"] = True
    if args.require_both:
        overrides["require_both_members"] = True
    if args.sequential:
        overrides["parallel"] = False
    return dataclasses.replace(options, **overrides)


def format_report(container: Container, track: TrackModel, show_warnings: bool = False) -> str:
    lines = []
    for stream in StreamKind:
        name = container.member_name(stream)
        lines.append(f"Found {name}" if name else f"No .{stream.value} member")

    if track.recorded_at is not None:
        lines.append(f"Recorded at: {track.recorded_at.isoformat()}")
    for label, headers in (("GPS", track.gps_headers), ("ACC", track.acc_headers)):
        if not headers.is_empty():
            lines.append(f"{label} headers: {_describe_headers(headers)}")

    lines.append(f"GPS trackpoints: {len(track.trackpoints)}")
    lines.append(f"ACC samples: {len(track.samples)}")

    max_speed = track.max_speed_mps()
    if max_speed is not None:
        lines.append(f"Max speed: {max_speed:.2f} m/s ({max_speed * MPS_TO_MPH:.2f} MPH)")
    if len(track.trackpoints) > 1:
        lines.append(f"Distance: {track.total_distance_m():.1f} m")

    lines.append(f"Warnings: {len(track.warnings)}")
    if show_warnings:
        lines.extend(f"  {w}" for w in track.warnings)

    for failure in track.errors:
        where = f" (line {failure.line_number})" if failure.line_number else ""
        lines.append(f"Error in .{failure.stream.value}: {failure.error}: {failure.message}{where}")
    for note in track.notes:
        lines.append(f"Note: {note}")

    return "\n".join(lines)


def _describe_headers(headers: SessionHeaders) -> str:
    parts = []
    if headers.username is not None:
        parts.append(f"user={headers.username}")
    if headers.format_version is not None:
        parts.append(f"format={headers.format_version}")
    if headers.app_version is not None:
        parts.append(f"app={headers.app_version}")
    if headers.device_id:
        parts.append(f"device={' '.join(headers.device_id)}")
    return ", ".join(parts)


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    archive = Path(args.archive)
    options = options_from_args(args)

    try:
        container = load_container(archive)
        track = decode_container(container, options)
    except ContainerError as e:
        logger.error(f"Cannot decode {archive}: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 2

    print(format_report(container, track, show_warnings=args.show_warnings))
    return 1 if track.errors else 0


if __name__ == "__main__":
    sys.exit(main())

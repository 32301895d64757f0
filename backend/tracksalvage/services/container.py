"""
Container loader.

A session archive is a ZIP holding `data-YYYY-MM-DD-hh-mm-ss.gps` and the
matching `.acc`. The loader locates the two members and returns their
bytes; it does not look at line content. Whether a missing member is
fatal is decided by the decoder, not here.
"""

import io
import logging
import re
import zipfile
import zlib
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path, PurePosixPath
from typing import BinaryIO, Optional, Union

from tracksalvage.errors import ContainerError
from tracksalvage.models.records import StreamKind


logger = logging.getLogger(__name__)

MEMBER_PATTERN = re.compile(
    r"^data-(\d{4}-\d{2}-\d{2}-\d{2}-\d{2}-\d{2})\.(gps|acc)$", re.IGNORECASE
)
SESSION_TIMESTAMP_FORMAT = "%Y-%m-%d-%H-%M-%S"

ArchiveSource = Union[bytes, bytearray, Path, str, BinaryIO]


@dataclass(frozen=True)
class Container:
    """The two member byte streams of one archive, either possibly absent."""

    gps: Optional[bytes]
    acc: Optional[bytes]
    gps_name: Optional[str] = None
    acc_name: Optional[str] = None
    session_timestamp: Optional[str] = None

    def member(self, stream: StreamKind) -> Optional[bytes]:
        return self.gps if stream is StreamKind.GPS else self.acc

    def member_name(self, stream: StreamKind) -> Optional[str]:
        return self.gps_name if stream is StreamKind.GPS else self.acc_name

    def missing_members(self) -> list[StreamKind]:
        return [s for s in StreamKind if self.member(s) is None]

    @property
    def recorded_at(self) -> Optional[datetime]:
        if self.session_timestamp is None:
            return None
        return datetime.strptime(self.session_timestamp, SESSION_TIMESTAMP_FORMAT)


def load_container(source: ArchiveSource) -> Container:
    """
    Open an archive and locate its .gps and .acc members.

    Args:
        source: archive bytes, a path to the archive, or a binary file object

    Raises:
        ContainerError: unreadable archive, no usable member, two members of
            the same kind, or members from different sessions
    """
    try:
        with _open_zip(source) as archive:
            names = _match_members(archive.namelist())
            members = {
                stream: archive.read(name) if name is not None else None
                for stream, name in names.items()
            }
    except (zipfile.BadZipFile, zipfile.LargeZipFile, zlib.error, EOFError, RuntimeError) as e:
        raise ContainerError(f"unreadable archive: {e}") from e
    except OSError as e:
        raise ContainerError(f"cannot open archive: {e}") from e

    gps_name = names[StreamKind.GPS]
    acc_name = names[StreamKind.ACC]
    timestamp = _session_timestamp(gps_name, acc_name)

    for stream in StreamKind:
        if members[stream] is None:
            logger.warning(f"Archive has no .{stream.value} member")
        else:
            logger.info(f"Found {names[stream]} ({len(members[stream])} bytes)")

    return Container(
        gps=members[StreamKind.GPS],
        acc=members[StreamKind.ACC],
        gps_name=gps_name,
        acc_name=acc_name,
        session_timestamp=timestamp,
    )


def _open_zip(source: ArchiveSource) -> zipfile.ZipFile:
    if isinstance(source, (bytes, bytearray)):
        return zipfile.ZipFile(io.BytesIO(source))
    if isinstance(source, (str, Path)):
        return zipfile.ZipFile(Path(source))
    return zipfile.ZipFile(source)


def _match_members(names: list[str]) -> dict[StreamKind, Optional[str]]:
    found: dict[StreamKind, Optional[str]] = {StreamKind.GPS: None, StreamKind.ACC: None}

    for name in names:
        if name.endswith("/"):
            continue
        suffix = PurePosixPath(name).suffix.lower().lstrip(".")
        try:
            stream = StreamKind(suffix)
        except ValueError:
            logger.warning(f"Ignoring unrecognized archive member {name}")
            continue

        if found[stream] is not None:
            raise ContainerError(
                f"ambiguous .{stream.value} members: {found[stream]} and {name}"
            )
        found[stream] = name

    if all(name is None for name in found.values()):
        raise ContainerError("archive has neither a .gps nor a .acc member")
    return found


def _session_timestamp(gps_name: Optional[str], acc_name: Optional[str]) -> Optional[str]:
    stamps = {}
    for name in (gps_name, acc_name):
        if name is None:
            continue
        match = MEMBER_PATTERN.match(PurePosixPath(name).name)
        if match is None:
            logger.warning(f"Member {name} does not follow data-YYYY-MM-DD-hh-mm-ss naming")
            continue
        try:
            datetime.strptime(match.group(1), SESSION_TIMESTAMP_FORMAT)
        except ValueError:
            logger.warning(f"Member {name} carries an impossible timestamp")
            continue
        stamps[name] = match.group(1)

    values = set(stamps.values())
    if len(values) > 1:
        raise ContainerError(f"members belong to different sessions: {stamps}")
    return values.pop() if values else None

"""
Record tokenizer/classifier.

Splits member lines into fields, identifies the record kind from the
leading tag and validates the line against the schema for (stream, tag).
Classification is stateless; tokenize_stream only adds end-of-stream
handling on top of classify_line.
"""

import logging
import math
import re
from dataclasses import dataclass
from typing import Callable, Iterator, Optional

from tracksalvage.errors import RecordFormatError
from tracksalvage.models.records import RawRecord, RecordKind, StreamKind
from tracksalvage.utils.timeparse import parse_number, parse_rfc3339


logger = logging.getLogger(__name__)

FIELD_DELIMITER = ","


@dataclass(frozen=True)
class RecordSchema:
    """Expected fields after the tag. Variadic schemas accept extra fields."""

    names: tuple[str, ...]
    types: tuple[str, ...]
    variadic: bool = False

    def __len__(self) -> int:
        return len(self.names)


_USERNAME = RecordSchema(("username",), ("text",))
_FORMAT_VERSION = RecordSchema(("format_version",), ("text",))
_APP_VERSION = RecordSchema(("app_version",), ("text",))
# Any number of device fields, including none
_DEVICE_ID = RecordSchema((), (), variadic=True)

RECORD_SCHEMAS: dict[tuple[StreamKind, RecordKind], RecordSchema] = {
    (StreamKind.GPS, RecordKind.USERNAME): _USERNAME,
    (StreamKind.GPS, RecordKind.FORMAT_VERSION): _FORMAT_VERSION,
    (StreamKind.GPS, RecordKind.APP_VERSION): _APP_VERSION,
    (StreamKind.GPS, RecordKind.DEVICE_ID): _DEVICE_ID,
    (StreamKind.GPS, RecordKind.ANCHOR): RecordSchema(
        (
            "utc_epoch", "latitude", "longitude", "elevation_m",
            "local_epoch", "utc_rfc3339", "local_rfc3339",
        ),
        ("epoch", "float", "float", "float", "epoch", "timestamp", "timestamp"),
    ),
    (StreamKind.GPS, RecordKind.DELTA): RecordSchema(
        (
            "delta_ms", "field_2", "field_3", "delta_elevation_mm",
            "speed_mps", "heading",
        ),
        ("int", "raw", "raw", "float", "float", "raw"),
    ),
    (StreamKind.ACC, RecordKind.USERNAME): _USERNAME,
    (StreamKind.ACC, RecordKind.FORMAT_VERSION): _FORMAT_VERSION,
    (StreamKind.ACC, RecordKind.DEVICE_ID): _DEVICE_ID,
    (StreamKind.ACC, RecordKind.ANCHOR): RecordSchema(
        ("monotonic_ms", "local_epoch", "local_rfc3339"),
        ("int", "epoch", "timestamp"),
    ),
    (StreamKind.ACC, RecordKind.DELTA): RecordSchema(
        ("delta_ms", "accel_x", "accel_y", "accel_z"),
        ("int", "raw", "raw", "raw"),
    ),
}

_TAGS = {kind.value: kind for kind in RecordKind}


_INT_PATTERN = re.compile(r"-?\d+")


def _check_int(text: str) -> None:
    if _INT_PATTERN.fullmatch(text) is None:
        raise ValueError("not a plain integer")


def _check_float(text: str) -> None:
    if not math.isfinite(float(text)):
        raise ValueError("not a finite number")


def _check_epoch(text: str) -> None:
    if not math.isfinite(parse_number(text)):
        raise ValueError("not a finite number")


_VALIDATORS: dict[str, Callable[[str], object]] = {
    "int": _check_int,
    "float": _check_float,
    "epoch": _check_epoch,
    "timestamp": parse_rfc3339,
}


def classify_line(line: str, stream: StreamKind, line_number: int) -> RawRecord:
    """
    Classify one line of a member file.

    Raises:
        RecordFormatError: unknown tag, wrong field count or unparsable field
    """
    parts = [part.strip() for part in line.rstrip("\r\n").split(FIELD_DELIMITER)]
    tag = parts[0]

    kind = _TAGS.get(tag)
    if kind is None:
        raise RecordFormatError(f"unrecognized tag {tag!r}", line_number, line)

    schema = RECORD_SCHEMAS.get((stream, kind))
    if schema is None:
        raise RecordFormatError(
            f"tag {tag!r} is not valid in a .{stream.value} file", line_number, line
        )

    fields = tuple(parts[1:])
    if schema.variadic:
        if len(fields) < len(schema):
            raise RecordFormatError(
                f"{tag} record needs at least {len(schema)} fields, got {len(fields)}",
                line_number,
                line,
            )
    elif len(fields) != len(schema):
        raise RecordFormatError(
            f"{tag} record needs {len(schema)} fields, got {len(fields)}",
            line_number,
            line,
        )

    for name, type_name, value in zip(schema.names, schema.types, fields):
        validator = _VALIDATORS.get(type_name)
        if validator is None:
            continue
        try:
            validator(value)
        except (ValueError, OverflowError):
            raise RecordFormatError(
                f"invalid {name} {value!r} (expected {type_name})", line_number, line
            ) from None

    return RawRecord(kind=kind, fields=fields, line_number=line_number)


def tokenize_stream(
    data: bytes,
    stream: StreamKind,
    on_error: Optional[Callable[[RecordFormatError], None]] = None,
) -> Iterator[RawRecord]:
    """
    Yield the records of one member file.

    Trailing blank lines end the stream. A final line without a line
    terminator that does not classify is a truncated write and also ends
    the stream. With on_error given, malformed lines are reported to it and
    skipped; without it they raise.
    """
    chunks = data.splitlines(keepends=True)

    last_content = -1
    for i, chunk in enumerate(chunks):
        if chunk.strip():
            last_content = i

    for i, chunk in enumerate(chunks[: last_content + 1]):
        line_number = i + 1
        body = chunk.rstrip(b"\r\n")
        terminated = len(body) != len(chunk)
        partial_tail = i == last_content and not terminated

        try:
            if not body.strip():
                raise RecordFormatError("empty record", line_number, "")
            try:
                line = body.decode("utf-8")
            except UnicodeDecodeError:
                raise RecordFormatError("line is not valid UTF-8", line_number, None) from None
            record = classify_line(line, stream, line_number)
        except RecordFormatError as e:
            if partial_tail:
                logger.debug(f"Ignoring partial final line {line_number} of .{stream.value}: {e}")
                return
            if on_error is None:
                raise
            on_error(e)
            continue

        yield record

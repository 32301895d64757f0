"""
Session decoder.

Loads a container and decodes its two members into a TrackModel. The GPS
and accelerometer streams are independent and run on separate worker
threads; an error in one stream is recorded and never cancels the other.
Only a ContainerError aborts the whole decode.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

from tracksalvage.config import DecodeOptions
from tracksalvage.errors import ContainerError, RecordFormatError, SequencingError
from tracksalvage.models.records import StreamKind
from tracksalvage.models.track import (
    ConsistencyWarning,
    StreamFailure,
    StreamResult,
    TrackModel,
    WarningCode,
)
from tracksalvage.services.acc_reconstructor import AccReconstructor
from tracksalvage.services.container import ArchiveSource, Container, load_container
from tracksalvage.services.gps_reconstructor import GpsReconstructor
from tracksalvage.services.interpreter import FieldInterpreter
from tracksalvage.services.reconstructor import StreamReconstructor
from tracksalvage.services.tokenizer import tokenize_stream


logger = logging.getLogger(__name__)

RECONSTRUCTORS: dict[StreamKind, type[StreamReconstructor]] = {
    StreamKind.GPS: GpsReconstructor,
    StreamKind.ACC: AccReconstructor,
}


def decode_stream(
    stream: StreamKind,
    data: bytes,
    options: Optional[DecodeOptions] = None,
    interpreter: Optional[FieldInterpreter] = None,
) -> StreamResult:
    """
    Decode one member's bytes.

    Format errors (strict mode) and sequencing errors end the stream: the
    result then carries no items and a StreamFailure, plus whatever headers
    and warnings were collected before the failure.
    """
    options = options or DecodeOptions()
    reconstructor = RECONSTRUCTORS[stream](interpreter=interpreter, options=options)

    skipped: list[ConsistencyWarning] = []

    def skip(error: RecordFormatError) -> None:
        warning = ConsistencyWarning(
            stream=stream,
            code=WarningCode.SKIPPED_RECORD,
            message=error.message,
            line_number=error.line_number,
        )
        logger.warning(str(warning))
        skipped.append(warning)

    on_error = None if options.strict else skip

    try:
        for record in tokenize_stream(data, stream, on_error=on_error):
            reconstructor.feed(record)
    except (RecordFormatError, SequencingError) as e:
        logger.error(f"Decoding .{stream.value} stream failed: {e}")
        return StreamResult(
            stream=stream,
            headers=reconstructor.headers,
            items=(),
            warnings=_by_line(skipped, reconstructor.warnings),
            failure=StreamFailure.from_error(stream, e),
            record_count=reconstructor.record_count,
            tz_offset_s=reconstructor.sync.tz_offset_s,
        )

    result = reconstructor.finish()
    logger.info(
        f"Decoded .{stream.value}: {result.record_count} records, "
        f"{len(result.items)} items, {len(result.warnings) + len(skipped)} warnings"
    )
    return StreamResult(
        stream=stream,
        headers=result.headers,
        items=result.items,
        warnings=_by_line(skipped, result.warnings),
        record_count=result.record_count,
        tz_offset_s=result.tz_offset_s,
    )


def decode_container(
    container: Container,
    options: Optional[DecodeOptions] = None,
    interpreter: Optional[FieldInterpreter] = None,
) -> TrackModel:
    options = options or DecodeOptions()

    notes: list[str] = []
    missing = container.missing_members()
    if missing and options.require_both_members:
        names = ", ".join(f".{s.value}" for s in missing)
        raise ContainerError(f"archive is missing required member(s): {names}")
    for stream in missing:
        notes.append(f"archive has no .{stream.value} member")

    present = [s for s in StreamKind if s not in missing]
    results: dict[StreamKind, StreamResult] = {
        s: StreamResult(stream=s) for s in missing
    }

    if options.parallel and len(present) > 1:
        with ThreadPoolExecutor(max_workers=len(present), thread_name_prefix="decode") as executor:
            futures = {
                s: executor.submit(decode_stream, s, container.member(s), options, interpreter)
                for s in present
            }
            for stream, future in futures.items():
                results[stream] = future.result()
    else:
        for stream in present:
            results[stream] = decode_stream(stream, container.member(stream), options, interpreter)

    gps = results[StreamKind.GPS]
    acc = results[StreamKind.ACC]

    return TrackModel(
        session_id=container.session_timestamp,
        recorded_at=container.recorded_at,
        gps_headers=gps.headers,
        acc_headers=acc.headers,
        trackpoints=gps.items,
        samples=acc.items,
        warnings=gps.warnings + acc.warnings,
        errors=tuple(r.failure for r in (gps, acc) if r.failure is not None),
        notes=tuple(notes),
        tz_offset_s=gps.tz_offset_s,
    )


def decode_session(
    source: ArchiveSource,
    options: Optional[DecodeOptions] = None,
    interpreter: Optional[FieldInterpreter] = None,
) -> TrackModel:
    """
    Decode a session archive into a TrackModel.

    Args:
        source: archive bytes, path, or binary file object
        options: decode tunables (defaults to DecodeOptions())
        interpreter: field interpreter (defaults to the built-in rule table)

    Raises:
        ContainerError: the archive cannot be used at all
    """
    container = load_container(source)
    return decode_container(container, options, interpreter)


def _by_line(*groups) -> tuple[ConsistencyWarning, ...]:
    merged = [w for group in groups for w in group]
    return tuple(sorted(merged, key=lambda w: w.line_number or 0))

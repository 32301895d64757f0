"""
Shared state machine for the per-stream reconstructors.

    AWAITING_HEADERS -> AWAITING_ANCHOR -> HAVE_ANCHOR (loops on deltas) -> DONE

Headers are only accepted before the first anchor. A delta is only
resolvable once an anchor has been seen; before that it raises
SequencingError, which ends the stream.
"""

import dataclasses
import logging
from enum import Enum
from typing import Iterable, Optional

from tracksalvage.config import DecodeOptions
from tracksalvage.errors import SequencingError
from tracksalvage.models.records import (
    HEADER_KINDS,
    RawRecord,
    RecordKind,
    SessionHeaders,
    StreamKind,
)
from tracksalvage.models.track import ConsistencyWarning, StreamResult, WarningCode
from tracksalvage.services.interpreter import DEFAULT_INTERPRETER, FieldInterpreter
from tracksalvage.services.time_sync import TimeSynchronizer


logger = logging.getLogger(__name__)


class StreamState(Enum):
    AWAITING_HEADERS = "awaiting_headers"
    AWAITING_ANCHOR = "awaiting_anchor"
    HAVE_ANCHOR = "have_anchor"
    DONE = "done"


_HEADER_ATTRS = {
    RecordKind.USERNAME: "username",
    RecordKind.FORMAT_VERSION: "format_version",
    RecordKind.APP_VERSION: "app_version",
    RecordKind.DEVICE_ID: "device_id",
}


class StreamReconstructor:
    """
    Base class: header bookkeeping, state transitions, warning collection.

    Subclasses implement _on_anchor and _on_delta and append their output
    to self._items.
    """

    stream: StreamKind
    expected_headers: frozenset[RecordKind] = frozenset()

    def __init__(
        self,
        interpreter: Optional[FieldInterpreter] = None,
        options: Optional[DecodeOptions] = None,
    ):
        self.interpreter = interpreter or DEFAULT_INTERPRETER
        self.options = options or DecodeOptions()
        self.sync = TimeSynchronizer(
            self.stream,
            epoch_tolerance_s=self.options.epoch_tolerance_s,
            rfc3339_tolerance_s=self.options.rfc3339_tolerance_s,
        )

        self.state = StreamState.AWAITING_HEADERS
        self.headers = SessionHeaders()
        self.record_count = 0
        self._seen_headers: set[RecordKind] = set()
        self._items: list = []
        self._warnings: list[ConsistencyWarning] = []

    @property
    def items(self) -> tuple:
        return tuple(self._items)

    @property
    def warnings(self) -> tuple[ConsistencyWarning, ...]:
        return tuple(self._warnings)

    def feed(self, record: RawRecord) -> None:
        if self.state is StreamState.DONE:
            raise RuntimeError(f"{self.stream.value} reconstructor already finished")
        self.record_count += 1

        if record.kind in HEADER_KINDS:
            self._on_header(record)
        elif record.kind is RecordKind.ANCHOR:
            self._on_anchor(record)
            self.state = StreamState.HAVE_ANCHOR
        elif record.kind is RecordKind.DELTA:
            if self.state is not StreamState.HAVE_ANCHOR:
                raise SequencingError(
                    "delta record before any anchor record", record.line_number
                )
            self._on_delta(record)

    def run(self, records: Iterable[RawRecord]) -> StreamResult:
        for record in records:
            self.feed(record)
        return self.finish()

    def finish(self) -> StreamResult:
        self.state = StreamState.DONE
        return StreamResult(
            stream=self.stream,
            headers=self.headers,
            items=self.items,
            warnings=self.warnings,
            record_count=self.record_count,
            tz_offset_s=self.sync.tz_offset_s,
        )

    def warn(self, code: WarningCode, message: str, line_number: Optional[int]) -> None:
        warning = ConsistencyWarning(
            stream=self.stream, code=code, message=message, line_number=line_number
        )
        logger.warning(str(warning))
        self._warnings.append(warning)

    def _on_header(self, record: RawRecord) -> None:
        if self.state is StreamState.HAVE_ANCHOR:
            self.warn(
                WarningCode.UNEXPECTED_HEADER,
                f"{record.kind.value} header after first anchor ignored",
                record.line_number,
            )
            return
        if record.kind in self._seen_headers:
            self.warn(
                WarningCode.UNEXPECTED_HEADER,
                f"repeated {record.kind.value} header ignored",
                record.line_number,
            )
            return

        self._seen_headers.add(record.kind)
        attr = _HEADER_ATTRS[record.kind]
        value = record.fields if record.kind is RecordKind.DEVICE_ID else record.fields[0]
        self.headers = dataclasses.replace(self.headers, **{attr: value})

        if self.expected_headers <= self._seen_headers:
            self.state = StreamState.AWAITING_ANCHOR

    def _on_anchor(self, record: RawRecord) -> None:
        raise NotImplementedError

    def _on_delta(self, record: RawRecord) -> None:
        raise NotImplementedError

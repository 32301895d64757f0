"""
Time synchronizer.

Each anchor carries the same instant up to three times (UTC epoch, local
epoch, and their RFC3339 renderings). The redundancy is used as a
consistency check: the first GPS anchor fixes the session's timezone
offset, later anchors are compared against it, and every disagreement
becomes a ConsistencyWarning on the offending anchor. Nothing here aborts
decoding; a session may legitimately cross a timezone boundary.
"""

import logging
from typing import Optional

from tracksalvage.models.records import AccAnchor, GpsAnchor, StreamKind
from tracksalvage.models.track import ConsistencyWarning, WarningCode
from tracksalvage.utils.timeparse import (
    instant_seconds,
    parse_rfc3339,
    utc_offset_seconds,
    wall_clock_seconds,
)


logger = logging.getLogger(__name__)

# Float slack on top of the configured tolerances (ms epochs are not exact in binary)
_EPSILON = 1e-6


class TimeSynchronizer:
    """Validates the clocks of one stream's anchors."""

    def __init__(
        self,
        stream: StreamKind,
        epoch_tolerance_s: float = 0.0,
        rfc3339_tolerance_s: float = 1.0,
    ):
        self.stream = stream
        self.epoch_tolerance_s = epoch_tolerance_s
        self.rfc3339_tolerance_s = rfc3339_tolerance_s

        self.tz_offset_s: Optional[float] = None
        self._last_instant: Optional[float] = None
        self._last_counter: Optional[int] = None

    def observe_gps_anchor(self, anchor: GpsAnchor) -> list[ConsistencyWarning]:
        warnings: list[ConsistencyWarning] = []
        line = anchor.line_number

        utc_text = parse_rfc3339(anchor.utc_rfc3339)
        utc_diff = instant_seconds(utc_text) - anchor.utc_epoch_s
        if abs(utc_diff) > self.rfc3339_tolerance_s + _EPSILON:
            warnings.append(self._warn(
                WarningCode.RFC3339_MISMATCH,
                f"UTC text {anchor.utc_rfc3339} is {utc_diff:+.3f}s from UTC epoch",
                line,
            ))

        local_text = parse_rfc3339(anchor.local_rfc3339)
        local_findings: list[tuple[WarningCode, str]] = []

        local_diff = wall_clock_seconds(local_text) - anchor.local_epoch_s
        if abs(local_diff) > self.rfc3339_tolerance_s + _EPSILON:
            local_findings.append((
                WarningCode.RFC3339_MISMATCH,
                f"local text {anchor.local_rfc3339} is {local_diff:+.3f}s from local epoch",
            ))

        text_offset = utc_offset_seconds(local_text)
        if text_offset is not None and abs(text_offset - anchor.offset_s) > self.rfc3339_tolerance_s + _EPSILON:
            local_findings.append((
                WarningCode.RFC3339_OFFSET_MISMATCH,
                f"local text offset {text_offset:+.0f}s disagrees with epoch offset {anchor.offset_s:+.3f}s",
            ))

        if self.tz_offset_s is None:
            self.tz_offset_s = anchor.offset_s
            logger.debug(f"Session timezone offset {self.tz_offset_s:+.0f}s from line {line}")
        elif abs(anchor.offset_s - self.tz_offset_s) > self.epoch_tolerance_s + _EPSILON:
            # One warning per deviating anchor; local text findings go into its message
            message = f"local-UTC offset {anchor.offset_s:+.3f}s differs from session offset {self.tz_offset_s:+.3f}s"
            if local_findings:
                message += " (" + "; ".join(text for _, text in local_findings) + ")"
            local_findings = [(WarningCode.TZ_OFFSET_MISMATCH, message)]

        for code, message in local_findings:
            warnings.append(self._warn(code, message, line))

        warnings.extend(self._check_order(anchor.utc_epoch_s, line))
        return warnings

    def observe_acc_anchor(self, anchor: AccAnchor) -> list[ConsistencyWarning]:
        warnings: list[ConsistencyWarning] = []
        line = anchor.line_number

        local_text = parse_rfc3339(anchor.local_rfc3339)
        warnings.extend(self._check_local_text(local_text, anchor.local_rfc3339, anchor.local_epoch_s, line))

        if self._last_counter is not None and anchor.monotonic_ms <= self._last_counter:
            warnings.append(self._warn(
                WarningCode.ANCHOR_OUT_OF_ORDER,
                f"counter {anchor.monotonic_ms} does not increase (previous {self._last_counter})",
                line,
            ))
        self._last_counter = anchor.monotonic_ms

        warnings.extend(self._check_order(anchor.local_epoch_s, line))
        return warnings

    def to_utc(self, local_epoch_s: float) -> Optional[float]:
        if self.tz_offset_s is None:
            return None
        return local_epoch_s - self.tz_offset_s

    def _check_local_text(self, parsed, text: str, local_epoch_s: float, line: int) -> list[ConsistencyWarning]:
        diff = wall_clock_seconds(parsed) - local_epoch_s
        if abs(diff) > self.rfc3339_tolerance_s + _EPSILON:
            return [self._warn(
                WarningCode.RFC3339_MISMATCH,
                f"local text {text} is {diff:+.3f}s from local epoch",
                line,
            )]
        return []

    def _check_order(self, instant: float, line: int) -> list[ConsistencyWarning]:
        previous = self._last_instant
        self._last_instant = instant if previous is None else max(previous, instant)
        if previous is not None and instant < previous:
            return [self._warn(
                WarningCode.ANCHOR_OUT_OF_ORDER,
                f"anchor time {instant:.3f} precedes earlier anchor {previous:.3f}",
                line,
            )]
        return []

    def _warn(self, code: WarningCode, message: str, line: int) -> ConsistencyWarning:
        warning = ConsistencyWarning(stream=self.stream, code=code, message=message, line_number=line)
        logger.warning(str(warning))
        return warning

"""
Accelerometer track reconstructor.

Deltas arrive roughly every 10ms between anchors roughly 60000ms apart, so
each delta's elapsed time is accumulated since the last anchor:

    local = anchor.local_epoch + cumulative_ms / 1000

A total that reaches the anchor interval, or a negative delta, is warned
about but still decoded: whether the counter may run past the next anchor
is not known.
"""

from typing import Optional

from tracksalvage.models.records import AccAnchor, AccDelta, RawRecord, RecordKind, StreamKind
from tracksalvage.models.track import Sample, WarningCode
from tracksalvage.services.reconstructor import StreamReconstructor


class AccReconstructor(StreamReconstructor):
    """Stateful decoder for one accelerometer stream."""

    stream = StreamKind.ACC
    expected_headers = frozenset({
        RecordKind.USERNAME,
        RecordKind.FORMAT_VERSION,
        RecordKind.DEVICE_ID,
    })

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.anchor: Optional[AccAnchor] = None
        self.cumulative_ms = 0

    def _on_anchor(self, record: RawRecord) -> None:
        anchor = AccAnchor.from_raw(record)
        self._warnings.extend(self.sync.observe_acc_anchor(anchor))
        self.anchor = anchor
        self.cumulative_ms = 0

    def _on_delta(self, record: RawRecord) -> None:
        anchor = self.anchor
        delta = AccDelta.from_raw(record)

        if delta.delta_ms < 0:
            self.warn(
                WarningCode.DELTA_OUT_OF_RANGE,
                f"negative delta {delta.delta_ms}ms",
                delta.line_number,
            )
        self.cumulative_ms += delta.delta_ms

        interval = self.options.anchor_interval_ms
        if self.cumulative_ms >= interval:
            self.warn(
                WarningCode.DELTA_OUT_OF_RANGE,
                f"{self.cumulative_ms}ms since anchor at line {anchor.line_number} reaches interval {interval}ms",
                delta.line_number,
            )

        resolve = self.interpreter.resolve
        self._items.append(Sample(
            local_time=anchor.local_epoch_s + self.cumulative_ms / 1000.0,
            accel_x=resolve(self.stream, RecordKind.DELTA, 2, delta.raw_x),
            accel_y=resolve(self.stream, RecordKind.DELTA, 3, delta.raw_y),
            accel_z=resolve(self.stream, RecordKind.DELTA, 4, delta.raw_z),
            cumulative_ms=self.cumulative_ms,
            line_number=delta.line_number,
        ))

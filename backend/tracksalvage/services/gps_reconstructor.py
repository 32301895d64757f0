"""
GPS track reconstructor.

Turns the anchor + delta records of a .gps member into absolute
trackpoints:

    utc       = anchor.utc_epoch + delta_ms / 1000
    elevation = anchor.elevation_m + delta_elevation_mm / 1000

Speed is carried through unchanged. Heading and delta fields 2/3 go through
the field interpreter; position stays at the anchor's unless the
interpreter resolves fields 2/3 to latitude/longitude changes.
"""

from typing import Optional

from tracksalvage.models.records import GpsAnchor, GpsDelta, RawRecord, RecordKind, StreamKind
from tracksalvage.models.track import Interpreted, TrackPoint, WarningCode
from tracksalvage.services.reconstructor import StreamReconstructor


class GpsReconstructor(StreamReconstructor):
    """Stateful decoder for one GPS stream."""

    stream = StreamKind.GPS
    expected_headers = frozenset({
        RecordKind.USERNAME,
        RecordKind.FORMAT_VERSION,
        RecordKind.APP_VERSION,
        RecordKind.DEVICE_ID,
    })

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.anchor: Optional[GpsAnchor] = None

    def _on_anchor(self, record: RawRecord) -> None:
        anchor = GpsAnchor.from_raw(record)
        self._warnings.extend(self.sync.observe_gps_anchor(anchor))
        self.anchor = anchor

        self._items.append(TrackPoint(
            utc_time=anchor.utc_epoch_s,
            local_time=anchor.local_epoch_s,
            latitude=anchor.latitude,
            longitude=anchor.longitude,
            elevation_m=anchor.elevation_m,
            speed_mps=None,
            heading=None,
            field_2=None,
            field_3=None,
            delta_ms=0,
            from_anchor=True,
            line_number=anchor.line_number,
        ))

    def _on_delta(self, record: RawRecord) -> None:
        anchor = self.anchor
        delta = GpsDelta.from_raw(record)

        interval = self.options.anchor_interval_ms
        if not 0 <= delta.delta_ms < interval:
            self.warn(
                WarningCode.DELTA_OUT_OF_RANGE,
                f"delta {delta.delta_ms}ms outside [0, {interval}) of anchor at line {anchor.line_number}",
                delta.line_number,
            )

        field_2 = self._resolve(2, delta.raw_field_2)
        field_3 = self._resolve(3, delta.raw_field_3)
        heading = self._resolve(6, delta.raw_heading)

        elapsed_s = delta.delta_ms / 1000.0
        self._items.append(TrackPoint(
            utc_time=anchor.utc_epoch_s + elapsed_s,
            local_time=anchor.local_epoch_s + elapsed_s,
            latitude=anchor.latitude + _position_change(field_2, field_3, "latitude_delta"),
            longitude=anchor.longitude + _position_change(field_2, field_3, "longitude_delta"),
            elevation_m=anchor.elevation_m + delta.delta_elevation_mm / 1000.0,
            speed_mps=delta.speed_mps,
            heading=heading,
            field_2=field_2,
            field_3=field_3,
            delta_ms=delta.delta_ms,
            from_anchor=False,
            line_number=delta.line_number,
        ))

    def _resolve(self, index: int, raw: str) -> Interpreted:
        return self.interpreter.resolve(self.stream, RecordKind.DELTA, index, raw)


def _position_change(field_2: Interpreted, field_3: Interpreted, name: str) -> float:
    for resolved in (field_2, field_3):
        if resolved.name == name and resolved.numeric is not None:
            return resolved.numeric
    return 0.0

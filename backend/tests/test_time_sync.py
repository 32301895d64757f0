"""
Tests for anchor clock cross-checks and time field helpers.
"""

from datetime import datetime, timedelta, timezone

import pytest

from tracksalvage.models.records import AccAnchor, GpsAnchor, RawRecord, RecordKind, StreamKind
from tracksalvage.models.track import WarningCode
from tracksalvage.services.time_sync import TimeSynchronizer
from tracksalvage.utils.timeparse import (
    epoch_to_seconds,
    parse_rfc3339,
    to_local_datetime,
    utc_offset_seconds,
    wall_clock_seconds,
)


def gps_anchor(utc, local, utc_text, local_text, line=1):
    return GpsAnchor(
        utc_epoch_s=utc,
        latitude=46.5,
        longitude=7.0,
        elevation_m=1200.0,
        local_epoch_s=local,
        utc_rfc3339=utc_text,
        local_rfc3339=local_text,
        line_number=line,
    )


@pytest.fixture
def first_anchor():
    return gps_anchor(1700000000, 1700003600, "2023-11-14T22:13:20Z", "2023-11-14T23:13:20+01:00", line=5)


@pytest.fixture
def sync():
    return TimeSynchronizer(StreamKind.GPS)


class TestGpsAnchors:
    """Tests for GPS anchor consistency checks."""

    def test_consistent_anchor_sets_offset(self, sync, first_anchor):
        warnings = sync.observe_gps_anchor(first_anchor)

        assert warnings == []
        assert sync.tz_offset_s == 3600

    def test_deviating_anchor_warns_once(self, sync, first_anchor):
        sync.observe_gps_anchor(first_anchor)
        second = gps_anchor(1700000060, 1700007260, "2023-11-14T22:14:20Z", "2023-11-15T00:14:20+02:00", line=70)

        warnings = sync.observe_gps_anchor(second)

        assert len(warnings) == 1
        assert warnings[0].code is WarningCode.TZ_OFFSET_MISMATCH
        assert warnings[0].line_number == 70
        # Session offset stays at the first anchor's
        assert sync.tz_offset_s == 3600

    def test_moved_local_epoch_warns_once(self, sync, first_anchor):
        sync.observe_gps_anchor(first_anchor)
        # Only the local epoch moved; the local text still matches the session offset
        second = gps_anchor(1700000060, 1700007260, "2023-11-14T22:14:20Z", "2023-11-14T23:14:20+01:00", line=70)

        warnings = sync.observe_gps_anchor(second)

        assert [w.code for w in warnings] == [WarningCode.TZ_OFFSET_MISMATCH]
        assert "local text" in warnings[0].message

    def test_utc_text_mismatch(self, sync):
        anchor = gps_anchor(1700000000, 1700003600, "2023-11-14T22:15:20Z", "2023-11-14T23:13:20+01:00")

        warnings = sync.observe_gps_anchor(anchor)

        assert [w.code for w in warnings] == [WarningCode.RFC3339_MISMATCH]

    def test_local_text_mismatch(self, sync):
        anchor = gps_anchor(1700000000, 1700003600, "2023-11-14T22:13:20Z", "2023-11-14T23:43:20+01:00")

        warnings = sync.observe_gps_anchor(anchor)

        assert [w.code for w in warnings] == [WarningCode.RFC3339_MISMATCH]

    def test_local_text_offset_mismatch(self, sync):
        anchor = gps_anchor(1700000000, 1700003600, "2023-11-14T22:13:20Z", "2023-11-14T23:13:20+02:00")

        warnings = sync.observe_gps_anchor(anchor)

        assert [w.code for w in warnings] == [WarningCode.RFC3339_OFFSET_MISMATCH]

    def test_text_within_tolerance(self, sync):
        anchor = gps_anchor(1700000000.4, 1700003600.4, "2023-11-14T22:13:20Z", "2023-11-14T23:13:20+01:00")

        assert sync.observe_gps_anchor(anchor) == []

    def test_anchor_out_of_order(self, sync, first_anchor):
        sync.observe_gps_anchor(first_anchor)
        earlier = gps_anchor(1699999940, 1700003540, "2023-11-14T22:12:20Z", "2023-11-14T23:12:20+01:00", line=9)

        warnings = sync.observe_gps_anchor(earlier)

        assert [w.code for w in warnings] == [WarningCode.ANCHOR_OUT_OF_ORDER]

    def test_to_utc(self, sync, first_anchor):
        assert sync.to_utc(1700003601) is None

        sync.observe_gps_anchor(first_anchor)

        assert sync.to_utc(1700003601) == 1700000001


class TestAccAnchors:
    """Tests for accelerometer anchor checks."""

    def test_counter_must_increase(self):
        sync = TimeSynchronizer(StreamKind.ACC)
        a = AccAnchor(5000000, 1700003600, "2023-11-14T23:13:20+01:00", 4)
        b = AccAnchor(5000000, 1700003660, "2023-11-14T23:14:20+01:00", 6004)

        assert sync.observe_acc_anchor(a) == []
        warnings = sync.observe_acc_anchor(b)

        assert [w.code for w in warnings] == [WarningCode.ANCHOR_OUT_OF_ORDER]
        assert warnings[0].stream is StreamKind.ACC

    def test_local_text_checked(self):
        sync = TimeSynchronizer(StreamKind.ACC)
        anchor = AccAnchor(5000000, 1700003600, "2023-11-14T23:20:00+01:00", 4)

        warnings = sync.observe_acc_anchor(anchor)

        assert [w.code for w in warnings] == [WarningCode.RFC3339_MISMATCH]

    def test_acc_anchor_does_not_set_offset(self):
        sync = TimeSynchronizer(StreamKind.ACC)
        sync.observe_acc_anchor(AccAnchor(1, 1700003600, "2023-11-14T23:13:20+01:00", 4))

        assert sync.tz_offset_s is None


class TestTimeParsing:
    """Tests for epoch and RFC3339 helpers."""

    def test_epoch_seconds_and_milliseconds(self):
        assert epoch_to_seconds("1700000000") == 1700000000.0
        assert epoch_to_seconds("1700000000500") == 1700000000.5
        assert epoch_to_seconds("1700000000.25") == 1700000000.25

    def test_millisecond_anchor(self):
        record = RawRecord(
            kind=RecordKind.ANCHOR,
            fields=(
                "1700000000000", "46.5", "7.0", "1200", "1700003600000",
                "2023-11-14T22:13:20Z", "2023-11-14T23:13:20+01:00",
            ),
            line_number=1,
        )

        anchor = GpsAnchor.from_raw(record)

        assert anchor.utc_epoch_s == 1700000000.0
        assert anchor.offset_s == 3600.0

    def test_parse_rfc3339_zulu(self):
        parsed = parse_rfc3339("2023-11-14T22:13:20Z")

        assert parsed == datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)

    def test_parse_rfc3339_rejects_date_only(self):
        with pytest.raises(ValueError):
            parse_rfc3339("2023-11-14")

    def test_wall_clock_ignores_offset(self):
        parsed = parse_rfc3339("2023-11-14T23:13:20+01:00")

        assert wall_clock_seconds(parsed) == 1700003600
        assert utc_offset_seconds(parsed) == 3600

    def test_naive_text_has_no_offset(self):
        assert utc_offset_seconds(parse_rfc3339("2023-11-14T23:13:20")) is None

    def test_local_datetime(self):
        value = to_local_datetime(1700003600, 3600)

        assert value.hour == 23
        assert value.utcoffset() == timedelta(hours=1)
        assert to_local_datetime(1700003600).tzinfo is None

"""
Tests for the record tokenizer/classifier.
"""

import pytest

from tracksalvage.errors import RecordFormatError
from tracksalvage.models.records import RecordKind, StreamKind
from tracksalvage.services.tokenizer import classify_line, tokenize_stream


GPS_ANCHOR = "H,1700000000,46.5,7.0,1200,1700003600,2023-11-14T22:13:20Z,2023-11-14T23:13:20+01:00"
GPS_DELTA = "D,500,?,?,-150,3.2,180"


class TestClassifyLine:
    """Tests for single-line classification."""

    def test_gps_anchor(self):
        record = classify_line(GPS_ANCHOR, StreamKind.GPS, 5)

        assert record.kind is RecordKind.ANCHOR
        assert record.line_number == 5
        assert len(record.fields) == 7
        assert record.fields[0] == "1700000000"
        assert record.fields[6] == "2023-11-14T23:13:20+01:00"

    def test_gps_delta_keeps_unknown_fields_raw(self):
        record = classify_line(GPS_DELTA, StreamKind.GPS, 6)

        assert record.kind is RecordKind.DELTA
        assert record.fields == ("500", "?", "?", "-150", "3.2", "180")

    def test_header_records(self):
        assert classify_line("U,runner", StreamKind.GPS, 1).kind is RecordKind.USERNAME
        assert classify_line("V,1", StreamKind.ACC, 2).kind is RecordKind.FORMAT_VERSION
        assert classify_line("A,2.1.0", StreamKind.GPS, 3).kind is RecordKind.APP_VERSION

    def test_device_id_accepts_several_fields(self):
        record = classify_line("I,Nokia,N95,8GB", StreamKind.GPS, 4)

        assert record.kind is RecordKind.DEVICE_ID
        assert record.fields == ("Nokia", "N95", "8GB")

    def test_device_id_without_fields(self):
        record = classify_line("I", StreamKind.ACC, 3)

        assert record.kind is RecordKind.DEVICE_ID
        assert record.fields == ()

    def test_trailing_carriage_return_stripped(self):
        record = classify_line("U,runner\r\n", StreamKind.GPS, 1)
        assert record.fields == ("runner",)

    def test_unknown_tag(self):
        with pytest.raises(RecordFormatError) as exc_info:
            classify_line("X,1,2", StreamKind.GPS, 9)

        assert exc_info.value.line_number == 9
        assert exc_info.value.line == "X,1,2"
        assert "line 9" in str(exc_info.value)

    def test_app_version_not_valid_in_acc(self):
        with pytest.raises(RecordFormatError, match="not valid"):
            classify_line("A,2.1.0", StreamKind.ACC, 3)

    def test_wrong_field_count(self):
        with pytest.raises(RecordFormatError, match="needs 6 fields"):
            classify_line("D,500,?,?,-150,3.2", StreamKind.GPS, 7)

    def test_invalid_number(self):
        with pytest.raises(RecordFormatError, match="delta_elevation_mm"):
            classify_line("D,500,?,?,abc,3.2,180", StreamKind.GPS, 7)

    def test_delta_ms_must_be_integer(self):
        with pytest.raises(RecordFormatError, match="delta_ms"):
            classify_line("D,12.5,0.1,9.8,0.2", StreamKind.ACC, 7)

    def test_invalid_timestamp(self):
        line = "H,1700000000,46.5,7.0,1200,1700003600,yesterday,2023-11-14T23:13:20+01:00"
        with pytest.raises(RecordFormatError, match="utc_rfc3339"):
            classify_line(line, StreamKind.GPS, 5)

    def test_non_finite_float_rejected(self):
        with pytest.raises(RecordFormatError, match="speed_mps"):
            classify_line("D,500,?,?,0,nan,180", StreamKind.GPS, 3)

    @pytest.mark.parametrize("value", ["1_000", "+5", "5.0", "0x10"])
    def test_delta_ms_rejects_unusual_integers(self, value):
        with pytest.raises(RecordFormatError, match="delta_ms"):
            classify_line(f"D,{value},0.1,9.8,0.2", StreamKind.ACC, 3)

    def test_unconfirmed_fields_not_validated(self):
        gps = classify_line("D,500,?,?,-150,3.2,?", StreamKind.GPS, 6)
        acc = classify_line("D,10,x,?,n/a", StreamKind.ACC, 6)

        assert gps.fields[5] == "?"
        assert acc.fields[1:] == ("x", "?", "n/a")

    def test_acc_anchor(self):
        record = classify_line("H,5000000,1700003600,2023-11-14T23:13:20+01:00", StreamKind.ACC, 4)

        assert record.kind is RecordKind.ANCHOR
        assert record.fields[0] == "5000000"


class TestTokenizeStream:
    """Tests for whole-member tokenizing."""

    def test_yields_records_in_order(self):
        data = f"U,runner\nV,1\n{GPS_ANCHOR}\n{GPS_DELTA}\n".encode()

        records = list(tokenize_stream(data, StreamKind.GPS))

        assert [r.kind for r in records] == [
            RecordKind.USERNAME, RecordKind.FORMAT_VERSION, RecordKind.ANCHOR, RecordKind.DELTA,
        ]
        assert [r.line_number for r in records] == [1, 2, 3, 4]

    def test_crlf_line_endings(self):
        data = b"U,runner\r\nV,1\r\n"

        records = list(tokenize_stream(data, StreamKind.ACC))

        assert [r.fields for r in records] == [("runner",), ("1",)]

    def test_trailing_blank_lines_end_stream(self):
        data = b"U,runner\nV,1\n\n\n"

        records = list(tokenize_stream(data, StreamKind.GPS))

        assert len(records) == 2

    def test_partial_final_line_ignored(self):
        data = f"U,runner\n{GPS_ANCHOR}\nD,50".encode()

        records = list(tokenize_stream(data, StreamKind.GPS))

        assert [r.kind for r in records] == [RecordKind.USERNAME, RecordKind.ANCHOR]

    def test_unterminated_final_line_kept_when_valid(self):
        data = f"U,runner\n{GPS_DELTA}".encode()

        records = list(tokenize_stream(data, StreamKind.GPS))

        assert records[-1].kind is RecordKind.DELTA

    def test_malformed_line_raises_without_handler(self):
        data = b"U,runner\nX,1\nV,1\n"

        with pytest.raises(RecordFormatError) as exc_info:
            list(tokenize_stream(data, StreamKind.GPS))

        assert exc_info.value.line_number == 2

    def test_malformed_lines_reported_to_handler(self):
        data = b"U,runner\n\nX,1\nV,1\n"
        errors = []

        records = list(tokenize_stream(data, StreamKind.GPS, on_error=errors.append))

        assert [r.kind for r in records] == [RecordKind.USERNAME, RecordKind.FORMAT_VERSION]
        assert [e.line_number for e in errors] == [2, 3]

    def test_invalid_utf8_is_format_error(self):
        data = b"U,\xff\xfe\nV,1\n"

        with pytest.raises(RecordFormatError, match="UTF-8"):
            list(tokenize_stream(data, StreamKind.GPS))

    def test_empty_member(self):
        assert list(tokenize_stream(b"", StreamKind.ACC)) == []

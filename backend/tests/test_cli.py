"""
Tests for the command-line decoder.
"""

import pytest

from tracksalvage.cli import build_parser, main, options_from_args
from tracksalvage.utils.sample_data import build_session_archive, generate_session_archive, header_lines


@pytest.fixture
def archive(tmp_path):
    return generate_session_archive(tmp_path / "session.zip", duration_s=60.0)


class TestMain:
    """Tests for the decode report."""

    def test_report(self, archive, capsys):
        code = main([str(archive)])

        out = capsys.readouterr().out
        assert code == 0
        assert "Found data-2023-11-14-23-13-20.gps" in out
        assert "Found data-2023-11-14-23-13-20.acc" in out
        assert "GPS trackpoints: 60" in out
        assert "ACC samples: " in out
        assert "records:" not in out
        assert "Max speed: 3.20 m/s (7.16 MPH)" in out
        assert "Warnings: 0" in out

    def test_missing_member_note(self, tmp_path, capsys):
        path = tmp_path / "gps_only.zip"
        path.write_bytes(build_session_archive(header_lines(), None))

        code = main([str(path)])

        out = capsys.readouterr().out
        assert code == 0
        assert "No .acc member" in out
        assert "Note: archive has no .acc member" in out

    def test_require_both(self, tmp_path, capsys):
        path = tmp_path / "gps_only.zip"
        path.write_bytes(build_session_archive(header_lines(), None))

        code = main([str(path), "--require-both"])

        assert code == 2
        assert "missing required member" in capsys.readouterr().err

    def test_stream_error_exit_code(self, tmp_path, capsys):
        path = tmp_path / "bad.zip"
        path.write_bytes(build_session_archive(header_lines() + ["D,500,?,?,0,1,0"], None))

        code = main([str(path)])

        out = capsys.readouterr().out
        assert code == 1
        assert "Error in .gps: SequencingError" in out
        assert "(line 4)" in out

    def test_show_warnings(self, tmp_path, capsys):
        path = tmp_path / "skipped.zip"
        lines = header_lines() + [
            "H,1700000000,46.5,7.0,1200,1700003600,2023-11-14T22:13:20Z,2023-11-14T23:13:20+01:00",
            "D,500,?,?",
        ]
        path.write_bytes(build_session_archive(lines + ["D,600,?,?,0,1,0"], None))

        main([str(path), "--show-warnings"])

        out = capsys.readouterr().out
        assert "Warnings: 1" in out
        assert "skipped-record" in out

    def test_unreadable_archive(self, tmp_path):
        path = tmp_path / "junk.zip"
        path.write_bytes(b"junk")

        assert main([str(path)]) == 2


class TestOptions:
    def test_flags_map_to_options(self):
        args = build_parser().parse_args(["x.zip", "--strict", "--require-both", "--sequential"])

        options = options_from_args(args)

        assert options.strict
        assert options.require_both_members
        assert not options.parallel

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("TRACKSALVAGE_STRICT", raising=False)
        args = build_parser().parse_args(["x.zip"])

        options = options_from_args(args)

        assert not options.strict
        assert options.parallel

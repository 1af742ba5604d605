"""Tests for the main entry point (__main__.py)."""

from unittest.mock import patch

import pytest

from http_items.__main__ import main


class TestMain:
    """Tests for the main function."""

    def test_empty_url_exits(self):
        """parse_cli calls sys.exit(1) when the URL is blank."""
        with pytest.raises(SystemExit):
            main(["  "])

    def test_invalid_item_returns_error(self, capsys):
        result = main(["example.com", "foobar"])
        assert result == 2
        assert "Error parsing request item" in capsys.readouterr().err

    def test_bad_json_returns_error(self, capsys):
        result = main(["example.com", "foo:=bar"])
        assert result == 2
        assert "'foo:=bar'" in capsys.readouterr().err

    def test_mode_error_returns_error(self, capsys):
        result = main(["example.com", "a=b", "doc@report.pdf"])
        assert result == 2
        assert "perhaps you meant --form" in capsys.readouterr().err

    def test_json_in_form_returns_error(self, capsys):
        result = main(["--form", "example.com", "a:=1"])
        assert result == 2
        assert "JSON values are not supported" in capsys.readouterr().err

    def test_invalid_header_returns_error(self, capsys):
        result = main(["example.com", " X-Bad:x"])
        assert result == 2
        assert "Error building request" in capsys.readouterr().err

    def test_missing_file_returns_error(self, tmp_path, capsys):
        missing = tmp_path / "missing.txt"
        result = main(["example.com", f"bio=@{missing}"])
        assert result == 2
        err = capsys.readouterr().err
        assert "Error reading file" in err
        assert "missing.txt" in err

    def test_successful_run(self, capsys):
        result = main(["example.com/api", "name=John", "X-Trace:1"])
        assert result == 0
        out = capsys.readouterr().out
        assert "POST http://example.com/api" in out
        assert "X-Trace: 1" in out

    def test_multipart_run_closes_files(self, tmp_path, capsys):
        f = tmp_path / "doc.txt"
        f.write_text("contents")
        with patch("http_items.__main__.close_request") as mock_close:
            result = main(["--multipart", "example.com", f"doc@{f}"])
        assert result == 0
        mock_close.assert_called_once()
        assert "<multipart body, " in capsys.readouterr().out

    def test_raw_body_run(self, capsys):
        result = main(["--raw", "hello", "PUT", "example.com"])
        assert result == 0
        out = capsys.readouterr().out
        assert "PUT http://example.com/" in out
        assert "hello" in out

    def test_debug_logs_to_stderr(self, capsys):
        result = main(["--debug", "example.com", "a=b"])
        assert result == 0
        err = capsys.readouterr().err
        assert "parsed request item" in err


class TestMainFieldErrors:
    """Field file and transport errors end with exit code 2."""

    def test_binary_field_file_returns_error(self, tmp_path, capsys):
        blob = tmp_path / "blob.bin"
        blob.write_bytes(b"\xff\xfe\x00")
        result = main(["example.com", f"x=@{blob}"])
        assert result == 2
        err = capsys.readouterr().err
        assert "Error building request" in err
        assert "blob.bin" in err

    def test_nan_json_returns_error(self, capsys):
        result = main(["example.com", "foo:=NaN"])
        assert result == 2
        err = capsys.readouterr().err
        assert "Error parsing request item" in err
        assert "invalid JSON constant" in err

    def test_invalid_url_returns_error(self, capsys):
        result = main(["http://", "a=b"])
        assert result == 2
        err = capsys.readouterr().err
        assert "Error preparing request" in err
        assert "Error reading file" not in err

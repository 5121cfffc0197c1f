"""Tests for the CLI implementation."""

import json
import tempfile
from pathlib import Path

import pytest
from typer.testing import CliRunner

from proxyheader.cli import app
from proxyheader.core.model import FormatError
from proxyheader.probe import build_header

REQUEST = b"GET / HTTP/1.1\r\nHost: example\r\n\r\n"
V1 = b"PROXY TCP4 192.0.2.1 198.51.100.7 1234 80\r\n"


class TestDecode:
    """Test the decode command."""

    @pytest.fixture
    def runner(self):
        """CLI test runner."""
        return CliRunner()

    @pytest.fixture
    def capture_path(self, tmp_path):
        """A captured connection prefix with one v1 and one v2 header."""
        path = tmp_path / "capture.bin"
        path.write_bytes(V1 + build_header("v2:10.0.0.1 10.0.0.2 5000 443") + REQUEST)
        return path

    @pytest.fixture
    def plain_path(self, tmp_path):
        path = tmp_path / "plain.bin"
        path.write_bytes(REQUEST)
        return path

    def test_single_file_json_pretty(self, runner, capture_path):
        result = runner.invoke(app, ["decode", str(capture_path)])

        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["success"] is True
        assert payload["bytes_consumed"] == len(V1) + 28
        assert [h["version"] for h in payload["headers"]] == [1, 2]
        assert payload["headers"][1]["address_family"] == "AF_INET"
        assert payload["headers"][1]["source_port"] == "5000"

    def test_no_headers(self, runner, plain_path):
        result = runner.invoke(app, ["decode", str(plain_path)])

        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["headers"] == []
        assert payload["bytes_consumed"] == 0

    def test_multiple_files_jsonl(self, runner, capture_path, plain_path):
        result = runner.invoke(app, ["decode", str(capture_path), str(plain_path)])

        assert result.exit_code == 0
        lines = result.stdout.strip().splitlines()
        assert len(lines) == 2
        assert len(json.loads(lines[0])["headers"]) == 2
        assert json.loads(lines[1])["headers"] == []

    def test_force_jsonl_single_file(self, runner, capture_path):
        result = runner.invoke(app, ["decode", "--jsonl", str(capture_path)])

        assert result.exit_code == 0
        lines = result.stdout.strip().splitlines()
        assert len(lines) == 1
        assert json.loads(lines[0])["success"] is True

    def test_fields_filtering(self, runner, capture_path):
        result = runner.invoke(app, ["decode", "--fields", "version,source_address", str(capture_path)])

        assert result.exit_code == 0
        obj = json.loads(result.stdout)
        assert obj["headers"] == [
            {"version": 1, "source_address": "192.0.2.1"},
            {"version": 2, "source_address": "10.0.0.1"},
        ]

    def test_output_file_option(self, runner, capture_path):
        with tempfile.NamedTemporaryFile(mode="w", delete=False, suffix=".json") as tmp:
            tmp_path = tmp.name

        try:
            result = runner.invoke(app, ["decode", "-o", tmp_path, str(capture_path)])

            assert result.exit_code == 0
            assert result.stdout == ""  # Nothing to stdout when using -o

            with open(tmp_path, "r") as f:
                obj = json.load(f)
            assert obj["success"] is True
        finally:
            Path(tmp_path).unlink(missing_ok=True)

    def test_sync_option(self, runner, capture_path):
        result = runner.invoke(app, ["decode", "--sync", str(capture_path)])

        assert result.exit_code == 0
        obj = json.loads(result.stdout)
        assert len(obj["headers"]) == 2

    def test_nonexistent_file_error(self, runner):
        result = runner.invoke(app, ["decode", "/nonexistent/capture.bin"])

        assert result.exit_code == 1
        obj = json.loads(result.stdout)
        assert obj["success"] is False
        assert "No such file or directory" in obj["error"]

    def test_malformed_header_error(self, runner, tmp_path):
        path = tmp_path / "bad.bin"
        path.write_bytes(b"PROXY TCP4 too few\r\n" + REQUEST)
        result = runner.invoke(app, ["decode", "--sync", str(path)])

        assert result.exit_code == 1
        obj = json.loads(result.stdout)
        assert "got: 4, want: 6" in obj["error"]

    def test_limits_and_unbounded(self, runner, tmp_path):
        path = tmp_path / "long.bin"
        path.write_bytes(V1 * 40 + REQUEST)

        limited = runner.invoke(app, ["decode", str(path)])
        assert limited.exit_code == 1
        assert "more than 32" in json.loads(limited.stdout)["error"]

        unbounded = runner.invoke(app, ["decode", "--unbounded", str(path)])
        assert unbounded.exit_code == 0
        assert len(json.loads(unbounded.stdout)["headers"]) == 40

    def test_mixed_success_failure_exit_code(self, runner, capture_path):
        result = runner.invoke(app, ["decode", "--jsonl", str(capture_path), "/nonexistent/capture.bin"])

        assert result.exit_code == 1
        lines = result.stdout.strip().splitlines()
        assert len(lines) == 2
        assert json.loads(lines[0])["success"] is True
        assert json.loads(lines[1])["success"] is False

    def test_stdin_sources(self, runner, capture_path):
        result = runner.invoke(app, ["decode", "-"], input=f"{capture_path}\n\n")

        assert result.exit_code == 0
        assert json.loads(result.stdout)["success"] is True

    def test_no_input(self, runner):
        result = runner.invoke(app, ["decode"])

        assert result.exit_code == 1
        assert "No input files given." in result.output

    def test_remote_capture(self, runner, httpserver):
        httpserver.expect_request("/capture.bin").respond_with_data(V1 + REQUEST)
        result = runner.invoke(app, ["decode", httpserver.url_for("/capture.bin")])

        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["headers"][0]["destination_port"] == "80"


class TestProbe:
    """Test header specs and the probe command's argument handling."""

    def test_build_v1(self):
        assert build_header("v1:TCP4 192.0.2.1 198.51.100.7 1234 80") == V1

    def test_build_v2_inet(self):
        header = build_header("v2:192.0.2.1 198.51.100.7 1234 80")
        assert header[12:16] == b"\x21\x11\x00\x0c"
        assert len(header) == 28

    def test_build_v2_inet6(self):
        header = build_header("v2:::1 ::2 1 2")
        assert header[13] == 0x21
        assert len(header) == 52

    def test_build_v2_local(self):
        assert build_header("v2:local")[12:16] == b"\x20\x00\x00\x00"

    @pytest.mark.parametrize("spec", [
        "v3:TCP4 a b 1 2",
        "v1:TCP4 a b 1",
        "v2:1.2.3.4 5.6.7.8 1",
        "v2:not-an-ip 5.6.7.8 1 2",
        "v2:1.2.3.4 ::1 1 2",
        "v2:1.2.3.4 5.6.7.8 1 70000",
    ])
    def test_invalid_specs(self, spec):
        with pytest.raises(FormatError):
            build_header(spec)

    def test_invalid_spec_exit_code(self):
        result = CliRunner().invoke(app, ["probe", "127.0.0.1", "8080", "-H", "v9:nope"])

        assert result.exit_code == 2
        assert "Invalid header" in result.output

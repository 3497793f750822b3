"""Tests for local execution of the server command."""

import subprocess
import sys
from unittest.mock import MagicMock, patch

import pytest

from pipe_status.dispatch import process_request
from pipe_status.models import Request, Response, ServerError
from pipe_status.remote.executor import (
    default_executable,
    is_local_host,
    run_local,
    server_args,
)
from pipe_status.remote.framing import encode_frame


def _completed(stdout: bytes, returncode: int = 0) -> MagicMock:
    result = MagicMock()
    result.stdout = stdout
    result.stderr = b""
    result.returncode = returncode
    return result


class TestServerArgs:
    def test_same_shape_as_remote_command(self, stage):
        request = Request(stage=stage, run_number_list=["1001"])

        assert server_args(request) == ["server", f"--request={request.to_json()}"]

    def test_default_executable_is_this_interpreter(self):
        assert default_executable() == [sys.executable, "-m", "pipe_status"]


class TestRunLocal:
    @patch("pipe_status.remote.executor.subprocess.run")
    def test_decodes_framed_stdout(self, mock_run, stage, big_disk):
        request = Request(
            stage=stage, big_disk=str(big_disk), run_number_list=["1001", "1002"]
        )
        expected = process_request(request.to_json())
        mock_run.return_value = _completed(
            b"some warning\n" + encode_frame(expected).encode() + b"\n"
        )

        response = run_local(["pipe-status"], request, timeout=30)

        assert response == expected
        cmd = mock_run.call_args.args[0]
        assert cmd == ["pipe-status", *server_args(request)]
        assert mock_run.call_args.kwargs["timeout"] == 30

    @patch("pipe_status.remote.executor.subprocess.run")
    def test_no_frame_is_request_parse(self, mock_run, stage):
        mock_run.return_value = _completed(b"Traceback (most recent call last)", 1)

        response = run_local(["pipe-status"], Request(stage=stage), timeout=30)

        assert response == Response.fail(ServerError.REQUEST_PARSE)

    @patch("pipe_status.remote.executor.subprocess.run")
    def test_timeout(self, mock_run, stage):
        mock_run.side_effect = subprocess.TimeoutExpired(["pipe-status"], 1)

        response = run_local(["pipe-status"], Request(stage=stage), timeout=1)

        assert response.error == ServerError.TIMEOUT

    @patch("pipe_status.remote.executor.subprocess.run")
    def test_missing_executable_is_transport(self, mock_run, stage):
        mock_run.side_effect = FileNotFoundError("pipe-status")

        response = run_local(["pipe-status"], Request(stage=stage), timeout=1)

        assert response.error == ServerError.TRANSPORT

    def test_child_process_end_to_end(self, stage, big_disk, tmp_path, monkeypatch):
        """Runs the real server command through the installed package."""
        monkeypatch.setenv("HOME", str(tmp_path))
        monkeypatch.setenv("BIGGUS_DISKUS", str(big_disk))
        request = Request(stage=stage, run_number_list=["1001", "1002"])

        response = run_local(None, request, timeout=60)

        assert response.is_success
        assert response.success.progress == pytest.approx(0.75)


class TestIsLocalHost:
    @pytest.mark.parametrize("host", [None, "local", "LOCAL", "localhost"])
    def test_always_local(self, host):
        assert is_local_host(host)

    def test_own_hostname(self):
        import socket

        assert is_local_host(socket.gethostname())

    def test_other_host(self):
        assert not is_local_host("definitely-not-this-machine.invalid")

"""Shared fixtures.

Everything runs offline: SSH connections and shell channels are replaced by
in-memory doubles, and stage checks run against files under ``tmp_path``.
"""

from __future__ import annotations

import logging

import pytest

from pipe_status.pipeline.models import Pipeline, Stage


@pytest.fixture(autouse=True)
def _isolate_logs(tmp_path, monkeypatch):
    """Keep CLI log files out of the real home directory.

    Handlers added by a CLI invocation are removed afterwards so later tests
    do not log into a closed CliRunner stream.
    """
    from pipe_status.cli import logging as cli_logging

    monkeypatch.setattr(cli_logging, "LOG_DIR", tmp_path / "logs")
    yield
    package_logger = logging.getLogger("pipe_status")
    for handler in package_logger.handlers[:]:
        package_logger.removeHandler(handler)
        handler.close()


@pytest.fixture
def stage() -> Stage:
    return Stage(
        label="co_reg",
        directory="{big_disk}/{run_number}/co_reg",
        file_pattern=r".*\.nii\.gz",
        expected_count=2,
    )


@pytest.fixture
def big_disk(tmp_path):
    """Big disk where run 1001 is finished and run 1002 is half done."""
    root = tmp_path / "bigdisk"
    done = root / "1001" / "co_reg"
    done.mkdir(parents=True)
    (done / "a.nii.gz").write_text("x")
    (done / "b.nii.gz").write_text("x")
    half = root / "1002" / "co_reg"
    half.mkdir(parents=True)
    (half / "a.nii.gz").write_text("x")
    (half / "notes.txt").write_text("x")
    return root


@pytest.fixture
def pipeline() -> Pipeline:
    """S1 has no preference, S2 prefers h1, S3 prefers h2."""
    return Pipeline(
        label="p1",
        stages=[
            Stage(label="s1"),
            Stage(label="s2", preferred_computer=["h1"]),
            Stage(label="s3", preferred_computer=["h2"]),
        ],
    )

"""Tests for stage definitions and the file check."""

import socket

import pytest
from pydantic import ValidationError

from pipe_status.pipeline.models import Pipeline, Stage
from pipe_status.status import StatusState


class TestFileCheck:
    def test_counts_matching_files_per_run(self, stage, big_disk):
        status = stage.file_check(str(big_disk), ["1001", "1002"])

        assert status.label == "co_reg"
        assert [(r.run_number, r.found, r.expected) for r in status.runs] == [
            ("1001", 2, 2),
            ("1002", 1, 2),
        ]
        assert status.progress == pytest.approx(0.75)
        assert status.state == StatusState.IN_PROGRESS
        assert status.host == socket.gethostname()

    def test_complete(self, stage, big_disk):
        status = stage.file_check(str(big_disk), ["1001"])

        assert status.state == StatusState.COMPLETE
        assert status.progress == 1.0

    def test_missing_directory_is_not_started(self, stage, big_disk):
        status = stage.file_check(str(big_disk), ["9999"])

        assert status.state == StatusState.NOT_STARTED
        assert status.runs[0].found == 0

    def test_extra_files_do_not_exceed_expected(self, big_disk):
        stage = Stage(
            label="any", directory="{big_disk}/{run_number}/co_reg", expected_count=1
        )

        status = stage.file_check(str(big_disk), ["1001"])

        assert status.runs[0].found == 2
        assert status.progress == 1.0

    def test_pattern_must_match_whole_name(self, big_disk):
        stage = Stage(
            label="nii",
            directory="{big_disk}/{run_number}/co_reg",
            file_pattern=r"a\.nii",
        )

        assert stage.file_check(str(big_disk), ["1001"]).runs[0].found == 0


class TestStageValidation:
    def test_invalid_pattern_rejected(self):
        with pytest.raises(ValidationError, match="invalid file_pattern"):
            Stage(label="bad", file_pattern="(")

    def test_negative_count_rejected(self):
        with pytest.raises(ValidationError):
            Stage(label="bad", expected_count=-1)

    @pytest.mark.parametrize(
        "directory", ["{big_disk}/{runno}", "{big_disk}/{0}", "{big_disk}/{run_number"]
    )
    def test_unknown_directory_placeholder_rejected(self, directory):
        with pytest.raises(ValidationError, match="invalid directory"):
            Stage(label="bad", directory=directory)

    def test_directory_without_placeholders_allowed(self):
        assert Stage(label="fixed", directory="/data/fixed").directory == "/data/fixed"


class TestPipelineHosts:
    def test_hosts_in_first_seen_order(self):
        pipeline = Pipeline(
            label="p",
            preferred_computer=["h3"],
            stages=[
                Stage(label="a", preferred_computer=["h1", "h3"]),
                Stage(label="b"),
                Stage(label="c", preferred_computer=["h2", "h1"]),
            ],
        )

        assert pipeline.hosts() == ["h3", "h1", "h2"]

    def test_no_hosts(self):
        assert Pipeline(label="p", stages=[Stage(label="a")]).hosts() == []

    def test_requires_stages(self):
        with pytest.raises(ValidationError):
            Pipeline(label="empty", stages=[])

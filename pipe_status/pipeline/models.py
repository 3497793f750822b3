"""
Pipeline and stage definitions.

A pipeline is an ordered list of stages. Each stage knows where its output
files live relative to a big-disk root and how many files a finished run
leaves behind, which is all the status check needs.

Example pipeline file::

    label: diffusion
    preferred_computer: [civmcluster1]
    stages:
      - label: co_reg
        directory: "{big_disk}/{run_number}/co_reg"
        file_pattern: ".*\\.nii\\.gz"
        expected_count: 6
      - label: tensor
        preferred_computer: [delos]
        directory: "{big_disk}/{run_number}/tensor"
        file_pattern: "tensor_.*\\.nhdr"
"""

from __future__ import annotations

import logging
import re
import socket
from collections.abc import Sequence
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pipe_status.status import RunProgress, Status

logger = logging.getLogger(__name__)


class Stage(BaseModel):
    """One step of a pipeline."""

    model_config = ConfigDict(frozen=True)

    label: str
    preferred_computer: list[str] | None = Field(
        default=None,
        description="Hosts that can see this stage's big disk",
    )
    directory: str = Field(
        default="{big_disk}/{run_number}",
        description="Output directory template with {big_disk} and {run_number}",
    )
    file_pattern: str = Field(
        default=".*", description="Regex matched against whole file names"
    )
    expected_count: int = Field(default=1, ge=0)

    @field_validator("file_pattern")
    @classmethod
    def _compiles(cls, value: str) -> str:
        try:
            re.compile(value)
        except re.error as e:
            raise ValueError(f"invalid file_pattern {value!r}: {e}") from e
        return value

    @field_validator("directory")
    @classmethod
    def _formats(cls, value: str) -> str:
        try:
            value.format(big_disk="/big_disk", run_number="run_number")
        except (KeyError, IndexError, AttributeError, TypeError, ValueError) as e:
            raise ValueError(
                f"invalid directory {value!r}: only {{big_disk}} and {{run_number}}"
                f" may be used ({e!r})"
            ) from e
        return value

    def run_directory(self, big_disk: str, run_number: str) -> Path:
        return Path(self.directory.format(big_disk=big_disk, run_number=run_number))

    def file_check(self, big_disk: str, run_number_list: Sequence[str]) -> Status:
        """Count finished output files for every run number.

        Args:
            big_disk: Root of the large-storage mount on this machine
            run_number_list: Run identifiers to check

        Returns:
            Aggregated Status; missing or unreadable directories count as zero
            files.
        """
        pattern = re.compile(self.file_pattern)
        runs = []
        for run_number in run_number_list:
            directory = self.run_directory(big_disk, run_number)
            found = 0
            try:
                found = sum(
                    1
                    for entry in directory.iterdir()
                    if entry.is_file() and pattern.fullmatch(entry.name)
                )
            except FileNotFoundError:
                logger.debug("%s: %s does not exist", self.label, directory)
            except OSError as e:
                logger.warning("%s: unable to read %s: %s", self.label, directory, e)
            runs.append(
                RunProgress(
                    run_number=run_number, found=found, expected=self.expected_count
                )
            )
        return Status.from_runs(self.label, runs, host=socket.gethostname())


class Pipeline(BaseModel):
    """Named, ordered sequence of stages."""

    model_config = ConfigDict(frozen=True)

    label: str
    preferred_computer: list[str] | None = None
    stages: list[Stage] = Field(min_length=1)

    def hosts(self) -> list[str]:
        """Distinct hosts this pipeline may dispatch to, in first-seen order."""
        hosts = list(self.preferred_computer or [])
        for stage in self.stages:
            hosts.extend(stage.preferred_computer or [])
        return list(dict.fromkeys(hosts))

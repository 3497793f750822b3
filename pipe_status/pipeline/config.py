"""Load pipeline definitions from a directory of YAML files."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

import yaml
from pydantic import ValidationError

from pipe_status.pipeline.models import Pipeline

logger = logging.getLogger(__name__)

PIPELINE_SUFFIXES = (".yaml", ".yml")


class PipelineConfigError(Exception):
    """Raised when a pipeline file cannot be read or validated."""

    def __init__(self, path: Path, message: str):
        self.path = path
        super().__init__(f"{path}: {message}")


@dataclass
class ConfigCollection:
    """All pipelines known to this machine, keyed by label."""

    pipelines: dict[str, Pipeline] = field(default_factory=dict)

    @classmethod
    def from_dir(cls, config_dir: Path) -> ConfigCollection:
        """Load every pipeline file in ``config_dir``.

        Raises:
            PipelineConfigError: If the directory is missing, a file does not
                parse, or two files declare the same pipeline label.
        """
        if not config_dir.is_dir():
            raise PipelineConfigError(config_dir, "pipeline config directory not found")

        collection = cls()
        for path in sorted(config_dir.iterdir()):
            if path.suffix not in PIPELINE_SUFFIXES or not path.is_file():
                continue
            pipeline = _load_pipeline(path)
            if pipeline.label in collection.pipelines:
                raise PipelineConfigError(
                    path, f"duplicate pipeline label '{pipeline.label}'"
                )
            collection.pipelines[pipeline.label] = pipeline

        logger.debug(
            "Loaded %d pipelines from %s", len(collection.pipelines), config_dir
        )
        return collection

    def get_pipe(self, label: str) -> Pipeline:
        """Return the pipeline called ``label``.

        Raises:
            KeyError: If no such pipeline was loaded.
        """
        try:
            return self.pipelines[label]
        except KeyError:
            known = ", ".join(sorted(self.pipelines)) or "none"
            raise KeyError(f"unknown pipeline '{label}' (known: {known})") from None

    def servers(self, label: str) -> list[str]:
        """Distinct host names the pipeline ``label`` may need."""
        return self.get_pipe(label).hosts()


def _load_pipeline(path: Path) -> Pipeline:
    try:
        with path.open() as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise PipelineConfigError(path, str(e)) from e

    if not isinstance(data, dict):
        raise PipelineConfigError(path, "expected a mapping at top level")
    data.setdefault("label", path.stem)
    try:
        return Pipeline.model_validate(data)
    except ValidationError as e:
        raise PipelineConfigError(path, str(e)) from e

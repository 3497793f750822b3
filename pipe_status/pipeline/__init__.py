"""Pipeline definitions and the stage file check."""

from pipe_status.pipeline.config import ConfigCollection, PipelineConfigError
from pipe_status.pipeline.models import Pipeline, Stage

__all__ = [
    "ConfigCollection",
    "Pipeline",
    "PipelineConfigError",
    "Stage",
]

"""
Request/response contract shared by the client and the server command.

The same JSON documents travel over both transports: as a command-line
argument of a local child process, and as a command line typed into a
remote login shell. Responses are externally tagged so either side can
tell success from failure without a schema::

    {"Success": {"label": "co_reg", "state": "Complete", ...}}
    {"Error": "BiggusDiskusNotSet"}
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from pipe_status.pipeline.models import Stage
from pipe_status.status import Status

__all__ = [
    "Request",
    "Response",
    "ServerError",
]


class ServerError(str, Enum):
    """Failures reported as data rather than raised.

    ``RequestParse`` and ``BiggusDiskusNotSet`` come from the server itself.
    The remaining kinds are produced on the client side when no usable
    response frame could be read.
    """

    REQUEST_PARSE = "RequestParse"
    BIGGUS_DISKUS_NOT_SET = "BiggusDiskusNotSet"
    TIMEOUT = "Timeout"
    TRANSPORT = "Transport"
    HOST_UNAVAILABLE = "HostUnavailable"


class Request(BaseModel):
    """Status check of one stage, addressed to one machine."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    stage: Stage
    big_disk: str | None = None
    run_number_list: list[str] = Field(default_factory=list)

    def to_json(self) -> str:
        return self.model_dump_json()

    @classmethod
    def from_json(cls, text: str) -> Request:
        return cls.model_validate_json(text)


class Response(BaseModel):
    """Either a Status or a ServerError, never both."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    success: Status | None = Field(default=None, alias="Success")
    error: ServerError | None = Field(default=None, alias="Error")

    @model_validator(mode="after")
    def _exactly_one(self) -> Response:
        if (self.success is None) == (self.error is None):
            raise ValueError("response must carry exactly one of Success or Error")
        return self

    @classmethod
    def ok(cls, status: Status) -> Response:
        return cls(success=status)

    @classmethod
    def fail(cls, error: ServerError) -> Response:
        return cls(error=error)

    @property
    def is_success(self) -> bool:
        return self.success is not None

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)

    @classmethod
    def from_json(cls, text: str) -> Response:
        return cls.model_validate_json(text)

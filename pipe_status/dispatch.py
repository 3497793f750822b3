"""
Stage dispatch: where each stage's status check runs.

Client side, stages are visited in pipeline order. Preferred computers
accumulate over the whole run: the pipeline default seeds the set and each
stage adds its own hosts, so once a stage has asked for a host every later
stage is checked there too. While the set is empty the check runs locally.

Server side, ``process_request`` turns the JSON a client sent into a
Response, and ``serve`` writes it as a frame to stdout.
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from functools import partial
from typing import TextIO

from pydantic import ValidationError

from pipe_status import settings
from pipe_status.models import Request, Response, ServerError
from pipe_status.pipeline.models import Pipeline, Stage
from pipe_status.remote.executor import is_local_host, run_local
from pipe_status.remote.framing import encode_frame
from pipe_status.remote.pool import HostFailure, SessionPool

logger = logging.getLogger(__name__)

LocalRunner = Callable[[Request], Response]


@dataclass(frozen=True)
class StageResult:
    """Response of one stage from one machine (``host`` None = local)."""

    stage: str
    host: str | None
    response: Response


@dataclass
class RunReport:
    pipeline: str
    results: list[StageResult] = field(default_factory=list)
    failures: dict[str, HostFailure] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failures and all(r.response.is_success for r in self.results)


class Dispatcher:
    """Client-side dispatch of stages for one pipeline run."""

    def __init__(
        self,
        run_number_list: Iterable[str],
        *,
        pool: SessionPool | None = None,
        big_disks: Mapping[str, str] | None = None,
        preferred_computer: Iterable[str] | None = None,
        local_runner: LocalRunner | None = None,
    ):
        self.run_number_list = list(run_number_list)
        self.pool = pool if pool is not None else SessionPool()
        self.big_disks = dict(big_disks or {})
        self.local_runner = local_runner or partial(run_local, None)
        # Ordered set, extended in place and never reset during a run
        self._preferred: dict[str, None] = dict.fromkeys(preferred_computer or [])

    @property
    def preferred_computers(self) -> list[str]:
        return list(self._preferred)

    def targets(self, stage: Stage) -> list[str | None]:
        """Add the stage's hosts to the run and return where it is checked.

        Returns:
            Every accumulated host in insertion order, or ``[None]`` for a
            local check when no host has been preferred yet.
        """
        self._preferred.update(dict.fromkeys(stage.preferred_computer or []))
        if not self._preferred:
            return [None]
        return list(self._preferred)

    def dispatch_stage(self, stage: Stage) -> list[StageResult]:
        results = []
        for host in self.targets(stage):
            response = self._dispatch(stage, host)
            where = host or "local"
            if response.is_success:
                state = response.success.state.value
                logger.info("%s on %s: %s", stage.label, where, state)
            else:
                error = response.error.value
                logger.warning("%s on %s failed: %s", stage.label, where, error)
            results.append(StageResult(stage.label, host, response))
        return results

    def _dispatch(self, stage: Stage, host: str | None) -> Response:
        request = Request(
            stage=stage,
            big_disk=self.big_disks.get(host) if host else None,
            run_number_list=self.run_number_list,
        )
        if host is None or is_local_host(host):
            return self.local_runner(request)

        session = self.pool.get(host)
        if session is None:
            return Response.fail(ServerError.HOST_UNAVAILABLE)
        return session.submit(request)

    def run(self, pipeline: Pipeline) -> RunReport:
        """Dispatch every stage of ``pipeline`` in order."""
        report = RunReport(pipeline=pipeline.label, failures=dict(self.pool.failures))
        for stage in pipeline.stages:
            report.results.extend(self.dispatch_stage(stage))
        return report


def run_pipeline(
    pipeline: Pipeline,
    run_number_list: Iterable[str],
    *,
    pool: SessionPool | None = None,
    big_disks: Mapping[str, str] | None = None,
    local_runner: LocalRunner | None = None,
) -> RunReport:
    """Check all stages of ``pipeline``, seeded with its default hosts."""
    dispatcher = Dispatcher(
        run_number_list,
        pool=pool,
        big_disks=big_disks,
        preferred_computer=pipeline.preferred_computer,
        local_runner=local_runner,
    )
    return dispatcher.run(pipeline)


# ============================================================================
# Server side
# ============================================================================


def process_request(
    request_text: str, environ: Mapping[str, str] | None = None
) -> Response:
    """Check the stage described by ``request_text`` on this machine.

    Args:
        request_text: Request JSON as received on the command line
        environ: Environment to resolve ``BIGGUS_DISKUS`` from
            (None = process environment)

    Returns:
        ``Success`` with the stage status, ``RequestParse`` if the text is
        not a request, ``BiggusDiskusNotSet`` if neither the request nor the
        environment names a big disk.
    """
    try:
        request = Request.from_json(request_text)
    except ValidationError as e:
        logger.warning("Unable to parse request: %s", e)
        return Response.fail(ServerError.REQUEST_PARSE)

    if environ is None:
        environ = os.environ
    big_disk = request.big_disk
    if big_disk is None:
        big_disk = environ.get(settings.BIGGUS_DISKUS_ENV)
    if not big_disk:
        logger.warning("%s is not set", settings.BIGGUS_DISKUS_ENV)
        return Response.fail(ServerError.BIGGUS_DISKUS_NOT_SET)

    status = request.stage.file_check(big_disk, request.run_number_list)
    return Response.ok(status)


def serve(request_text: str, out: TextIO | None = None) -> Response:
    """Process a request and write its frame to ``out`` (default stdout)."""
    response = process_request(request_text)
    out = out or sys.stdout
    out.write(encode_frame(response) + "\n")
    out.flush()
    return response

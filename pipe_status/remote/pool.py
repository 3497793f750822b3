"""Open the sessions a pipeline run needs, recording hosts that fail."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path

from pipe_status.remote.executor import is_local_host
from pipe_status.remote.session import Session, SSHConnectionError
from pipe_status.remote.ssh_config import (
    HostLookupError,
    load_ssh_config,
    resolve_login,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HostFailure:
    """Why a host has no session for this run."""

    host: str
    message: str
    suggestion: str | None = None


@dataclass
class SessionPool:
    """Sessions keyed by host alias, closed together at the end of a run."""

    sessions: dict[str, Session] = field(default_factory=dict)
    failures: dict[str, HostFailure] = field(default_factory=dict)

    def get(self, host: str) -> Session | None:
        """Session for ``host``, or None if the host failed setup.

        Raises:
            KeyError: If ``host`` was never part of setup. Every host a
                pipeline can target is connected (or recorded as failed)
                before dispatch starts, so this is a caller bug.
        """
        if host in self.failures:
            return None
        try:
            return self.sessions[host]
        except KeyError:
            raise KeyError(f"host not found: {host} was never connected") from None

    def close(self) -> None:
        for host, session in self.sessions.items():
            try:
                session.close()
            except Exception as e:
                logger.warning("Error closing session to %s: %s", host, e)

    def __enter__(self) -> SessionPool:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def connect_hosts(
    hosts: Iterable[str],
    ssh_config_path: Path,
    *,
    session_factory: Callable[..., Session] = Session.create,
    timeout: float | None = None,
    remote_command: str | None = None,
) -> SessionPool:
    """Open one session per remote host.

    Hosts that resolve to this machine are skipped; the dispatcher runs
    them locally. A host without an SSH entry, without a user name, or that
    refuses the connection is recorded in ``failures`` and does not stop
    the others.

    Raises:
        SSHConfigMissingError: If remote hosts are needed but the SSH
            configuration file does not exist.
    """
    remote_hosts = [host for host in dict.fromkeys(hosts) if not is_local_host(host)]
    pool = SessionPool()
    if not remote_hosts:
        return pool

    config = load_ssh_config(ssh_config_path)
    try:
        for host in remote_hosts:
            try:
                login = resolve_login(config, host)
                session = session_factory(
                    login.hostname,
                    login.username,
                    login.port,
                    identity_file=login.identity_file,
                    timeout=timeout,
                    remote_command=remote_command,
                )
            except (HostLookupError, SSHConnectionError) as e:
                logger.warning("Skipping %s: %s", host, e)
                pool.failures[host] = HostFailure(host, str(e), e.suggestion)
                continue
            pool.sessions[host] = session
    except BaseException:
        pool.close()
        raise
    return pool

"""
Persistent SSH shell sessions to remote hosts.

One Session is opened per host at the start of a run and reused for every
stage that targets that host. Requests are typed into an interactive login
shell, so the remote side runs with the user's normal environment
(``BIGGUS_DISKUS``, PATH, modules), and the response is recovered from the
shell output with the framing protocol.

A Session is not thread-safe: the shell channel carries one conversation.
"""

from __future__ import annotations

import logging
import shlex
import time
from collections.abc import Iterator
from enum import Enum

from fabric import Connection
from paramiko.ssh_exception import SSHException

from pipe_status import settings
from pipe_status.models import Request, Response, ServerError
from pipe_status.remote.framing import decode_response, escape_payload

logger = logging.getLogger(__name__)

RECV_BYTES = 32768


class ConnectionFailure(str, Enum):
    UNABLE_TO_CONNECT = "UnableToConnect"
    UNABLE_TO_START_SHELL = "UnableToStartShell"


class SSHConnectionError(Exception):
    """Raised when a session to a host cannot be established.

    ``kind`` tells apart a failed login (network, DNS, authentication) from
    a connection that succeeded but refused to open a shell.
    """

    def __init__(
        self,
        ssh_host: str,
        kind: ConnectionFailure,
        message: str,
        suggestion: str | None = None,
    ):
        self.ssh_host = ssh_host
        self.kind = kind
        self.suggestion = suggestion
        super().__init__(message)


class Session:
    """An open connection plus interactive shell on one host."""

    def __init__(
        self,
        hostname: str,
        username: str,
        port: int,
        connection,
        shell,
        *,
        timeout: float | None = None,
        remote_command: str | None = None,
    ):
        self.hostname = hostname
        self.username = username
        self.port = port
        self.timeout = timeout if timeout is not None else settings.get_timeout()
        self.remote_command = remote_command or settings.get_remote_command()
        self._connection = connection
        self._shell = shell
        self._broken = False
        self._closed = False
        self._eof = False

    @classmethod
    def create(
        cls,
        hostname: str,
        username: str,
        port: int = 22,
        *,
        identity_file: str | None = None,
        connect_timeout: int = 30,
        timeout: float | None = None,
        remote_command: str | None = None,
    ) -> Session:
        """Connect to ``hostname`` and start an interactive shell.

        Raises:
            SSHConnectionError: ``UNABLE_TO_CONNECT`` if the login fails,
                ``UNABLE_TO_START_SHELL`` if no shell channel can be opened.
        """
        connect_kwargs = {"key_filename": identity_file} if identity_file else {}
        connection = Connection(
            hostname,
            user=username,
            port=port,
            connect_timeout=connect_timeout,
            connect_kwargs=connect_kwargs,
        )

        try:
            connection.open()
        except (SSHException, OSError) as e:
            connection.close()
            raise SSHConnectionError(
                hostname,
                ConnectionFailure.UNABLE_TO_CONNECT,
                f"unable to connect to {hostname}: {e}",
                suggestion=(
                    "Make sure you have password-less access! "
                    f"You may need to run ssh-copy-id {username}@{hostname}"
                ),
            ) from e

        try:
            shell = connection.client.invoke_shell()
        except (SSHException, OSError) as e:
            connection.close()
            raise SSHConnectionError(
                hostname,
                ConnectionFailure.UNABLE_TO_START_SHELL,
                f"unable to start a shell on {hostname}: {e}",
            ) from e

        logger.info("Opened shell session to %s@%s:%d", username, hostname, port)
        return cls(
            hostname,
            username,
            port,
            connection,
            shell,
            timeout=timeout,
            remote_command=remote_command,
        )

    @property
    def usable(self) -> bool:
        return not (self._closed or self._broken)

    def command_line(self, request: Request) -> str:
        """Shell line that runs the server command for ``request``."""
        payload = escape_payload(request.to_json())
        return f"{self.remote_command} server --request={shlex.quote(payload)}\n"

    def submit(self, request: Request) -> Response:
        """Run ``request`` on the remote host and wait for its response.

        Blocks until a frame arrives, the channel ends, or the read deadline
        passes. After a timeout or a channel failure the session is closed
        and every later submit returns ``HostUnavailable``: output of the
        abandoned request could otherwise be taken for the next response.
        """
        if not self.usable:
            return Response.fail(ServerError.HOST_UNAVAILABLE)

        logger.debug("Submitting stage %s to %s", request.stage.label, self.hostname)
        try:
            self._shell.sendall(self.command_line(request).encode())
        except (SSHException, OSError) as e:
            logger.warning("Unable to write to shell on %s: %s", self.hostname, e)
            self._abandon()
            return Response.fail(ServerError.TRANSPORT)

        deadline = time.monotonic() + self.timeout
        response = decode_response(self._chunks(deadline))

        if self._eof or response.error in (ServerError.TIMEOUT, ServerError.TRANSPORT):
            self._abandon()
        return response

    def _chunks(self, deadline: float) -> Iterator[bytes]:
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise TimeoutError(f"no response from {self.hostname}")
            self._shell.settimeout(remaining)
            try:
                chunk = self._shell.recv(RECV_BYTES)
            except SSHException as e:
                raise OSError(f"shell on {self.hostname} failed: {e}") from e
            if not chunk:
                self._eof = True
                return
            yield chunk

    def _abandon(self) -> None:
        logger.warning("Abandoning session to %s", self.hostname)
        self._broken = True
        self.close()

    def close(self) -> None:
        """Close the shell and the connection. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        try:
            self._shell.close()
        finally:
            self._connection.close()
        logger.debug("Closed session to %s", self.hostname)

    def __enter__(self) -> Session:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "open" if self.usable else "closed"
        return f"Session({self.username}@{self.hostname}:{self.port}, {state})"

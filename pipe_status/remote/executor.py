"""
Local execution of the server command.

Runs ``pipe-status server --request=...`` as a child process with the same
argument shape a Session types into a remote shell, and decodes the child's
stdout with the same framing reader, so a local check is indistinguishable
from a remote one.

Functions:
- run_local(): Execute a request in a child process
- server_args(): Command-line arguments of the server command
- is_local_host(): Check if a host name refers to this machine
"""

import logging
import socket
import subprocess
import sys
from collections.abc import Sequence
from functools import lru_cache

from pipe_status import settings
from pipe_status.models import Request, Response, ServerError
from pipe_status.remote.framing import decode_response, escape_payload

logger = logging.getLogger(__name__)


def default_executable() -> list[str]:
    """Command that starts this program with the running interpreter."""
    return [sys.executable, "-m", "pipe_status"]


def server_args(request: Request) -> list[str]:
    """Arguments of the server command for ``request``."""
    return ["server", f"--request={escape_payload(request.to_json())}"]


def run_local(
    executable: Sequence[str] | None,
    request: Request,
    timeout: float | None = None,
) -> Response:
    """Execute ``request`` in a child process of this program.

    Args:
        executable: Command prefix that starts pipe-status (None = this
            interpreter running the installed package)
        request: Request to process
        timeout: Seconds to wait for the child (None = configured default)

    Returns:
        The Response framed in the child's stdout. ``Timeout`` if the child
        outlives the deadline, ``Transport`` if it cannot be started.
    """
    cmd = [*(executable or default_executable()), *server_args(request)]
    if timeout is None:
        timeout = settings.get_timeout()

    logger.debug("Running stage %s locally", request.stage.label)
    try:
        result = subprocess.run(cmd, capture_output=True, timeout=timeout)
    except subprocess.TimeoutExpired:
        logger.warning(
            "Local check of %s timed out after %ss", request.stage.label, timeout
        )
        return Response.fail(ServerError.TIMEOUT)
    except OSError as e:
        logger.warning("Unable to start %s: %s", cmd[0], e)
        return Response.fail(ServerError.TRANSPORT)

    if result.stderr:
        logger.debug("server stderr: %s", result.stderr[:500])
    if result.returncode != 0:
        logger.warning("server exited with status %d", result.returncode)

    return decode_response([result.stdout])


# ============================================================================
# Hostname Resolution
# ============================================================================


@lru_cache(maxsize=1)
def _get_local_hostnames() -> set[str]:
    """Get all hostnames that refer to this machine."""
    hostnames = {"localhost", "127.0.0.1", "::1"}

    hostname = socket.gethostname()
    hostnames.add(hostname.lower())
    hostnames.add(hostname.split(".")[0].lower())

    try:
        fqdn = socket.getfqdn()
        hostnames.add(fqdn.lower())
        hostnames.add(fqdn.split(".")[0].lower())
    except OSError:
        pass

    return hostnames


def is_local_host(host: str | None) -> bool:
    """Determine if ``host`` refers to the local machine.

    ``None`` and the explicit name ``"local"`` are always local; otherwise
    the name is compared with this machine's hostname, FQDN and short name.
    """
    if host is None:
        return True
    host_lower = host.lower()
    if host_lower == "local":
        return True
    return host_lower in _get_local_hostnames()

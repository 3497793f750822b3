"""
Remote and local execution of the server command.

Key pieces:
- Session: persistent SSH shell to one host, one request per submit()
- SessionPool: every session a run needs, plus hosts that failed setup
- run_local(): same request/response exchange through a child process
- encode_frame() / decode_response(): framing shared by both transports
"""

from pipe_status.remote.executor import is_local_host, run_local, server_args
from pipe_status.remote.framing import (
    FrameDecoder,
    decode_response,
    encode_frame,
    escape_payload,
)
from pipe_status.remote.pool import HostFailure, SessionPool, connect_hosts
from pipe_status.remote.session import (
    ConnectionFailure,
    Session,
    SSHConnectionError,
)
from pipe_status.remote.ssh_config import (
    HostLogin,
    HostLookupError,
    SSHConfigMissingError,
    load_ssh_config,
    resolve_login,
)

__all__ = [
    "ConnectionFailure",
    "FrameDecoder",
    "HostFailure",
    "HostLogin",
    "HostLookupError",
    "SSHConfigMissingError",
    "SSHConnectionError",
    "Session",
    "SessionPool",
    "connect_hosts",
    "decode_response",
    "encode_frame",
    "escape_payload",
    "is_local_host",
    "load_ssh_config",
    "resolve_login",
    "run_local",
    "server_args",
]

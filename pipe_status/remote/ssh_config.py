"""Login details for remote hosts from the user's SSH client configuration."""

from __future__ import annotations

import fnmatch
import logging
from dataclasses import dataclass
from pathlib import Path

from paramiko import SSHConfig

logger = logging.getLogger(__name__)

DEFAULT_SSH_PORT = 22


class SSHConfigMissingError(Exception):
    """Raised when there is no SSH client configuration file at all."""

    def __init__(self, path: Path):
        self.path = path
        super().__init__(
            f"no ssh config found at {path}! You need to set this up first!"
        )


class HostLookupError(Exception):
    """Raised when a host has no usable entry in the SSH configuration."""

    def __init__(self, ssh_host: str, message: str, suggestion: str | None = None):
        self.ssh_host = ssh_host
        self.suggestion = suggestion
        super().__init__(message)


@dataclass(frozen=True)
class HostLogin:
    """Everything needed to open a session to one host alias."""

    alias: str
    hostname: str
    username: str
    port: int = DEFAULT_SSH_PORT
    identity_file: str | None = None


def load_ssh_config(path: Path) -> SSHConfig:
    """Parse an SSH client configuration file.

    Raises:
        SSHConfigMissingError: If ``path`` does not exist.
    """
    if not path.exists():
        raise SSHConfigMissingError(path)
    return SSHConfig.from_path(str(path))


def resolve_login(config: SSHConfig, alias: str) -> HostLogin:
    """Look up the login for ``alias``.

    A ``Host`` block naming the alias (or matching it by pattern) and a
    ``User`` entry are both required.

    Raises:
        HostLookupError: If the host or its user name is not configured.
    """
    if alias not in config.get_hostnames() and not _matches_pattern(config, alias):
        raise HostLookupError(
            alias,
            f"we didn't find a ssh config for {alias}",
            suggestion="Add a Host entry for it to your .ssh/config file",
        )

    options = config.lookup(alias)
    username = options.get("user")
    if not username:
        raise HostLookupError(
            alias,
            f"we didn't find a username for {alias}",
            suggestion="Specify the User for this host in .ssh/config",
        )

    identity_files = options.get("identityfile") or []
    return HostLogin(
        alias=alias,
        hostname=options.get("hostname", alias),
        username=username,
        port=int(options.get("port", DEFAULT_SSH_PORT)),
        identity_file=identity_files[0] if identity_files else None,
    )


def _matches_pattern(config: SSHConfig, alias: str) -> bool:
    # get_hostnames() lists literal patterns; wildcard blocks like "Host *"
    # must not count as an entry for every host.
    return any(
        fnmatch.fnmatch(alias, pattern)
        for pattern in config.get_hostnames()
        if pattern != "*" and not pattern.startswith("!")
    )

"""Project settings loaded from pyproject.toml [tool.pipe-status] section.

Configuration keys:
  [tool.pipe-status]
  timeout         : seconds to wait for a response frame (local and remote)
  remote-command  : command that starts pipe-status on remote hosts
  pipe-configs    : directory holding pipeline YAML files
  ssh-config      : SSH client configuration file

All settings support environment variable overrides (PIPE_STATUS_* prefix).
``BIGGUS_DISKUS`` is read by the server side when a request carries no
big-disk override.
"""

import importlib.resources
import os
import tomllib
from functools import cache
from pathlib import Path

# Environment variable holding the default big-disk path on a server host
BIGGUS_DISKUS_ENV = "BIGGUS_DISKUS"

DEFAULT_TIMEOUT = 300.0
DEFAULT_REMOTE_COMMAND = "pipe-status"


@cache
def _load_pyproject_settings() -> dict:
    """Load settings from pyproject.toml [tool.pipe-status] section.

    Returns:
        Dictionary of settings from pyproject.toml, empty dict if not found.
    """
    try:
        files = importlib.resources.files("pipe_status")
        pyproject_path = files.joinpath("..", "pyproject.toml")

        if not pyproject_path.is_file():  # type: ignore[union-attr]
            # Walk up to find pyproject.toml (for development)
            current = Path(__file__).resolve().parent
            while current != current.parent:
                candidate = current / "pyproject.toml"
                if candidate.exists():
                    pyproject_path = candidate
                    break
                current = current.parent
            else:
                return {}

        content = pyproject_path.read_text()  # type: ignore[union-attr]
        data = tomllib.loads(content)
        return data.get("tool", {}).get("pipe-status", {})
    except Exception:
        return {}


def get_timeout() -> float:
    """Seconds to wait for a response frame before giving up on a host.

    Priority: PIPE_STATUS_TIMEOUT env → [tool.pipe-status].timeout → 300.
    """
    if env := os.getenv("PIPE_STATUS_TIMEOUT"):
        return float(env)
    if (val := _load_pyproject_settings().get("timeout")) is not None:
        return float(val)
    return DEFAULT_TIMEOUT


def get_remote_command() -> str:
    """Command used to start pipe-status inside a remote login shell."""
    if env := os.getenv("PIPE_STATUS_REMOTE_COMMAND"):
        return env
    return _load_pyproject_settings().get("remote-command", DEFAULT_REMOTE_COMMAND)


def get_pipe_config_dir() -> Path:
    """Directory of pipeline YAML files (default ``~/.pipe_configs``)."""
    if env := os.getenv("PIPE_STATUS_PIPE_CONFIGS"):
        return Path(env).expanduser()
    if val := _load_pyproject_settings().get("pipe-configs"):
        return Path(val).expanduser()
    return Path.home() / ".pipe_configs"


def get_ssh_config_path() -> Path:
    """SSH client configuration consulted for host logins."""
    if env := os.getenv("PIPE_STATUS_SSH_CONFIG"):
        return Path(env).expanduser()
    if val := _load_pyproject_settings().get("ssh-config"):
        return Path(val).expanduser()
    return Path.home() / ".ssh" / "config"



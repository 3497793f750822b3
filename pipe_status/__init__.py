"""pipe-status: check pipeline stages locally or over persistent SSH shells."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pipe-status")
except PackageNotFoundError:
    __version__ = "0.0.0"

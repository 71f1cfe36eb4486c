"""Installed version of the remote-cache distribution."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("remote-cache")
except PackageNotFoundError:
    # Running from a source checkout without an install
    __version__ = "0.0.0-dev"

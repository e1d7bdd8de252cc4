"""Package version, read from installed metadata."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("tokbridge")
except PackageNotFoundError:
    __version__ = "0.0.0"

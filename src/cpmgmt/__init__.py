"""Check Point management API SDK and CLI package."""

from importlib.metadata import PackageNotFoundError, version

__all__ = ["__version__"]

try:
    __version__ = version("cpmgmt")
except PackageNotFoundError:
    __version__ = "0.1.0"

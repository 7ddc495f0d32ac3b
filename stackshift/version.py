"""
Version management for stackshift.

The installed distribution metadata is the single source of truth; a source
checkout that has not been installed reports the fallback version.
"""

from importlib.metadata import PackageNotFoundError, version

_FALLBACK_VERSION = "0.4.0"

try:
    __version__ = version("stackshift")
except PackageNotFoundError:
    __version__ = _FALLBACK_VERSION


def get_version() -> str:
    """Get the current version of the stackshift package."""
    return __version__

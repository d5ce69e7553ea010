"""escrow_py.version — package version.

`__version__` is the installed distribution's version, or BASE_VERSION when
running from a source checkout. No subprocesses, no environment lookups.
"""

from __future__ import annotations

from importlib import metadata as importlib_metadata

# Bump on changes to the persisted data layout or the wire opcodes.
BASE_VERSION = "0.1.0"

DIST_NAME = "escrow-py"


def installed_version(dist_name: str = DIST_NAME) -> str:
    try:
        return importlib_metadata.version(dist_name)
    except importlib_metadata.PackageNotFoundError:
        return BASE_VERSION


__version__ = installed_version()

__all__ = ["__version__", "BASE_VERSION", "installed_version"]

from __future__ import annotations

import importlib.metadata


def package_version() -> str | None:
    """Return the installed revgate version, or None when running from a source checkout."""
    try:
        return importlib.metadata.version("revgate")
    except importlib.metadata.PackageNotFoundError:
        return None

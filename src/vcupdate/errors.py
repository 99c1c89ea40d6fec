"""Error taxonomy for the update engine.

Every error is attributed to the narrowest unit it concerns: a single
version string, a module coordinate, a catalog or the output of a catalog.
"""
from __future__ import annotations

from typing import Dict, Optional


class VcUpdateError(Exception):
    """Base class for all engine errors."""


class VersionParseError(VcUpdateError, ValueError):
    """A version string could not be parsed (only raised for empty input)."""


class CatalogParseError(VcUpdateError):
    """A catalog file is structurally malformed."""

    def __init__(self, message: str, *, catalog: Optional[str] = None, path: Optional[str] = None):
        self.catalog = catalog
        self.path = path
        location = ""
        if catalog or path:
            location = f" [catalog={catalog or '?'} path={path or '?'}]"
        super().__init__(f"{message}{location}")
        self.reason = message


class RepositoryUnavailable(VcUpdateError):
    """Every configured repository failed for one coordinate."""

    def __init__(self, coordinate, failures: Optional[Dict[str, str]] = None):
        self.coordinate = coordinate
        self.failures = dict(failures or {})
        detail = "; ".join(f"{name}: {why}" for name, why in self.failures.items())
        super().__init__(f"No repository could list versions of {coordinate}" + (f" ({detail})" if detail else ""))


class WriteError(VcUpdateError):
    """The proposed catalog could not be written to the output location."""

    def __init__(self, message: str, *, catalog: Optional[str] = None, path: Optional[str] = None):
        self.catalog = catalog
        self.path = path
        super().__init__(message)

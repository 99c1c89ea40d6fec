"""Data models for version catalogs."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from vcupdate.constants import Constants
from vcupdate.versioning import is_dynamic


@dataclass(frozen=True, order=True)
class ModuleCoordinate:
    """Group and artifact identifying a published module."""
    group: str
    artifact: str

    @classmethod
    def parse(cls, text: str) -> "ModuleCoordinate":
        """Build a coordinate from ``group:artifact``."""
        parts = [p.strip() for p in str(text).split(":")]
        if len(parts) != 2 or not all(parts):
            raise ValueError(f"Expected 'group:artifact', got {text!r}")
        return cls(parts[0], parts[1])

    @classmethod
    def for_plugin(cls, plugin_id: str) -> "ModuleCoordinate":
        """Coordinate of the Gradle plugin marker artifact for ``plugin_id``."""
        return cls(plugin_id, plugin_id + Constants.PLUGIN_MARKER_SUFFIX)

    def __str__(self) -> str:
        return f"{self.group}:{self.artifact}"


class EntryKind(Enum):
    """Catalog table an entry was declared in."""
    LIBRARY = "libraries"
    PLUGIN = "plugins"


@dataclass(frozen=True)
class CatalogEntry:
    """One alias of a catalog.

    ``version`` is always the resolved literal (or None for unversioned
    entries); ``version_ref`` keeps the reference name when the version was
    declared through the ``[versions]`` table.
    """
    alias: str
    kind: EntryKind
    coordinate: ModuleCoordinate
    version: Optional[str] = None
    version_ref: Optional[str] = None

    @property
    def key(self) -> str:
        """Report key: the alias for libraries, ``plugins.<alias>`` for plugins."""
        if self.kind is EntryKind.PLUGIN:
            return f"plugins.{self.alias}"
        return self.alias

    @property
    def is_versioned(self) -> bool:
        return self.version is not None

    @property
    def is_dynamic(self) -> bool:
        """Declared through a range, prefix or ``latest.*`` selector."""
        return self.version is not None and is_dynamic(self.version)


@dataclass(frozen=True)
class Catalog:
    """A parsed catalog file.

    The catalog is read-only once built: ``entries`` is a tuple and
    ``versions`` a read-only mapping.
    """
    name: str
    path: str
    relative_path: str
    entries: Tuple[CatalogEntry, ...]
    versions: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    def entry(self, key: str) -> Optional[CatalogEntry]:
        """Look up an entry by report key."""
        for item in self.entries:
            if item.key == key:
                return item
        return None

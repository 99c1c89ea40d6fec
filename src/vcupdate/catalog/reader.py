"""Version catalog reader.

Parses Gradle-style ``*.versions.toml`` files into read-only ``Catalog``
objects. Every ``version.ref`` indirection is resolved to its literal while
the reference name stays on the entry, so the writer can later update the
single ``[versions]`` record.
"""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Optional, Tuple

try:
    import tomllib as toml  # type: ignore
except ImportError:  # Python < 3.11
    import tomli as toml  # type: ignore

from vcupdate.constants import Constants
from vcupdate.errors import CatalogParseError
from vcupdate.common.logging_utils import extra_context, is_debug_enabled
from vcupdate.versioning import is_dynamic
from .models import Catalog, CatalogEntry, EntryKind, ModuleCoordinate

logger = logging.getLogger(__name__)

RICH_VERSION_KEYS = ("prefer", "require", "strictly")
_ALIAS_SEPARATORS = re.compile(r"[-_.]")


@dataclass
class DirectoryScan:
    """Result of scanning a catalogs directory.

    Catalogs that failed to parse are reported in ``errors`` and do not
    prevent their siblings from being read.
    """
    directory: str
    catalogs: List[Catalog] = field(default_factory=list)
    errors: List[CatalogParseError] = field(default_factory=list)


def catalog_name_for(path: str) -> str:
    """Catalog name derived from the file name ("libs.versions.toml" -> "libs")."""
    base = os.path.basename(path)
    if base.endswith(Constants.CATALOG_SUFFIX):
        return base[: -len(Constants.CATALOG_SUFFIX)]
    return os.path.splitext(base)[0]


def find_catalog_files(directory: str, recursive: bool = False,
                       exclude: Iterable[str] = ()) -> List[str]:
    """List catalog files under ``directory`` in a stable order.

    Args:
        directory: Directory to scan.
        recursive: Descend into sub-directories.
        exclude: Directories whose subtree is never scanned (the output
            directory typically lives below the catalogs directory).
    """
    excluded = {os.path.realpath(p) for p in exclude if p}
    found: List[str] = []
    if recursive:
        for root, dirs, files in os.walk(directory):
            dirs[:] = sorted(
                d for d in dirs if os.path.realpath(os.path.join(root, d)) not in excluded
            )
            for name in sorted(files):
                if name.endswith(Constants.CATALOG_SUFFIX):
                    found.append(os.path.join(root, name))
    else:
        for name in sorted(os.listdir(directory)):
            path = os.path.join(directory, name)
            if name.endswith(Constants.CATALOG_SUFFIX) and os.path.isfile(path):
                found.append(path)
    return found


def parse_directory(path: str, *, recursive: bool = False,
                    exclude: Iterable[str] = ()) -> DirectoryScan:
    """Parse every catalog in ``path``.

    Raises:
        CatalogParseError: if ``path`` is not a readable directory. Errors
            in individual catalogs are collected on the returned scan.
    """
    if not os.path.isdir(path):
        raise CatalogParseError("Catalogs directory does not exist", path=path)

    scan = DirectoryScan(directory=path)
    for file_path in find_catalog_files(path, recursive=recursive, exclude=exclude):
        relative = os.path.relpath(file_path, path)
        try:
            scan.catalogs.append(parse_catalog_file(file_path, relative_path=relative))
        except CatalogParseError as exc:
            logger.error("Unable to read catalog %s: %s", relative, exc.reason)
            scan.errors.append(exc)
    logger.info(
        "Read %d catalog(s) from %s (%d failed).",
        len(scan.catalogs), path, len(scan.errors),
    )
    return scan


def parse_catalog_file(path: str, relative_path: Optional[str] = None) -> Catalog:
    """Parse one catalog file.

    Raises:
        CatalogParseError: on invalid TOML, duplicate aliases, missing
            required fields, unknown version references or a version
            reference shared by different modules.
    """
    name = catalog_name_for(path)
    try:
        with open(path, "rb") as fh:
            data = toml.load(fh)
    except OSError as exc:
        raise CatalogParseError(f"Unable to read catalog: {exc}", catalog=name, path=path) from exc
    except toml.TOMLDecodeError as exc:
        raise CatalogParseError(f"Invalid TOML: {exc}", catalog=name, path=path) from exc

    return build_catalog(data, name=name, path=path,
                         relative_path=relative_path or os.path.basename(path))


def build_catalog(data: Dict[str, Any], *, name: str, path: str, relative_path: str) -> Catalog:
    """Build a Catalog from an already decoded TOML document."""
    def fail(message: str) -> CatalogParseError:
        return CatalogParseError(message, catalog=name, path=path)

    versions = _parse_versions(_table(data, "versions", fail), fail)
    entries: List[CatalogEntry] = []
    for kind in (EntryKind.LIBRARY, EntryKind.PLUGIN):
        table = _table(data, kind.value, fail)
        seen: Dict[str, str] = {}
        for alias, raw in table.items():
            normalized = _ALIAS_SEPARATORS.sub(".", alias)
            if normalized in seen:
                raise fail(f"Duplicate alias '{alias}' in [{kind.value}] (clashes with '{seen[normalized]}')")
            seen[normalized] = alias
            if kind is EntryKind.LIBRARY:
                coordinate, version, ref = _parse_library(alias, raw, fail)
            else:
                coordinate, version, ref = _parse_plugin(alias, raw, fail)
            if ref is not None:
                if ref not in versions:
                    raise fail(f"Alias '{alias}' references unknown version '{ref}'")
                version = versions[ref]
            entries.append(CatalogEntry(alias=alias, kind=kind, coordinate=coordinate,
                                        version=version, version_ref=ref))

    _check_reference_coordinates(entries, fail)

    if is_debug_enabled(logger):
        logger.debug(
            "Parsed catalog",
            extra=extra_context(event="parse", component="catalog_reader", action="build_catalog",
                                outcome="success", target=relative_path, entry_count=len(entries))
        )
    return Catalog(name=name, path=path, relative_path=relative_path,
                   entries=tuple(entries), versions=MappingProxyType(dict(versions)))


def _table(data: Dict[str, Any], key: str, fail) -> Dict[str, Any]:
    value = data.get(key, {})
    if not isinstance(value, dict):
        raise fail(f"[{key}] must be a table")
    return value


def _parse_versions(table: Dict[str, Any], fail) -> Dict[str, str]:
    versions: Dict[str, str] = {}
    for ref, raw in table.items():
        literal = _version_literal(raw)
        if literal is None:
            raise fail(f"Version '{ref}' has no usable version string")
        versions[ref] = literal
    return versions


def _version_literal(raw: Any) -> Optional[str]:
    """Literal of a plain or rich version declaration.

    Rich declarations yield their first pinned value in ``prefer``,
    ``require``, ``strictly`` order; when every value is a selector the
    first declared one is returned so the entry can be reported as dynamic.
    """
    if isinstance(raw, str):
        return raw.strip() or None
    if isinstance(raw, dict):
        declared = [raw[key].strip() for key in RICH_VERSION_KEYS
                    if isinstance(raw.get(key), str) and raw[key].strip()]
        for value in declared:
            if not is_dynamic(value):
                return value
        return declared[0] if declared else None
    return None


def _parse_version_field(alias: str, raw: Any, fail) -> Tuple[Optional[str], Optional[str]]:
    """Return (literal, reference) for the ``version`` field of an entry."""
    if raw is None:
        return None, None
    if isinstance(raw, dict) and "ref" in raw:
        ref = raw["ref"]
        if not isinstance(ref, str) or not ref.strip():
            raise fail(f"Alias '{alias}' has an empty version reference")
        return None, ref.strip()
    literal = _version_literal(raw)
    if literal is None:
        raise fail(f"Alias '{alias}' has an invalid version declaration")
    return literal, None


def _parse_library(alias: str, raw: Any, fail) -> Tuple[ModuleCoordinate, Optional[str], Optional[str]]:
    if isinstance(raw, str):
        parts = [p.strip() for p in raw.split(":")]
        if len(parts) not in (2, 3) or not all(parts):
            raise fail(f"Alias '{alias}' must use 'group:artifact[:version]' notation")
        version = parts[2] if len(parts) == 3 else None
        return ModuleCoordinate(parts[0], parts[1]), version, None
    if not isinstance(raw, dict):
        raise fail(f"Alias '{alias}' must be a string or a table")

    module = raw.get("module")
    if module is not None:
        try:
            coordinate = ModuleCoordinate.parse(module)
        except ValueError as exc:
            raise fail(f"Alias '{alias}': {exc}") from exc
    else:
        group, artifact = raw.get("group"), raw.get("name")
        if not isinstance(group, str) or not group.strip():
            raise fail(f"Alias '{alias}' is missing 'module' or 'group'")
        if not isinstance(artifact, str) or not artifact.strip():
            raise fail(f"Alias '{alias}' is missing 'name'")
        coordinate = ModuleCoordinate(group.strip(), artifact.strip())

    version, ref = _parse_version_field(alias, raw.get("version"), fail)
    return coordinate, version, ref


def _parse_plugin(alias: str, raw: Any, fail) -> Tuple[ModuleCoordinate, Optional[str], Optional[str]]:
    if isinstance(raw, str):
        parts = [p.strip() for p in raw.split(":")]
        if len(parts) not in (1, 2) or not all(parts):
            raise fail(f"Plugin '{alias}' must use 'id[:version]' notation")
        version = parts[1] if len(parts) == 2 else None
        return ModuleCoordinate.for_plugin(parts[0]), version, None
    if not isinstance(raw, dict):
        raise fail(f"Plugin '{alias}' must be a string or a table")
    plugin_id = raw.get("id")
    if not isinstance(plugin_id, str) or not plugin_id.strip():
        raise fail(f"Plugin '{alias}' is missing 'id'")
    version, ref = _parse_version_field(alias, raw.get("version"), fail)
    return ModuleCoordinate.for_plugin(plugin_id.strip()), version, ref


def _check_reference_coordinates(entries: List[CatalogEntry], fail) -> None:
    """Entries sharing a version reference must share one coordinate."""
    owners: Dict[str, CatalogEntry] = {}
    for item in entries:
        if item.version_ref is None:
            continue
        first = owners.setdefault(item.version_ref, item)
        if first.coordinate != item.coordinate:
            raise fail(
                f"Version reference '{item.version_ref}' is shared by different modules "
                f"({first.coordinate} via '{first.alias}', {item.coordinate} via '{item.alias}')"
            )

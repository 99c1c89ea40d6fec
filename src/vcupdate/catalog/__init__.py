"""Catalog model, reader and writer."""

from .models import Catalog, CatalogEntry, EntryKind, ModuleCoordinate
from .reader import DirectoryScan, parse_catalog_file, parse_directory
from .writer import write_updates

__all__ = [
    "Catalog",
    "CatalogEntry",
    "EntryKind",
    "ModuleCoordinate",
    "DirectoryScan",
    "parse_catalog_file",
    "parse_directory",
    "write_updates",
]

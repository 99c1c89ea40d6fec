"""Data models produced by the update planner."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from vcupdate.catalog.models import CatalogEntry, ModuleCoordinate
from vcupdate.constants import RejectionReasons, SkipReasons


@dataclass(frozen=True)
class PlanUnit:
    """Entries updated together: one alias, or every alias of a version reference."""
    catalog: str
    coordinate: ModuleCoordinate
    current: str
    entries: Tuple[CatalogEntry, ...]
    version_ref: Optional[str] = None

    @property
    def key(self) -> str:
        if self.version_ref is not None:
            return f"versions.{self.version_ref}"
        return self.entries[0].key

    @property
    def aliases(self) -> List[str]:
        return [item.key for item in self.entries]


@dataclass(frozen=True)
class RejectedVersion:
    """A published version that was not selected, and why."""
    version: str
    reason: RejectionReasons


@dataclass(frozen=True)
class UpdateCandidate:
    """A proposed version change for one plan unit."""
    unit: PlanUnit
    from_version: str
    to_version: str
    rejected: Tuple[RejectedVersion, ...] = ()

    @property
    def aliases(self) -> List[str]:
        return self.unit.aliases

    @property
    def version_ref(self) -> Optional[str]:
        return self.unit.version_ref


@dataclass(frozen=True)
class SkipRecord:
    """A plan unit that will not be updated."""
    unit: PlanUnit
    reason: SkipReasons
    detail: str = ""
    rejected: Tuple[RejectedVersion, ...] = ()

    @property
    def aliases(self) -> List[str]:
        return self.unit.aliases


@dataclass
class UpdatePlan:
    """Candidates and skips for one catalog, keyed by alias."""
    catalog: str
    candidates: Dict[str, UpdateCandidate] = field(default_factory=dict)
    reference_updates: Dict[str, UpdateCandidate] = field(default_factory=dict)
    skips: Dict[str, SkipRecord] = field(default_factory=dict)

    def add(self, result) -> None:
        """Record an UpdateCandidate or SkipRecord for every alias of its unit."""
        if isinstance(result, UpdateCandidate):
            for alias in result.aliases:
                self.candidates[alias] = result
            if result.version_ref is not None:
                self.reference_updates[result.version_ref] = result
        elif isinstance(result, SkipRecord):
            for alias in result.aliases:
                self.skips[alias] = result
        else:
            raise TypeError(f"Unsupported plan result: {type(result).__name__}")

    @property
    def updates(self) -> List[UpdateCandidate]:
        """Distinct candidates in alias order (shared references appear once)."""
        distinct: Dict[str, UpdateCandidate] = {}
        for alias in sorted(self.candidates):
            candidate = self.candidates[alias]
            distinct.setdefault(candidate.unit.key, candidate)
        return list(distinct.values())

    @property
    def is_empty(self) -> bool:
        return not self.candidates

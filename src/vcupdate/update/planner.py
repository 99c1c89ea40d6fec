"""Update planner.

Decides, per plan unit, whether a newer policy-acceptable version exists:

1. ignored coordinates are skipped outright;
2. published versions come from the repository client;
3. versions with a rejected qualifier are dropped;
4. unless major updates are allowed, versions with another leading segment
   are dropped;
5. the maximum remaining version wins if it is newer than the current one.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, FrozenSet, Iterable, List, Sequence, Tuple, Union

from vcupdate.catalog.models import Catalog, CatalogEntry, ModuleCoordinate
from vcupdate.constants import Constants, RejectionReasons, SkipReasons
from vcupdate.errors import RepositoryUnavailable, VersionParseError
from vcupdate.common.logging_utils import extra_context, is_debug_enabled
from vcupdate.versioning import VersionToken, is_eligible, latest, parse
from .models import PlanUnit, RejectedVersion, SkipRecord, UpdateCandidate, UpdatePlan

logger = logging.getLogger(__name__)

PlanResult = Union[UpdateCandidate, SkipRecord]
VersionLookup = Callable[[ModuleCoordinate], Sequence[str]]


@dataclass(frozen=True)
class PlannerPolicy:
    """Eligibility and ordering policy applied to every unit."""
    rejected_qualifiers: FrozenSet[str] = field(
        default_factory=lambda: frozenset(Constants.DEFAULT_REJECTED_QUALIFIERS)
    )
    ignored_modules: FrozenSet[ModuleCoordinate] = frozenset()
    allow_major_updates: bool = False


def build_units(catalog: Catalog) -> Tuple[List[PlanUnit], List[CatalogEntry]]:
    """Split a catalog into plan units and entries without a pinned version.

    Entries sharing a version reference form a single unit; the reader
    guarantees they share one coordinate. Unversioned entries and entries
    declared through a selector ("1.+", a range) are never planned.
    """
    units: List[PlanUnit] = []
    unpinned: List[CatalogEntry] = []
    by_ref: Dict[str, List[CatalogEntry]] = {}
    for item in catalog.entries:
        if not item.is_versioned or item.is_dynamic:
            unpinned.append(item)
        elif item.version_ref is not None:
            by_ref.setdefault(item.version_ref, []).append(item)
        else:
            units.append(PlanUnit(catalog=catalog.name, coordinate=item.coordinate,
                                  current=item.version, entries=(item,)))
    for ref, members in by_ref.items():
        units.append(PlanUnit(catalog=catalog.name, coordinate=members[0].coordinate,
                              current=catalog.versions[ref], entries=tuple(members),
                              version_ref=ref))
    units.sort(key=lambda u: u.key)
    return units, unpinned


class UpdatePlanner:
    """Applies a PlannerPolicy to the versions published for each unit.

    ``lookup`` maps a ModuleCoordinate to its published version strings and
    raises RepositoryUnavailable when no repository answered, e.g.
    ``RepositoryClient.list_versions``.
    """

    def __init__(self, policy: PlannerPolicy, lookup: VersionLookup):
        self.policy = policy
        self._lookup = lookup

    def plan_catalog(self, catalog: Catalog) -> UpdatePlan:
        """Plan every unit of ``catalog`` sequentially."""
        plan = UpdatePlan(catalog=catalog.name)
        units, unpinned = build_units(catalog)
        for item in unpinned:
            plan.add(skip_unpinned(catalog.name, item))
        for unit in units:
            plan.add(self.plan_unit(unit))
        return plan

    def plan_unit(self, unit: PlanUnit) -> PlanResult:
        """Plan a single unit."""
        if unit.coordinate in self.policy.ignored_modules:
            logger.info("Ignoring %s (%s).", unit.key, unit.coordinate)
            return SkipRecord(unit=unit, reason=SkipReasons.IGNORED)

        try:
            available = self._lookup(unit.coordinate)
        except RepositoryUnavailable as exc:
            logger.warning("Unable to list versions of %s: %s", unit.coordinate, exc)
            return SkipRecord(unit=unit, reason=SkipReasons.REPOSITORY_UNAVAILABLE, detail=str(exc))

        return self.select(unit, available)

    def select(self, unit: PlanUnit, available: Iterable[str]) -> PlanResult:
        """Pick the best eligible version among ``available`` for ``unit``."""
        current = parse(unit.current)
        seen = set()
        rejected: List[RejectedVersion] = []
        eligible: List[VersionToken] = []
        for raw in available:
            try:
                token = parse(raw)
            except VersionParseError:
                if is_debug_enabled(logger):
                    logger.debug(
                        "Discarding unparseable version",
                        extra=extra_context(event="anomaly", component="planner", action="select",
                                            outcome="version_parse_error", target=str(unit.coordinate))
                    )
                continue
            if token.raw in seen:
                continue
            seen.add(token.raw)
            reason = self._rejection(current, token)
            if reason is not None:
                rejected.append(RejectedVersion(version=token.raw, reason=reason))
            else:
                eligible.append(token)

        best = latest(eligible)
        if best is None:
            return SkipRecord(unit=unit, reason=SkipReasons.NO_ELIGIBLE_UPDATE, rejected=tuple(rejected))

        if is_debug_enabled(logger):
            logger.debug(
                "Selected update",
                extra=extra_context(event="decision", component="planner", action="select",
                                    outcome="update", target=str(unit.coordinate))
            )
        return UpdateCandidate(unit=unit, from_version=unit.current, to_version=best.raw,
                               rejected=tuple(rejected))

    def _rejection(self, current: VersionToken, token: VersionToken):
        if not is_eligible(token, self.policy.rejected_qualifiers):
            return RejectionReasons.QUALIFIER
        if not self.policy.allow_major_updates and token.major != current.major:
            return RejectionReasons.MAJOR_GATE
        if token <= current:
            return RejectionReasons.BELOW_CURRENT
        return None


def skip_unpinned(catalog_name: str, item: CatalogEntry) -> SkipRecord:
    """Skip record for an entry without a pinned version."""
    unit = PlanUnit(catalog=catalog_name, coordinate=item.coordinate, current=item.version or "",
                    entries=(item,))
    reason = SkipReasons.DYNAMIC if item.is_dynamic else SkipReasons.UNVERSIONED
    return SkipRecord(unit=unit, reason=reason, detail=item.version or "")

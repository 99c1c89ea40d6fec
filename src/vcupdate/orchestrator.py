"""Run orchestration.

Reads the catalogs once, fans out one version lookup per distinct module
coordinate over a bounded thread pool, joins every lookup, plans each unit
in alias order and finally writes one proposed catalog per readable catalog.
The ReportBuilder is the only state shared with worker threads.
"""
from __future__ import annotations

import logging
import os
import threading
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Dict, List, Optional, Sequence, Union

from vcupdate.catalog.models import Catalog, ModuleCoordinate
from vcupdate.catalog.reader import parse_directory
from vcupdate.catalog.writer import write_updates
from vcupdate.config import UpdateConfig
from vcupdate.constants import Constants, SkipReasons
from vcupdate.errors import CatalogParseError, RepositoryUnavailable, WriteError
from vcupdate.common.logging_utils import extra_context, is_debug_enabled, Timer
from vcupdate.registry.maven.client import RepositoryClient
from vcupdate.report import CatalogError, Outcome, Report, ReportBuilder
from vcupdate.update.models import SkipRecord, UpdateCandidate, UpdatePlan
from vcupdate.update.planner import PlannerPolicy, UpdatePlanner, build_units, skip_unpinned

logger = logging.getLogger(__name__)

LookupResult = Union[List[str], RepositoryUnavailable]

_CANCEL_POLL_SEC = 0.2


def default_parallelism(lookup_count: int) -> int:
    """Worker count for ``lookup_count`` lookups: bounded, at least one."""
    return max(1, min(Constants.MAX_PARALLELISM, lookup_count))


def _lookup_one(client, coordinate: ModuleCoordinate, cancel_event: threading.Event) -> LookupResult:
    if cancel_event.is_set():
        return RepositoryUnavailable(coordinate, {"run": "cancelled"})
    try:
        return list(client.list_versions(coordinate))
    except RepositoryUnavailable as exc:
        return exc


def fetch_versions(client, coordinates: Sequence[ModuleCoordinate], *, parallelism: Optional[int],
                   cancel_event: threading.Event) -> Dict[ModuleCoordinate, LookupResult]:
    """Look up every coordinate concurrently and join on all of them.

    Returns early, without waiting for in-flight requests, once
    ``cancel_event`` is set.
    """
    results: Dict[ModuleCoordinate, LookupResult] = {}
    if not coordinates:
        return results
    workers = parallelism or default_parallelism(len(coordinates))
    executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="vcupdate-lookup")
    pending: Dict[Future, ModuleCoordinate] = {}
    try:
        for coordinate in coordinates:
            if cancel_event.is_set():
                break
            pending[executor.submit(_lookup_one, client, coordinate, cancel_event)] = coordinate
        while pending and not cancel_event.is_set():
            done, _ = wait(list(pending), timeout=_CANCEL_POLL_SEC, return_when=FIRST_COMPLETED)
            for future in done:
                results[pending.pop(future)] = future.result()
    finally:
        executor.shutdown(wait=not cancel_event.is_set(), cancel_futures=True)
    return results


class _PrefetchedLookup:
    """Serves joined lookup results to the planner."""

    def __init__(self, results: Dict[ModuleCoordinate, LookupResult]):
        self._results = results

    def __call__(self, coordinate: ModuleCoordinate) -> List[str]:
        result = self._results.get(coordinate)
        if result is None:
            raise RepositoryUnavailable(coordinate, {"run": "not queried"})
        if isinstance(result, RepositoryUnavailable):
            raise result
        return result


def _outcome_for(result: Union[UpdateCandidate, SkipRecord]) -> Outcome:
    if isinstance(result, UpdateCandidate):
        return Outcome.updated(result.from_version, result.to_version)
    if result.reason is SkipReasons.REPOSITORY_UNAVAILABLE:
        return Outcome.failed(result.reason.value, result.detail)
    return Outcome.skipped(result.reason.value, result.detail)


def _record_plan(builder: ReportBuilder, plan: UpdatePlan) -> None:
    for alias, candidate in plan.candidates.items():
        builder.record(plan.catalog, alias, _outcome_for(candidate))
    for alias, skip in plan.skips.items():
        builder.record(plan.catalog, alias, _outcome_for(skip))


def _abort(builder: ReportBuilder, message: str, *, catalog: Optional[str] = None,
           path: Optional[str] = None, stage: str = "read") -> Report:
    logger.error("Run aborted: %s", message)
    builder.error(CatalogError(catalog=catalog, path=path, message=message, stage=stage), fatal=True)
    return builder.build()


def _halt_catalogs(builder: ReportBuilder, catalogs: Sequence[Catalog], outcome: Outcome) -> None:
    """Record ``outcome`` for every planned entry of catalogs that will not be written."""
    for catalog in catalogs:
        units, unpinned = build_units(catalog)
        for item in unpinned:
            builder.record(catalog.name, item.key, _outcome_for(skip_unpinned(catalog.name, item)))
        for unit in units:
            for alias in unit.aliases:
                builder.record(catalog.name, alias, outcome)


def run_update(config: UpdateConfig, *, client=None,
               cancel_event: Optional[threading.Event] = None) -> Report:
    """Propose catalog updates according to ``config``.

    Args:
        config: Run configuration.
        client: Object with ``list_versions(coordinate)``; defaults to a
            RepositoryClient over ``config.repositories``.
        cancel_event: Set from another thread to abort the run. No new
            requests are issued afterwards and nothing more is written.

    Returns:
        Report with every entry's outcome and the run status.
    """
    builder = ReportBuilder()
    cancel_event = cancel_event or threading.Event()
    catalogs_dir = config.catalogs_directory
    output_dir = config.output_directory

    if os.path.realpath(catalogs_dir) == os.path.realpath(output_dir):
        return _abort(builder, "Output directory must differ from the catalogs directory", path=output_dir)

    try:
        scan = parse_directory(catalogs_dir, recursive=config.recursive, exclude=[output_dir])
    except CatalogParseError as exc:
        return _abort(builder, exc.reason, catalog=exc.catalog, path=exc.path)

    catalogs = list(scan.catalogs)
    for catalog in catalogs:
        builder.add_catalog(catalog.name, catalog.path)
    for err in scan.errors:
        builder.add_catalog(err.catalog, err.path)
        builder.error(CatalogError(catalog=err.catalog, path=err.path, message=err.reason, stage="read"),
                      fatal=config.fail_on_catalog_error)
    if scan.errors and config.fail_on_catalog_error:
        logger.error("Aborting: %d catalog(s) could not be read.", len(scan.errors))
        _halt_catalogs(builder, catalogs, Outcome.skipped(SkipReasons.ABORTED.value))
        return builder.build()

    policy = PlannerPolicy(
        rejected_qualifiers=config.rejected_qualifiers,
        ignored_modules=config.ignored_modules,
        allow_major_updates=config.allow_major_updates,
    )
    if client is None:
        client = RepositoryClient(config.repositories, timeout=config.request_timeout, cancel_event=cancel_event)

    coordinates = set()
    for catalog in catalogs:
        units, _ = build_units(catalog)
        coordinates.update(u.coordinate for u in units if u.coordinate not in policy.ignored_modules)

    with Timer() as timer:
        results = fetch_versions(client, sorted(coordinates), parallelism=config.parallelism,
                                 cancel_event=cancel_event)
    if is_debug_enabled(logger):
        logger.debug(
            "Version lookups joined",
            extra=extra_context(event="join", component="orchestrator", action="fetch_versions",
                                outcome="cancelled" if cancel_event.is_set() else "success",
                                count=len(results), duration_ms=timer.duration_ms())
        )
    if cancel_event.is_set():
        _halt_catalogs(builder, catalogs, Outcome.failed(SkipReasons.CANCELLED.value))
        return _abort(builder, "Run cancelled before planning completed", stage="plan")

    planner = UpdatePlanner(policy, _PrefetchedLookup(results))
    for index, catalog in enumerate(catalogs):
        if cancel_event.is_set():
            _halt_catalogs(builder, catalogs[index:], Outcome.failed(SkipReasons.CANCELLED.value))
            return _abort(builder, "Run cancelled before writing", catalog=catalog.name,
                          path=catalog.path, stage="write")
        plan = planner.plan_catalog(catalog)
        _record_plan(builder, plan)
        try:
            destination = write_updates(catalog, plan, output_dir)
            builder.set_output(catalog.name, destination)
        except WriteError as exc:
            logger.error("Unable to write proposed catalog %s: %s", catalog.name, exc)
            builder.error(CatalogError(catalog=catalog.name, path=exc.path, message=str(exc), stage="write"))
            for alias, candidate in plan.candidates.items():
                builder.record(catalog.name, alias, Outcome.failed(
                    SkipReasons.WRITE_ERROR.value, f"{candidate.from_version} -> {candidate.to_version}: {exc}"
                ))

    report = builder.build()
    logger.info("Update run finished: %s.", report.status.value)
    return report

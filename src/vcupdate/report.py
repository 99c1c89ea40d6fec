"""Run report: per-entry outcomes, catalog errors and overall status."""
from __future__ import annotations

import csv
import json
import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from vcupdate.constants import ExitCodes

logger = logging.getLogger(__name__)


class RunStatus(Enum):
    """Overall status of a run."""
    SUCCESS = "success"
    PARTIAL_FAILURE = "partial-failure"
    FATAL_ABORT = "fatal-abort"

    @property
    def exit_code(self) -> ExitCodes:
        return {
            RunStatus.SUCCESS: ExitCodes.SUCCESS,
            RunStatus.PARTIAL_FAILURE: ExitCodes.PARTIAL_FAILURE,
            RunStatus.FATAL_ABORT: ExitCodes.FATAL_ABORT,
        }[self]


class OutcomeKind(Enum):
    """Kind of per-entry outcome."""
    UPDATED = "updated"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class Outcome:
    """Outcome of one catalog entry."""
    kind: OutcomeKind
    from_version: Optional[str] = None
    to_version: Optional[str] = None
    reason: Optional[str] = None
    detail: str = ""

    @classmethod
    def updated(cls, from_version: str, to_version: str) -> "Outcome":
        return cls(OutcomeKind.UPDATED, from_version=from_version, to_version=to_version)

    @classmethod
    def skipped(cls, reason: str, detail: str = "") -> "Outcome":
        return cls(OutcomeKind.SKIPPED, reason=reason, detail=detail)

    @classmethod
    def failed(cls, reason: str, detail: str = "") -> "Outcome":
        return cls(OutcomeKind.FAILED, reason=reason, detail=detail)

    def to_dict(self) -> Dict[str, Any]:
        if self.kind is OutcomeKind.UPDATED:
            return {"updated": {"from": self.from_version, "to": self.to_version}}
        record: Dict[str, Any] = {self.kind.value: self.reason}
        if self.detail:
            record["detail"] = self.detail
        return record


@dataclass(frozen=True)
class CatalogError:
    """A catalog that could not be read or written."""
    catalog: Optional[str]
    path: Optional[str]
    message: str
    stage: str  # "read" | "write"

    def to_dict(self) -> Dict[str, Any]:
        return {"catalog": self.catalog, "path": self.path, "stage": self.stage, "message": self.message}


@dataclass
class CatalogReport:
    """Outcomes of one catalog keyed by entry key."""
    name: str
    path: Optional[str] = None
    output_path: Optional[str] = None
    outcomes: Dict[str, Outcome] = field(default_factory=dict)


@dataclass
class Report:
    """Everything a caller needs to know about a run."""
    status: RunStatus
    catalogs: Dict[str, CatalogReport] = field(default_factory=dict)
    errors: List[CatalogError] = field(default_factory=list)
    aborted_by: Optional[CatalogError] = None

    @property
    def outcomes(self) -> Dict[str, Outcome]:
        """Flat alias -> outcome view across catalogs.

        Aliases are prefixed with ``<catalog>:`` only when they occur in more
        than one catalog.
        """
        counts: Dict[str, int] = {}
        for cat in self.catalogs.values():
            for key in cat.outcomes:
                counts[key] = counts.get(key, 0) + 1
        flat: Dict[str, Outcome] = {}
        for name in sorted(self.catalogs):
            for key, outcome in self.catalogs[name].outcomes.items():
                flat[key if counts[key] == 1 else f"{name}:{key}"] = outcome
        return flat

    def outcome(self, alias: str, catalog: Optional[str] = None) -> Optional[Outcome]:
        """Outcome of ``alias``, optionally restricted to one catalog."""
        if catalog is not None:
            cat = self.catalogs.get(catalog)
            return cat.outcomes.get(alias) if cat else None
        for name in sorted(self.catalogs):
            found = self.catalogs[name].outcomes.get(alias)
            if found is not None:
                return found
        return None

    @property
    def exit_code(self) -> int:
        return self.status.exit_code.value

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "aborted_by": self.aborted_by.to_dict() if self.aborted_by else None,
            "errors": [err.to_dict() for err in self.errors],
            "catalogs": {
                name: {
                    "path": cat.path,
                    "output": cat.output_path,
                    "entries": {key: out.to_dict() for key, out in cat.outcomes.items()},
                }
                for name, cat in sorted(self.catalogs.items())
            },
        }


class ReportBuilder:
    """Thread-safe accumulator for run outcomes."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._catalogs: Dict[str, CatalogReport] = {}
        self._errors: List[CatalogError] = []
        self._aborted_by: Optional[CatalogError] = None

    def add_catalog(self, name: str, path: Optional[str]) -> None:
        with self._lock:
            self._catalogs.setdefault(name, CatalogReport(name=name, path=path))

    def record(self, catalog: str, key: str, outcome: Outcome) -> None:
        with self._lock:
            report = self._catalogs.setdefault(catalog, CatalogReport(name=catalog))
            report.outcomes[key] = outcome

    def set_output(self, catalog: str, output_path: str) -> None:
        with self._lock:
            self._catalogs.setdefault(catalog, CatalogReport(name=catalog)).output_path = output_path

    def error(self, err: CatalogError, fatal: bool = False) -> None:
        with self._lock:
            self._errors.append(err)
            if fatal and self._aborted_by is None:
                self._aborted_by = err

    def build(self) -> Report:
        """Freeze the accumulated state into a Report with its status."""
        with self._lock:
            catalogs = {}
            for name in sorted(self._catalogs):
                source = self._catalogs[name]
                catalogs[name] = CatalogReport(
                    name=name, path=source.path, output_path=source.output_path,
                    outcomes={key: source.outcomes[key] for key in sorted(source.outcomes)},
                )
            if self._aborted_by is not None:
                status = RunStatus.FATAL_ABORT
            elif self._errors or any(
                out.kind is OutcomeKind.FAILED for cat in catalogs.values() for out in cat.outcomes.values()
            ):
                status = RunStatus.PARTIAL_FAILURE
            else:
                status = RunStatus.SUCCESS
            return Report(status=status, catalogs=catalogs, errors=list(self._errors),
                          aborted_by=self._aborted_by)


def log_summary(report: Report) -> None:
    """Log a human readable summary of ``report``."""
    for name, cat in report.catalogs.items():
        for key, out in cat.outcomes.items():
            if out.kind is OutcomeKind.UPDATED:
                logger.info("[%s] %s: %s -> %s", name, key, out.from_version, out.to_version)
            elif out.kind is OutcomeKind.FAILED:
                logger.warning("[%s] %s: failed (%s)", name, key, out.reason)
            else:
                logger.debug("[%s] %s: skipped (%s)", name, key, out.reason)
    for err in report.errors:
        logger.error("Catalog %s (%s) %s error: %s", err.catalog, err.path, err.stage, err.message)
    logger.info("Run finished with status %s.", report.status.value)


def export_json(report: Report, path: str) -> None:
    """Export the report to a JSON file."""
    try:
        with open(path, "w", encoding="utf-8") as file:
            json.dump(report.to_dict(), file, ensure_ascii=False, indent=2)
        logger.info("JSON report saved to %s", path)
    except OSError as e:
        logger.error("JSON report export error: %s", e)
        raise


def export_csv(report: Report, path: str) -> None:
    """Export the per-entry outcomes to a CSV file."""
    headers = ["catalog", "alias", "outcome", "from", "to", "reason", "detail"]
    rows = [headers]
    for name, cat in report.catalogs.items():
        for key, out in cat.outcomes.items():
            rows.append([name, key, out.kind.value, out.from_version or "", out.to_version or "",
                         out.reason or "", out.detail])
    try:
        with open(path, "w", newline="", encoding="utf-8") as file:
            writer = csv.writer(file, dialect="excel")
            writer.writerows(rows)
        logger.info("CSV report saved to %s", path)
    except OSError as e:
        logger.error("CSV report export error: %s", e)
        raise

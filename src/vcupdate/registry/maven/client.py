"""Maven repository client.

Lists the published versions of a module by reading ``maven-metadata.xml``
from each configured repository in priority order and merging the results.
"""
from __future__ import annotations

import logging
import threading
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from vcupdate.constants import Constants
from vcupdate.errors import RepositoryUnavailable
from vcupdate.catalog.models import ModuleCoordinate
from vcupdate.common import http_client
from vcupdate.common.logging_utils import extra_context, is_debug_enabled, safe_url

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Repository:
    """A Maven-layout repository.

    ``username``/``password`` are opaque credentials handed to the HTTP layer
    as basic auth; they are never logged.
    """
    name: str
    url: str
    username: Optional[str] = None
    password: Optional[str] = None

    def __repr__(self) -> str:
        return f"Repository(name={self.name!r}, url={safe_url(self.url)!r})"

    @property
    def auth(self) -> Optional[Tuple[str, str]]:
        if self.username and self.password is not None:
            return (self.username, self.password)
        return None

    def metadata_url(self, coordinate: ModuleCoordinate) -> str:
        """URL of ``maven-metadata.xml`` for ``coordinate`` in this repository."""
        base = self.url if self.url.endswith("/") else self.url + "/"
        group_path = coordinate.group.replace(".", "/")
        return f"{base}{group_path}/{coordinate.artifact}/{Constants.MAVEN_METADATA_FILE}"


def default_repositories() -> List[Repository]:
    """Maven Central first, then the Gradle Plugin Portal."""
    return [
        Repository(name="maven-central", url=Constants.REPOSITORY_URL_MAVEN_CENTRAL),
        Repository(name="gradle-plugin-portal", url=Constants.REPOSITORY_URL_GRADLE_PLUGINS),
    ]


class _RepositoryFailure(Exception):
    """One repository could not answer for one coordinate."""


def parse_metadata_versions(text: str) -> List[str]:
    """Return versions listed in maven-metadata.xml in source order.

    Raises:
        ET.ParseError: if the document is not well formed XML.
    """
    root = ET.fromstring(text)
    versions: List[str] = []
    versions_elem = root.find("versioning/versions")
    if versions_elem is not None:
        for item in versions_elem.findall("version"):
            if isinstance(item.text, str) and item.text.strip():
                versions.append(item.text.strip())
    if not versions:
        # Some repositories only publish <version> for single-version modules
        single = root.find("version")
        if single is not None and isinstance(single.text, str) and single.text.strip():
            versions.append(single.text.strip())
    return versions


class RepositoryClient:
    """Queries Maven repositories for published versions.

    A repository that errors or times out contributes nothing for that
    coordinate; ``RepositoryUnavailable`` is raised only when every
    repository failed. A 404 counts as an answer without versions.
    """

    def __init__(
        self,
        repositories: Optional[Sequence[Repository]] = None,
        *,
        timeout: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ):
        self.repositories: List[Repository] = list(
            repositories if repositories is not None else default_repositories()
        )
        self.timeout = timeout if timeout is not None else Constants.REQUEST_TIMEOUT
        self.cancel_event = cancel_event

    def list_versions(self, coordinate: ModuleCoordinate) -> List[str]:
        """List every version of ``coordinate`` published in any repository.

        Raises:
            RepositoryUnavailable: when no repository could be queried.
        """
        merged: List[str] = []
        failures: Dict[str, str] = {}
        answered = 0
        for repo in self.repositories:
            if self.cancel_event is not None and self.cancel_event.is_set():
                failures[repo.name] = "cancelled"
                continue
            try:
                versions = self._fetch(repo, coordinate)
            except _RepositoryFailure as exc:
                failures[repo.name] = str(exc)
                logger.warning("Repository %s failed for %s: %s", repo.name, coordinate, exc)
                continue
            answered += 1
            merged.extend(versions)

        if not answered:
            raise RepositoryUnavailable(coordinate, failures)

        if is_debug_enabled(logger):
            logger.debug(
                "Listed versions",
                extra=extra_context(event="function_exit", component="repository_client",
                                    action="list_versions", outcome="success",
                                    target=str(coordinate), count=len(merged))
            )
        return merged

    def _fetch(self, repo: Repository, coordinate: ModuleCoordinate) -> List[str]:
        url = repo.metadata_url(coordinate)
        status_code, _, text = http_client.robust_get(
            url,
            headers={"Accept": "application/xml"},
            timeout=self.timeout,
            auth=repo.auth,
            cancel_event=self.cancel_event,
        )
        if status_code == 404:
            if is_debug_enabled(logger):
                logger.debug(
                    "Module not published in repository",
                    extra=extra_context(event="http_response", component="repository_client",
                                        action="fetch_metadata", outcome="not_found",
                                        target=safe_url(url))
                )
            return []
        if status_code == 0:
            raise _RepositoryFailure(text or "no response")
        if status_code != 200:
            raise _RepositoryFailure(f"HTTP {status_code}")
        try:
            return parse_metadata_versions(text or "")
        except ET.ParseError as exc:
            raise _RepositoryFailure(f"invalid maven-metadata.xml: {exc}") from exc

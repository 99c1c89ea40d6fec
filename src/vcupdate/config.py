"""Run configuration.

Each setting is resolved in layers: environment variable, then the YAML
config file, then a literal default. CLI overrides are applied on top by the
caller. Every layer is a plain lookup without side effects.
"""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field, replace
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple

import yaml

from vcupdate.constants import Constants
from vcupdate.catalog.models import ModuleCoordinate
from vcupdate.registry.maven.client import Repository, default_repositories

logger = logging.getLogger(__name__)

ENV_PREFIX = "VCUPDATE_"
_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}
_MISSING = object()


class ConfigError(ValueError):
    """Invalid configuration value."""


@dataclass(frozen=True)
class UpdateConfig:  # pylint: disable=too-many-instance-attributes
    """Everything a run reads; no other global state is consulted."""
    catalogs_directory: str = Constants.DEFAULT_CATALOGS_DIR
    output_directory: str = Constants.DEFAULT_OUTPUT_DIR
    rejected_qualifiers: FrozenSet[str] = frozenset(Constants.DEFAULT_REJECTED_QUALIFIERS)
    ignored_modules: FrozenSet[ModuleCoordinate] = frozenset()
    allow_major_updates: bool = False
    repositories: Tuple[Repository, ...] = field(default_factory=lambda: tuple(default_repositories()))
    parallelism: Optional[int] = None
    request_timeout: float = Constants.REQUEST_TIMEOUT
    fail_on_catalog_error: bool = False
    recursive: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "rejected_qualifiers", frozenset(
            q.strip().lower() for q in self.rejected_qualifiers if q and q.strip()
        ))
        object.__setattr__(self, "ignored_modules", frozenset(
            m if isinstance(m, ModuleCoordinate) else _coordinate(m) for m in self.ignored_modules
        ))
        object.__setattr__(self, "repositories", tuple(self.repositories))
        if self.parallelism is not None and self.parallelism < 1:
            raise ConfigError("parallelism must be at least 1")
        if self.request_timeout <= 0:
            raise ConfigError("request_timeout must be positive")

    def with_overrides(self, **overrides: Any) -> "UpdateConfig":
        """Copy with every non-None override applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


def _coordinate(text: str) -> ModuleCoordinate:
    try:
        return ModuleCoordinate.parse(text)
    except ValueError as exc:
        raise ConfigError(f"Invalid ignored module: {exc}") from exc


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def env_or_property(env_name: str, prop_name: str, default: Any,
                    properties: Mapping[str, Any], environ: Optional[Mapping[str, str]] = None) -> Any:
    """Resolve one setting: environment, then property source, then default.

    The property is looked up under its snake_case name and its camelCase
    spelling (``catalogs_directory`` / ``catalogsDirectory``).
    """
    env = os.environ if environ is None else environ
    value = env.get(env_name)
    if value is not None and value.strip() != "":
        return value
    for key in (prop_name, _camel(prop_name)):
        found = properties.get(key, _MISSING)
        if found is not _MISSING and found is not None:
            return found
    return default


def as_bool(value: Any, name: str) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ConfigError(f"{name}: expected a boolean, got {value!r}")


def as_list(value: Any) -> List[str]:
    """Comma separated string or YAML list -> list of trimmed strings."""
    if value is None:
        return []
    if isinstance(value, str):
        items: Iterable[Any] = value.split(",")
    else:
        items = value
    return [str(item).strip() for item in items if str(item).strip()]


def as_int(value: Any, name: str) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{name}: expected an integer, got {value!r}") from exc


def as_float(value: Any, name: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{name}: expected a number, got {value!r}") from exc


def load_properties(config_path: Optional[str]) -> Dict[str, Any]:
    """Load the property layer from a YAML file.

    A top-level ``vcupdate:`` mapping is used when present. A missing file
    yields an empty layer.
    """
    if not config_path:
        return {}

    if not os.path.isfile(config_path):
        logger.warning("Config file not found: %s", config_path)
        return {}

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid config file {config_path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {config_path} must contain a mapping")
    section = data.get("vcupdate", data)
    return section if isinstance(section, dict) else {}


def parse_repositories(value: Any, environ: Mapping[str, str]) -> Tuple[Repository, ...]:
    """Repositories from URLs or {name, url, username, password} mappings.

    Shared credentials from the environment apply to repositories that
    declare none of their own.
    """
    if value is None:
        repos = default_repositories()
    else:
        items = as_list(value) if isinstance(value, str) else list(value)
        repos = []
        for index, item in enumerate(items):
            if isinstance(item, str):
                repos.append(Repository(name=_repository_name(item, index), url=item))
            elif isinstance(item, dict) and item.get("url"):
                repos.append(Repository(
                    name=str(item.get("name") or _repository_name(item["url"], index)),
                    url=str(item["url"]),
                    username=item.get("username"),
                    password=item.get("password"),
                ))
            else:
                raise ConfigError(f"Invalid repository declaration: {item!r}")

    username = environ.get(f"{ENV_PREFIX}REPOSITORY_USERNAME")
    password = environ.get(f"{ENV_PREFIX}REPOSITORY_PASSWORD")
    if username and password is not None:
        repos = [
            repo if repo.auth else replace(repo, username=username, password=password)
            for repo in repos
        ]
    return tuple(repos)


def _repository_name(url: str, index: int) -> str:
    host = re.sub(r"^[a-z]+://", "", url).split("/", 1)[0]
    return host or f"repository-{index}"


def load_config(config_path: Optional[str] = None, *,
                environ: Optional[Mapping[str, str]] = None) -> UpdateConfig:
    """Resolve an UpdateConfig from environment, config file and defaults."""
    env = os.environ if environ is None else environ
    props = load_properties(config_path)

    def layer(name: str, default: Any) -> Any:
        return env_or_property(ENV_PREFIX + name.upper(), name, default, props, env)

    rejected = layer("rejected_qualifiers", None)
    return UpdateConfig(
        catalogs_directory=str(layer("catalogs_directory", Constants.DEFAULT_CATALOGS_DIR)),
        output_directory=str(layer("output_directory", Constants.DEFAULT_OUTPUT_DIR)),
        rejected_qualifiers=frozenset(
            Constants.DEFAULT_REJECTED_QUALIFIERS if rejected is None else as_list(rejected)
        ),
        ignored_modules=frozenset(_coordinate(m) for m in as_list(layer("ignored_modules", None))),
        allow_major_updates=as_bool(layer("allow_major_updates", False), "allow_major_updates"),
        repositories=parse_repositories(layer("repositories", None), env),
        parallelism=as_int(layer("parallelism", None), "parallelism"),
        request_timeout=as_float(layer("request_timeout", Constants.REQUEST_TIMEOUT), "request_timeout"),
        fail_on_catalog_error=as_bool(layer("fail_on_catalog_error", False), "fail_on_catalog_error"),
        recursive=as_bool(layer("recursive", False), "recursive"),
    )

from __future__ import annotations

import os
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Any, cast

import yaml

from .errors import ConfigError
from .github_search import DEFAULT_GRAPHQL_URL, DEFAULT_MAX_PAGES, DEFAULT_PAGE_SIZE, DEFAULT_TIMEOUT
from .models import Action, PullRequestRef
from .query import split_repository
from .registry import USER_CONFIG_DIR
from .throttle import parse_throttle

CONFIG_ENV_VAR = "PRSWEEP_CONFIG"
DEFAULT_CONFIG_PATH = USER_CONFIG_DIR / "config.yaml"


@dataclass
class Settings:
    """Process-level settings from ``~/.config/prsweep/config.yaml``.

    Every key is optional; a missing file yields the defaults below.
    """

    source_file: Path | None = None
    # Logging configuration
    logging_json_enabled: bool = False
    logging_level: str = "WARNING"
    # GitHub transport
    graphql_url: str = DEFAULT_GRAPHQL_URL
    page_size: int = DEFAULT_PAGE_SIZE
    max_pages: int = DEFAULT_MAX_PAGES
    request_timeout: float = DEFAULT_TIMEOUT
    fetch_timeout: float | None = None
    # Registries
    templates_dir: Path | None = None
    actions_dir: Path | None = None
    # Defaults merged with the command line
    default_repositories: list[str] = field(default_factory=list)
    default_throttle: str = ""


def _section(raw: dict[str, Any], key: str) -> dict[str, Any]:
    value = raw.get(key) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"config section {key!r} must be a mapping")
    return cast(dict[str, Any], value)


def _optional_path(value: Any, base: Path) -> Path | None:
    if not value:
        return None
    p = Path(str(value)).expanduser()
    return p if p.is_absolute() else base / p


def load_settings(path: str | Path | None = None) -> Settings:
    """Load settings from ``path``, ``$PRSWEEP_CONFIG`` or the default location.

    Only an explicitly requested file is required to exist.
    """
    explicit = path or os.environ.get(CONFIG_ENV_VAR)
    p = Path(explicit).expanduser() if explicit else DEFAULT_CONFIG_PATH.expanduser()
    if not p.exists():
        if explicit:
            raise ConfigError(f"Configuration file not found: {p}")
        return Settings()
    try:
        raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"failed to parse {p}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigError(f"failed to parse {p}: expected a mapping")

    logging_config = _section(raw, "logging")
    gh = _section(raw, "github")
    registries = _section(raw, "registries")
    defaults = _section(raw, "defaults")
    fetch_timeout = gh.get("fetch_timeout")

    try:
        return Settings(
            source_file=p,
            logging_json_enabled=bool(logging_config.get("json_enabled", False)),
            logging_level=str(logging_config.get("level", "WARNING")),
            graphql_url=str(gh.get("graphql_url", DEFAULT_GRAPHQL_URL)),
            page_size=int(gh.get("page_size", DEFAULT_PAGE_SIZE)),
            max_pages=int(gh.get("max_pages", DEFAULT_MAX_PAGES)),
            request_timeout=float(gh.get("timeout", DEFAULT_TIMEOUT)),
            fetch_timeout=float(fetch_timeout) if fetch_timeout is not None else None,
            templates_dir=_optional_path(registries.get("templates_dir"), p.parent),
            actions_dir=_optional_path(registries.get("actions_dir"), p.parent),
            default_repositories=[str(r) for r in defaults.get("repositories", []) or []],
            default_throttle=str(defaults.get("throttle", "") or ""),
        )
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"invalid value in {p}: {exc}") from exc


@dataclass(frozen=True)
class RunConfig:
    """Everything one pipeline run needs, fixed before any network activity."""

    repositories: tuple[str, ...]
    parsed_prs: tuple[PullRequestRef, ...] = ()
    excluded_prs: tuple[PullRequestRef, ...] = ()
    actions: tuple[Action, ...] = ()
    search_query: str = ""
    throttle: timedelta = timedelta(0)


def build_run_config(
    *,
    repositories: Iterable[str],
    refs: Sequence[PullRequestRef] = (),
    exclude: Sequence[PullRequestRef] = (),
    actions: Iterable[Action] = (),
    search_query: str = "",
    throttle: str | timedelta | None = None,
) -> RunConfig:
    """Validate inputs and freeze them into a :class:`RunConfig`.

    Repositories named by PR URLs join the explicit repository set. At least
    one repository is required when a bare PR number, or no PR at all, is
    given.
    """
    repos = {r for r in repositories if r}
    for ref in refs:
        if ref.repo:
            repos.add(ref.repo)
    has_numeric = any(not ref.repo for ref in refs)
    if not repos and (has_numeric or not refs):
        raise ConfigError("--repo is required when using numeric PR arguments or no PR arguments")
    for repo in repos:
        split_repository(repo)

    window = throttle if isinstance(throttle, timedelta) else parse_throttle(throttle)
    return RunConfig(
        repositories=tuple(sorted(repos)),
        parsed_prs=tuple(refs),
        excluded_prs=tuple(exclude),
        actions=tuple(actions),
        search_query=search_query,
        throttle=window,
    )


__all__ = [
    "CONFIG_ENV_VAR",
    "RunConfig",
    "Settings",
    "build_run_config",
    "load_settings",
]

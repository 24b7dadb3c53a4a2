"""Turn enabled filter/action flags into a search query and an action list.

Clauses are joined in ascending flag-name order. GitHub treats the query as
an unordered AND of clauses, so the order only matters for reproducible
output and tests.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Union

from .actions import ActionRegistry
from .errors import ConfigError
from .models import Action, LabelPredicate
from .templates import TemplateRegistry

FlagValue = Union[bool, str, Sequence[str], None]


def _is_enabled(value: FlagValue) -> bool:
    if isinstance(value, str):
        return value != ""
    if isinstance(value, bool) or value is None:
        return bool(value)
    return len(value) > 0


def build_search_query(registry: TemplateRegistry, enabled: Mapping[str, FlagValue]) -> str:
    """Compose the run query from the enabled template flags.

    ``enabled`` maps a template flag to ``True`` (plain templates), a string
    (single-value templates) or a list of strings (multi-value templates).
    Unknown flags raise ``ConfigError``.
    """
    terms: list[str] = []
    for flag in sorted(enabled):
        value = enabled[flag]
        if not _is_enabled(value):
            continue
        template = registry.get(flag)
        if template is None:
            raise ConfigError(f"template {flag} not found")
        if isinstance(value, str):
            fragment = registry.build_query(flag, value, [value] if template.supports_multiple else None)
        elif isinstance(value, bool):
            fragment = registry.build_query(flag)
        else:
            values = list(value)
            fragment = registry.build_query(flag, values[0] if values else "", values)
        if fragment:
            terms.append(fragment)
    return " ".join(terms)


def resolve_actions(
    registry: ActionRegistry,
    enabled_flags: Iterable[str],
    comments: Iterable[str] = (),
) -> list[Action]:
    """Explicit comment texts first, then enabled registry actions by flag."""
    actions = [Action(comment=c, predicate=LabelPredicate.NONE) for c in comments]
    for flag in sorted(set(enabled_flags)):
        definition = registry.get(flag)
        if definition is None:
            raise ConfigError(f"action {flag} not found")
        actions.append(definition.to_action())
    return actions


def split_repository(repo: str) -> tuple[str, str]:
    parts = repo.split("/")
    if len(parts) != 2 or not all(p.strip() for p in parts):
        raise ConfigError(f"invalid repository format: {repo!r} (expected OWNER/NAME)")
    return parts[0], parts[1]


def repository_query(repo: str, query: str) -> str:
    """Scope ``query`` to open pull requests in ``repo``."""
    owner, name = split_repository(repo)
    terms = [f"repo:{owner}/{name}", "type:pr", "state:open"]
    if query:
        terms.append(query)
    return " ".join(terms)


__all__ = [
    "FlagValue",
    "build_search_query",
    "repository_query",
    "resolve_actions",
    "split_repository",
]

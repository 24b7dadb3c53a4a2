"""Comment actions and their label predicates.

An action is a comment body to post on a PR. Its optional predicate keeps
it idempotent (``skip_if_label_exists``: don't ``/approve`` an already
approved PR) or gated on an eligibility marker (``only_if_label_exists``:
only ``/ok-to-test`` PRs labelled ``needs-ok-to-test``).

Nothing here talks to GitHub. :func:`render_command` produces the ``gh``
command line; running it is the caller's business.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from .models import Action, ActionDefinition, LabelPredicate
from .registry import load_definitions, require

COMMENT_TOOL = "gh"


def should_apply(action: Action, labels: frozenset[str] | set[str]) -> bool:
    has_label = action.label in labels
    if action.predicate is LabelPredicate.SKIP_IF_LABEL_EXISTS:
        return not has_label
    if action.predicate is LabelPredicate.ONLY_IF_LABEL_EXISTS:
        return has_label
    return True


def filter_actions(actions: Iterable[Action], labels: Iterable[str]) -> list[Action]:
    """Return the actions that fire for a PR carrying ``labels``, in input order."""
    label_set = frozenset(labels)
    return [a for a in actions if should_apply(a, label_set)]


def escape_body(text: str) -> str:
    return text.replace('"', '\\"')


def render_command(action: Action, repo: str, number: int) -> str:
    return (
        f'{COMMENT_TOOL} pr comment --repo {repo} {number} '
        f'--body "{escape_body(action.comment)}"'
    )


def validate_action(raw: dict[str, Any], source: str) -> ActionDefinition:
    require(raw, "name", "flag", "description", "comment")
    definition = ActionDefinition(
        name=str(raw["name"]),
        flag=str(raw["flag"]),
        description=str(raw["description"]),
        comment=str(raw["comment"]),
        label=str(raw.get("label") or ""),
        predicate=str(raw.get("predicate") or ""),
        source=source,
    )
    # predicate name and label requirement are checked by Action itself
    definition.to_action()
    return definition


class ActionRegistry:
    """Read-only mapping of flag name to :class:`ActionDefinition`."""

    def __init__(self, definitions: Mapping[str, ActionDefinition]):
        self._definitions = dict(definitions)

    @classmethod
    def load(
        cls, user_dir: Path | None = None, *, include_embedded: bool = True
    ) -> ActionRegistry:
        return cls(
            load_definitions(
                "actions",
                validate_action,
                user_dir=user_dir,
                include_embedded=include_embedded,
            )
        )

    def get(self, flag: str) -> ActionDefinition | None:
        return self._definitions.get(flag)

    def all(self) -> dict[str, ActionDefinition]:
        return dict(self._definitions)

    def flags(self, source: str | None = None) -> list[str]:
        return sorted(
            flag for flag, d in self._definitions.items() if source is None or d.source == source
        )

    def __contains__(self, flag: object) -> bool:
        return flag in self._definitions

    def __len__(self) -> int:
        return len(self._definitions)


__all__ = [
    "ActionRegistry",
    "COMMENT_TOOL",
    "escape_body",
    "filter_actions",
    "render_command",
    "should_apply",
    "validate_action",
]

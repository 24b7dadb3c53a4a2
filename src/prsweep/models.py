from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone

from .errors import ConfigError

FAILING_STATES = frozenset({"FAILURE", "ACTION_REQUIRED"})
PENDING_STATES = frozenset({"PENDING"})

_FRACTION = re.compile(r"\.([0-9]+)(?=[+-]|$)")


def parse_timestamp(value: str) -> datetime | None:
    """Parse an RFC 3339 timestamp, returning None when it cannot be parsed.

    A UTC offset is mandatory (``Z`` is accepted); naive timestamps are
    treated as unparsable. Fractional seconds of any length are accepted and
    truncated to microseconds.
    """
    if not value:
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    # fromisoformat before 3.11 only takes 3 or 6 fractional digits
    text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return None
    return parsed


class LabelPredicate(enum.Enum):
    """Gate controlling whether an :class:`Action` fires for a PR."""

    NONE = ""
    SKIP_IF_LABEL_EXISTS = "skip_if_label_exists"
    ONLY_IF_LABEL_EXISTS = "only_if_label_exists"

    @classmethod
    def from_name(cls, name: str | None) -> LabelPredicate:
        try:
            return cls(name or "")
        except ValueError:
            valid = ", ".join(p.value for p in cls if p.value)
            raise ConfigError(f"invalid predicate {name!r}, must be one of: {valid}") from None


@dataclass(frozen=True)
class Action:
    comment: str
    label: str = ""
    predicate: LabelPredicate = LabelPredicate.NONE

    def __post_init__(self) -> None:
        if self.predicate is not LabelPredicate.NONE and not self.label:
            raise ConfigError(
                f"label is required when predicate {self.predicate.value!r} is specified"
            )


@dataclass(frozen=True)
class QueryTemplate:
    """A named, possibly parameterized fragment of search syntax bound to a flag."""

    name: str
    flag: str
    description: str
    query: str = ""
    query_template: str = ""
    flag_short: str = ""
    parameterized: bool = False
    supports_multiple: bool = False
    source: str = "embedded"


@dataclass(frozen=True)
class ActionDefinition:
    name: str
    flag: str
    description: str
    comment: str
    label: str = ""
    predicate: str = ""
    source: str = "embedded"

    def to_action(self) -> Action:
        return Action(
            comment=self.comment,
            label=self.label,
            predicate=LabelPredicate.from_name(self.predicate),
        )


@dataclass(frozen=True)
class PullRequestRef:
    number: int
    repo: str = ""  # empty for numeric arguments, populated for URLs


@dataclass(frozen=True)
class StatusCheck:
    name: str
    state: str
    url: str = ""


@dataclass(frozen=True)
class Comment:
    body: str
    created_at: str
    author_login: str = ""


@dataclass(frozen=True)
class PullRequest:
    number: int
    title: str = ""
    author_login: str = ""
    labels: frozenset[str] = frozenset()
    url: str = ""
    state: str = "OPEN"
    created_at: str = ""
    head_ref_name: str = ""
    status_checks: tuple[StatusCheck, ...] = ()
    comments: tuple[Comment, ...] = ()
    repository: str = ""

    def has_label(self, label: str) -> bool:
        return label in self.labels

    def ci_status(self) -> str:
        states = [check.state.upper() for check in self.status_checks]
        if any(s in FAILING_STATES for s in states):
            return "Failing"
        if any(s in PENDING_STATES for s in states):
            return "Pending"
        return "Passing"

    def last_comment_age(self, now: datetime | None = None) -> str:
        """Age of the most recent comment with a parseable timestamp."""
        stamps = [parse_timestamp(c.created_at) for c in self.comments]
        parsed = [s for s in stamps if s is not None]
        if not parsed:
            return "never"
        now = now or datetime.now(timezone.utc)
        seconds = max(0, int((now - max(parsed)).total_seconds()))
        if seconds < 60:
            return f"{seconds}s"
        if seconds < 3600:
            return f"{seconds // 60}m"
        if seconds < 86400:
            return f"{seconds // 3600}h{(seconds % 3600) // 60}m"
        return f"{seconds // 86400}d"


@dataclass
class RepositoryPRs:
    repository: str
    prs: list[PullRequest] = field(default_factory=list)


__all__ = [
    "Action",
    "ActionDefinition",
    "Comment",
    "LabelPredicate",
    "PullRequest",
    "PullRequestRef",
    "QueryTemplate",
    "RepositoryPRs",
    "StatusCheck",
    "parse_timestamp",
]

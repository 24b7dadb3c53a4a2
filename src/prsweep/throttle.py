"""Duplicate-comment throttling.

The check only sees the comments fetched with the PR (the last 15 from the
search query), so it is advisory: an identical comment older than that
snapshot is invisible.
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone

from .errors import ConfigError
from .models import PullRequest, parse_timestamp

_UNIT_SECONDS = {"s": 1, "m": 60, "h": 3600, "d": 86400}
_DURATION_PART = re.compile(r"([0-9]+)([smhd])")
_MINUTES = re.compile(r"^[0-9]+$")
_DURATION = re.compile(r"^(?:[0-9]+[smhd])+$")


def is_throttled(
    pr: PullRequest,
    comment_text: str,
    window: timedelta,
    now: datetime | None = None,
) -> bool:
    """True when an identical comment was posted on ``pr`` within ``window``.

    Bodies are compared after stripping surrounding whitespace. Comments
    whose timestamp cannot be parsed never match.
    """
    if window <= timedelta(0):
        return False

    cutoff = (now or datetime.now(timezone.utc)) - window
    candidate = comment_text.strip()
    for comment in pr.comments:
        if comment.body.strip() != candidate:
            continue
        created = parse_timestamp(comment.created_at)
        if created is None:
            continue
        if created > cutoff:
            return True
    return False


def parse_throttle(text: str | None) -> timedelta:
    """Parse ``5`` (minutes), ``30s``, ``5m``, ``2h``, ``1d`` or ``1h30m``."""
    value = (text or "").strip()
    if not value:
        return timedelta(0)
    if _MINUTES.fullmatch(value):
        return timedelta(minutes=int(value))
    if not _DURATION.fullmatch(value):
        raise ConfigError(
            f"invalid throttle {text!r}: use a number of minutes or e.g. '30s', '5m', '2h', '1h30m'"
        )
    seconds = sum(int(n) * _UNIT_SECONDS[unit] for n, unit in _DURATION_PART.findall(value))
    return timedelta(seconds=seconds)


__all__ = ["is_throttled", "parse_throttle"]

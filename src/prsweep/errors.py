"""Error taxonomy & redaction helpers.

Every failure the pipeline raises derives from :class:`PrSweepError` so the
CLI can map it to an exit code in one place:

- ``ConfigError``          malformed template/action, bad repository, bad throttle
- ``ReferenceParseError``  a PR argument is neither an integer nor a PR URL
- ``FetchError``           a repository search failed; the whole run aborts
- ``FetchCancelledError``  the fetch was cancelled or timed out

Public helpers:
- classify_error(exc) -> ErrorInfo
- redact(text) -> str
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

_SENSITIVE_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"ghp_[A-Za-z0-9]{20,40}"),  # GitHub classic tokens
    re.compile(r"gho_[A-Za-z0-9]{20,40}"),  # gh CLI OAuth tokens
    re.compile(r"github_pat_\w{20,}"),  # GitHub fine-grained tokens
    re.compile(r"(?i)bearer\s+[A-Za-z0-9_\-\.]{20,}"),
]

_REDACTION_PLACEHOLDER = "<redacted>"


class PrSweepError(RuntimeError):
    """Base class for all prsweep failures."""


class ConfigError(PrSweepError):
    pass


class ReferenceParseError(PrSweepError):
    def __init__(self, token: str, reason: str = "invalid PR number or URL"):
        super().__init__(f"{reason} {token!r}")
        self.token = token


class FetchError(PrSweepError):
    """A repository search failed.

    ``repository`` names the offending repository so the operator can tell
    which target broke the run.
    """

    def __init__(self, repository: str, cause: BaseException | str):
        detail = cause if isinstance(cause, str) else str(cause) or cause.__class__.__name__
        super().__init__(f"failed to search PRs for {repository}: {detail}")
        self.repository = repository
        self.cause = cause if isinstance(cause, BaseException) else None


class FetchCancelledError(FetchError):
    def __init__(self, reason: str = "cancelled"):
        PrSweepError.__init__(self, f"fetch {reason}")
        self.repository = ""
        self.cause = None


@dataclass
class ErrorInfo:
    category: str
    message: str
    original_type: str
    transient: bool = False
    details: dict[str, Any] | None = None


def redact(text: str) -> str:
    """Redact GitHub tokens in arbitrary text."""
    if not text:
        return text
    redacted = text
    for pat in _SENSITIVE_PATTERNS:
        redacted = pat.sub(_REDACTION_PLACEHOLDER, redacted)
    return redacted


def classify_error(exc: BaseException) -> ErrorInfo:
    """Best-effort classification of an exception.

    Typed prsweep errors map directly; anything else falls back to keyword
    sniffing of the message (rate limit, network) and finally 'generic'.
    """
    msg = str(exc) if exc else ""
    low = msg.lower()
    name = exc.__class__.__name__

    if isinstance(exc, ConfigError):
        return ErrorInfo("config", redact(msg), name)
    if isinstance(exc, ReferenceParseError):
        return ErrorInfo("reference", redact(msg), name, details={"token": exc.token})
    if "rate limit" in low or "secondary rate" in low:
        return ErrorInfo("github.rate_limit", redact(msg), name, transient=True)
    if any(k in low for k in ("timeout", "timed out", "connection reset", "temporarily unavailable")):
        return ErrorInfo("network", redact(msg), name, transient=True)
    if isinstance(exc, FetchError):
        details = {"repository": exc.repository} if exc.repository else None
        return ErrorInfo("fetch", redact(msg), name, details=details)
    return ErrorInfo("generic", redact(msg), name)


__all__ = [
    "PrSweepError",
    "ConfigError",
    "ReferenceParseError",
    "FetchError",
    "FetchCancelledError",
    "ErrorInfo",
    "classify_error",
    "redact",
]

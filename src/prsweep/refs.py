"""Pull-request references given on the command line.

A reference is either a bare number (applies to every configured
repository) or a PR URL such as ``https://github.com/owner/repo/pull/123``
(applies to that repository only).
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from urllib.parse import urlsplit

from .errors import ReferenceParseError
from .models import PullRequestRef, RepositoryPRs

_PR_PATH = re.compile(r"^/([^/]+)/([^/]+)/pull/([0-9]+)/?$")
_NUMBER = re.compile(r"^[+-]?[0-9]+$")


def parse_pr_argument(arg: str) -> PullRequestRef:
    if _NUMBER.fullmatch(arg):
        return PullRequestRef(number=int(arg))

    parts = urlsplit(arg)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise ReferenceParseError(arg)
    match = _PR_PATH.fullmatch(parts.path)
    if not match:
        raise ReferenceParseError(arg, "invalid GitHub PR URL")
    owner, name, number = match.groups()
    return PullRequestRef(number=int(number), repo=f"{owner}/{name}")


def parse_pr_arguments(args: Iterable[str]) -> list[PullRequestRef]:
    return [parse_pr_argument(a) for a in args]


def _numbers_for(repository: str, refs: Sequence[PullRequestRef]) -> set[int]:
    return {ref.number for ref in refs if not ref.repo or ref.repo == repository}


def select_prs(
    results: Sequence[RepositoryPRs],
    refs: Sequence[PullRequestRef],
    exclude: Sequence[PullRequestRef] = (),
) -> list[RepositoryPRs]:
    """Narrow ``results`` to ``refs`` and drop ``exclude``.

    With no refs and no excludes the input is returned as-is. A repository
    that no ref applies to keeps zero PRs. PR objects are never modified.
    """
    if not refs and not exclude:
        return list(results)

    selected: list[RepositoryPRs] = []
    for group in results:
        prs = list(group.prs)
        if refs:
            wanted = _numbers_for(group.repository, refs)
            prs = [pr for pr in prs if pr.number in wanted]
        if exclude:
            unwanted = _numbers_for(group.repository, exclude)
            prs = [pr for pr in prs if pr.number not in unwanted]
        selected.append(RepositoryPRs(repository=group.repository, prs=prs))
    return selected


__all__ = ["parse_pr_argument", "parse_pr_arguments", "select_prs"]

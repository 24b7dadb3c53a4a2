"""GitHub GraphQL search transport.

One :class:`GitHubSearchClient` is created per repository by the fetcher.
``search(query)`` scopes the query to the repository's open pull requests,
follows ``pageInfo`` cursors up to ``max_pages`` and converts each node into
a :class:`~prsweep.models.PullRequest`.
"""

from __future__ import annotations

import os
import shutil
import subprocess  # nosec B404 - used to read the gh CLI token
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

import requests

from .errors import ConfigError
from .logging import get_logger
from .models import Comment, PullRequest, StatusCheck
from .query import repository_query

DEFAULT_GRAPHQL_URL = "https://api.github.com/graphql"
USER_AGENT = "prsweep/0.3.0"
HTTP_ERROR_STATUS = 400
DEFAULT_PAGE_SIZE = 100
DEFAULT_MAX_PAGES = 20
DEFAULT_TIMEOUT = 30.0
TOKEN_ENV_VARS = ("GITHUB_TOKEN", "GH_TOKEN")

SEARCH_QUERY = """
query($query: String!, $first: Int!, $after: String) {
  search(query: $query, type: ISSUE, first: $first, after: $after) {
    nodes {
      ... on PullRequest {
        number
        title
        url
        state
        createdAt
        headRefName
        author { login }
        labels(first: 20) { nodes { name } }
        statusCheckRollup {
          contexts(first: 100) {
            nodes {
              __typename
              ... on CheckRun { name conclusion detailsUrl }
              ... on StatusContext { context state targetUrl }
            }
          }
        }
        comments(last: 15) {
          nodes { body createdAt author { login } }
        }
      }
    }
    pageInfo { hasNextPage endCursor }
  }
}
"""


class GitHubAPIError(RuntimeError):
    """Raised when the GitHub GraphQL API returns an error."""

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        response_text: str | None = None,
    ):
        super().__init__(message)
        self.status = status
        self.response_text = response_text


class PullRequestSearcher(Protocol):
    def search(self, query: str) -> list[PullRequest]: ...


ClientFactory = Callable[[str], PullRequestSearcher]


def resolve_token() -> str:
    """Find a GitHub token in the environment or from ``gh auth token``."""
    for var in TOKEN_ENV_VARS:
        token = os.getenv(var)
        if token:
            return token
    gh_path = shutil.which("gh")
    if gh_path:
        try:
            out = subprocess.check_output(  # nosec B603 - fixed argument list
                [gh_path, "auth", "token"], text=True, stderr=subprocess.DEVNULL
            )
        except subprocess.CalledProcessError:
            out = ""
        if out.strip():
            return out.strip()
    raise ConfigError(
        "no GitHub token found: set GITHUB_TOKEN or GH_TOKEN, or run 'gh auth login'"
    )


def _nodes(container: Any) -> list[Any]:
    if isinstance(container, dict):
        nodes = container.get("nodes")
        if isinstance(nodes, list):
            return [n for n in nodes if isinstance(n, dict)]
    return []


def _login(node: dict[str, Any]) -> str:
    author = node.get("author")
    if isinstance(author, dict):
        return str(author.get("login") or "")
    return ""


def convert_status_check(node: dict[str, Any]) -> StatusCheck:
    if node.get("__typename") == "StatusContext" or "context" in node:
        return StatusCheck(
            name=str(node.get("context") or "Unknown Status"),
            state=str(node.get("state") or ""),
            url=str(node.get("targetUrl") or ""),
        )
    return StatusCheck(
        name=str(node.get("name") or "Unknown Check"),
        state=str(node.get("conclusion") or node.get("status") or ""),
        url=str(node.get("detailsUrl") or ""),
    )


def convert_pull_request(node: dict[str, Any], repository: str) -> PullRequest:
    rollup = node.get("statusCheckRollup") or {}
    contexts = rollup.get("contexts") if isinstance(rollup, dict) else None
    return PullRequest(
        number=int(node["number"]),
        title=str(node.get("title") or ""),
        author_login=_login(node),
        labels=frozenset(str(n.get("name")) for n in _nodes(node.get("labels"))),
        url=str(node.get("url") or ""),
        state=str(node.get("state") or ""),
        created_at=str(node.get("createdAt") or ""),
        head_ref_name=str(node.get("headRefName") or ""),
        status_checks=tuple(convert_status_check(n) for n in _nodes(contexts)),
        comments=tuple(
            Comment(
                body=str(c.get("body") or ""),
                created_at=str(c.get("createdAt") or ""),
                author_login=_login(c),
            )
            for c in _nodes(node.get("comments"))
        ),
        repository=repository,
    )


@dataclass
class GitHubSearchClient:
    """Search client for one repository."""

    token: str
    repo: str
    graphql_url: str = DEFAULT_GRAPHQL_URL
    page_size: int = DEFAULT_PAGE_SIZE
    max_pages: int = DEFAULT_MAX_PAGES
    timeout: float = DEFAULT_TIMEOUT
    session: requests.Session | None = None
    _session: requests.Session = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._session = self.session or requests.Session()
        self._session.headers.setdefault("Authorization", f"Bearer {self.token}")
        self._session.headers.setdefault("Accept", "application/vnd.github+json")
        self._session.headers.setdefault("User-Agent", USER_AGENT)

    def graphql(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        payload = {"query": query, "variables": variables or {}}
        response = self._session.request(
            "POST",
            self.graphql_url,
            json=payload,
            headers=self._session.headers,
            timeout=self.timeout,
        )
        if response.status_code >= HTTP_ERROR_STATUS:
            raise GitHubAPIError(
                f"GitHub GraphQL request failed with {response.status_code}",
                status=response.status_code,
                response_text=response.text,
            )
        data = response.json()
        if not isinstance(data, dict):
            raise GitHubAPIError("unexpected GraphQL response", response_text=response.text)
        if data.get("errors"):
            raise GitHubAPIError(f"GraphQL query failed: {data['errors']}")
        return data

    def search(self, query: str) -> list[PullRequest]:
        search_query = repository_query(self.repo, query)
        logger = get_logger()
        logger.debug("searching pull requests", repository=self.repo, query=search_query)

        prs: list[PullRequest] = []
        after: str | None = None
        for page in range(1, self.max_pages + 1):
            data = self.graphql(
                SEARCH_QUERY,
                {"query": search_query, "first": self.page_size, "after": after},
            )
            search = (data.get("data") or {}).get("search") or {}
            for node in _nodes(search):
                if "number" in node:
                    prs.append(convert_pull_request(node, self.repo))
            page_info = search.get("pageInfo") or {}
            after = page_info.get("endCursor")
            if not page_info.get("hasNextPage") or not after:
                break
            if page == self.max_pages:
                logger.warning(
                    "search truncated at page limit",
                    repository=self.repo,
                    max_pages=self.max_pages,
                )
        return prs


def make_client_factory(
    token: str,
    *,
    graphql_url: str = DEFAULT_GRAPHQL_URL,
    page_size: int = DEFAULT_PAGE_SIZE,
    max_pages: int = DEFAULT_MAX_PAGES,
    timeout: float = DEFAULT_TIMEOUT,
) -> ClientFactory:
    def factory(repo: str) -> GitHubSearchClient:
        return GitHubSearchClient(
            token=token,
            repo=repo,
            graphql_url=graphql_url,
            page_size=page_size,
            max_pages=max_pages,
            timeout=timeout,
        )

    return factory


__all__ = [
    "ClientFactory",
    "GitHubAPIError",
    "GitHubSearchClient",
    "PullRequestSearcher",
    "convert_pull_request",
    "convert_status_check",
    "make_client_factory",
    "resolve_token",
]

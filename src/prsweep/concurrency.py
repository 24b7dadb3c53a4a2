"""Concurrent fan-out of one search across repositories.

Each repository gets its own asyncio task. Synchronous searchers (the
``requests`` based transport) run in a thread pool sized to the number of
repositories; coroutine searchers are awaited directly.

The fetch is fail-fast: the first repository error cancels the remaining
tasks and is raised as :class:`~prsweep.errors.FetchError`. No partial
result ever leaves this module.
"""

from __future__ import annotations

import asyncio
import functools
import inspect
import time
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor

from .errors import FetchCancelledError, FetchError
from .github_search import ClientFactory, PullRequestSearcher
from .logging import get_logger
from .models import PullRequest, RepositoryPRs


def sort_results(results: Iterable[RepositoryPRs]) -> list[RepositoryPRs]:
    """Repositories ascending by name, PRs descending by number."""
    ordered = sorted(results, key=lambda r: r.repository)
    for group in ordered:
        group.prs = sorted(group.prs, key=lambda pr: pr.number, reverse=True)
    return ordered


class RepositoryFetcher:
    """Runs one query against many repositories and joins the results."""

    def __init__(self, client_factory: ClientFactory):
        self.client_factory = client_factory
        self.logger = get_logger()

    async def _search(
        self, searcher: PullRequestSearcher, query: str, executor: ThreadPoolExecutor
    ) -> list[PullRequest]:
        if inspect.iscoroutinefunction(searcher.search):
            return list(await searcher.search(query))
        loop = asyncio.get_running_loop()
        result = await loop.run_in_executor(executor, functools.partial(searcher.search, query))
        return list(result)

    async def _fetch_one(
        self,
        repo: str,
        query: str,
        executor: ThreadPoolExecutor,
        results: list[RepositoryPRs],
        lock: asyncio.Lock,
    ) -> None:
        try:
            searcher = self.client_factory(repo)
        except Exception as exc:
            raise FetchError(repo, f"failed to create client: {exc}") from exc
        try:
            prs = await self._search(searcher, query, executor)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            raise FetchError(repo, exc) from exc
        self.logger.debug("repository fetched", repository=repo, pr_count=len(prs))
        async with lock:
            results.append(RepositoryPRs(repository=repo, prs=prs))

    async def fetch(
        self,
        repositories: Iterable[str],
        query: str,
        *,
        cancel_event: asyncio.Event | None = None,
        timeout: float | None = None,
    ) -> list[RepositoryPRs]:
        repos = list(dict.fromkeys(repositories))
        if not repos:
            return []

        results: list[RepositoryPRs] = []
        lock = asyncio.Lock()
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout if timeout is not None else None
        start = time.perf_counter()
        self.logger.log_operation("fetch_start", repositories=repos, query=query)

        executor = ThreadPoolExecutor(max_workers=len(repos), thread_name_prefix="prsweep-fetch")
        tasks = {
            asyncio.create_task(self._fetch_one(repo, query, executor, results, lock)): repo
            for repo in repos
        }
        cancel_waiter = (
            asyncio.create_task(cancel_event.wait()) if cancel_event is not None else None
        )
        pending: set[asyncio.Task[None]] = set(tasks)
        try:
            while pending:
                waiting: set[asyncio.Task[object]] = set(pending)
                if cancel_waiter is not None:
                    waiting.add(cancel_waiter)
                remaining = None if deadline is None else max(0.0, deadline - loop.time())
                done, _ = await asyncio.wait(
                    waiting, timeout=remaining, return_when=asyncio.FIRST_COMPLETED
                )
                if not done:
                    raise FetchCancelledError(f"timed out after {timeout}s")
                finished = [t for t in done if t is not cancel_waiter]
                pending.difference_update(finished)  # type: ignore[arg-type]
                # retrieve every exception in this round, not only the raised one
                failures = [
                    t.exception()
                    for t in sorted(finished, key=lambda t: tasks[t])  # type: ignore[index]
                    if not t.cancelled() and t.exception() is not None
                ]
                if cancel_waiter is not None and cancel_waiter in done:
                    raise FetchCancelledError("cancelled")
                if failures:
                    raise failures[0]  # type: ignore[misc]
        except BaseException as exc:
            self.logger.log_error(
                "fetch aborted", error=str(exc), pending=sorted(tasks[t] for t in pending)
            )
            raise
        finally:
            leftovers = list(pending)
            if cancel_waiter is not None:
                leftovers.append(cancel_waiter)  # type: ignore[arg-type]
            for task in leftovers:
                task.cancel()
            if leftovers:
                await asyncio.gather(*leftovers, return_exceptions=True)
            executor.shutdown(wait=False, cancel_futures=True)

        ordered = sort_results(results)
        self.logger.log_performance(
            "fetch",
            (time.perf_counter() - start) * 1000,
            repositories=len(ordered),
            pr_count=sum(len(r.prs) for r in ordered),
        )
        return ordered


async def fetch_repositories_async(
    repositories: Iterable[str],
    query: str,
    client_factory: ClientFactory,
    *,
    cancel_event: asyncio.Event | None = None,
    timeout: float | None = None,
) -> list[RepositoryPRs]:
    fetcher = RepositoryFetcher(client_factory)
    return await fetcher.fetch(repositories, query, cancel_event=cancel_event, timeout=timeout)


def fetch_repositories(
    repositories: Iterable[str],
    query: str,
    client_factory: ClientFactory,
    *,
    timeout: float | None = None,
) -> list[RepositoryPRs]:
    """Blocking wrapper around :func:`fetch_repositories_async`."""
    return asyncio.run(
        fetch_repositories_async(repositories, query, client_factory, timeout=timeout)
    )


__all__ = [
    "RepositoryFetcher",
    "fetch_repositories",
    "fetch_repositories_async",
    "sort_results",
]

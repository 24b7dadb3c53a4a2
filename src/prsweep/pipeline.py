"""fetch -> select -> resolve -> throttle -> emit.

Only the fetch suspends; everything after the join is plain synchronous
computation over the fetched snapshot.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone

from .actions import filter_actions, render_command
from .concurrency import fetch_repositories_async
from .config import RunConfig
from .github_search import ClientFactory
from .logging import get_logger
from .models import Action, RepositoryPRs
from .refs import select_prs
from .throttle import is_throttled


@dataclass(frozen=True)
class ActionDecision:
    repository: str
    number: int
    action: Action
    throttled: bool = False

    @property
    def command(self) -> str:
        return render_command(self.action, self.repository, self.number)


@dataclass
class RunResult:
    repositories: list[RepositoryPRs]
    decisions: list[ActionDecision] = field(default_factory=list)

    @property
    def commands(self) -> list[str]:
        return [d.command for d in self.decisions if not d.throttled]

    @property
    def throttled(self) -> list[ActionDecision]:
        return [d for d in self.decisions if d.throttled]


def decide_actions(
    repositories: list[RepositoryPRs], config: RunConfig, now: datetime | None = None
) -> list[ActionDecision]:
    """Per-PR action decisions in repository, PR, then action order."""
    logger = get_logger()
    now = now or datetime.now(timezone.utc)
    decisions: list[ActionDecision] = []
    for group in repositories:
        for pr in group.prs:
            for action in filter_actions(config.actions, pr.labels):
                throttled = is_throttled(pr, action.comment, config.throttle, now=now)
                if throttled:
                    logger.debug(
                        "throttled recent duplicate",
                        repository=group.repository,
                        pr_number=pr.number,
                        comment=action.comment,
                    )
                decisions.append(
                    ActionDecision(
                        repository=group.repository,
                        number=pr.number,
                        action=action,
                        throttled=throttled,
                    )
                )
    return decisions


async def run(
    config: RunConfig,
    client_factory: ClientFactory,
    *,
    now: datetime | None = None,
    cancel_event: asyncio.Event | None = None,
    timeout: float | None = None,
) -> RunResult:
    fetched = await fetch_repositories_async(
        config.repositories,
        config.search_query,
        client_factory,
        cancel_event=cancel_event,
        timeout=timeout,
    )
    selected = select_prs(fetched, config.parsed_prs, config.excluded_prs)
    if not config.actions:
        return RunResult(repositories=selected)

    with get_logger().timed_operation("resolve_actions", actions=len(config.actions)):
        decisions = decide_actions(selected, config, now=now)
    result = RunResult(repositories=selected, decisions=decisions)
    get_logger().log_operation(
        "actions_resolved",
        commands=len(result.commands),
        throttled=len(result.throttled),
    )
    return result


def run_sync(
    config: RunConfig,
    client_factory: ClientFactory,
    *,
    now: datetime | None = None,
    timeout: float | None = None,
) -> RunResult:
    return asyncio.run(run(config, client_factory, now=now, timeout=timeout))


__all__ = ["ActionDecision", "RunResult", "decide_actions", "run", "run_sync"]

"""prsweep - find GitHub pull requests and generate bulk comment commands.

High-level public API:

from prsweep import ActionRegistry, TemplateRegistry, build_run_config, run_sync
from prsweep.github_search import make_client_factory, resolve_token

templates = TemplateRegistry.load()
actions = ActionRegistry.load()
config = build_run_config(
    repositories=["owner/repo"],
    actions=[actions.get("approve").to_action()],
    search_query=templates.build_query("needs-approve"),
)
result = run_sync(config, make_client_factory(resolve_token()))
print("\\n".join(result.commands))

Nothing here posts to GitHub; the commands are for the caller to run.
"""

from __future__ import annotations

__version__ = "0.3.0"

from .actions import ActionRegistry, filter_actions, render_command
from .config import RunConfig, build_run_config, load_settings
from .errors import ConfigError, FetchError, PrSweepError, ReferenceParseError
from .models import Action, LabelPredicate, PullRequest, PullRequestRef, QueryTemplate
from .pipeline import RunResult, run, run_sync
from .refs import parse_pr_argument, select_prs
from .templates import TemplateRegistry, compose
from .throttle import is_throttled

__all__ = [
    "Action",
    "ActionRegistry",
    "ConfigError",
    "FetchError",
    "LabelPredicate",
    "PrSweepError",
    "PullRequest",
    "PullRequestRef",
    "QueryTemplate",
    "ReferenceParseError",
    "RunConfig",
    "RunResult",
    "TemplateRegistry",
    "build_run_config",
    "compose",
    "filter_actions",
    "is_throttled",
    "load_settings",
    "parse_pr_argument",
    "render_command",
    "run",
    "run_sync",
    "select_prs",
    "__version__",
]

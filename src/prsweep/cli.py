"""prsweep CLI.

    prsweep -r owner/repo --needs-approve --approve
    prsweep -r owner/repo --label bug --label=-wip -c "/retest" --throttle 30m
    prsweep https://github.com/owner/repo/pull/123 /lgtm

Filter and action options are generated from the template and action
registries, so user-defined YAML definitions appear as options too. With
actions selected the output is one ``gh pr comment`` command per line,
otherwise a plain PR listing.
"""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any

from prsweep import __version__
from prsweep.actions import ActionRegistry
from prsweep.config import RunConfig, Settings, build_run_config, load_settings
from prsweep.errors import ConfigError, FetchError, PrSweepError, classify_error
from prsweep.github_search import ClientFactory, make_client_factory, resolve_token
from prsweep.logging import StructuredLogger, configure_logging
from prsweep.pipeline import RunResult, run_sync
from prsweep.query import build_search_query, resolve_actions
from prsweep.refs import parse_pr_arguments
from prsweep.templates import TemplateRegistry

EXIT_OK = 0
EXIT_FETCH_FAILED = 1
EXIT_USAGE = 2

_MAX_HELP_WIDTH = 100
_TEMPLATE_DEST = "template__"
_ACTION_DEST = "action__"


class _HelpFormatter(argparse.HelpFormatter):
    def __init__(self, prog: str) -> None:
        super().__init__(prog, max_help_position=30, width=_MAX_HELP_WIDTH)


class _FormatterArgumentParser(argparse.ArgumentParser):
    def __init__(self, *args: Any, **kwargs: Any) -> None:
        kwargs.setdefault("formatter_class", _HelpFormatter)
        super().__init__(*args, **kwargs)


def _base_parser(add_help: bool = True) -> argparse.ArgumentParser:
    p = _FormatterArgumentParser(
        prog="prsweep",
        description="Find GitHub PRs and generate bulk comment commands",
        add_help=add_help,
    )
    p.add_argument("prs", nargs="*", metavar="PR-NUMBER|PR-URL")
    repo = p.add_argument_group("Repository")
    repo.add_argument(
        "-r", "--repo", action="append", default=[], metavar="OWNER/REPO",
        help="GitHub repository (repeatable)",
    )
    repo.add_argument(
        "-E", "--exclude", action="append", default=[], metavar="PR-NUMBER|PR-URL",
        help="Exclude PRs (repeatable or comma-separated)",
    )
    out = p.add_argument_group("Output")
    out.add_argument("-q", "--quiet", action="store_true", help="Print PR numbers only")
    out.add_argument("--debug", action="store_true", help="Enable debug logging")
    out.add_argument("--json-logs", action="store_true", help="Emit JSON log records on stderr")
    out.add_argument("--config", help="Settings file (env: PRSWEEP_CONFIG)")
    out.add_argument("--version", action="version", version=f"prsweep {__version__}")
    act = p.add_argument_group("Actions")
    act.add_argument(
        "-c", "--comment", action="append", default=[], metavar="TEXT",
        help="Generate comment commands (repeatable)",
    )
    act.add_argument(
        "--throttle", metavar="DURATION",
        help="Skip comments posted within DURATION (e.g. 5, 30s, 5m, 2h; unitless = minutes)",
    )
    return p


def _option_strings(parser: argparse.ArgumentParser) -> set[str]:
    return {opt for action in parser._actions for opt in action.option_strings}


def build_parser(
    templates: TemplateRegistry, actions: ActionRegistry, logger: StructuredLogger | None = None
) -> argparse.ArgumentParser:
    """Fixed options plus one option per registry entry, sorted by flag."""
    p = _base_parser()
    taken = _option_strings(p)

    filters = p.add_argument_group("Filters")
    for flag in templates.flags():
        template = templates.all()[flag]
        names = [f"--{flag}"]
        if template.flag_short and f"-{template.flag_short}" not in taken:
            names.insert(0, f"-{template.flag_short}")
        if names[-1] in taken:
            if logger:
                logger.warning("template flag shadows an existing option", flag=flag)
            continue
        dest = f"{_TEMPLATE_DEST}{flag}"
        if not template.parameterized:
            filters.add_argument(*names, dest=dest, action="store_true", help=template.description)
        elif template.supports_multiple:
            filters.add_argument(
                *names, dest=dest, action="append", default=[], metavar="VALUE",
                help=template.description,
            )
        else:
            filters.add_argument(*names, dest=dest, default="", metavar="VALUE", help=template.description)
        taken.update(names)

    group = next(g for g in p._action_groups if g.title == "Actions")
    for flag in actions.flags():
        option = f"--{flag}"
        if option in taken:
            if logger:
                logger.warning("action flag shadows an existing option", flag=flag)
            continue
        group.add_argument(
            option, dest=f"{_ACTION_DEST}{flag}", action="store_true",
            help=actions.all()[flag].description,
        )
        taken.add(option)
    return p


def transform_slash_commands(
    argv: Sequence[str], actions: ActionRegistry, parser: argparse.ArgumentParser
) -> list[str]:
    """Rewrite ``/approve`` style arguments into ``--approve``.

    Option values (``-c /approve``) are left alone.
    """
    takes_value = {
        opt for opt, action in parser._option_string_actions.items() if action.nargs != 0
    }
    out: list[str] = []
    previous = ""
    for arg in argv:
        if arg.startswith("/") and arg[1:] in actions and previous not in takes_value:
            out.append(f"--{arg[1:]}")
        else:
            out.append(arg)
        previous = arg
    return out


def _split_csv(values: Sequence[str]) -> list[str]:
    return [part.strip() for v in values for part in v.split(",") if part.strip()]


def config_from_args(
    args: argparse.Namespace,
    templates: TemplateRegistry,
    actions: ActionRegistry,
    settings: Settings,
) -> RunConfig:
    enabled_templates: dict[str, Any] = {}
    enabled_actions: list[str] = []
    for dest, value in vars(args).items():
        if dest.startswith(_TEMPLATE_DEST):
            enabled_templates[dest[len(_TEMPLATE_DEST):]] = value
        elif dest.startswith(_ACTION_DEST) and value:
            enabled_actions.append(dest[len(_ACTION_DEST):])

    refs = parse_pr_arguments(args.prs)
    exclude = parse_pr_arguments(_split_csv(args.exclude))
    return build_run_config(
        repositories=list(args.repo) or settings.default_repositories,
        refs=refs,
        exclude=exclude,
        actions=resolve_actions(actions, enabled_actions, args.comment),
        search_query=build_search_query(templates, enabled_templates),
        throttle=args.throttle if args.throttle is not None else settings.default_throttle,
    )


def render_listing(result: RunResult, quiet: bool, now: datetime | None = None) -> list[str]:
    now = now or datetime.now(timezone.utc)
    lines: list[str] = []
    for group in result.repositories:
        for pr in group.prs:
            if quiet:
                lines.append(str(pr.number))
                continue
            lines.append(
                "\t".join(
                    [
                        f"{group.repository}#{pr.number}",
                        pr.author_login or "-",
                        pr.ci_status(),
                        pr.last_comment_age(now),
                        pr.title,
                    ]
                )
            )
    return lines


def _report(logger: StructuredLogger, exc: PrSweepError) -> None:
    info = classify_error(exc)
    logger.debug(
        "prsweep failed", error=info.message, category=info.category, transient=info.transient
    )
    print(f"Error: {info.message}", file=sys.stderr)
    if info.transient:
        print("The failure looks transient; re-running may succeed.", file=sys.stderr)


def main(argv: list[str] | None = None, *, client_factory: ClientFactory | None = None) -> int:
    raw_argv = list(sys.argv[1:] if argv is None else argv)

    pre = _base_parser(add_help=False)
    pre_args, _ = pre.parse_known_args(raw_argv)
    logger = configure_logging(
        json_logging=pre_args.json_logs, level="DEBUG" if pre_args.debug else "WARNING"
    )
    try:
        settings = load_settings(pre_args.config)
        if settings.logging_json_enabled or settings.logging_level.upper() != "WARNING":
            logger = configure_logging(
                json_logging=pre_args.json_logs or settings.logging_json_enabled,
                level="DEBUG" if pre_args.debug else settings.logging_level,
            )
        templates = TemplateRegistry.load(settings.templates_dir)
        actions = ActionRegistry.load(settings.actions_dir)
    except ConfigError as exc:
        _report(logger, exc)
        return EXIT_USAGE

    parser = build_parser(templates, actions, logger)
    args = parser.parse_intermixed_args(transform_slash_commands(raw_argv, actions, parser))

    try:
        config = config_from_args(args, templates, actions, settings)
        logger.debug(
            "run configured",
            repositories=list(config.repositories),
            query=config.search_query,
            actions=len(config.actions),
        )
        if client_factory is None:
            client_factory = make_client_factory(
                resolve_token(),
                graphql_url=settings.graphql_url,
                page_size=settings.page_size,
                max_pages=settings.max_pages,
                timeout=settings.request_timeout,
            )
    except PrSweepError as exc:
        _report(logger, exc)
        return EXIT_USAGE

    try:
        result = run_sync(config, client_factory, timeout=settings.fetch_timeout)
    except FetchError as exc:
        _report(logger, exc)
        return EXIT_FETCH_FAILED

    lines = result.commands if config.actions else render_listing(result, args.quiet)
    for line in lines:
        print(line)
    return EXIT_OK


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())

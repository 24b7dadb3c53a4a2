"""YAML definition loading shared by the template and action registries.

Definitions come from two places:

1. ``prsweep/embedded/<kind>/*.yaml`` shipped as package data (fatal on error)
2. ``~/.config/prsweep/<kind>/*.yaml`` or an explicit directory (warn and skip)

User definitions override embedded ones that share the same ``flag``.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from importlib import resources
from pathlib import Path
from typing import Any, TypeVar, cast

import yaml

from .errors import ConfigError
from .logging import get_logger

T = TypeVar("T")

USER_CONFIG_DIR = Path("~/.config/prsweep")


def default_user_dir(kind: str) -> Path:
    return USER_CONFIG_DIR.expanduser() / kind


def _parse_document(text: str, origin: str) -> dict[str, Any]:
    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"failed to parse {origin}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigError(f"failed to parse {origin}: expected a mapping")
    return cast(dict[str, Any], raw)


def _embedded_documents(kind: str) -> Iterator[tuple[str, str]]:
    root = resources.files("prsweep").joinpath("embedded", kind)
    if not root.is_dir():
        return
    for entry in sorted(root.iterdir(), key=lambda e: e.name):
        if entry.name.endswith(".yaml"):
            yield entry.name, entry.read_text(encoding="utf-8")


def load_definitions(
    kind: str,
    build: Callable[[dict[str, Any], str], T],
    *,
    user_dir: Path | None = None,
    include_embedded: bool = True,
) -> dict[str, T]:
    """Load ``kind`` definitions keyed by flag.

    ``build(raw, source)`` turns one YAML mapping into a validated record and
    raises ``ConfigError`` when it is malformed.
    """
    logger = get_logger()
    out: dict[str, T] = {}

    if include_embedded:
        for name, text in _embedded_documents(kind):
            try:
                record = build(_parse_document(text, name), "embedded")
            except ConfigError as exc:
                raise ConfigError(f"invalid embedded {kind} definition {name}: {exc}") from exc
            out[getattr(record, "flag")] = record

    directory = user_dir if user_dir is not None else default_user_dir(kind)
    if not directory.is_dir():
        return out
    for path in sorted(directory.glob("*.yaml")):
        try:
            record = build(_parse_document(path.read_text(encoding="utf-8"), str(path)), "user")
        except (ConfigError, OSError) as exc:
            logger.warning(f"skipping user {kind} definition {path.name}", error=str(exc))
            continue
        out[getattr(record, "flag")] = record
    logger.debug(f"loaded {kind} definitions", count=len(out), user_dir=str(directory))
    return out


def require(raw: dict[str, Any], *keys: str) -> None:
    for key in keys:
        if not str(raw.get(key) or "").strip():
            raise ConfigError(f"{key} is required")


__all__ = ["default_user_dir", "load_definitions", "require"]

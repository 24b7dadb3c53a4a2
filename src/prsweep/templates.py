"""Query templates: named search-syntax fragments bound to CLI flags.

A template is either fixed (``query: "-label:approved"``) or parameterized
(``query_template: "author:{value}"``). Two placeholders are understood:

``{value}``
    replaced by the raw flag value, every occurrence, no escaping.
``{labels}``
    replaced by one ``label:NAME`` term per value, or ``-label:NAME`` when the
    value starts with ``-``. Input order is kept and duplicates are not
    collapsed. Whitespace inside a value is passed through untouched.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from .errors import ConfigError
from .models import QueryTemplate
from .registry import load_definitions, require

VALUE_PLACEHOLDER = "{value}"
LABELS_PLACEHOLDER = "{labels}"


def label_terms(values: Iterable[str]) -> str:
    terms: list[str] = []
    for label in values:
        if label.startswith("-"):
            terms.append(f"-label:{label[1:]}")
        else:
            terms.append(f"label:{label}")
    return " ".join(terms)


def compose(
    template: QueryTemplate, value: str = "", values: Iterable[str] | None = None
) -> str:
    """Render one template into a search-query fragment."""
    if not template.parameterized:
        return template.query
    if not template.query_template:
        raise ConfigError(f"parameterized template {template.flag} missing query_template")

    query = template.query_template
    if VALUE_PLACEHOLDER in query:
        query = query.replace(VALUE_PLACEHOLDER, value)
    if LABELS_PLACEHOLDER in query:
        query = query.replace(LABELS_PLACEHOLDER, label_terms(values or ()))
    return query


def validate_template(raw: dict[str, Any], source: str) -> QueryTemplate:
    require(raw, "name", "flag", "description")
    query = str(raw.get("query") or "")
    query_template = str(raw.get("query_template") or "")
    parameterized = bool(raw.get("parameterized", False))
    if not query and not query_template:
        raise ConfigError("either query or query_template is required")
    if query and query_template:
        raise ConfigError("only one of query or query_template should be specified")
    if parameterized and not query_template:
        raise ConfigError("parameterized templates must have query_template")
    return QueryTemplate(
        name=str(raw["name"]),
        flag=str(raw["flag"]),
        description=str(raw["description"]),
        query=query,
        query_template=query_template,
        flag_short=str(raw.get("flag_short") or ""),
        parameterized=parameterized,
        supports_multiple=bool(raw.get("supports_multiple", False)) and parameterized,
        source=source,
    )


class TemplateRegistry:
    """Read-only mapping of flag name to :class:`QueryTemplate`."""

    def __init__(self, templates: Mapping[str, QueryTemplate]):
        self._templates = dict(templates)

    @classmethod
    def load(
        cls, user_dir: Path | None = None, *, include_embedded: bool = True
    ) -> TemplateRegistry:
        return cls(
            load_definitions(
                "templates",
                validate_template,
                user_dir=user_dir,
                include_embedded=include_embedded,
            )
        )

    def get(self, flag: str) -> QueryTemplate | None:
        return self._templates.get(flag)

    def all(self) -> dict[str, QueryTemplate]:
        return dict(self._templates)

    def flags(self, source: str | None = None) -> list[str]:
        return sorted(
            flag for flag, t in self._templates.items() if source is None or t.source == source
        )

    def build_query(
        self, flag: str, value: str = "", values: Iterable[str] | None = None
    ) -> str:
        template = self.get(flag)
        if template is None:
            raise ConfigError(f"template {flag} not found")
        return compose(template, value, values)

    def __contains__(self, flag: object) -> bool:
        return flag in self._templates

    def __len__(self) -> int:
        return len(self._templates)


__all__ = ["TemplateRegistry", "compose", "label_terms", "validate_template"]

"""Placeholder substitution for ``{{name}}`` and ``{{$name}}``.

Each occurrence is looked up through a fixed chain of resolution sources:

1. ``$name``  -> dynamic provider registered in the context
2. ``name``   -> context variables
3. ``name``   -> env file layer, then the process environment

An occurrence no source can answer is left in the output verbatim.
Substituted values are never scanned again.
"""

from __future__ import annotations

import logging
import re

from httpdoc.context import Context

logger = logging.getLogger(__name__)

PLACEHOLDER_RE = re.compile(r"\{\{(.*?)\}\}")

DYNAMIC_SIGIL = "$"


class ResolutionSource:
    """One link of the lookup chain."""

    dynamic = False

    def handles(self, expr: str) -> bool:
        return expr.startswith(DYNAMIC_SIGIL) == self.dynamic

    def lookup(self, expr: str, context: Context) -> str | None:
        raise NotImplementedError


class DynamicSource(ResolutionSource):
    dynamic = True

    def lookup(self, expr: str, context: Context) -> str | None:
        provider = context.dynamic.get(expr[len(DYNAMIC_SIGIL):])
        if provider is None:
            return None
        return str(provider())


class ContextSource(ResolutionSource):
    def lookup(self, expr: str, context: Context) -> str | None:
        return context.get(expr)


class EnvironmentSource(ResolutionSource):
    def lookup(self, expr: str, context: Context) -> str | None:
        return context.lookup_env(expr)


SOURCES: tuple[ResolutionSource, ...] = (
    DynamicSource(),
    ContextSource(),
    EnvironmentSource(),
)


def resolve_expression(expr: str, context: Context) -> str | None:
    """Look *expr* up through :data:`SOURCES`; ``None`` when unresolved."""
    for source in SOURCES:
        if not source.handles(expr):
            continue
        value = source.lookup(expr, context)
        if value is not None:
            return value
    return None


def resolve(text: str, context: Context) -> str:
    """Return *text* with every resolvable placeholder substituted.

    Example:
        >>> ctx = Context({"host": "localhost"})
        >>> resolve("http://{{ host }}/{{missing}}", ctx)
        'http://localhost/{{missing}}'
    """
    if "{{" not in text:
        return text

    def _substitute(match: re.Match) -> str:
        expr = match.group(1).strip()
        value = resolve_expression(expr, context)
        if value is None:
            logger.debug("unresolved variable %r left as is", expr)
            return match.group(0)
        return value

    return PLACEHOLDER_RE.sub(_substitute, text)


def find_placeholders(text: str) -> list[str]:
    """List the trimmed expressions of all placeholders in *text*."""
    return [m.group(1).strip() for m in PLACEHOLDER_RE.finditer(text)]

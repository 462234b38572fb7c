"""Request extraction and document-order traversal.

Walks the syntax tree of a .http document, threading one
:class:`~httpdoc.context.Context` through variable declarations,
pre-request scripts and requests, and turns each request section into an
immutable :class:`Request`.
"""

from __future__ import annotations

import logging
from typing import Any

from lark import Tree

from httpdoc import body as body_classifier
from httpdoc.body import RequestBody
from httpdoc.context import Context
from httpdoc.errors import ScriptError
from httpdoc.script import (
    DEFAULT_LANG,
    inline_script,
    lang_for_path,
    load_script_file,
    run_pre_request_script,
)
from httpdoc.syntax import (
    REQUEST_LINE_RE,
    SEPARATOR_RE,
    VARIABLE_RE,
    Document,
    annotation,
    children_of_type,
    first_child,
)
from httpdoc.variables import resolve

logger = logging.getLogger(__name__)


class Handler:
    """Response handler script attached to a request.

    Inline handlers carry ``script``; file handlers carry ``path``.
    """

    __slots__ = ("lang", "script", "path")

    def __init__(self, lang: str, script: str | None = None, path: str | None = None) -> None:
        self.lang = lang
        self.script = script
        self.path = path

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Handler):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        return f"Handler(lang={self.lang!r}, script={self.script!r}, path={self.path!r})"

    def to_dict(self) -> dict[str, Any]:
        return {"lang": self.lang, "script": self.script, "path": self.path}


class Request:
    """A fully resolved request, ready for a transport.

    Instances are immutable: assigning an attribute raises AttributeError.
    """

    __slots__ = (
        "method",
        "url",
        "http_version",
        "headers",
        "cookies",
        "handlers",
        "name",
        "body",
    )

    def __init__(
        self,
        method: str,
        url: str,
        headers: dict[str, list[str]] | None = None,
        cookies: dict[str, str] | None = None,
        handlers: list[Handler] | None = None,
        name: str | None = None,
        body: RequestBody | None = None,
        http_version: str | None = None,
    ) -> None:
        fields = {
            "method": method,
            "url": url,
            "http_version": http_version,
            "headers": headers or {},
            "cookies": cookies or {},
            "handlers": handlers or [],
            "name": name,
            "body": body,
        }
        for key, value in fields.items():
            object.__setattr__(self, key, value)

    def __setattr__(self, key: str, value: Any) -> None:
        raise AttributeError(f"Request is immutable, cannot set {key!r}")

    def __delattr__(self, key: str) -> None:
        raise AttributeError(f"Request is immutable, cannot delete {key!r}")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Request):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        return (
            f"Request(method={self.method!r}, url={self.url!r}, "
            f"headers=<{len(self.headers)} headers>, "
            f"body={self.body.type if self.body else '<none>'}, "
            f"name={self.name!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Plain-data view; ``name`` and ``body`` are omitted when absent."""
        data: dict[str, Any] = {
            "method": self.method,
            "url": self.url,
            "headers": {k: list(v) for k, v in self.headers.items()},
            "cookies": dict(self.cookies),
            "handlers": [h.to_dict() for h in self.handlers],
        }
        if self.http_version is not None:
            data["http_version"] = self.http_version
        if self.name is not None:
            data["name"] = self.name
        if self.body is not None:
            data["body"] = self.body.to_dict()
        return data


class ParseResult:
    """Output of :func:`parse_document`."""

    __slots__ = ("requests", "names", "context")

    def __init__(self, requests: list[Request], names: list[str], context: Context) -> None:
        self.requests = requests
        self.names = names
        self.context = context

    def __repr__(self) -> str:
        return f"ParseResult(requests=<{len(self.requests)} requests>, names={self.names!r})"


# ---------------------------------------------------------------------------
# Section helpers
# ---------------------------------------------------------------------------


def _annotations(section: Tree, document: Document, before: Tree | None = None) -> dict[str, str]:
    """Collect ``# @key=value`` comments of *section*, stopping at *before*."""
    found: dict[str, str] = {}
    for child in section.children:
        if child is before:
            break
        if isinstance(child, Tree) and child.data == "comment":
            pair = annotation(child, document.text)
            if pair is not None:
                found[pair[0]] = pair[1]
    return found


def _separator_title(section: Tree, document: Document) -> str | None:
    separator = first_child(section, "request_separator")
    if separator is None:
        return None
    match = SEPARATOR_RE.match(document.text_of(separator))
    title = match.group("title").strip() if match else ""
    return title or None


def explicit_name(section: Tree, document: Document) -> str | None:
    """Name given by an ``@name`` annotation or the separator title."""
    name = _annotations(section, document).get("name")
    if name:
        return name
    return _separator_title(section, document)


def _split_header(text: str) -> tuple[str, str]:
    name, _, value = text.partition(":")
    return name.strip(), value.strip()


def _parse_cookies(values: list[str]) -> dict[str, str]:
    cookies: dict[str, str] = {}
    for value in values:
        for pair in value.split(";"):
            name, sep, cookie_value = pair.partition("=")
            name = name.strip()
            if not sep or not name:
                continue
            cookies[name] = cookie_value.strip()
    return cookies


def _parse_handler(node: Tree, document: Document, lang: str | None) -> Handler:
    text = document.text_of(node)
    script = inline_script(text)
    if script is not None:
        return Handler(lang or DEFAULT_LANG, script=script)
    path = text.strip()[1:].strip()
    return Handler(lang or lang_for_path(path), path=path)


# ---------------------------------------------------------------------------
# Request extractor
# ---------------------------------------------------------------------------


def parse(section: Tree, document: Document, context: Context | None = None) -> Request | None:
    """Extract a Request from one section of *document*.

    Args:
        section: A ``section`` node of the document's syntax tree.
        document: The document the section belongs to.
        context: The live variable context. A fresh one is used when omitted.

    Returns:
        The parsed Request, or None when the section holds no request line.
    """
    if context is None:
        context = Context()

    request_node = first_child(section, "request")
    if request_node is None:
        return None
    line_node = first_child(request_node, "request_line")
    if line_node is None:
        return None
    match = REQUEST_LINE_RE.match(document.text_of(line_node).strip())
    if match is None:
        logger.debug("section without a valid request line")
        return None

    # --- Method and URL ---
    method = (match.group("method") or "GET").upper()
    url = resolve(match.group("target"), context)
    for query_node in children_of_type(request_node, "query"):
        url += resolve(document.text_of(query_node).strip(), context)

    # --- Headers ---
    headers: dict[str, list[str]] = {}
    for header_node in children_of_type(request_node, "header"):
        name, value = _split_header(document.text_of(header_node))
        headers.setdefault(name.lower(), []).append(resolve(value, context))

    if url.startswith("/") and headers.get("host"):
        host = headers.pop("host")[0]
        url = f"http://{host}{url}"

    cookies = _parse_cookies(headers.get("cookie", []))

    # --- Body ---
    body = None
    body_node = first_child(request_node, "body")
    if body_node is not None:
        text = resolve(document.text_of(body_node), context).strip()
        if text:
            content_type = headers.get("content-type", [None])[0]
            body = body_classifier.classify(text, content_type)

    # --- Handlers and name ---
    notes = _annotations(section, document, before=request_node)
    handlers = [
        _parse_handler(node, document, notes.get("lang"))
        for node in children_of_type(request_node, "res_handler_script")
    ]

    name = explicit_name(section, document)
    if name is None and document.stem is not None:
        index = document.request_index(section)
        if index is not None:
            name = f"{document.stem}#{index}"

    return Request(
        method=method,
        url=url,
        headers=headers,
        cookies=cookies,
        handlers=handlers,
        name=name,
        body=body,
        http_version=match.group("version"),
    )


# ---------------------------------------------------------------------------
# Declarations and scripts
# ---------------------------------------------------------------------------


def parse_variable_declaration(node: Tree, document: Document, context: Context) -> None:
    """Resolve the right-hand side of ``@name = value`` and store it."""
    match = VARIABLE_RE.match(document.text_of(node).strip())
    if match is None:
        logger.debug("malformed variable declaration %r", document.text_of(node))
        return
    context.set(match.group("name"), resolve(match.group("value"), context))


def parse_pre_request_script(
    node: Tree,
    document: Document,
    context: Context,
    lang: str | None = None,
) -> None:
    """Run a pre-request script and merge the variables it set into *context*.

    The language comes from *lang*, else from the nearest ``# @lang=``
    annotation above the script in the same section, else the default.

    Raises:
        ScriptError: If the script cannot be read or fails to run.
    """
    text = document.text_of(node)
    script = inline_script(text)
    path = None
    if script is None:
        path = text.strip()[1:].strip()
        script = load_script_file(path, document.base_dir)

    if lang is None:
        section = document.parent_of(node)
        if section is not None:
            lang = _annotations(section, document, before=node).get("lang")
    if lang is None:
        lang = lang_for_path(path) if path else DEFAULT_LANG

    assigned = run_pre_request_script(script, context, lang)
    for name, value in assigned.items():
        context.set(name, value)


# ---------------------------------------------------------------------------
# Document driver
# ---------------------------------------------------------------------------


def _walk(document: Document, context: Context, stop_at: str | None = None):
    """Yield parsed requests in document order while mutating *context*."""
    for section in document.sections():
        for node in section.children:
            if not isinstance(node, Tree):
                continue
            if node.data == "variable_declaration":
                parse_variable_declaration(node, document, context)
            elif node.data == "pre_request_script":
                try:
                    parse_pre_request_script(node, document, context)
                except ScriptError as exc:
                    logger.warning("%s", exc)
            elif node.data == "request":
                request = parse(section, document, context)
                if request is None:
                    logger.debug("skipping section without a request line")
                    continue
                yield request
                if stop_at is not None and request.name == stop_at:
                    return


def parse_document(document: Document, context: Context | None = None) -> ParseResult:
    """Parse every request of *document* in source order.

    Args:
        document: The parsed document.
        context: Optional pre-filled context (e.g. with an env file loaded).

    Returns:
        A ParseResult with the requests, the explicit request names and the
        context as it stands after the last node.
    """
    if context is None:
        context = Context()
    requests = list(_walk(document, context))
    return ParseResult(requests, get_request_names(document), context)


def get_request(document: Document, name: str, context: Context | None = None) -> Request | None:
    """Parse *document* up to the request called *name* and return it.

    Declarations below the request are never applied.
    """
    if context is None:
        context = Context()
    for request in _walk(document, context, stop_at=name):
        if request.name == name:
            return request
    return None


def create_context(document: Document) -> Context:
    """Build a context from the document's variable declarations alone."""
    context = Context()
    for section in document.sections():
        for node in children_of_type(section, "variable_declaration"):
            parse_variable_declaration(node, document, context)
    return context


def get_request_names(document: Document) -> list[str]:
    """Explicit names of the document's requests, in order.

    Sections without a request, such as a bare ``###`` separator, and
    requests without an explicit name contribute nothing.
    """
    names = []
    for section in document.request_sections():
        name = explicit_name(section, document)
        if name:
            names.append(name)
    return names

"""Request body classification.

The body text is tried, in order, as an external file reference, JSON, XML
and form-urlencoded content. Every attempt returns an :class:`Attempt`; a
failed JSON or XML attempt logs a warning carrying the offending text and
hands over to the next one. Whatever nothing else claims becomes a ``raw``
body, so classification never fails.
"""

from __future__ import annotations

import json
import logging
import re
import xml.etree.ElementTree as ET
from typing import Any, NamedTuple

logger = logging.getLogger(__name__)

JSON = "json"
XML = "xml"
RAW = "raw"
EXTERNAL = "external"

FORM_URLENCODED = "application/x-www-form-urlencoded"

EXTERNAL_RE = re.compile(r"^<(?:\s+|(?=\.{1,2}/|~/))(?P<path>\S.*?)\s*$")
_FORM_SEPARATOR_RE = re.compile(r"\s*([=&])\s*")


class RequestBody:
    """Tagged body value.

    ``data`` is the body text for ``json``, ``xml`` and ``raw`` bodies and a
    ``{"path": ...}`` mapping for ``external`` ones.
    """

    __slots__ = ("type", "data")

    def __init__(self, type: str, data: Any) -> None:
        self.type = type
        self.data = data

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RequestBody):
            return NotImplemented
        return self.type == other.type and self.data == other.data

    def __repr__(self) -> str:
        return f"RequestBody(type={self.type!r}, data={self.data!r})"

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "data": self.data}


class Attempt(NamedTuple):
    ok: bool
    body: RequestBody | None = None


FAILED = Attempt(False)


def try_external(text: str) -> Attempt:
    first_line = text.split("\n", 1)[0]
    match = EXTERNAL_RE.match(first_line)
    if match is None:
        return FAILED
    return Attempt(True, RequestBody(EXTERNAL, {"path": match.group("path")}))


def try_json(text: str) -> Attempt:
    if not text.startswith(("{", "[")):
        return FAILED
    try:
        json.loads(text)
    except ValueError:
        logger.warning("invalid json: '%s'", text)
        return FAILED
    return Attempt(True, RequestBody(JSON, text))


def try_xml(text: str) -> Attempt:
    if not text.startswith("<"):
        return FAILED
    try:
        ET.fromstring(text.encode("utf-8"))
    except (ET.ParseError, ValueError):
        logger.warning("invalid xml: '%s'", text)
        return FAILED
    return Attempt(True, RequestBody(XML, text))


def normalize_form(text: str) -> str:
    """Compact ``key = value &`` sequences into ``key=value&key2=value2``."""
    return _FORM_SEPARATOR_RE.sub(r"\1", text).strip("&")


def try_form(text: str, content_type: str | None) -> Attempt:
    if not content_type or FORM_URLENCODED not in content_type.lower():
        return FAILED
    return Attempt(True, RequestBody(RAW, normalize_form(text)))


def classify(text: str, content_type: str | None = None) -> RequestBody:
    """Decide the representation of a trimmed, variable-resolved body."""
    for attempt in (
        lambda: try_external(text),
        lambda: try_json(text),
        lambda: try_xml(text),
        lambda: try_form(text, content_type),
    ):
        outcome = attempt()
        if outcome.ok:
            return outcome.body
    return RequestBody(RAW, text)

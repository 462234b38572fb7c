"""Syntax tree producer for .http documents.

A document is classified line by line into terminals (separators, comments,
variable declarations, scripts, request lines, headers, bodies, response
handlers) and a small LALR grammar built with lark assembles those terminals
into a concrete syntax tree:

    document
      section            (one per ``###`` separator, plus a leading one)
        request_separator
        comment
        variable_declaration
        pre_request_script
        request
          request_line
          header
          query
          body
          res_handler_script

Every node carries ``meta.start_pos`` / ``meta.end_pos`` offsets into the
source text, so callers extract text with :func:`node_text`.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from lark import Lark, Token, Tree
from lark.exceptions import LarkError
from lark.lexer import Lexer

from httpdoc.errors import SyntaxTreeError

logger = logging.getLogger(__name__)

GRAMMAR = r"""
document: opening? section*

opening: _entry+ -> section
section: request_separator _entry*

_entry: comment
      | variable_declaration
      | pre_request_script
      | request

request_separator: SEPARATOR
comment: COMMENT
variable_declaration: VARIABLE
pre_request_script: SCRIPT

request: request_line (header | query)* body? res_handler_script*

request_line: REQUEST_LINE
header: HEADER
query: QUERY
body: BODY
res_handler_script: HANDLER

%declare SEPARATOR COMMENT VARIABLE SCRIPT REQUEST_LINE HEADER QUERY BODY HANDLER
"""

HTTP_METHODS = (
    "GET", "POST", "PUT", "PATCH", "DELETE",
    "HEAD", "OPTIONS", "CONNECT", "TRACE",
)

SEPARATOR_RE = re.compile(r"^###(?P<title>.*)$")
COMMENT_RE = re.compile(r"^\s*(?:#|//)")
ANNOTATION_RE = re.compile(
    r"^\s*(?:#|//)\s*@(?P<key>[A-Za-z_]\w*)\s*(?:=\s*|\s+)(?P<value>.*?)\s*$"
)
VARIABLE_RE = re.compile(r"^@(?P<name>[A-Za-z_][\w.\-]*)\s*=\s*(?P<value>.*?)\s*$")
SCRIPT_RE = re.compile(r"^<\s*(?:\{%|\S)")
HANDLER_RE = re.compile(r"^>\s*(?:\{%|\S)")
REQUEST_LINE_RE = re.compile(
    r"^(?:(?P<method>(?i:" + "|".join(HTTP_METHODS) + r"))\s+)?"
    r"(?P<target>(?:\{\{.*?\}\}|\S)+)"
    r"(?:\s+(?P<version>HTTP/[\d.]+))?\s*$"
)
HEADER_RE = re.compile(r"^(?P<name>[!#$%&'*+.^_`|~0-9A-Za-z-]+)\s*:\s*(?P<value>.*?)\s*$")
QUERY_RE = re.compile(r"^\s*[?&]\S")

# Scanner states
_SECTION = "section"
_HEADERS = "headers"
_BODY = "body"
_HANDLERS = "handlers"


class _Line:
    __slots__ = ("text", "start", "end", "number")

    def __init__(self, text: str, start: int, number: int) -> None:
        self.text = text
        self.start = start
        self.end = start + len(text)
        self.number = number

    @property
    def blank(self) -> bool:
        return not self.text.strip()


def _split_lines(source: str) -> list[_Line]:
    lines = []
    for number, match in enumerate(re.finditer(r"[^\n]*\n|[^\n]+", source), start=1):
        raw = match.group(0)
        text = raw.rstrip("\n")
        if text.endswith("\r"):
            text = text[:-1]
        lines.append(_Line(text, match.start(), number))
    return lines


def _token(source: str, kind: str, first: _Line, last: _Line) -> Token:
    return Token(
        kind,
        source[first.start:last.end],
        start_pos=first.start,
        line=first.number,
        column=1,
        end_line=last.number,
        end_column=len(last.text) + 1,
        end_pos=last.end,
    )


def _block_end(lines: list[_Line], index: int) -> int:
    """Return the index of the line closing a ``{% ... %}`` block.

    An unterminated block runs to the end of the document.
    """
    opener = lines[index].text
    if "%}" in opener[opener.index("{%") + 2:]:
        return index
    for pos in range(index + 1, len(lines)):
        if "%}" in lines[pos].text:
            return pos
    return len(lines) - 1


def _script_span(lines: list[_Line], index: int) -> int:
    if "{%" in lines[index].text:
        return _block_end(lines, index)
    return index


def tokenize(source: str):
    """Classify *source* into grammar terminals."""
    lines = _split_lines(source)
    state = _SECTION
    i = 0
    while i < len(lines):
        line = lines[i]

        if SEPARATOR_RE.match(line.text):
            yield _token(source, "SEPARATOR", line, line)
            state = _SECTION
            i += 1
            continue

        if state == _SECTION:
            if line.blank:
                pass
            elif COMMENT_RE.match(line.text):
                yield _token(source, "COMMENT", line, line)
            elif VARIABLE_RE.match(line.text):
                yield _token(source, "VARIABLE", line, line)
            elif SCRIPT_RE.match(line.text):
                end = _script_span(lines, i)
                yield _token(source, "SCRIPT", line, lines[end])
                i = end
            elif REQUEST_LINE_RE.match(line.text.strip()):
                yield _token(source, "REQUEST_LINE", line, line)
                state = _HEADERS
            else:
                logger.debug("line %d: ignoring stray text %r", line.number, line.text)
            i += 1

        elif state == _HEADERS:
            if line.blank:
                state = _BODY
            elif COMMENT_RE.match(line.text):
                pass
            elif QUERY_RE.match(line.text):
                yield _token(source, "QUERY", line, line)
            elif HANDLER_RE.match(line.text):
                state = _HANDLERS
                continue
            elif HEADER_RE.match(line.text):
                yield _token(source, "HEADER", line, line)
            else:
                # No blank line before the body
                state = _BODY
                continue
            i += 1

        elif state == _BODY:
            if line.blank:
                i += 1
                continue
            state = _HANDLERS
            if HANDLER_RE.match(line.text):
                continue
            last = i
            j = i
            while j < len(lines):
                candidate = lines[j]
                if SEPARATOR_RE.match(candidate.text) or HANDLER_RE.match(candidate.text):
                    break
                if not candidate.blank:
                    last = j
                j += 1
            yield _token(source, "BODY", line, lines[last])
            i = j

        else:
            if HANDLER_RE.match(line.text):
                end = _script_span(lines, i)
                yield _token(source, "HANDLER", line, lines[end])
                i = end
            elif not line.blank and not COMMENT_RE.match(line.text):
                logger.debug("line %d: ignoring text after response handlers", line.number)
            i += 1


class HttpLineLexer(Lexer):
    """lark lexer adapter around :func:`tokenize`."""

    def __init__(self, lexer_conf) -> None:
        pass

    def lex(self, data):
        return tokenize(data)


_PARSER = Lark(
    GRAMMAR,
    start="document",
    parser="lalr",
    lexer=HttpLineLexer,
    propagate_positions=True,
)


class Document:
    """A parsed .http document: source text, optional file path and tree."""

    __slots__ = ("text", "path", "tree")

    def __init__(self, text: str, tree: Tree, path: str | None = None) -> None:
        self.text = text
        self.tree = tree
        self.path = path

    def __repr__(self) -> str:
        return f"Document(path={self.path!r}, sections={len(self.sections())})"

    @property
    def stem(self) -> str | None:
        """File name without directory or extension, if the document has a path."""
        if self.path is None:
            return None
        return Path(self.path).stem

    @property
    def base_dir(self) -> Path:
        if self.path is None:
            return Path.cwd()
        return Path(self.path).resolve().parent

    def sections(self) -> list[Tree]:
        return [child for child in self.tree.children if isinstance(child, Tree)]

    def request_sections(self) -> list[Tree]:
        return [s for s in self.sections() if first_child(s, "request") is not None]

    def request_index(self, section: Tree) -> int | None:
        """1-based ordinal of *section* among the sections holding a request."""
        for index, candidate in enumerate(self.request_sections(), start=1):
            if candidate is section:
                return index
        return None

    def parent_of(self, node: Tree) -> Tree | None:
        for section in self.sections():
            if any(child is node for child in section.children):
                return section
        return None

    def text_of(self, node: Tree | Token) -> str:
        return node_text(node, self.text)


def first_child(node: Tree, kind: str) -> Tree | None:
    for child in node.children:
        if isinstance(child, Tree) and child.data == kind:
            return child
    return None


def children_of_type(node: Tree, kind: str) -> list[Tree]:
    return [c for c in node.children if isinstance(c, Tree) and c.data == kind]


def node_text(node: Tree | Token, source: str) -> str:
    """Return the slice of *source* covered by *node*."""
    if isinstance(node, Token):
        return source[node.start_pos:node.end_pos]
    if node.meta.empty:
        return ""
    return source[node.meta.start_pos:node.meta.end_pos]


def annotation(node: Tree, source: str) -> tuple[str, str] | None:
    """Return ``(key, value)`` for a ``# @key=value`` comment node."""
    match = ANNOTATION_RE.match(node_text(node, source))
    if match is None:
        return None
    return match.group("key"), match.group("value")


def parse_source(text: str, path: str | None = None) -> Document:
    """Build the syntax tree for *text*.

    Raises:
        SyntaxTreeError: If the grammar rejects the token stream.
    """
    try:
        tree = _PARSER.parse(text)
    except LarkError as exc:
        raise SyntaxTreeError(f"cannot parse document {path or '<string>'}: {exc}") from exc
    return Document(text, tree, path)


def load_document(filepath: str) -> Document:
    """Read and parse a .http file.

    Raises:
        FileNotFoundError: If the file does not exist.
        IOError: If the file cannot be read.
    """
    with open(filepath, "r", encoding="utf-8") as fh:
        text = fh.read()
    return parse_source(text, filepath)

"""Tests for the syntax tree producer."""

import pytest

from httpdoc.syntax import (
    annotation,
    children_of_type,
    first_child,
    load_document,
    parse_source,
    tokenize,
)


def token_types(text):
    return [token.type for token in tokenize(text)]


class TestTokenize:
    """Tests for line classification."""

    def test_full_section(self):
        source = (
            "@host = localhost\n"
            "### login\n"
            "# @name=login\n"
            "POST /auth HTTP/1.1\n"
            "Host: {{host}}\n"
            "\n"
            '{"user": "a"}\n'
            "> {%\n"
            "print('ok')\n"
            "%}\n"
        )
        assert token_types(source) == [
            "VARIABLE",
            "SEPARATOR",
            "COMMENT",
            "REQUEST_LINE",
            "HEADER",
            "BODY",
            "HANDLER",
        ]

    def test_body_spans_blank_lines_until_separator(self):
        source = "POST http://x\n\nline one\n\nline two\n\n###\nGET http://y\n"
        tokens = list(tokenize(source))
        body = [t for t in tokens if t.type == "BODY"][0]
        assert body.value == "line one\n\nline two"

    def test_body_without_blank_line(self):
        source = 'POST http://x\nContent-Type: application/json\n{"a": 1}\n'
        assert token_types(source) == ["REQUEST_LINE", "HEADER", "BODY"]

    def test_query_continuation_lines(self):
        source = "GET http://x/search\n  ?q=term\n  &page=2\n"
        assert token_types(source) == ["REQUEST_LINE", "QUERY", "QUERY"]

    def test_comments_between_headers_are_dropped(self):
        source = "GET http://x\n# note\nAccept: */*\n"
        assert token_types(source) == ["REQUEST_LINE", "HEADER"]

    def test_multiline_pre_request_script(self):
        source = "< {%\na = 1\nb = 2\n%}\nGET http://x\n"
        tokens = list(tokenize(source))
        assert [t.type for t in tokens] == ["SCRIPT", "REQUEST_LINE"]
        assert tokens[0].value == "< {%\na = 1\nb = 2\n%}"
        assert tokens[0].line == 1
        assert tokens[0].end_line == 4

    def test_stray_text_is_ignored(self):
        assert token_types("hello world\n") == []

    def test_request_line_with_spaced_placeholder(self):
        assert token_types("GET http://{{ host }}/api\n") == ["REQUEST_LINE"]

    def test_lowercase_method(self):
        assert token_types("delete http://x/1 HTTP/1.1\n") == ["REQUEST_LINE"]

    def test_crlf_line_endings(self):
        tokens = list(tokenize("GET http://x\r\nAccept: a\r\n"))
        assert [t.value for t in tokens] == ["GET http://x", "Accept: a"]


class TestParseSource:
    """Tests for tree construction."""

    def test_empty_document(self):
        document = parse_source("")
        assert document.sections() == []

    def test_sections_split_on_separators(self):
        document = parse_source(
            "@a = 1\nGET http://x\n###\n###\n# @name=third\nGET http://y\n"
        )
        sections = document.sections()
        assert len(sections) == 3
        assert [s.data for s in sections] == ["section"] * 3
        assert len(document.request_sections()) == 2

    def test_section_children(self):
        document = parse_source("# @lang=python\n< {% x = 1 %}\nGET http://x\n")
        section = document.sections()[0]
        assert [c.data for c in section.children] == [
            "comment",
            "pre_request_script",
            "request",
        ]

    def test_request_children(self):
        document = parse_source("POST http://x\nA: 1\n\nbody\n")
        request = first_child(document.sections()[0], "request")
        assert [c.data for c in request.children] == ["request_line", "header", "body"]
        assert document.text_of(first_child(request, "body")) == "body"

    def test_request_index_counts_request_sections(self):
        document = parse_source("GET http://a\n###\n###\nGET http://b\n")
        sections = document.sections()
        assert document.request_index(sections[0]) == 1
        assert document.request_index(sections[1]) is None
        assert document.request_index(sections[2]) == 2

    def test_parent_of(self):
        document = parse_source("@a = 1\n###\n@b = 2\n")
        second = document.sections()[1]
        node = children_of_type(second, "variable_declaration")[0]
        assert document.parent_of(node) is second

    def test_annotation(self):
        document = parse_source("# @name = my request\n// @lang python\n# plain\n")
        comments = children_of_type(document.sections()[0], "comment")
        assert annotation(comments[0], document.text) == ("name", "my request")
        assert annotation(comments[1], document.text) == ("lang", "python")
        assert annotation(comments[2], document.text) is None

    def test_stem_without_path(self):
        assert parse_source("GET http://x\n").stem is None


class TestLoadDocument:
    """Tests for load_document."""

    def test_load_valid_file(self, tmp_path):
        f = tmp_path / "users.http"
        f.write_text("GET http://x\n")
        document = load_document(str(f))
        assert document.stem == "users"
        assert document.base_dir == tmp_path.resolve()
        assert len(document.request_sections()) == 1

    def test_load_nonexistent_file(self):
        with pytest.raises(FileNotFoundError):
            load_document("/nonexistent/path/file.http")

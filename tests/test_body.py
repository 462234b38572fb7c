"""Tests for request body classification."""

import logging

from httpdoc.body import RequestBody, classify, normalize_form


class TestClassify:
    """Tests for classify()."""

    def test_external_reference(self):
        body = classify("< ./input.json", "application/json")
        assert body == RequestBody("external", {"path": "./input.json"})

    def test_external_reference_without_space(self, caplog):
        with caplog.at_level(logging.WARNING):
            body = classify("<./input.json")
        assert body == RequestBody("external", {"path": "./input.json"})
        assert "invalid xml" not in caplog.text

    def test_closing_tag_is_not_external(self):
        assert classify("</x>").type == "raw"

    def test_external_wins_over_other_lines(self):
        body = classify("< data/payload.xml\nignored")
        assert body.type == "external"
        assert body.data == {"path": "data/payload.xml"}

    def test_valid_json_kept_verbatim(self):
        body = classify('{\n\t"blah": 1}')
        assert body == RequestBody("json", '{\n\t"blah": 1}')

    def test_json_array(self):
        assert classify("[1, 2]").type == "json"

    def test_invalid_json_warns_and_falls_back(self, caplog):
        with caplog.at_level(logging.WARNING, logger="httpdoc.body"):
            body = classify('{\n\t"blah": 1')
        assert "invalid json: '{\n\t\"blah\": 1'" in caplog.messages
        assert body == RequestBody("raw", '{\n\t"blah": 1')

    def test_valid_xml(self):
        text = '<?xml version="1.0" encoding="utf-8"?>\n<Request>\n  <Login>login</Login>\n</Request>'
        assert classify(text) == RequestBody("xml", text)

    def test_invalid_xml_warns_and_falls_back(self, caplog):
        with caplog.at_level(logging.WARNING, logger="httpdoc.body"):
            body = classify("<?xml")
        assert "invalid xml: '<?xml'" in caplog.messages
        assert body == RequestBody("raw", "<?xml")

    def test_invalid_xml_with_form_content_type(self, caplog):
        with caplog.at_level(logging.WARNING, logger="httpdoc.body"):
            body = classify("<a = 1 &", "application/x-www-form-urlencoded")
        assert body == RequestBody("raw", "<a=1")
        assert len(caplog.records) == 1

    def test_form_urlencoded(self):
        text = "key1 = value1 &\nkey2 = value2 &\nkey3 = value3"
        body = classify(text, "application/x-www-form-urlencoded; charset=utf-8")
        assert body == RequestBody("raw", "key1=value1&key2=value2&key3=value3")

    def test_plain_text_stays_raw_without_warning(self, caplog):
        with caplog.at_level(logging.WARNING, logger="httpdoc.body"):
            body = classify("hello there", "text/plain")
        assert body == RequestBody("raw", "hello there")
        assert caplog.records == []


class TestNormalizeForm:
    """Tests for normalize_form()."""

    def test_trailing_separator_trimmed(self):
        assert normalize_form("a = 1 & b = 2 &") == "a=1&b=2"

    def test_already_compact(self):
        assert normalize_form("a=1&b=2") == "a=1&b=2"


class TestRequestBody:
    """Tests for the RequestBody value."""

    def test_to_dict(self):
        assert RequestBody("raw", "x").to_dict() == {"type": "raw", "data": "x"}

    def test_repr(self):
        assert "json" in repr(RequestBody("json", "{}"))

"""Tests for the pre-request script runtime."""

import logging

import pytest

from httpdoc.context import Context
from httpdoc.errors import ScriptError
from httpdoc.script import (
    PythonScriptRunner,
    ScriptRunner,
    get_runner,
    inline_script,
    lang_for_path,
    load_script_file,
    register_runner,
    run_pre_request_script,
)


class TestPythonScriptRunner:
    """Tests for the default python runner."""

    def test_returns_assigned_variables(self):
        runner = PythonScriptRunner()
        assigned = runner.run("request.variables.set('a', 1)\nrequest.variables.set('b', 'x')", Context())
        assert assigned == {"a": "1", "b": "x"}

    def test_get_reads_context_and_assignments(self):
        ctx = Context({"base": "10"})
        script = (
            "value = int(request.variables.get('base')) + 1\n"
            "request.variables.set('next', value)\n"
            "request.variables.set('echo', request.variables.get('next'))\n"
        )
        assert PythonScriptRunner().run(script, ctx) == {"next": "11", "echo": "11"}

    def test_does_not_touch_context(self):
        ctx = Context()
        PythonScriptRunner().run("request.variables.set('a', 'b')", ctx)
        assert ctx.vars == {}

    def test_failure_raises_script_error(self):
        with pytest.raises(ScriptError, match="pre-request script failed"):
            PythonScriptRunner().run("1 / 0", Context())

    def test_syntax_error_raises_script_error(self):
        with pytest.raises(ScriptError):
            PythonScriptRunner().run("def (", Context())


class TestRegistry:
    """Tests for the runner registry."""

    def test_python_registered_by_default(self):
        assert isinstance(get_runner("python"), PythonScriptRunner)
        assert isinstance(get_runner("PYTHON"), PythonScriptRunner)

    def test_register_custom_runner(self):
        class UpperRunner(ScriptRunner):
            def run(self, script, context):
                return {"out": script.upper()}

        register_runner("upper-test", UpperRunner())
        assert run_pre_request_script("abc", Context(), "upper-test") == {"out": "ABC"}

    def test_unknown_language_warns(self, caplog):
        with caplog.at_level(logging.WARNING, logger="httpdoc.script"):
            assert run_pre_request_script("x", Context(), "brainfuck") == {}
        assert "brainfuck" in caplog.text


class TestHelpers:
    """Tests for script text helpers."""

    def test_inline_script_multiline(self):
        text = "< {%\n    a = 1\n    b = 2\n%}"
        assert inline_script(text) == "a = 1\nb = 2"

    def test_inline_script_single_line(self):
        assert inline_script("> {% x = 1 %}") == "x = 1"

    def test_inline_script_missing_block(self):
        assert inline_script("< ./pre.py") is None

    def test_inline_script_unterminated(self):
        assert inline_script("< {%\nx = 1") == "x = 1"

    def test_lang_for_path(self):
        assert lang_for_path("a/b.lua") == "lua"
        assert lang_for_path("b.py") == "python"
        assert lang_for_path("b.txt") == "python"

    def test_load_script_file(self, tmp_path):
        (tmp_path / "s.py").write_text("x = 1\n")
        assert load_script_file("s.py", tmp_path) == "x = 1\n"

    def test_load_missing_script_file(self, tmp_path):
        with pytest.raises(ScriptError, match="cannot read script"):
            load_script_file("missing.py", tmp_path)

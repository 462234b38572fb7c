"""Pre-request script runtime.

A script runner executes script text and returns the variables it assigned;
the document driver merges them into the live context. Runners are looked
up by language tag. Only ``python`` ships by default: the script sees a
``request`` object whose ``variables`` attribute offers ``set`` and ``get``.

    # @lang=python
    < {%
    request.variables.set("token", "abc123")
    %}
"""

from __future__ import annotations

import logging
import textwrap
from pathlib import Path

from httpdoc.context import Context
from httpdoc.errors import ScriptError

logger = logging.getLogger(__name__)

DEFAULT_LANG = "python"

SCRIPT_SUFFIXES = {".py": "python", ".lua": "lua", ".js": "javascript"}


class ScriptVariables:
    """The ``request.variables`` object handed to scripts."""

    def __init__(self, context: Context) -> None:
        self._context = context
        self.assigned: dict[str, str] = {}

    def set(self, name: str, value: object) -> None:
        self.assigned[name] = str(value)

    def get(self, name: str) -> str | None:
        if name in self.assigned:
            return self.assigned[name]
        return self._context.get(name)


class ScriptRequest:
    __slots__ = ("variables",)

    def __init__(self, variables: ScriptVariables) -> None:
        self.variables = variables


class ScriptRunner:
    """Base class for script runtimes."""

    def run(self, script: str, context: Context) -> dict[str, str]:
        raise NotImplementedError


class PythonScriptRunner(ScriptRunner):
    def run(self, script: str, context: Context) -> dict[str, str]:
        variables = ScriptVariables(context)
        namespace = {"request": ScriptRequest(variables)}
        try:
            exec(compile(script, "<pre-request script>", "exec"), namespace)
        except Exception as exc:
            raise ScriptError(f"pre-request script failed: {exc}") from exc
        return dict(variables.assigned)


_RUNNERS: dict[str, ScriptRunner] = {DEFAULT_LANG: PythonScriptRunner()}


def register_runner(lang: str, runner: ScriptRunner) -> None:
    _RUNNERS[lang.lower()] = runner


def get_runner(lang: str) -> ScriptRunner | None:
    return _RUNNERS.get(lang.lower())


def lang_for_path(path: str) -> str:
    return SCRIPT_SUFFIXES.get(Path(path).suffix.lower(), DEFAULT_LANG)


def inline_script(text: str) -> str | None:
    """Extract the code between ``{%`` and ``%}``; ``None`` if there is no block."""
    start = text.find("{%")
    if start == -1:
        return None
    end = text.rfind("%}")
    if end < start + 2:
        end = len(text)
    code = text[start + 2:end]
    if "\n" not in code.strip():
        return code.strip()
    return textwrap.dedent(code).strip("\n")


def load_script_file(path: str, base_dir: Path) -> str:
    """Read a script referenced by path, relative to *base_dir*.

    Raises:
        ScriptError: If the file cannot be read.
    """
    script_path = Path(path)
    if not script_path.is_absolute():
        script_path = base_dir / script_path
    try:
        return script_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ScriptError(f"cannot read script {script_path}: {exc}") from exc


def run_pre_request_script(script: str, context: Context, lang: str = DEFAULT_LANG) -> dict[str, str]:
    """Run *script* and return the variables it set.

    An unknown language is logged and yields no variables. The context is
    not modified here.

    Raises:
        ScriptError: If the script itself fails.
    """
    runner = get_runner(lang)
    if runner is None:
        logger.warning("no script runner for language %r, skipping script", lang)
        return {}
    return runner.run(script, context)

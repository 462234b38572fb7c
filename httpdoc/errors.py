"""Exception types raised by httpdoc."""

from __future__ import annotations


class HttpDocError(Exception):
    """Base class for all httpdoc errors."""


class SyntaxTreeError(HttpDocError):
    """The document text could not be turned into a syntax tree."""


class ScriptError(HttpDocError):
    """A pre-request script failed to run."""

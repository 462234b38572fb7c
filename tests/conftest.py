"""Shared fixtures for httpdoc tests."""

import pytest

from httpdoc.syntax import load_document


@pytest.fixture
def http_file(tmp_path):
    """Write a .http document under tmp_path and return its loaded Document."""

    def _write(name: str, text: str):
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        return load_document(str(path))

    return _write


"""Plain helpers shared by the httpdoc tests."""

from httpdoc.syntax import parse_source


def first_section(text: str):
    """Parse *text* and return (document, first section)."""
    document = parse_source(text)
    return document, document.sections()[0]

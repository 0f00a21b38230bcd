"""Escaping of SQL literals and identifiers.

Prefer parameterized queries where possible; do not escape parameters
of a parameterized query.
"""

from __future__ import annotations


def escape_literal(text: str) -> str:
    """Escape a literal and surround it with single quotes.

    If the input contains backslashes the result uses the ``E'...'`` form
    (with a leading space) so it is safe under either setting of
    ``standard_conforming_strings``.
    """
    return _escape(text, as_ident=False)


def escape_identifier(text: str) -> str:
    """Escape an identifier and surround it with double quotes."""
    return _escape(text, as_ident=True)


def _escape(text: str, *, as_ident: bool) -> str:
    quote = '"' if as_ident else "'"
    has_backslash = "\\" in text
    prefix = " E" if not as_ident and has_backslash else ""

    escaped = text.replace(quote, quote * 2)
    if not as_ident:
        escaped = escaped.replace("\\", "\\\\")

    return f"{prefix}{quote}{escaped}{quote}"
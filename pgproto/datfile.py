"""Reader for the Perl-style ``.dat`` catalog files shipped with Postgres.

A file holds one array of objects whose keys are bare lower-case words and
whose values are single-quoted strings::

    [
    # a comment
    { oid => '16', typname => 'bool' },
    ]
"""

from __future__ import annotations


class DatError(ValueError):
    """The catalog text is malformed."""


class DatParser:
    """A single-use parser over the text of one catalog file."""

    def __init__(self, text: str) -> None:
        self._text = text
        self._pos = 0

    def parse_array(self) -> list[dict[str, str]]:
        """Parse the whole text as an array of objects."""
        self._eat("[")
        objects = []
        while not self._try_eat("]"):
            objects.append(self._parse_object())
        self._eof()
        return objects

    def _parse_object(self) -> dict[str, str]:
        obj: dict[str, str] = {}
        self._eat("{")
        while True:
            key = self._parse_ident()
            self._eat("=")
            self._eat(">")
            obj[key] = self._parse_string()
            if not self._try_eat(","):
                break
        self._eat("}")
        self._eat(",")
        return obj

    def _parse_ident(self) -> str:
        self._skip_ws()
        start = self._pos
        while (ch := self._peek_char()) is not None and (ch == "_" or "a" <= ch <= "z"):
            self._pos += 1
        return self._text[start : self._pos]

    def _parse_string(self) -> str:
        self._skip_ws()
        self._eat("'")
        chars = []
        while True:
            ch = self._next_char()
            if ch is None:
                raise DatError("unexpected eof")
            if ch == "'":
                return "".join(chars)
            if ch == "\\":
                ch = self._next_char()
                if ch is None:
                    raise DatError("unexpected eof")
            chars.append(ch)

    def _peek_char(self) -> str | None:
        return self._text[self._pos] if self._pos < len(self._text) else None

    def _next_char(self) -> str | None:
        ch = self._peek_char()
        if ch is not None:
            self._pos += 1
        return ch

    def _eat(self, target: str) -> None:
        self._skip_ws()
        ch = self._next_char()
        if ch is None:
            raise DatError(f"expected {target} but got eof")
        if ch != target:
            raise DatError(f"expected {target} but got {ch}")

    def _try_eat(self, target: str) -> bool:
        self._skip_ws()
        if self._peek_char() == target:
            self._pos += 1
            return True
        return False

    def _eof(self) -> None:
        self._skip_ws()
        ch = self._next_char()
        if ch is not None:
            raise DatError(f"expected eof but got {ch}")

    def _skip_ws(self) -> None:
        while True:
            ch = self._peek_char()
            if ch == "#":
                newline = self._text.find("\n", self._pos)
                self._pos = len(self._text) if newline < 0 else newline + 1
            elif ch in ("\n", " ", "\t"):
                self._pos += 1
            else:
                return


def parse_dat(text: str) -> list[dict[str, str]]:
    """Parse the text of a catalog file into a list of objects."""
    return DatParser(text).parse_array()
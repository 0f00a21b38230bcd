"""Generator for the module of SQLSTATE error code constants.

The input is the ``errcodes.txt`` table from the Postgres sources.
"""

from __future__ import annotations

from pathlib import Path

_HEADER = '''"""SQLSTATE error codes.

Autogenerated file - do not edit.
"""

from __future__ import annotations


class SqlState:
    """A SQLSTATE error code."""

    __slots__ = ("_code",)

    def __init__(self, code: str) -> None:
        self._code = code

    @property
    def code(self) -> str:
        """The error code."""
        return self._code

    @classmethod
    def from_code(cls, code: str) -> SqlState:
        """Return the known state for ``code``, or a new one for other codes."""
        state = _BY_CODE.get(code)
        return state if state is not None else cls(code)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SqlState):
            return NotImplemented
        return self._code == other._code

    def __hash__(self) -> int:
        return hash(self._code)

    def __repr__(self) -> str:
        return f"SqlState({self._code!r})"
'''


def parse_codes(text: str) -> dict[str, list[str]]:
    """Map each error code to its constant names, in order of appearance."""
    codes: dict[str, list[str]] = {}
    for line in text.splitlines():
        if line.startswith("#") or line.startswith("Section") or not line.strip():
            continue
        fields = line.split()
        if len(fields) < 3:
            raise ValueError(f"malformed error code line: {line!r}")
        code, name = fields[0], fields[2].replace("ERRCODE_", "")
        codes.setdefault(code, []).append(name)
    return codes


def render(codes: dict[str, list[str]]) -> str:
    """Render the Python source of the SQLSTATE module."""
    lines = [_HEADER, ""]
    for code, names in codes.items():
        first, *aliases = names
        lines.append(f"# {code}")
        lines.append(f"SqlState.{first} = SqlState({code!r})")
        lines.extend(f"SqlState.{alias} = SqlState.{first}" for alias in aliases)
    lines.append("")
    lines.append("_BY_CODE: dict[str, SqlState] = {")
    lines.extend(f"    {code!r}: SqlState.{names[0]}," for code, names in codes.items())
    lines.append("}")
    return "\n".join(lines) + "\n"


def build(errcodes_path: str | Path, output_path: str | Path) -> None:
    """Read ``errcodes.txt`` and write the generated module."""
    text = Path(errcodes_path).read_text(encoding="utf-8")
    Path(output_path).write_text(render(parse_codes(text)), encoding="utf-8")
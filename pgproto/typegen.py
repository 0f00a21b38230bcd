"""Generator for the module of built-in Postgres type constants.

The inputs are the ``pg_type.dat`` and ``pg_range.dat`` catalog files from
the Postgres sources. Composite and enum types are left out, since their
fields and variants have to be looked up at run time.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

from .datfile import parse_dat

_RANGE_VECTOR_RE = re.compile(r"(range|vector)\Z")
_ARRAY_RE = re.compile(r"\A_(.*)")

_KIND_NAMES = {"P": "PSEUDO", "A": "ARRAY", "R": "RANGE"}

_HEADER = '''"""Built-in Postgres types.

Autogenerated file - do not edit.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass


class Kind(enum.Enum):
    """The kind of a built-in type."""

    SIMPLE = "simple"
    PSEUDO = "pseudo"
    ARRAY = "array"
    RANGE = "range"


@dataclass(frozen=True)
class Type:
    """A built-in Postgres type."""

    name: str
    oid: int
    kind: Kind
    element_oid: int = 0

    @property
    def element(self) -> Type | None:
        """The element type of an array or range type."""
        if self.kind in (Kind.ARRAY, Kind.RANGE):
            return BY_OID.get(self.element_oid)
        return None

    @classmethod
    def from_oid(cls, oid: int) -> Type | None:
        """Return the built-in type with the given OID, if there is one."""
        return BY_OID.get(oid)
'''


@dataclass(frozen=True)
class PgType:
    """A built-in type as read from the catalog.

    ``element`` is the OID of the element type for arrays and ranges and 0
    otherwise.
    """

    name: str
    variant: str
    ident: str
    kind: str
    element: int
    doc: str


def _ascii_upper(text: str) -> str:
    return "".join(ch.upper() if ch.isascii() else ch for ch in text)


def snake_to_camel(text: str) -> str:
    """Turn ``snake_case`` into ``CamelCase``."""
    return "".join(_ascii_upper(part[:1]) + part[1:] for part in text.split("_"))


def _field(raw: dict[str, str], key: str) -> str:
    try:
        return raw[key]
    except KeyError:
        raise ValueError(f"catalog entry lacks {key!r}: {raw!r}") from None


def _lookup(table: dict, key, what: str):
    try:
        return table[key]
    except KeyError:
        raise ValueError(f"unknown {what}: {key!r}") from None


def parse_types(type_dat: str, range_dat: str) -> dict[int, PgType]:
    """Read the built-in types from catalog text, keyed and ordered by OID."""
    raw_types = parse_dat(type_dat)
    raw_ranges = parse_dat(range_dat)

    oids_by_name = {_field(t, "typname"): int(_field(t, "oid")) for t in raw_types}
    range_elements = {
        _lookup(oids_by_name, _field(r, "rngtypid"), "type name"): _lookup(
            oids_by_name, _field(r, "rngsubtype"), "type name"
        )
        for r in raw_ranges
    }

    types: dict[int, PgType] = {}
    for raw in raw_types:
        oid = int(_field(raw, "oid"))
        name = _field(raw, "typname")

        ident = _RANGE_VECTOR_RE.sub(r"_\g<1>", name, count=1)
        ident = _ARRAY_RE.sub(r"\g<1>_array", ident, count=1)
        variant = snake_to_camel(ident)
        ident = _ascii_upper(ident)

        kind = _field(raw, "typcategory")
        if kind in ("C", "E"):
            continue

        if kind == "R":
            element = _lookup(range_elements, oid, "range type")
        elif kind == "A":
            element = _lookup(oids_by_name, _field(raw, "typelem"), "type name")
        else:
            element = 0

        doc_name = _ascii_upper(_ARRAY_RE.sub(r"\g<1>[]", name, count=1))
        doc = doc_name if "descr" not in raw else f"{doc_name} - {raw['descr']}"

        if "array_type_oid" in raw:
            types[int(raw["array_type_oid"])] = PgType(
                name=f"_{name}",
                variant=f"{variant}Array",
                ident=f"{ident}_ARRAY",
                kind="A",
                element=oid,
                doc=f"{doc_name}[]",
            )

        types[oid] = PgType(name, variant, ident, kind, element, doc)

    return dict(sorted(types.items()))


def render(types: dict[int, PgType]) -> str:
    """Render the Python source of the built-in type module."""
    lines = [_HEADER, ""]
    for oid, type_ in types.items():
        kind = _KIND_NAMES.get(type_.kind, "SIMPLE")
        element = type_.element if kind in ("ARRAY", "RANGE") else 0
        if element and element not in types:
            raise ValueError(f"type {type_.name!r} refers to unknown element OID {element}")
        doc = " ".join(type_.doc.splitlines())
        lines.append(f"# {doc}")
        lines.append(f"{type_.ident} = Type({type_.name!r}, {oid}, Kind.{kind}, {element})")
    lines.append("")
    lines.append("BY_OID: dict[int, Type] = {")
    lines.extend(f"    {oid}: {type_.ident}," for oid, type_ in types.items())
    lines.append("}")
    return "\n".join(lines) + "\n"


def build(
    type_dat_path: str | Path, range_dat_path: str | Path, output_path: str | Path
) -> None:
    """Read the catalog files and write the generated module."""
    types = parse_types(
        Path(type_dat_path).read_text(encoding="utf-8"),
        Path(range_dat_path).read_text(encoding="utf-8"),
    )
    Path(output_path).write_text(render(types), encoding="utf-8")
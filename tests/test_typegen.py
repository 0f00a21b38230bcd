import ast

import pytest

from pgproto.typegen import PgType, build, parse_types, render, snake_to_camel

TYPE_DAT = """\
[
# booleans
{ oid => '16', array_type_oid => '1000', descr => 'boolean',
  typname => 'bool', typcategory => 'B' },
{ oid => '23', array_type_oid => '1007', typname => 'int4', typcategory => 'N' },
{ oid => '21', typname => 'int2', typcategory => 'N' },
{ oid => '22', typname => 'int2vector', typcategory => 'A', typelem => 'int2' },
{ oid => '3904', array_type_oid => '3905', typname => 'int4range', typcategory => 'R' },
{ oid => '2249', typname => 'record', typcategory => 'P' },
{ oid => '71', array_type_oid => '210', typname => 'pg_type', typcategory => 'C' },
{ oid => '3500', typname => 'anyenum', typcategory => 'E' },
]
"""

RANGE_DAT = """\
[
{ rngtypid => 'int4range', rngsubtype => 'int4' },
]
"""


@pytest.fixture
def types():
    return parse_types(TYPE_DAT, RANGE_DAT)


def test_snake_to_camel_pinned():
    assert snake_to_camel("int4_range") == "Int4Range"


@pytest.mark.parametrize("text", ["bool", "pg_lsn", "int2_vector_array", "a__b", "_x"])
def test_snake_to_camel_invariants(text):
    result = snake_to_camel(text)
    assert "_" not in result
    assert result.lower() == text.replace("_", "").lower()
    assert result[:1] == result[:1].upper()


def test_keys_sorted_and_composites_enums_dropped(types):
    assert list(types) == sorted(types)
    assert 71 not in types and 210 not in types and 3500 not in types


def test_array_entries_follow_base_type(types):
    base, array = types[16], types[1000]
    assert array.name == "_bool"
    assert array.kind == "A"
    assert array.element == 16
    assert array.ident == base.ident + "_ARRAY"
    assert array.variant == base.variant + "Array"
    assert array.doc == base.doc.split(" - ")[0] + "[]"


def test_range_and_array_elements(types):
    assert types[3904].kind == "R"
    assert types[3904].element == 23
    assert types[3904].ident == "INT4_RANGE"
    assert types[22].element == 21
    assert types[21].element == 0


def test_doc_includes_description(types):
    assert types[16].doc == types[16].ident + " - boolean"
    assert types[23].doc == types[23].ident


def test_unknown_range_subtype():
    bad_ranges = "[ { rngtypid => 'int4range', rngsubtype => 'nope' }, ]"
    with pytest.raises(ValueError):
        parse_types(TYPE_DAT, bad_ranges)


def test_render_is_valid_python(types):
    source = render(types)
    tree = ast.parse(source)
    class_names = [node.name for node in tree.body if isinstance(node, ast.ClassDef)]
    assert class_names == ["Kind", "Type"]
    for oid in types:
        assert f"    {oid}: " in source


def test_render_lines(types):
    source = render(types)
    assert "RECORD = Type('record', 2249, Kind.PSEUDO, 0)" in source
    assert f"{types[3904].ident} = Type('int4range', 3904, Kind.RANGE, 23)" in source


def test_render_rejects_missing_element():
    orphan = {5: PgType("_x", "XArray", "X_ARRAY", "A", 99, "X[]")}
    with pytest.raises(ValueError):
        render(orphan)


def test_build_writes_rendered_module(tmp_path, types):
    type_path = tmp_path / "pg_type.dat"
    range_path = tmp_path / "pg_range.dat"
    out = tmp_path / "pg_types.py"
    type_path.write_text(TYPE_DAT, encoding="utf-8")
    range_path.write_text(RANGE_DAT, encoding="utf-8")
    build(type_path, range_path, out)
    assert out.read_text(encoding="utf-8") == render(types)
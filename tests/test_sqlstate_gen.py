import ast

import pytest

from pgproto.sqlstate_gen import build, parse_codes, render

ERRCODES = """\
# Comment line
Section: Class 00 - Successful Completion

00000    S    ERRCODE_SUCCESSFUL_COMPLETION                                  successful_completion

Section: Class 01 - Warning
01000    W    ERRCODE_WARNING                                                warning
0100C    W    ERRCODE_WARNING_DYNAMIC_RESULT_SETS_RETURNED                   dynamic_result_sets_returned
01000    W    ERRCODE_WARNING_ALIAS
"""


def test_parse_codes_groups_names_in_order():
    codes = parse_codes(ERRCODES)
    assert codes == {
        "00000": ["SUCCESSFUL_COMPLETION"],
        "01000": ["WARNING", "WARNING_ALIAS"],
        "0100C": ["WARNING_DYNAMIC_RESULT_SETS_RETURNED"],
    }
    assert list(codes) == ["00000", "01000", "0100C"]


def test_parse_codes_rejects_short_line():
    with pytest.raises(ValueError):
        parse_codes("00000 S\n")


def test_parse_codes_empty():
    assert parse_codes("# only a comment\n\n") == {}


def test_render_is_valid_python():
    source = render(parse_codes(ERRCODES))
    tree = ast.parse(source)
    class_names = [node.name for node in tree.body if isinstance(node, ast.ClassDef)]
    assert class_names == ["SqlState"]


def test_render_defines_constants_and_aliases():
    source = render(parse_codes(ERRCODES))
    assert "SqlState.WARNING = SqlState('01000')" in source
    assert "SqlState.WARNING_ALIAS = SqlState.WARNING" in source
    assert "'0100C': SqlState.WARNING_DYNAMIC_RESULT_SETS_RETURNED," in source


def test_build_writes_rendered_module(tmp_path):
    src = tmp_path / "errcodes.txt"
    out = tmp_path / "sqlstate.py"
    src.write_text(ERRCODES, encoding="utf-8")
    build(src, out)
    assert out.read_text(encoding="utf-8") == render(parse_codes(ERRCODES))
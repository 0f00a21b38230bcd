from pgproto import sqlstate_gen, typegen
from pgproto.codegen_cli import main

ERRCODES = """\
Section: Class 00 - Successful Completion
00000    S    ERRCODE_SUCCESSFUL_COMPLETION     successful_completion
01000    W    ERRCODE_WARNING                   warning
"""

TYPE_DAT = """\
[
{ oid => '23', array_type_oid => '1007', typname => 'int4', typcategory => 'N' },
{ oid => '3904', typname => 'int4range', typcategory => 'R' },
]
"""

RANGE_DAT = "[ { rngtypid => 'int4range', rngsubtype => 'int4' }, ]\n"


def _write_inputs(directory):
    directory.mkdir()
    (directory / "errcodes.txt").write_text(ERRCODES, encoding="utf-8")
    (directory / "pg_type.dat").write_text(TYPE_DAT, encoding="utf-8")
    (directory / "pg_range.dat").write_text(RANGE_DAT, encoding="utf-8")


def test_main_generates_both_modules(tmp_path):
    data = tmp_path / "data"
    out = tmp_path / "out"
    _write_inputs(data)
    out.mkdir()

    assert main(["--data-dir", str(data), "--output-dir", str(out)]) == 0

    sqlstate = (out / "sqlstate.py").read_text(encoding="utf-8")
    assert sqlstate == sqlstate_gen.render(sqlstate_gen.parse_codes(ERRCODES))
    pg_types = (out / "pg_types.py").read_text(encoding="utf-8")
    assert pg_types == typegen.render(typegen.parse_types(TYPE_DAT, RANGE_DAT))


def test_main_reports_missing_inputs(tmp_path, capsys):
    assert main(["--data-dir", str(tmp_path / "absent"), "--output-dir", str(tmp_path)]) == 1
    assert capsys.readouterr().err.startswith("error:")


def test_main_reports_malformed_catalog(tmp_path, capsys):
    data = tmp_path / "data"
    _write_inputs(data)
    (data / "pg_type.dat").write_text("[ { oid => '23' } ]", encoding="utf-8")
    assert main(["--data-dir", str(data), "--output-dir", str(tmp_path)]) == 1
    assert "error:" in capsys.readouterr().err
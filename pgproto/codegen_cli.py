"""Command that regenerates the SQLSTATE and built-in type modules."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from . import sqlstate_gen, typegen

ERRCODES_FILE = "errcodes.txt"
PG_TYPE_FILE = "pg_type.dat"
PG_RANGE_FILE = "pg_range.dat"
SQLSTATE_OUTPUT = "sqlstate.py"
TYPES_OUTPUT = "pg_types.py"


def main(argv: list[str] | None = None) -> int:
    """Generate both modules; return 0 on success and 1 on failure."""
    parser = argparse.ArgumentParser(
        prog="pgproto-codegen",
        description="Generate SQLSTATE and built-in type modules from Postgres catalogs.",
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=Path("."),
        help=f"directory holding {ERRCODES_FILE}, {PG_TYPE_FILE} and {PG_RANGE_FILE}",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path("."),
        help=f"directory to write {SQLSTATE_OUTPUT} and {TYPES_OUTPUT} into",
    )
    args = parser.parse_args(argv)

    data, out = args.data_dir, args.output_dir
    try:
        sqlstate_gen.build(data / ERRCODES_FILE, out / SQLSTATE_OUTPUT)
        typegen.build(data / PG_TYPE_FILE, data / PG_RANGE_FILE, out / TYPES_OUTPUT)
    except (OSError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
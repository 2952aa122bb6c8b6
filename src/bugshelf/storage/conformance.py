"""Compare a live database against the declared table layout."""

from __future__ import annotations

import sqlite3

from bugshelf.storage.schema import TABLES, TableSpec


def _table_exists(conn: sqlite3.Connection, name: str) -> bool:
    row = conn.execute(
        "SELECT count(*) FROM sqlite_master WHERE type='table' AND name=?", (name,)
    ).fetchone()
    return row[0] > 0


def check_table(conn: sqlite3.Connection, spec: TableSpec) -> list[str]:
    """Return the differences between one table and its declaration."""
    if not _table_exists(conn, spec.name):
        return [f"{spec.name}: table missing"]

    problems: list[str] = []
    # cid, name, type, notnull, dflt_value, pk
    actual = {
        row[1]: row for row in conn.execute(f'PRAGMA table_info("{spec.name}")').fetchall()
    }
    for col in spec.columns:
        row = actual.get(col.name)
        if row is None:
            problems.append(f"{spec.name}.{col.name}: column missing")
            continue
        if row[2].upper() != col.type.upper():
            problems.append(f"{spec.name}.{col.name}: type {row[2]!r}, expected {col.type!r}")
        if bool(row[3]) != col.notnull:
            want = "NOT NULL" if col.notnull else "nullable"
            problems.append(f"{spec.name}.{col.name}: expected {want}")
        if row[5] != col.pk:
            problems.append(
                f"{spec.name}.{col.name}: primary key position {row[5]}, expected {col.pk}"
            )
    declared = {c.name for c in spec.columns}
    for name in actual:
        if name not in declared:
            problems.append(f"{spec.name}.{name}: undeclared column")

    # id, seq, table, from, to, on_update, on_delete, match
    fks = {
        (row[3], row[2], row[4])
        for row in conn.execute(f'PRAGMA foreign_key_list("{spec.name}")').fetchall()
    }
    for fk in spec.foreign_keys:
        if (fk.column, fk.table, fk.to) not in fks:
            problems.append(
                f"{spec.name}.{fk.column}: missing foreign key to {fk.table}({fk.to})"
            )
    return problems


def check_schema(conn: sqlite3.Connection, profile: str) -> list[str]:
    """Check every table declared for ``profile``. Empty list means conformant."""
    problems: list[str] = []
    for spec in TABLES[profile]:
        problems.extend(check_table(conn, spec))
    return problems


def check_foreign_keys(conn: sqlite3.Connection) -> list[tuple[str, int, str]]:
    """Rows whose foreign keys point at nothing: (table, rowid, parent table)."""
    return [
        (row[0], row[1], row[2])
        for row in conn.execute("PRAGMA foreign_key_check").fetchall()
    ]

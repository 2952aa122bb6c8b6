"""Run init scripts against a fresh database.

Mirrors a container's init directory: every script of a profile is executed
once, in order, and the first failure stops the run. Each script is atomic.
"""

from __future__ import annotations

import sqlite3
import sys

from bugshelf.errors import BootstrapError
from bugshelf.models import format_timestamp, now_utc
from bugshelf.storage.schema import InitScript, get_scripts

MARKER_TABLE = "_bootstrap"


def run_script(conn: sqlite3.Connection, script: InitScript) -> None:
    """Execute one init script in its own transaction."""
    try:
        conn.executescript(f"BEGIN;\n{script.sql}\nCOMMIT;")
    except sqlite3.Error as e:
        if conn.in_transaction:
            conn.rollback()
        raise BootstrapError(script.name, str(e)) from e


def is_bootstrapped(conn: sqlite3.Connection) -> str | None:
    """Return the profile the database was bootstrapped with, or None."""
    row = conn.execute(
        "SELECT count(*) FROM sqlite_master WHERE type='table' AND name=?",
        (MARKER_TABLE,)
    ).fetchone()
    if not row[0]:
        return None
    row = conn.execute(
        f"SELECT profile FROM {MARKER_TABLE} ORDER BY bootstrapped_at DESC LIMIT 1"
    ).fetchone()
    return row[0] if row else None


def bootstrap(conn: sqlite3.Connection, profile: str, verbose: bool = False) -> list[str]:
    """Run every init script of ``profile``. Returns the names of scripts run.

    Not idempotent: against a database that already holds the profile's
    tables the first script fails with BootstrapError.
    """
    scripts = get_scripts(profile)
    done: list[str] = []
    for script in scripts:
        if verbose:
            print(f"Running {script.name}", file=sys.stderr)
        run_script(conn, script)
        done.append(script.name)

    conn.execute(
        f"CREATE TABLE IF NOT EXISTS {MARKER_TABLE} ("
        "profile TEXT NOT NULL, bootstrapped_at TIMESTAMP NOT NULL)"
    )
    conn.execute(
        f"INSERT INTO {MARKER_TABLE} (profile, bootstrapped_at) VALUES (?, ?)",
        (profile, format_timestamp(now_utc()))
    )
    conn.commit()

    if verbose:
        print(f"Bootstrapped profile {profile!r} ({len(done)} scripts)", file=sys.stderr)
    return done

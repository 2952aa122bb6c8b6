"""bugshelf init - create a database and run its init scripts."""

from __future__ import annotations

import os
import sqlite3

import click

from bugshelf.cli import BugshelfContext, pass_ctx
from bugshelf.config import CONFIG_YAML
from bugshelf.errors import BootstrapError
from bugshelf.storage.bootstrap import bootstrap, is_bootstrapped


@click.command("init")
@click.option("--write-config", is_flag=True,
              help=f"Also write {CONFIG_YAML} in the current directory")
@pass_ctx
def init_cmd(ctx: BugshelfContext, write_config: bool) -> None:
    """Initialize a database by running the profile's init scripts once."""
    config = ctx.load_config()
    db_path = config.db_path

    conn = sqlite3.connect(db_path)
    try:
        conn.execute("PRAGMA foreign_keys=ON")
        existing = is_bootstrapped(conn)
        if existing:
            click.echo(f"Database already initialized at {db_path} (profile {existing})")
            return
        try:
            ran = bootstrap(conn, config.profile, verbose=ctx.verbose)
        except BootstrapError as e:
            ctx.fail(f"{e} ({e.__cause__})" if e.__cause__ else str(e))
    finally:
        conn.close()

    if write_config:
        config.root = os.getcwd()
        path = config.save()
        if not ctx.quiet:
            click.echo(f"  Config: {path}")

    if ctx.json_output:
        ctx.output({"db": db_path, "profile": config.profile, "scripts": ran})
        return

    click.echo(f"Initialized {config.profile} database at {db_path}")
    if not ctx.quiet:
        for name in ran:
            click.echo(f"  ran {name}")

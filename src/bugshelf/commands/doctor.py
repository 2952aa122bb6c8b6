"""bugshelf doctor - schema conformance and closure checks."""

from __future__ import annotations

import sys

import click

from bugshelf.cli import BugshelfContext, pass_ctx
from bugshelf.storage.conformance import check_foreign_keys, check_schema


@click.command("doctor")
@pass_ctx
def doctor(ctx: BugshelfContext) -> None:
    """Run health checks on the database."""
    ctx.ensure_initialized()
    assert ctx.store is not None

    conn = ctx.store.connection
    schema_problems = check_schema(conn, ctx.store.profile)
    orphans = check_foreign_keys(conn)
    closure_problems: list[str] = []
    if ctx.store.profile == "bugs" and not schema_problems:
        closure_problems = ctx.store.comments.verify()

    total = len(schema_problems) + len(orphans) + len(closure_problems)

    if ctx.json_output:
        ctx.output({
            "db": ctx.store.path(),
            "profile": ctx.store.profile,
            "schema": schema_problems,
            "foreign_keys": [list(o) for o in orphans],
            "closure": closure_problems,
        })
    else:
        click.echo("bugshelf doctor")
        click.echo("─" * 40)
        click.echo(f"  Database: {ctx.store.path()}")
        click.echo(f"  Profile:  {ctx.store.profile}")

        click.echo("\n  Checking schema...")
        for p in schema_problems:
            click.echo(f"    [ERROR] {p}")
        if not schema_problems:
            click.echo("    [OK] all declared tables match")

        click.echo("\n  Checking foreign keys...")
        for table, rowid, parent in orphans:
            click.echo(f"    [ERROR] {table} row {rowid} references missing {parent}")
        if not orphans:
            click.echo("    [OK] no dangling references")

        if ctx.store.profile == "bugs":
            click.echo("\n  Checking comment closure...")
            for p in closure_problems:
                click.echo(f"    [ERROR] {p}")
            if not closure_problems:
                click.echo("    [OK] reflexive and transitive")

        click.echo()
        if total:
            click.echo(f"Found {total} problem(s)")
        else:
            click.echo("All checks passed!")

    if total:
        sys.exit(1)

"""bugshelf stats - row counts per table."""

from __future__ import annotations

import click

from bugshelf.cli import BugshelfContext, pass_ctx


@click.command("stats")
@pass_ctx
def stats(ctx: BugshelfContext) -> None:
    """Show row counts for every table of the profile."""
    ctx.ensure_initialized()
    assert ctx.store is not None

    counts = ctx.store.get_table_counts()

    if ctx.json_output:
        ctx.output({"profile": ctx.store.profile, "tables": counts})
        return

    click.echo(f"Tables ({ctx.store.profile})")
    click.echo("─" * 40)
    for name, count in counts.items():
        click.echo(f"  {name:<16} {count}")

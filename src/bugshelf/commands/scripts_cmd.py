"""bugshelf scripts - print the init scripts of a profile."""

from __future__ import annotations

import click

from bugshelf.cli import BugshelfContext, pass_ctx
from bugshelf.storage.schema import get_scripts


@click.command("scripts")
@click.argument("name", required=False)
@pass_ctx
def scripts_cmd(ctx: BugshelfContext, name: str | None) -> None:
    """Print the SQL of the profile's init scripts (or only NAME)."""
    config = ctx.load_config()
    scripts = get_scripts(config.profile)
    if name:
        scripts = [s for s in scripts if s.name == name]
        if not scripts:
            ctx.fail(f"no init script {name!r} in profile {config.profile!r}")

    if ctx.json_output:
        ctx.output([{"name": s.name, "sql": s.sql.strip()} for s in scripts])
        return

    for s in scripts:
        click.echo(f"-- {s.name}")
        click.echo(s.sql.strip())
        click.echo()

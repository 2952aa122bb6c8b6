"""Click CLI root and global flags for bugshelf."""

from __future__ import annotations

import json
import os
import sys
from typing import NoReturn

import click

from bugshelf import __version__
from bugshelf.config import BugshelfConfig
from bugshelf.storage.schema import DATABASES
from bugshelf.storage.sqlite_store import SQLiteStorage


class BugshelfContext:
    """Shared context for all commands."""

    def __init__(self) -> None:
        self.store: SQLiteStorage | None = None
        self.config: BugshelfConfig | None = None
        self.db: str | None = None
        self.profile: str | None = None
        self.json_output: bool = False
        self.verbose: bool = False
        self.quiet: bool = False

    def load_config(self) -> BugshelfConfig:
        if self.config is None:
            try:
                self.config = BugshelfConfig.load()
            except ValueError as e:
                self.fail(str(e))
            if self.db:
                self.config.db = self.db
            if self.profile:
                self.config.profile = self.profile
            if not self.json_output:
                self.json_output = self.config.json_output
            if not self.verbose:
                self.verbose = self.config.verbose
        return self.config

    def ensure_initialized(self) -> None:
        """Open the store, bootstrapping a fresh database file."""
        if self.store is not None:
            return
        config = self.load_config()
        self.store = SQLiteStorage(config.db_path, config.profile, verbose=self.verbose)

    def require_profile(self, profile: str) -> None:
        assert self.store is not None
        if self.store.profile != profile:
            self.fail(f"this command needs a {profile!r} database, "
                      f"{self.store.path()} is {self.store.profile!r}")

    def fail(self, message: str) -> NoReturn:
        click.echo(f"Error: {message}", err=True)
        sys.exit(1)

    def output(self, data: dict | list) -> None:
        """Output data as JSON."""
        click.echo(json.dumps(data, indent=2, default=str))


pass_ctx = click.make_pass_decorator(BugshelfContext, ensure=True)


@click.group(invoke_without_command=True)
@click.option("--db", envvar="BUGSHELF_DB", help="Path to database file")
@click.option("--profile", type=click.Choice(sorted(DATABASES)),
              help="Init script profile for a new database")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.version_option(__version__, prog_name="bugshelf")
@click.pass_context
def cli(ctx: click.Context, db: str | None, profile: str | None,
        json_output: bool, verbose: bool, quiet: bool) -> None:
    """bugshelf - bug tracker database bootstrap and comment threads"""
    bctx = ctx.ensure_object(BugshelfContext)
    bctx.verbose = verbose
    bctx.quiet = quiet
    if json_output:
        bctx.json_output = True
    if db:
        bctx.db = os.path.abspath(db) if db != ":memory:" else db
    if profile:
        bctx.profile = profile

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.result_callback()
def _close_store(*args, **kwargs) -> None:
    bctx = click.get_current_context().find_object(BugshelfContext)
    if bctx is not None and bctx.store is not None:
        bctx.store.close()
        bctx.store = None


# --- Register all command groups ---

from bugshelf.commands.init_cmd import init_cmd
from bugshelf.commands.scripts_cmd import scripts_cmd
from bugshelf.commands.doctor import doctor
from bugshelf.commands.users import user, users
from bugshelf.commands.bugs import bug, bugs
from bugshelf.commands.comments import comment, thread
from bugshelf.commands.stats import stats

cli.add_command(init_cmd, "init")
cli.add_command(scripts_cmd, "scripts")
cli.add_command(doctor, "doctor")
cli.add_command(user, "user")
cli.add_command(users, "users")
cli.add_command(bug, "bug")
cli.add_command(bugs, "bugs")
cli.add_command(thread, "thread")
cli.add_command(comment, "comment")
cli.add_command(stats, "stats")


def main() -> None:
    cli(auto_envvar_prefix="BUGSHELF")

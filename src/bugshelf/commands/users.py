"""bugshelf user / users - bookshelf users and the users table."""

from __future__ import annotations

import sqlite3

import click

from bugshelf.cli import BugshelfContext, pass_ctx
from bugshelf.errors import DomainError
from bugshelf.models import BookshelfUser, UserId


def _user_id(ctx: BugshelfContext, raw: str) -> UserId:
    try:
        return UserId(raw)
    except DomainError as e:
        ctx.fail(str(e))


@click.group("user")
def user() -> None:
    """Manage bookshelf users."""


@user.command("add")
@click.argument("user_id")
@pass_ctx
def user_add(ctx: BugshelfContext, user_id: str) -> None:
    """Create a bookshelf user."""
    ctx.ensure_initialized()
    assert ctx.store is not None
    ctx.require_profile("bookshelf")

    uid = _user_id(ctx, user_id)
    try:
        ctx.store.create_user(BookshelfUser(uid))
    except sqlite3.IntegrityError:
        ctx.fail(f"user already exists: {uid}")

    if ctx.json_output:
        ctx.output({"id": uid.value})
    elif not ctx.quiet:
        click.echo(f"Created user {uid}")


@user.command("show")
@click.argument("user_id")
@pass_ctx
def user_show(ctx: BugshelfContext, user_id: str) -> None:
    """Show a bookshelf user."""
    ctx.ensure_initialized()
    assert ctx.store is not None
    ctx.require_profile("bookshelf")

    found = ctx.store.find_user_by_id(_user_id(ctx, user_id))
    if found is None:
        ctx.fail(f"user not found: {user_id}")

    if ctx.json_output:
        ctx.output(found.to_dict())
        return
    data = found.to_dict()
    click.echo(f"  Id:      {data['id']}")
    click.echo(f"  Created: {data['created_at']}")
    click.echo(f"  Updated: {data['updated_at']}")


@click.command("users")
@pass_ctx
def users(ctx: BugshelfContext) -> None:
    """List rows of the users table."""
    ctx.ensure_initialized()
    assert ctx.store is not None
    if ctx.store.profile not in ("sampledb", "bookshelf"):
        ctx.fail(f"profile {ctx.store.profile!r} has no users table")

    rows = ctx.store.list_users()
    if ctx.json_output:
        ctx.output([u.to_dict() for u in rows])
        return
    if not rows:
        click.echo("No users")
        return
    for u in rows:
        click.echo(f"  {u.id:<4} {u.name:<20} {u.email or '-'}")

"""bugshelf bug / bugs - list and inspect bugs."""

from __future__ import annotations

import sqlite3

import click

from bugshelf.cli import BugshelfContext, pass_ctx
from bugshelf.errors import NotFoundError
from bugshelf.utils import account_label, format_bug_row


@click.command("bugs")
@click.option("--status", "-s", default=None, help="Only bugs with this status")
@pass_ctx
def bugs(ctx: BugshelfContext, status: str | None) -> None:
    """List bugs."""
    ctx.ensure_initialized()
    assert ctx.store is not None
    ctx.require_profile("bugs")

    rows = ctx.store.list_bugs(status=status)
    if ctx.json_output:
        ctx.output([b.to_dict() for b in rows])
        return
    if not rows:
        click.echo("No bugs found")
        return
    for b in rows:
        click.echo(format_bug_row(b))
    click.echo(f"\n{len(rows)} bug(s)")


@click.group("bug")
def bug() -> None:
    """Inspect and change a bug."""


@bug.command("show")
@click.argument("bug_id", type=int)
@pass_ctx
def bug_show(ctx: BugshelfContext, bug_id: int) -> None:
    """Show detailed view of a bug."""
    ctx.ensure_initialized()
    assert ctx.store is not None
    ctx.require_profile("bugs")

    b = ctx.store.get_bug(bug_id)
    if b is None:
        ctx.fail(f"bug not found: {bug_id}")

    products = ctx.store.get_products(bug_id)
    screenshots = ctx.store.get_screenshots(bug_id)
    comments = ctx.store.comments.list_comments(bug_id)

    if ctx.json_output:
        data = b.to_dict()
        data["products"] = [p.to_dict() for p in products]
        data["screenshots"] = [s.to_dict() for s in screenshots]
        data["comment_count"] = len(comments)
        ctx.output(data)
        return

    def who(account_id: int | None) -> str:
        if account_id is None:
            return "-"
        return account_label(ctx.store.get_account(account_id), account_id)

    click.echo(f"{'─' * 60}")
    click.echo(f"  Bug {b.bug_id}")
    click.echo(f"{'─' * 60}")
    click.echo(f"  Summary:  {b.summary}")
    click.echo(f"  Status:   {b.status}")
    if b.priority:
        click.echo(f"  Priority: {b.priority}")
    click.echo(f"  Reported: {b.date_reported.isoformat()} by {who(b.reported_by)}")
    click.echo(f"  Assigned: {who(b.assigned_to)}")
    click.echo(f"  Verified: {who(b.verified_by)}")
    if b.hours is not None:
        click.echo(f"  Hours:    {b.hours}")
    if b.tags:
        click.echo(f"  Tags:     {', '.join(b.tags)}")
    if products:
        click.echo(f"  Products: {', '.join(p.product_name for p in products)}")

    if b.description:
        click.echo("\n  Description:")
        for line in b.description.split("\n"):
            click.echo(f"    {line}")
    if b.resolution:
        click.echo("\n  Resolution:")
        for line in b.resolution.split("\n"):
            click.echo(f"    {line}")

    if screenshots:
        click.echo(f"\n  Screenshots ({len(screenshots)}):")
        for s in screenshots:
            click.echo(f"    {s.image_id}: {s.caption or '(no caption)'}")

    click.echo(f"\n  Comments: {len(comments)} (see 'bugshelf thread {b.bug_id}')")
    click.echo()


@bug.command("tag")
@click.argument("bug_id", type=int)
@click.argument("tag")
@click.option("--remove", is_flag=True, help="Remove the tag instead")
@pass_ctx
def bug_tag(ctx: BugshelfContext, bug_id: int, tag: str, remove: bool) -> None:
    """Add (or remove) a tag on a bug."""
    ctx.ensure_initialized()
    assert ctx.store is not None
    ctx.require_profile("bugs")

    try:
        if remove:
            ctx.store.remove_tag(bug_id, tag)
        else:
            ctx.store.add_tag(bug_id, tag)
    except sqlite3.IntegrityError:
        ctx.fail(f"bug not found: {bug_id}")

    if not ctx.quiet:
        verb = "Removed" if remove else "Added"
        click.echo(f"{verb} tag '{tag}' on bug {bug_id}")


@bug.command("status")
@click.argument("bug_id", type=int)
@click.argument("status")
@pass_ctx
def bug_status(ctx: BugshelfContext, bug_id: int, status: str) -> None:
    """Change a bug's status (one of the BugStatus rows)."""
    ctx.ensure_initialized()
    assert ctx.store is not None
    ctx.require_profile("bugs")

    try:
        ctx.store.set_bug_status(bug_id, status)
    except NotFoundError as e:
        ctx.fail(str(e))
    except sqlite3.IntegrityError:
        valid = ", ".join(ctx.store.bug_statuses())
        ctx.fail(f"invalid status {status!r} (valid: {valid})")

    if not ctx.quiet:
        click.echo(f"Bug {bug_id} is now {status}")

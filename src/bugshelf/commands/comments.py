"""bugshelf thread / comment - threaded comments on a bug."""

from __future__ import annotations

import sqlite3

import click

from bugshelf.cli import BugshelfContext, pass_ctx
from bugshelf.errors import DomainError
from bugshelf.hierarchy import nested_sets, path_enumeration
from bugshelf.models import Comment
from bugshelf.utils import account_label, format_comment_line


def _author_names(ctx: BugshelfContext) -> dict[int, str]:
    assert ctx.store is not None
    return {
        a.account_id: account_label(a, a.account_id) for a in ctx.store.list_accounts()
    }


def _print_comments(ctx: BugshelfContext, comments: list[Comment]) -> None:
    if ctx.json_output:
        ctx.output([c.to_dict() for c in comments])
        return
    names = _author_names(ctx)
    for c in comments:
        click.echo(format_comment_line(c, names.get(c.author, f"#{c.author}")))


@click.command("thread")
@click.argument("bug_id", type=int)
@click.option("--format", "fmt", default="tree",
              type=click.Choice(["tree", "paths", "nested", "closure"]),
              help="How to render the hierarchy")
@pass_ctx
def thread(ctx: BugshelfContext, bug_id: int, fmt: str) -> None:
    """Show the comment thread of a bug."""
    ctx.ensure_initialized()
    assert ctx.store is not None
    ctx.require_profile("bugs")
    tree = ctx.store.comments

    try:
        if fmt == "tree":
            entries = tree.get_thread(bug_id)
            if ctx.json_output:
                ctx.output([dict(c.to_dict(), depth=d) for c, d in entries])
                return
            if not entries:
                click.echo(f"No comments on bug {bug_id}")
                return
            names = _author_names(ctx)
            for c, depth in entries:
                click.echo(format_comment_line(c, names.get(c.author, f"#{c.author}"), depth))
        elif fmt == "paths":
            paths = path_enumeration(tree.parents(bug_id))
            if ctx.json_output:
                ctx.output({str(k): v for k, v in sorted(paths.items())})
                return
            for cid, path in sorted(paths.items()):
                click.echo(f"  {cid:<6} {path}")
        elif fmt == "nested":
            bounds = nested_sets(tree.parents(bug_id))
            if ctx.json_output:
                ctx.output({str(k): list(v) for k, v in sorted(bounds.items())})
                return
            for cid, (lft, rgt) in sorted(bounds.items(), key=lambda kv: kv[1]):
                click.echo(f"  {cid:<6} {lft:>4} {rgt:>4}")
        else:
            pairs = sorted(tree.closure_pairs(bug_id))
            if ctx.json_output:
                ctx.output([list(p) for p in pairs])
                return
            for anc, desc in pairs:
                click.echo(f"  {anc:<6} {desc}")
    except DomainError as e:
        ctx.fail(str(e))


@click.group("comment")
def comment() -> None:
    """Manage threaded comments."""


@comment.command("reply")
@click.argument("bug_id", type=int)
@click.argument("text")
@click.option("--author", "-a", type=int, required=True, help="Author account ID")
@click.option("--parent", "-p", type=int, default=None, help="Comment being replied to")
@pass_ctx
def comment_reply(ctx: BugshelfContext, bug_id: int, text: str, author: int,
                  parent: int | None) -> None:
    """Add a comment to a bug, optionally as a reply."""
    ctx.ensure_initialized()
    assert ctx.store is not None
    ctx.require_profile("bugs")

    try:
        c = ctx.store.comments.add_comment(bug_id, author, text, parent_id=parent)
    except DomainError as e:
        ctx.fail(str(e))
    except sqlite3.IntegrityError:
        ctx.fail(f"unknown bug {bug_id} or author {author}")

    if ctx.json_output:
        ctx.output(c.to_dict())
    elif not ctx.quiet:
        click.echo(f"Added comment {c.comment_id} to bug {bug_id}")


@comment.command("ancestors")
@click.argument("comment_id", type=int)
@pass_ctx
def comment_ancestors(ctx: BugshelfContext, comment_id: int) -> None:
    """List a comment and everything above it."""
    ctx.ensure_initialized()
    assert ctx.store is not None
    ctx.require_profile("bugs")
    _print_comments(ctx, ctx.store.comments.ancestors(comment_id))


@comment.command("descendants")
@click.argument("comment_id", type=int)
@pass_ctx
def comment_descendants(ctx: BugshelfContext, comment_id: int) -> None:
    """List a comment and all replies below it."""
    ctx.ensure_initialized()
    assert ctx.store is not None
    ctx.require_profile("bugs")
    _print_comments(ctx, ctx.store.comments.descendants(comment_id))


@comment.command("delete")
@click.argument("comment_id", type=int)
@pass_ctx
def comment_delete(ctx: BugshelfContext, comment_id: int) -> None:
    """Delete a comment and its replies."""
    ctx.ensure_initialized()
    assert ctx.store is not None
    ctx.require_profile("bugs")

    try:
        ids = ctx.store.comments.delete_subtree(comment_id)
    except DomainError as e:
        ctx.fail(str(e))

    if ctx.json_output:
        ctx.output({"deleted": ids})
    elif not ctx.quiet:
        click.echo(f"Deleted {len(ids)} comment(s): {', '.join(map(str, ids))}")


@comment.command("move")
@click.argument("comment_id", type=int)
@click.option("--parent", "-p", type=int, default=None,
              help="New parent comment (omit to make it a root)")
@pass_ctx
def comment_move(ctx: BugshelfContext, comment_id: int, parent: int | None) -> None:
    """Move a comment with its replies under another comment."""
    ctx.ensure_initialized()
    assert ctx.store is not None
    ctx.require_profile("bugs")

    try:
        ctx.store.comments.move_subtree(comment_id, parent)
    except DomainError as e:
        ctx.fail(str(e))

    if not ctx.quiet:
        where = f"under {parent}" if parent is not None else "to the top level"
        click.echo(f"Moved comment {comment_id} {where}")


@comment.command("rebuild")
@click.argument("bug_id", type=int)
@pass_ctx
def comment_rebuild(ctx: BugshelfContext, bug_id: int) -> None:
    """Recompute a bug's closure rows from the parents they imply."""
    ctx.ensure_initialized()
    assert ctx.store is not None
    ctx.require_profile("bugs")

    try:
        count = ctx.store.comments.rebuild(bug_id, verbose=ctx.verbose)
    except DomainError as e:
        ctx.fail(str(e))

    if not ctx.quiet:
        click.echo(f"Rebuilt {count} closure row(s) for bug {bug_id}")

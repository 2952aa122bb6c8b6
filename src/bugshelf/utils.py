"""Formatting helpers for the bugshelf CLI."""

from __future__ import annotations

from bugshelf.models import Account, Bug, BugStatus, Comment, format_timestamp


def status_symbol(status: str) -> str:
    """Return a symbol for status display."""
    symbols = {
        BugStatus.NEW: " ",
        BugStatus.IN_PROGRESS: ">",
        BugStatus.FIXED: "x",
    }
    return symbols.get(status, "?")


def truncate(s: str, max_len: int = 60) -> str:
    """Truncate a string with ellipsis."""
    if len(s) <= max_len:
        return s
    return s[:max_len - 3] + "..."


def account_label(account: Account | None, account_id: int | None) -> str:
    if account_id is None:
        return "-"
    if account is None:
        return f"#{account_id}"
    return account.account_name or account.full_name or f"#{account_id}"


def format_bug_row(bug: Bug) -> str:
    """Format a bug as a single-line row for list display."""
    sym = status_symbol(bug.status)
    summary = truncate(bug.summary, 50)
    return f"[{sym}] {bug.bug_id:<6} {bug.date_reported.isoformat()} {bug.status:<12} {summary}"


def format_comment_line(comment: Comment, author: str, depth: int = 0,
                        indent: str = "  ") -> str:
    """One comment of a thread, indented by its depth."""
    when = format_timestamp(comment.comment_date)
    return f"{indent * depth}#{comment.comment_id} {author} [{when}]: {comment.comment}"

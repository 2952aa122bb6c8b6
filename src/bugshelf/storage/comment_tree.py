"""Threaded comments stored as a closure table.

Comments carry no parent column. The hierarchy lives in CommentTree, which
holds one row per (ancestor, descendant) pair, including the reflexive pair
of every comment. All writes here keep that table transitively closed.
"""

from __future__ import annotations

import sqlite3
import sys
from datetime import datetime
from typing import TYPE_CHECKING, Iterable

from bugshelf.errors import DomainError, NotFoundError
from bugshelf.hierarchy import (
    closure_from_parents, closure_violations, parents_from_closure, path_enumeration,
)
from bugshelf.models import Comment, format_timestamp, now_utc, parse_timestamp

if TYPE_CHECKING:
    from bugshelf.storage.sqlite_store import SQLiteStorage


def _row_to_comment(row: sqlite3.Row) -> Comment:
    return Comment(
        comment_id=row["comment_id"],
        bug_id=row["bug_id"],
        author=row["author"],
        comment_date=parse_timestamp(row["comment_date"]) or now_utc(),
        comment=row["comment"],
    )


def _placeholders(values: list) -> str:
    return ", ".join("?" for _ in values)


class CommentTree:
    """Closure-table operations bound to a store's connection."""

    def __init__(self, store: SQLiteStorage):
        self._store = store

    @property
    def _conn(self) -> sqlite3.Connection:
        return self._store.connection

    # --- Reads ---

    def get_comment(self, comment_id: int) -> Comment | None:
        row = self._conn.execute(
            "SELECT * FROM Comments WHERE comment_id = ?", (comment_id,)
        ).fetchone()
        return _row_to_comment(row) if row else None

    def _require(self, comment_id: int) -> Comment:
        comment = self.get_comment(comment_id)
        if comment is None:
            raise NotFoundError(f"Comment not found: {comment_id}")
        return comment

    def ancestors(self, comment_id: int, include_self: bool = True) -> list[Comment]:
        """Comments on the path from the root down to ``comment_id``."""
        sql = (
            "SELECT c.* FROM Comments c JOIN CommentTree t ON c.comment_id = t.ancestor "
            "WHERE t.descendant = ?"
        )
        if not include_self:
            sql += " AND t.ancestor != t.descendant"
        rows = self._conn.execute(sql + " ORDER BY c.comment_id", (comment_id,)).fetchall()
        return [_row_to_comment(r) for r in rows]

    def descendants(self, comment_id: int, include_self: bool = True) -> list[Comment]:
        """The whole subtree under ``comment_id``."""
        sql = (
            "SELECT c.* FROM Comments c JOIN CommentTree t ON c.comment_id = t.descendant "
            "WHERE t.ancestor = ?"
        )
        if not include_self:
            sql += " AND t.ancestor != t.descendant"
        rows = self._conn.execute(sql + " ORDER BY c.comment_id", (comment_id,)).fetchall()
        return [_row_to_comment(r) for r in rows]

    def depth(self, comment_id: int) -> int:
        """Number of proper ancestors; roots are at depth 0."""
        row = self._conn.execute(
            "SELECT count(*) FROM CommentTree WHERE descendant = ?", (comment_id,)
        ).fetchone()
        if not row[0]:
            raise NotFoundError(f"Comment not in tree: {comment_id}")
        return row[0] - 1

    def parent(self, comment_id: int) -> Comment | None:
        """The immediate parent: the proper ancestor that is itself deepest."""
        row = self._conn.execute(
            """SELECT c.* FROM Comments c JOIN CommentTree t ON c.comment_id = t.ancestor
               WHERE t.descendant = ? AND t.ancestor != t.descendant
               ORDER BY (SELECT count(*) FROM CommentTree a WHERE a.descendant = t.ancestor) DESC
               LIMIT 1""",
            (comment_id,)
        ).fetchone()
        return _row_to_comment(row) if row else None

    def children(self, comment_id: int) -> list[Comment]:
        level = self.depth(comment_id) + 1
        rows = self._conn.execute(
            """SELECT c.* FROM Comments c JOIN CommentTree t ON c.comment_id = t.descendant
               WHERE t.ancestor = ? AND t.descendant != t.ancestor
                 AND (SELECT count(*) - 1 FROM CommentTree x WHERE x.descendant = t.descendant) = ?
               ORDER BY c.comment_id""",
            (comment_id, level)
        ).fetchall()
        return [_row_to_comment(r) for r in rows]

    def roots(self, bug_id: int) -> list[Comment]:
        rows = self._conn.execute(
            """SELECT c.* FROM Comments c
               WHERE c.bug_id = ? AND NOT EXISTS (
                   SELECT 1 FROM CommentTree t
                   WHERE t.descendant = c.comment_id AND t.ancestor != c.comment_id)
               ORDER BY c.comment_id""",
            (bug_id,)
        ).fetchall()
        return [_row_to_comment(r) for r in rows]

    def list_comments(self, bug_id: int) -> list[Comment]:
        rows = self._conn.execute(
            "SELECT * FROM Comments WHERE bug_id = ? ORDER BY comment_id", (bug_id,)
        ).fetchall()
        return [_row_to_comment(r) for r in rows]

    def closure_pairs(self, bug_id: int | None = None) -> set[tuple[int, int]]:
        if bug_id is None:
            rows = self._conn.execute("SELECT ancestor, descendant FROM CommentTree").fetchall()
        else:
            rows = self._conn.execute(
                "SELECT t.ancestor, t.descendant FROM CommentTree t "
                "JOIN Comments c ON c.comment_id = t.descendant WHERE c.bug_id = ?",
                (bug_id,)
            ).fetchall()
        return {(r[0], r[1]) for r in rows}

    def parents(self, bug_id: int) -> dict[int, int | None]:
        """Adjacency list of a bug's thread, derived from the closure."""
        parents: dict[int, int | None] = {
            c.comment_id: None for c in self.list_comments(bug_id)
        }
        parents.update(parents_from_closure(self.closure_pairs(bug_id)))
        return parents

    def get_thread(self, bug_id: int) -> list[tuple[Comment, int]]:
        """Comments of a bug in depth-first order, each with its depth."""
        comments = {c.comment_id: c for c in self.list_comments(bug_id)}
        paths = path_enumeration(self.parents(bug_id))

        def key(cid: int) -> list[int]:
            return [int(p) for p in paths[cid].split("/") if p]

        return [
            (comments[cid], paths[cid].count("/") - 1)
            for cid in sorted(comments, key=key)
        ]

    # --- Writes ---

    def add_comment(self, bug_id: int, author: int, text: str,
                    parent_id: int | None = None,
                    comment_date: datetime | None = None) -> Comment:
        """Insert a comment and the closure rows linking it under ``parent_id``."""
        with self._store.transaction():
            if parent_id is not None:
                parent = self._require(parent_id)
                if parent.bug_id != bug_id:
                    raise DomainError(
                        f"Parent comment {parent_id} belongs to bug {parent.bug_id}, not {bug_id}"
                    )
            when = comment_date or now_utc()
            cur = self._conn.execute(
                "INSERT INTO Comments (bug_id, author, comment_date, comment) VALUES (?, ?, ?, ?)",
                (bug_id, author, format_timestamp(when), text)
            )
            new_id = cur.lastrowid
            if parent_id is None:
                self._conn.execute(
                    "INSERT INTO CommentTree (ancestor, descendant) VALUES (?, ?)",
                    (new_id, new_id)
                )
            else:
                self._conn.execute(
                    "INSERT INTO CommentTree (ancestor, descendant) "
                    "SELECT ancestor, ? FROM CommentTree WHERE descendant = ? "
                    "UNION ALL SELECT ?, ?",
                    (new_id, parent_id, new_id, new_id)
                )
        return self._require(new_id)

    def delete_subtree(self, comment_id: int) -> list[int]:
        """Delete a comment with all of its replies. Returns the deleted ids."""
        with self._store.transaction():
            self._require(comment_id)
            ids = sorted({c.comment_id for c in self.descendants(comment_id)} | {comment_id})
            marks = _placeholders(ids)
            self._conn.execute(
                f"DELETE FROM CommentTree WHERE descendant IN ({marks})", ids
            )
            self._conn.execute(f"DELETE FROM Comments WHERE comment_id IN ({marks})", ids)
        return ids

    def move_subtree(self, comment_id: int, new_parent_id: int | None) -> None:
        """Re-hang ``comment_id`` and its replies under ``new_parent_id``.

        With new_parent_id=None the subtree becomes a new root.
        """
        with self._store.transaction():
            node = self._require(comment_id)
            subtree = sorted({c.comment_id for c in self.descendants(comment_id)} | {comment_id})
            if new_parent_id is not None:
                target = self._require(new_parent_id)
                if target.bug_id != node.bug_id:
                    raise DomainError(
                        f"Cannot move comment {comment_id} to a thread of bug {target.bug_id}"
                    )
                if new_parent_id in subtree:
                    raise DomainError(
                        f"Cannot move comment {comment_id} under its own reply {new_parent_id}"
                    )

            marks = _placeholders(subtree)
            self._conn.execute(
                f"DELETE FROM CommentTree WHERE descendant IN ({marks}) "
                f"AND ancestor NOT IN ({marks})",
                subtree + subtree
            )
            if new_parent_id is not None:
                self._conn.execute(
                    "INSERT INTO CommentTree (ancestor, descendant) "
                    "SELECT super.ancestor, sub.descendant "
                    "FROM CommentTree super CROSS JOIN CommentTree sub "
                    "WHERE super.descendant = ? AND sub.ancestor = ?",
                    (new_parent_id, comment_id)
                )

    def rebuild(self, bug_id: int, parents: dict[int, int | None] | None = None,
                verbose: bool = False) -> int:
        """Rewrite a bug's closure rows from an adjacency list.

        Without ``parents`` the adjacency list is derived from the rows that
        are there, which repairs missing transitive or reflexive pairs.
        An explicit map must name every comment of the bug.
        Returns the number of closure rows written.
        """
        if parents is None:
            parents = self.parents(bug_id)
        ids = [c.comment_id for c in self.list_comments(bug_id)]
        unknown = sorted(set(parents) - set(ids))
        if unknown:
            raise DomainError(f"Comments {unknown} do not belong to bug {bug_id}")
        # every comment of the bug keeps at least its reflexive row
        missing = sorted(set(ids) - set(parents))
        if missing:
            raise DomainError(
                f"Comments {missing} of bug {bug_id} have no entry in the parent map"
            )
        pairs = sorted(closure_from_parents(parents))

        with self._store.transaction():
            if ids:
                marks = _placeholders(ids)
                self._conn.execute(
                    f"DELETE FROM CommentTree WHERE descendant IN ({marks})", ids
                )
            self._conn.executemany(
                "INSERT INTO CommentTree (ancestor, descendant) VALUES (?, ?)", pairs
            )
        if verbose:
            print(f"Rebuilt {len(pairs)} closure rows for bug {bug_id}", file=sys.stderr)
        return len(pairs)

    # --- Verification ---

    def verify(self, bug_id: int | None = None) -> list[str]:
        """Return closure problems; an empty list means the table is consistent."""
        if bug_id is None:
            nodes: Iterable[int] = [
                r[0] for r in self._conn.execute("SELECT comment_id FROM Comments").fetchall()
            ]
        else:
            nodes = [c.comment_id for c in self.list_comments(bug_id)]
        pairs = self.closure_pairs(bug_id)
        problems = closure_violations(pairs, nodes)

        rows = self._conn.execute(
            """SELECT t.ancestor, t.descendant FROM CommentTree t
               JOIN Comments a ON a.comment_id = t.ancestor
               JOIN Comments d ON d.comment_id = t.descendant
               WHERE a.bug_id != d.bug_id"""
        ).fetchall()
        for r in rows:
            if bug_id is None or (r[0], r[1]) in pairs:
                problems.append(f"pair ({r[0]}, {r[1]}) crosses bug threads")
        return problems

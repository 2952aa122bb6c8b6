"""SQLite storage implementation for bugshelf."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from decimal import Decimal
from typing import Any, Iterator

from bugshelf.errors import NotFoundError
from bugshelf.models import (
    Account, BookshelfUser, Bug, BugStatus, Product, Screenshot, User, UserId,
    parse_date, parse_timestamp,
)
from bugshelf.storage.bootstrap import bootstrap, is_bootstrapped
from bugshelf.storage.comment_tree import CommentTree
from bugshelf.storage.interface import Storage
from bugshelf.storage.schema import DEFAULT_PROFILE, TABLES
from bugshelf.transaction import as_transaction


# NUMERIC(9,2) columns; SQLite drops trailing zeros on storage
CENTS = Decimal("0.01")


def _to_decimal(value: Any) -> Decimal | None:
    if value is None:
        return None
    return Decimal(str(value)).quantize(CENTS)


def _from_decimal(value: Decimal | None) -> str | None:
    return None if value is None else str(value)


class SQLiteStorage(Storage):
    """SQLite-based storage backend.

    Opening a fresh (empty) database file runs the profile's init scripts.
    A database that was already bootstrapped keeps the profile it was
    created with.
    """

    def __init__(self, db_path: str, profile: str = DEFAULT_PROFILE, verbose: bool = False):
        self._db_path = db_path
        self._conn = sqlite3.connect(db_path)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA foreign_keys=ON")
        self._conn.execute("PRAGMA busy_timeout=5000")
        self._tx_depth = 0
        try:
            self.profile = self._init_schema(profile, verbose)
        except Exception:
            self._conn.close()
            raise
        self.comments = CommentTree(self)

    def _init_schema(self, profile: str, verbose: bool) -> str:
        """Bootstrap an empty database; leave anything else alone."""
        existing = is_bootstrapped(self._conn)
        if existing:
            return existing
        row = self._conn.execute(
            "SELECT count(*) FROM sqlite_master WHERE type='table'"
        ).fetchone()
        if row[0] == 0:
            bootstrap(self._conn, profile, verbose=verbose)
        return profile

    @property
    def connection(self) -> sqlite3.Connection:
        return self._conn

    def path(self) -> str:
        return self._db_path

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> SQLiteStorage:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    # --- Transactions ---

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        if self._tx_depth:
            # joined to the enclosing transaction
            self._tx_depth += 1
            try:
                yield self._conn
            finally:
                self._tx_depth -= 1
            return

        self._tx_depth = 1
        try:
            yield self._conn
            self._conn.commit()
        except Exception:
            self._conn.rollback()
            raise
        finally:
            self._tx_depth = 0

    def run_in_transaction(self, work: Any) -> Any:
        tx = as_transaction(work)
        with self.transaction():
            return tx.run(self)

    # --- bookshelf_user ---

    def create_user(self, user: BookshelfUser) -> None:
        with self.transaction():
            self._conn.execute(
                "INSERT INTO bookshelf_user (id) VALUES (?)", (user.id.value,)
            )

    def find_user_by_id(self, user_id: UserId) -> BookshelfUser | None:
        row = self._conn.execute(
            "SELECT * FROM bookshelf_user WHERE id = ?", (user_id.value,)
        ).fetchone()
        if row is None:
            return None
        return BookshelfUser(
            id=UserId(row["id"]),
            created_at=parse_timestamp(row["created_at"]),
            updated_at=parse_timestamp(row["updated_at"]),
        )

    # --- users ---

    def list_users(self) -> list[User]:
        rows = self._conn.execute("SELECT * FROM users ORDER BY id").fetchall()
        return [
            User(
                id=row["id"],
                name=row["name"] or "",
                email=row["email"],
                created_at=parse_timestamp(row["created_at"]),
                updated_at=parse_timestamp(row["updated_at"]),
            )
            for row in rows
        ]

    # --- Accounts ---

    def _row_to_account(self, row: sqlite3.Row) -> Account:
        return Account(
            account_id=row["account_id"],
            account_name=row["account_name"] or "",
            first_name=row["first_name"] or "",
            last_name=row["last_name"] or "",
            email=row["email"] or "",
            password_hash=row["password_hash"],
            portrait_image=row["portrait_image"],
            hourly_rate=_to_decimal(row["hourly_rate"]),
        )

    def create_account(self, account: Account) -> int:
        with self.transaction():
            cur = self._conn.execute(
                "INSERT INTO Accounts (account_name, first_name, last_name, email, "
                "password_hash, portrait_image, hourly_rate) VALUES (?, ?, ?, ?, ?, ?, ?)",
                (account.account_name, account.first_name, account.last_name,
                 account.email, account.password_hash, account.portrait_image,
                 _from_decimal(account.hourly_rate))
            )
        account.account_id = cur.lastrowid or 0
        return account.account_id

    def get_account(self, account_id: int) -> Account | None:
        row = self._conn.execute(
            "SELECT * FROM Accounts WHERE account_id = ?", (account_id,)
        ).fetchone()
        return self._row_to_account(row) if row else None

    def list_accounts(self) -> list[Account]:
        rows = self._conn.execute("SELECT * FROM Accounts ORDER BY account_id").fetchall()
        return [self._row_to_account(row) for row in rows]

    # --- Bugs ---

    def _row_to_bug(self, row: sqlite3.Row) -> Bug:
        return Bug(
            bug_id=row["bug_id"],
            date_reported=parse_date(row["date_reported"]),
            summary=row["summary"] or "",
            description=row["description"] or "",
            resolution=row["resolution"] or "",
            reported_by=row["reported_by"],
            assigned_to=row["assigned_to"],
            verified_by=row["verified_by"],
            status=row["status"],
            priority=row["priority"] or "",
            hours=_to_decimal(row["hours"]),
        )

    def create_bug(self, bug: Bug) -> int:
        with self.transaction():
            cur = self._conn.execute(
                """INSERT INTO Bugs (
                    date_reported, summary, description, resolution, reported_by,
                    assigned_to, verified_by, status, priority, hours
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (bug.date_reported.isoformat(), bug.summary, bug.description or None,
                 bug.resolution or None, bug.reported_by, bug.assigned_to,
                 bug.verified_by, bug.status or BugStatus.NEW, bug.priority or None,
                 _from_decimal(bug.hours))
            )
            bug.bug_id = cur.lastrowid or 0
            for tag in bug.tags:
                self.add_tag(bug.bug_id, tag)
        return bug.bug_id

    def get_bug(self, bug_id: int) -> Bug | None:
        row = self._conn.execute(
            "SELECT * FROM Bugs WHERE bug_id = ?", (bug_id,)
        ).fetchone()
        if row is None:
            return None
        bug = self._row_to_bug(row)
        bug.tags = self.get_tags(bug_id)
        return bug

    def list_bugs(self, status: str | None = None) -> list[Bug]:
        if status is None:
            rows = self._conn.execute("SELECT * FROM Bugs ORDER BY bug_id").fetchall()
        else:
            rows = self._conn.execute(
                "SELECT * FROM Bugs WHERE status = ? ORDER BY bug_id", (status,)
            ).fetchall()
        return [self._row_to_bug(row) for row in rows]

    def set_bug_status(self, bug_id: int, status: str) -> None:
        with self.transaction():
            cur = self._conn.execute(
                "UPDATE Bugs SET status = ? WHERE bug_id = ?", (status, bug_id)
            )
            if cur.rowcount == 0:
                raise NotFoundError(f"Bug not found: {bug_id}")

    def bug_statuses(self) -> list[str]:
        rows = self._conn.execute("SELECT status FROM BugStatus ORDER BY status").fetchall()
        return [row["status"] for row in rows]

    # --- Tags ---

    def add_tag(self, bug_id: int, tag: str) -> None:
        with self.transaction():
            self._conn.execute(
                "INSERT OR IGNORE INTO Tags (bug_id, tag) VALUES (?, ?)", (bug_id, tag)
            )

    def remove_tag(self, bug_id: int, tag: str) -> None:
        with self.transaction():
            self._conn.execute(
                "DELETE FROM Tags WHERE bug_id = ? AND tag = ?", (bug_id, tag)
            )

    def get_tags(self, bug_id: int) -> list[str]:
        rows = self._conn.execute(
            "SELECT tag FROM Tags WHERE bug_id = ? ORDER BY tag", (bug_id,)
        ).fetchall()
        return [row["tag"] for row in rows]

    # --- Products ---

    def create_product(self, name: str) -> int:
        with self.transaction():
            cur = self._conn.execute(
                "INSERT INTO Products (product_name) VALUES (?)", (name,)
            )
        return cur.lastrowid or 0

    def link_product(self, bug_id: int, product_id: int) -> None:
        with self.transaction():
            self._conn.execute(
                "INSERT INTO BugProducts (bug_id, product_id) VALUES (?, ?)",
                (bug_id, product_id)
            )

    def get_products(self, bug_id: int) -> list[Product]:
        rows = self._conn.execute(
            "SELECT p.* FROM Products p JOIN BugProducts bp ON p.product_id = bp.product_id "
            "WHERE bp.bug_id = ? ORDER BY p.product_id",
            (bug_id,)
        ).fetchall()
        return [Product(product_id=r["product_id"], product_name=r["product_name"] or "")
                for r in rows]

    # --- Screenshots ---

    def add_screenshot(self, screenshot: Screenshot) -> None:
        with self.transaction():
            self._conn.execute(
                "INSERT INTO Screenshots (bug_id, image_id, screenshot_image, caption) "
                "VALUES (?, ?, ?, ?)",
                (screenshot.bug_id, screenshot.image_id, screenshot.screenshot_image,
                 screenshot.caption or None)
            )

    def get_screenshots(self, bug_id: int) -> list[Screenshot]:
        rows = self._conn.execute(
            "SELECT * FROM Screenshots WHERE bug_id = ? ORDER BY image_id", (bug_id,)
        ).fetchall()
        return [
            Screenshot(
                bug_id=r["bug_id"],
                image_id=r["image_id"],
                screenshot_image=r["screenshot_image"],
                caption=r["caption"] or "",
            )
            for r in rows
        ]

    # --- Statistics ---

    def get_table_counts(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for spec in TABLES[self.profile]:
            row = self._conn.execute(f'SELECT count(*) FROM "{spec.name}"').fetchone()
            counts[spec.name] = row[0]
        return counts

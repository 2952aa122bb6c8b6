"""Tests for SQLite storage."""

import os
import sqlite3
import tempfile
from datetime import date
from decimal import Decimal

import pytest

from bugshelf.errors import BootstrapError, DomainError, NotFoundError
from bugshelf.models import Account, BookshelfUser, Bug, BugStatus, Screenshot, UserId
from bugshelf.storage.sqlite_store import SQLiteStorage
from bugshelf.transaction import with_ctx


def _temp_store(profile: str):
    fd, path = tempfile.mkstemp(suffix=".db")
    os.close(fd)
    s = SQLiteStorage(path, profile)
    return s, path


@pytest.fixture
def store():
    """Create a temporary bugs database for testing."""
    s, path = _temp_store("bugs")
    yield s
    s.close()
    os.unlink(path)


@pytest.fixture
def bookshelf():
    s, path = _temp_store("bookshelf")
    yield s
    s.close()
    os.unlink(path)


class TestOpen:
    def test_fresh_file_is_bootstrapped(self, store: SQLiteStorage):
        assert store.profile == "bugs"
        assert store.get_table_counts()["Bugs"] == 1

    def test_reopen_keeps_profile(self, store: SQLiteStorage):
        path = store.path()
        store.close()
        with SQLiteStorage(path, "sampledb") as again:
            assert again.profile == "bugs"
            assert len(again.list_bugs()) == 1

    def test_sampledb_users(self):
        s, path = _temp_store("sampledb")
        try:
            names = [u.name for u in s.list_users()]
            assert names == ["cutsea110", "nobsun"]
        finally:
            s.close()
            os.unlink(path)

    def test_failed_bootstrap_closes_connection(self, tmp_path, monkeypatch):
        path = str(tmp_path / "clash.db")
        setup = sqlite3.connect(path)
        # a view takes the name of the first table but is not counted as one
        setup.execute("CREATE VIEW Accounts AS SELECT 1 AS account_id")
        setup.commit()
        setup.close()

        opened: list[sqlite3.Connection] = []
        real_connect = sqlite3.connect

        def tracking_connect(*args, **kwargs):
            conn = real_connect(*args, **kwargs)
            opened.append(conn)
            return conn

        monkeypatch.setattr(sqlite3, "connect", tracking_connect)
        with pytest.raises(BootstrapError, match="01_bugs_schema.sql"):
            SQLiteStorage(path, "bugs")
        assert len(opened) == 1
        with pytest.raises(sqlite3.ProgrammingError):
            opened[0].execute("SELECT 1")


class TestUsers:
    def test_create_and_find(self, bookshelf: SQLiteStorage):
        uid = UserId("foo")
        assert bookshelf.find_user_by_id(uid) is None
        bookshelf.create_user(BookshelfUser(uid))
        found = bookshelf.find_user_by_id(uid)
        assert found is not None
        assert found.id == uid
        assert found.created_at is not None

    def test_duplicate(self, bookshelf: SQLiteStorage):
        bookshelf.create_user(BookshelfUser(UserId("foo")))
        with pytest.raises(sqlite3.IntegrityError):
            bookshelf.create_user(BookshelfUser(UserId("foo")))

    def test_rolled_back_create(self, bookshelf: SQLiteStorage):
        uid = UserId("foo")

        def create_then_fail(s: SQLiteStorage) -> None:
            s.create_user(BookshelfUser(uid))
            assert s.find_user_by_id(uid) is not None
            raise RuntimeError("abort")

        with pytest.raises(RuntimeError):
            bookshelf.run_in_transaction(create_then_fail)
        assert bookshelf.find_user_by_id(uid) is None

    def test_empty_id_rejected(self):
        with pytest.raises(DomainError, match="must not be empty"):
            UserId("")

    def test_users_table_starts_empty(self, bookshelf: SQLiteStorage):
        assert bookshelf.list_users() == []


class TestAccounts:
    def test_seeded(self, store: SQLiteStorage):
        accounts = store.list_accounts()
        assert [a.account_name for a in accounts] == ["fran", "ollie", "kukla"]
        fran = store.get_account(1)
        assert fran.full_name == "Fran Allen"
        assert str(fran.hourly_rate) == "55.00"

    def test_create(self, store: SQLiteStorage):
        acc = Account(account_name="zed", first_name="Zed", last_name="Shaw",
                      email="zed@example.com", hourly_rate=Decimal("12.50"))
        account_id = store.create_account(acc)
        assert account_id == acc.account_id
        got = store.get_account(account_id)
        assert got.email == "zed@example.com"
        assert str(got.hourly_rate) == "12.50"

    def test_missing(self, store: SQLiteStorage):
        assert store.get_account(99) is None


class TestBugs:
    def test_seeded_bug(self, store: SQLiteStorage):
        bug = store.get_bug(1234)
        assert bug.summary == "crash when saving"
        assert bug.date_reported == date(2009, 7, 1)
        assert bug.reported_by == 1
        assert bug.assigned_to == 2
        assert bug.verified_by is None
        assert bug.status == BugStatus.NEW
        assert bug.tags == ["crash"]
        assert str(bug.hours) == "4.00"
        assert bug.to_dict()["hours"] == "4.00"

    def test_create_with_tags(self, store: SQLiteStorage):
        bug_id = store.create_bug(Bug(
            date_reported=date(2020, 2, 3), summary="typo", reported_by=3,
            tags=["ui", "docs"],
        ))
        got = store.get_bug(bug_id)
        assert got.tags == ["docs", "ui"]
        assert got.status == BugStatus.NEW

    def test_unknown_reporter(self, store: SQLiteStorage):
        with pytest.raises(sqlite3.IntegrityError):
            store.create_bug(Bug(date_reported=date(2020, 1, 1), reported_by=99))
        assert len(store.list_bugs()) == 1

    def test_unknown_status(self, store: SQLiteStorage):
        with pytest.raises(sqlite3.IntegrityError):
            store.create_bug(Bug(date_reported=date(2020, 1, 1), reported_by=1,
                                 status="WONTFIX"))

    def test_set_status(self, store: SQLiteStorage):
        store.set_bug_status(1234, BugStatus.FIXED)
        assert store.get_bug(1234).status == BugStatus.FIXED
        assert [b.bug_id for b in store.list_bugs(status=BugStatus.FIXED)] == [1234]
        assert store.list_bugs(status=BugStatus.NEW) == []

    def test_set_status_errors(self, store: SQLiteStorage):
        with pytest.raises(NotFoundError):
            store.set_bug_status(99, BugStatus.FIXED)
        with pytest.raises(sqlite3.IntegrityError):
            store.set_bug_status(1234, "WONTFIX")

    def test_statuses(self, store: SQLiteStorage):
        assert store.bug_statuses() == ["FIXED", "IN PROGRESS", "NEW"]


class TestTags:
    def test_add_is_idempotent(self, store: SQLiteStorage):
        store.add_tag(1234, "crash")
        store.add_tag(1234, "save")
        assert store.get_tags(1234) == ["crash", "save"]

    def test_remove(self, store: SQLiteStorage):
        store.remove_tag(1234, "crash")
        assert store.get_tags(1234) == []

    def test_unknown_bug(self, store: SQLiteStorage):
        with pytest.raises(sqlite3.IntegrityError):
            store.add_tag(99, "crash")


class TestProducts:
    def test_seeded_link(self, store: SQLiteStorage):
        assert [p.product_name for p in store.get_products(1234)] == ["Open RoundFile"]

    def test_link(self, store: SQLiteStorage):
        pid = store.create_product("Visual TurboBuilder")
        store.link_product(1234, pid)
        assert len(store.get_products(1234)) == 2
        with pytest.raises(sqlite3.IntegrityError):
            store.link_product(1234, pid)


class TestScreenshots:
    def test_add_and_get(self, store: SQLiteStorage):
        store.add_screenshot(Screenshot(1234, 1, b"\x89PNG", "save dialog"))
        shots = store.get_screenshots(1234)
        assert len(shots) == 1
        assert shots[0].caption == "save dialog"
        assert shots[0].screenshot_image == b"\x89PNG"

    def test_duplicate(self, store: SQLiteStorage):
        store.add_screenshot(Screenshot(1234, 1))
        with pytest.raises(sqlite3.IntegrityError):
            store.add_screenshot(Screenshot(1234, 1))


class TestTransactions:
    def test_nested_rollback(self, store: SQLiteStorage):
        with pytest.raises(RuntimeError):
            with store.transaction():
                store.add_tag(1234, "regression")
                raise RuntimeError("boom")
        assert store.get_tags(1234) == ["crash"]

    def test_composed_transaction(self, store: SQLiteStorage):
        def link(s: SQLiteStorage, pid: int) -> int:
            s.link_product(1234, pid)
            return pid

        tx = with_ctx(lambda s: s.create_product("Shelf")).and_then(link)
        pid = store.run_in_transaction(tx)
        assert pid in [p.product_id for p in store.get_products(1234)]


class TestStatistics:
    def test_table_counts(self, store: SQLiteStorage):
        counts = store.get_table_counts()
        assert counts["Accounts"] == 3
        assert counts["BugStatus"] == 3
        assert counts["Comments"] == 7
        assert counts["CommentTree"] == 18
        assert counts["Screenshots"] == 0

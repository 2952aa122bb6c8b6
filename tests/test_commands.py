"""Tests for CLI commands using Click's test runner."""

import json
import os

import pytest
from click.testing import CliRunner

from bugshelf.cli import cli


@pytest.fixture
def runner(monkeypatch):
    for var in ("BUGSHELF_DB", "BUGSHELF_PROFILE", "BUGSHELF_JSON"):
        monkeypatch.delenv(var, raising=False)
    return CliRunner()


@pytest.fixture
def db(runner: CliRunner, tmp_path):
    """A bugs database initialized through the CLI."""
    path = str(tmp_path / "bugs.db")
    result = runner.invoke(cli, ["--db", path, "init"])
    assert result.exit_code == 0, result.output
    return path


def _json(result):
    assert result.exit_code == 0, result.output
    return json.loads(result.output)


class TestInit:
    def test_init(self, runner: CliRunner, tmp_path):
        path = str(tmp_path / "bugs.db")
        result = runner.invoke(cli, ["--db", path, "init"])
        assert result.exit_code == 0
        assert "Initialized bugs database" in result.output
        assert "ran 01_bugs_schema.sql" in result.output
        assert os.path.exists(path)

    def test_init_twice(self, runner: CliRunner, db: str):
        result = runner.invoke(cli, ["--db", db, "init"])
        assert result.exit_code == 0
        assert "already initialized" in result.output

    def test_init_over_foreign_tables_fails(self, runner: CliRunner, tmp_path):
        import sqlite3
        path = str(tmp_path / "taken.db")
        conn = sqlite3.connect(path)
        conn.execute("CREATE TABLE users (id INTEGER)")
        conn.commit()
        conn.close()
        result = runner.invoke(cli, ["--db", path, "--profile", "sampledb", "init"])
        assert result.exit_code == 1
        assert "01_users.sql" in result.output

    def test_write_config(self, runner: CliRunner):
        with runner.isolated_filesystem():
            result = runner.invoke(cli, ["--profile", "sampledb", "init", "--write-config"])
            assert result.exit_code == 0, result.output
            assert os.path.exists("bugshelf.yaml")
            assert os.path.exists("bugshelf.db")


class TestScripts:
    def test_print_profile(self, runner: CliRunner):
        with runner.isolated_filesystem():
            result = runner.invoke(cli, ["--profile", "sampledb", "scripts"])
            assert result.exit_code == 0
            assert "-- 01_users.sql" in result.output
            assert "CREATE TABLE users" in result.output

    def test_unknown_script(self, runner: CliRunner):
        with runner.isolated_filesystem():
            result = runner.invoke(cli, ["scripts", "99_nope.sql"])
            assert result.exit_code == 1
            assert "no init script" in result.output


class TestDoctor:
    def test_clean_bugs_db(self, runner: CliRunner, db: str):
        result = runner.invoke(cli, ["--db", db, "doctor"])
        assert result.exit_code == 0, result.output
        assert "All checks passed!" in result.output

    @pytest.mark.parametrize("profile", ["sampledb", "bookshelf"])
    def test_other_profiles(self, runner: CliRunner, tmp_path, profile):
        path = str(tmp_path / f"{profile}.db")
        result = runner.invoke(cli, ["--db", path, "--profile", profile, "doctor"])
        assert result.exit_code == 0, result.output

    def test_broken_closure(self, runner: CliRunner, db: str):
        import sqlite3
        conn = sqlite3.connect(db)
        conn.execute("DELETE FROM CommentTree WHERE ancestor = 1 AND descendant = 7")
        conn.commit()
        conn.close()
        result = runner.invoke(cli, ["--db", db, "--json", "doctor"])
        assert result.exit_code == 1
        data = json.loads(result.output)
        assert "missing transitive pair (1, 7) via 4" in data["closure"]
        assert data["schema"] == []


class TestThread:
    def test_tree(self, runner: CliRunner, db: str):
        result = runner.invoke(cli, ["--db", db, "thread", "1234"])
        assert result.exit_code == 0
        lines = result.output.splitlines()
        assert lines[0].startswith("#1 fran")
        assert "      #7 kukla" in result.output

    def test_paths(self, runner: CliRunner, db: str):
        result = runner.invoke(cli, ["--db", db, "thread", "1234", "--format", "paths"])
        assert result.exit_code == 0
        assert "1/4/6/7/" in result.output

    def test_nested_json(self, runner: CliRunner, db: str):
        data = _json(runner.invoke(
            cli, ["--db", db, "--json", "thread", "1234", "--format", "nested"]
        ))
        assert data["1"] == [1, 14]
        assert data["7"] == [10, 11]

    def test_closure_json(self, runner: CliRunner, db: str):
        data = _json(runner.invoke(
            cli, ["--db", db, "--json", "thread", "1234", "--format", "closure"]
        ))
        assert len(data) == 18

    def test_empty(self, runner: CliRunner, db: str):
        result = runner.invoke(cli, ["--db", db, "thread", "99"])
        assert "No comments on bug 99" in result.output


class TestComment:
    def test_reply(self, runner: CliRunner, db: str):
        result = runner.invoke(cli, [
            "--db", db, "comment", "reply", "1234", "Still broken",
            "--author", "2", "--parent", "7",
        ])
        assert result.exit_code == 0, result.output
        assert "Added comment 8 to bug 1234" in result.output
        data = _json(runner.invoke(cli, ["--db", db, "--json", "comment", "ancestors", "8"]))
        assert [c["comment_id"] for c in data] == [1, 4, 6, 7, 8]

    def test_reply_unknown_author(self, runner: CliRunner, db: str):
        result = runner.invoke(cli, [
            "--db", db, "comment", "reply", "1234", "hi", "--author", "99",
        ])
        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_descendants(self, runner: CliRunner, db: str):
        data = _json(runner.invoke(cli, ["--db", db, "--json", "comment", "descendants", "4"]))
        assert [c["comment_id"] for c in data] == [4, 5, 6, 7]

    def test_move_and_delete(self, runner: CliRunner, db: str):
        result = runner.invoke(cli, ["--db", db, "comment", "move", "6", "--parent", "2"])
        assert result.exit_code == 0, result.output
        result = runner.invoke(cli, ["--db", db, "--json", "comment", "delete", "2"])
        assert _json(result) == {"deleted": [2, 3, 6, 7]}
        result = runner.invoke(cli, ["--db", db, "doctor"])
        assert result.exit_code == 0, result.output

    def test_move_under_own_reply(self, runner: CliRunner, db: str):
        result = runner.invoke(cli, ["--db", db, "comment", "move", "4", "--parent", "7"])
        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_rebuild(self, runner: CliRunner, db: str):
        result = runner.invoke(cli, ["--db", db, "comment", "rebuild", "1234"])
        assert result.exit_code == 0
        assert "Rebuilt 18 closure row(s)" in result.output


class TestBugs:
    def test_list(self, runner: CliRunner, db: str):
        result = runner.invoke(cli, ["--db", db, "bugs"])
        assert result.exit_code == 0
        assert "crash when saving" in result.output
        assert "1 bug(s)" in result.output

    def test_show(self, runner: CliRunner, db: str):
        result = runner.invoke(cli, ["--db", db, "bug", "show", "1234"])
        assert result.exit_code == 0
        assert "Reported: 2009-07-01 by fran" in result.output
        assert "Tags:     crash" in result.output
        assert "Open RoundFile" in result.output

    def test_show_missing(self, runner: CliRunner, db: str):
        result = runner.invoke(cli, ["--db", db, "bug", "show", "99"])
        assert result.exit_code == 1

    def test_status(self, runner: CliRunner, db: str):
        result = runner.invoke(cli, ["--db", db, "bug", "status", "1234", "FIXED"])
        assert result.exit_code == 0
        data = _json(runner.invoke(cli, ["--db", db, "--json", "bugs", "--status", "FIXED"]))
        assert [b["bug_id"] for b in data] == [1234]

    def test_invalid_status(self, runner: CliRunner, db: str):
        result = runner.invoke(cli, ["--db", db, "bug", "status", "1234", "WONTFIX"])
        assert result.exit_code == 1
        assert "invalid status" in result.output

    def test_tag(self, runner: CliRunner, db: str):
        result = runner.invoke(cli, ["--db", db, "bug", "tag", "1234", "save"])
        assert result.exit_code == 0
        data = _json(runner.invoke(cli, ["--db", db, "--json", "bug", "show", "1234"]))
        assert data["tags"] == ["crash", "save"]


class TestUsers:
    def test_sampledb_users(self, runner: CliRunner, tmp_path):
        path = str(tmp_path / "sample.db")
        result = runner.invoke(cli, ["--db", path, "--profile", "sampledb", "users"])
        assert result.exit_code == 0
        assert "cutsea110" in result.output
        assert "nobsun@gmail.com" in result.output

    def test_bookshelf_user(self, runner: CliRunner, tmp_path):
        path = str(tmp_path / "shelf.db")
        result = runner.invoke(cli, ["--db", path, "--profile", "bookshelf", "user", "add", "foo"])
        assert result.exit_code == 0, result.output
        data = _json(runner.invoke(cli, ["--db", path, "--json", "user", "show", "foo"]))
        assert data["id"] == "foo"

    def test_empty_user_id(self, runner: CliRunner, tmp_path):
        path = str(tmp_path / "shelf.db")
        result = runner.invoke(cli, ["--db", path, "--profile", "bookshelf", "user", "add", ""])
        assert result.exit_code == 1
        assert "user id must not be empty" in result.output

    def test_user_needs_bookshelf(self, runner: CliRunner, db: str):
        result = runner.invoke(cli, ["--db", db, "user", "add", "foo"])
        assert result.exit_code == 1


class TestStats:
    def test_counts(self, runner: CliRunner, db: str):
        data = _json(runner.invoke(cli, ["--db", db, "--json", "stats"]))
        assert data["profile"] == "bugs"
        assert data["tables"]["Comments"] == 7
        assert data["tables"]["CommentTree"] == 18

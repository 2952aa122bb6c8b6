"""Tests for configuration loading."""

import os

import pytest

from bugshelf.config import CONFIG_YAML, BugshelfConfig, find_config_dir


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ("BUGSHELF_DB", "BUGSHELF_PROFILE", "BUGSHELF_JSON"):
        monkeypatch.delenv(var, raising=False)


def test_defaults(tmp_path):
    cfg = BugshelfConfig.load(str(tmp_path))
    assert cfg.db == "bugshelf.db"
    assert cfg.profile == "bugs"
    assert cfg.db_path == os.path.join(str(tmp_path), "bugshelf.db")


def test_load_yaml(tmp_path):
    (tmp_path / CONFIG_YAML).write_text("db: data/sample.db\nprofile: sampledb\njson: true\n")
    cfg = BugshelfConfig.load(str(tmp_path))
    assert cfg.profile == "sampledb"
    assert cfg.json_output is True
    assert cfg.db_path == os.path.join(str(tmp_path), "data/sample.db")


def test_env_overrides(tmp_path, monkeypatch):
    (tmp_path / CONFIG_YAML).write_text("profile: sampledb\n")
    monkeypatch.setenv("BUGSHELF_PROFILE", "bookshelf")
    monkeypatch.setenv("BUGSHELF_DB", "/tmp/other.db")
    monkeypatch.setenv("BUGSHELF_JSON", "yes")
    cfg = BugshelfConfig.load(str(tmp_path))
    assert cfg.profile == "bookshelf"
    assert cfg.db_path == "/tmp/other.db"
    assert cfg.json_output is True


def test_unknown_profile(tmp_path):
    (tmp_path / CONFIG_YAML).write_text("profile: nope\n")
    with pytest.raises(ValueError, match="unknown profile"):
        BugshelfConfig.load(str(tmp_path))


def test_save_and_reload(tmp_path):
    cfg = BugshelfConfig(db="x.db", profile="bookshelf", verbose=True)
    path = cfg.save(str(tmp_path))
    assert os.path.exists(path)
    again = BugshelfConfig.load(str(tmp_path))
    assert again.db == "x.db"
    assert again.profile == "bookshelf"
    assert again.verbose is True


def test_find_config_dir(tmp_path):
    (tmp_path / CONFIG_YAML).write_text("profile: bugs\n")
    nested = tmp_path / "a" / "b"
    nested.mkdir(parents=True)
    assert find_config_dir(str(nested)) == str(tmp_path)

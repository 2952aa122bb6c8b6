"""Configuration management for bugshelf.

Handles:
- bugshelf.yaml parsing (searched upward from the working directory)
- Environment variable overrides (BUGSHELF_DB, BUGSHELF_PROFILE, BUGSHELF_JSON)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any

import yaml

from bugshelf.storage.schema import DATABASES, DEFAULT_PROFILE


CONFIG_YAML = "bugshelf.yaml"
DEFAULT_DB_NAME = "bugshelf.db"


@dataclass
class BugshelfConfig:
    """User-facing config from bugshelf.yaml."""
    db: str = DEFAULT_DB_NAME
    profile: str = DEFAULT_PROFILE
    json_output: bool = False
    verbose: bool = False

    # Directory holding the config file; relative db paths resolve against it
    root: str = ""

    @classmethod
    def load(cls, root: str | None = None) -> BugshelfConfig:
        """Load bugshelf.yaml from ``root`` (or the nearest one above the cwd)."""
        if root is None:
            root = find_config_dir() or os.getcwd()
        cfg = cls(root=root)
        config_path = os.path.join(root, CONFIG_YAML)
        if os.path.exists(config_path):
            with open(config_path) as f:
                data = yaml.safe_load(f) or {}
            cfg.db = data.get("db", DEFAULT_DB_NAME)
            cfg.profile = data.get("profile", DEFAULT_PROFILE)
            cfg.json_output = data.get("json", False)
            cfg.verbose = data.get("verbose", False)

        # Environment variable overrides
        if os.environ.get("BUGSHELF_DB"):
            cfg.db = os.environ["BUGSHELF_DB"]
        if os.environ.get("BUGSHELF_PROFILE"):
            cfg.profile = os.environ["BUGSHELF_PROFILE"]
        if os.environ.get("BUGSHELF_JSON"):
            cfg.json_output = os.environ["BUGSHELF_JSON"].lower() in ("1", "true", "yes")

        if cfg.profile not in DATABASES:
            raise ValueError(
                f"unknown profile {cfg.profile!r} in configuration "
                f"(known: {', '.join(sorted(DATABASES))})"
            )
        return cfg

    def save(self, root: str | None = None) -> str:
        """Save config to bugshelf.yaml. Returns the file path."""
        config_path = os.path.join(root or self.root or os.getcwd(), CONFIG_YAML)
        data: dict[str, Any] = {"db": self.db, "profile": self.profile}
        if self.json_output:
            data["json"] = self.json_output
        if self.verbose:
            data["verbose"] = self.verbose

        with open(config_path, "w") as f:
            yaml.dump(data, f, default_flow_style=False)
        return config_path

    @property
    def db_path(self) -> str:
        """Full path to the SQLite database."""
        if self.db == ":memory:" or os.path.isabs(self.db):
            return self.db
        return os.path.join(self.root or os.getcwd(), self.db)


def find_config_dir(start: str | None = None) -> str | None:
    """Walk up from start directory to find a directory holding bugshelf.yaml."""
    if start is None:
        start = os.getcwd()
    current = os.path.abspath(start)
    while True:
        if os.path.isfile(os.path.join(current, CONFIG_YAML)):
            return current
        parent = os.path.dirname(current)
        if parent == current:
            return None
        current = parent

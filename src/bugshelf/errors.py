"""Exception types for bugshelf."""

from __future__ import annotations


class BugshelfError(Exception):
    """Base class for all bugshelf errors."""


class DomainError(BugshelfError, ValueError):
    """A domain rule was violated (bad id, bad parent, cycle...)."""


class NotFoundError(DomainError):
    """A row needed by a mutating operation does not exist."""


class BootstrapError(BugshelfError):
    """An init script failed. The engine error is chained as __cause__."""

    def __init__(self, script: str, message: str):
        super().__init__(f"init script {script!r} failed: {message}")
        self.script = script

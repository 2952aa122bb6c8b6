"""Storage interface (abstract base) for bugshelf."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, ContextManager

from bugshelf.models import (
    Account, BookshelfUser, Bug, Product, Screenshot, User, UserId,
)


class UserRepository(ABC):
    """Persistence of bookshelf users."""

    @abstractmethod
    def create_user(self, user: BookshelfUser) -> None:
        """Insert a user. Fails with sqlite3.IntegrityError on a duplicate id."""

    @abstractmethod
    def find_user_by_id(self, user_id: UserId) -> BookshelfUser | None:
        """Get a user by ID. Returns None if not found."""


class Storage(UserRepository):
    """Abstract base class defining all storage operations."""

    @abstractmethod
    def path(self) -> str:
        """Return the database file path."""

    @abstractmethod
    def close(self) -> None:
        """Close the storage connection."""

    # --- Transactions ---

    @abstractmethod
    def transaction(self) -> ContextManager[Any]:
        """Commit on success, roll back and re-raise on error. Nests."""

    @abstractmethod
    def run_in_transaction(self, work: Any) -> Any:
        """Run a Transaction or callable (given the store) within a transaction."""

    # --- users table ---

    @abstractmethod
    def list_users(self) -> list[User]:
        """List rows of the users table."""

    # --- Accounts ---

    @abstractmethod
    def create_account(self, account: Account) -> int:
        """Insert an account. Returns the account ID."""

    @abstractmethod
    def get_account(self, account_id: int) -> Account | None:
        """Get an account by ID. Returns None if not found."""

    @abstractmethod
    def list_accounts(self) -> list[Account]:
        """List all accounts ordered by ID."""

    # --- Bugs ---

    @abstractmethod
    def create_bug(self, bug: Bug) -> int:
        """Insert a bug with its tags. Returns the bug ID."""

    @abstractmethod
    def get_bug(self, bug_id: int) -> Bug | None:
        """Get a bug with its tags. Returns None if not found."""

    @abstractmethod
    def list_bugs(self, status: str | None = None) -> list[Bug]:
        """List bugs, optionally with one status."""

    @abstractmethod
    def set_bug_status(self, bug_id: int, status: str) -> None:
        """Change a bug's status. The status must exist in BugStatus."""

    @abstractmethod
    def bug_statuses(self) -> list[str]:
        """Valid status values from the BugStatus lookup table."""

    # --- Tags ---

    @abstractmethod
    def add_tag(self, bug_id: int, tag: str) -> None:
        """Tag a bug. Tagging twice is a no-op."""

    @abstractmethod
    def remove_tag(self, bug_id: int, tag: str) -> None:
        """Remove a tag from a bug."""

    @abstractmethod
    def get_tags(self, bug_id: int) -> list[str]:
        """Get all tags for a bug."""

    # --- Products ---

    @abstractmethod
    def create_product(self, name: str) -> int:
        """Insert a product. Returns the product ID."""

    @abstractmethod
    def link_product(self, bug_id: int, product_id: int) -> None:
        """Attach a bug to a product."""

    @abstractmethod
    def get_products(self, bug_id: int) -> list[Product]:
        """Products a bug is attached to."""

    # --- Screenshots ---

    @abstractmethod
    def add_screenshot(self, screenshot: Screenshot) -> None:
        """Attach a screenshot. (bug_id, image_id) must be new."""

    @abstractmethod
    def get_screenshots(self, bug_id: int) -> list[Screenshot]:
        """Screenshots of a bug ordered by image ID."""

    # --- Statistics ---

    @abstractmethod
    def get_table_counts(self) -> dict[str, int]:
        """Row counts for every table of the store's profile."""

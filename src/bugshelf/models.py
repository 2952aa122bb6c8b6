"""Row models for the bug tracker and user tables."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any

from bugshelf.errors import DomainError


# --- BugStatus lookup values ---

class BugStatus:
    NEW = "NEW"
    IN_PROGRESS = "IN PROGRESS"
    FIXED = "FIXED"

    # Seeded into the BugStatus table; the table is the source of truth
    SEEDED = (NEW, IN_PROGRESS, FIXED)

    @classmethod
    def is_seeded(cls, s: str) -> bool:
        return s in cls.SEEDED


# --- Helper: timestamp handling ---

def parse_timestamp(s: str | None) -> datetime | None:
    """Parse an ISO 8601 / SQLite timestamp string to datetime."""
    if not s:
        return None
    s = s.strip()
    if not s:
        return None
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(s)
    except ValueError:
        pass
    for fmt in ("%Y-%m-%d %H:%M:%S", "%Y-%m-%d %H:%M:%S.%f", "%Y-%m-%d"):
        try:
            return datetime.strptime(s, fmt)
        except ValueError:
            continue
    raise ValueError(f"Cannot parse timestamp: {s}")


def format_timestamp(dt: datetime | None) -> str | None:
    """Format datetime the way SQLite's CURRENT_TIMESTAMP does (UTC, no zone)."""
    if dt is None:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt.strftime("%Y-%m-%d %H:%M:%S")


def parse_date(s: str | None) -> date | None:
    if not s:
        return None
    return date.fromisoformat(s[:10])


def now_utc() -> datetime:
    """Current time in UTC."""
    return datetime.now(timezone.utc)


# --- Users ---

class UserId:
    """Identifier of a bookshelf user. Must not be empty."""

    __slots__ = ("_value",)

    def __init__(self, value: str):
        if not value:
            raise DomainError("user id must not be empty")
        self._value = value

    @property
    def value(self) -> str:
        return self._value

    def __str__(self) -> str:
        return self._value

    def __repr__(self) -> str:
        return f"UserId({self._value!r})"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, UserId) and other._value == self._value

    def __hash__(self) -> int:
        return hash(self._value)


@dataclass
class BookshelfUser:
    id: UserId
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id.value,
            "created_at": format_timestamp(self.created_at),
            "updated_at": format_timestamp(self.updated_at),
        }


@dataclass
class User:
    """Row of the ``users`` table."""
    id: int = 0
    name: str = ""
    email: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "created_at": format_timestamp(self.created_at),
            "updated_at": format_timestamp(self.updated_at),
        }


# --- Bug tracker ---

@dataclass
class Account:
    account_id: int = 0
    account_name: str = ""
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    password_hash: str | None = None
    portrait_image: bytes | None = None
    hourly_rate: Decimal | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def to_dict(self) -> dict:
        # portrait and password hash stay out of exports
        d: dict[str, Any] = {
            "account_id": self.account_id,
            "account_name": self.account_name,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
        }
        if self.hourly_rate is not None:
            d["hourly_rate"] = str(self.hourly_rate)
        return d


@dataclass
class Bug:
    bug_id: int = 0
    date_reported: date = field(default_factory=lambda: now_utc().date())
    summary: str = ""
    description: str = ""
    resolution: str = ""
    reported_by: int = 0
    assigned_to: int | None = None
    verified_by: int | None = None
    status: str = BugStatus.NEW
    priority: str = ""
    hours: Decimal | None = None

    # Relational data (populated by get_bug)
    tags: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        d: dict[str, Any] = {
            "bug_id": self.bug_id,
            "date_reported": self.date_reported.isoformat(),
            "summary": self.summary,
            "status": self.status,
            "reported_by": self.reported_by,
        }
        if self.description:
            d["description"] = self.description
        if self.resolution:
            d["resolution"] = self.resolution
        if self.assigned_to is not None:
            d["assigned_to"] = self.assigned_to
        if self.verified_by is not None:
            d["verified_by"] = self.verified_by
        if self.priority:
            d["priority"] = self.priority
        if self.hours is not None:
            d["hours"] = str(self.hours)
        if self.tags:
            d["tags"] = list(self.tags)
        return d


@dataclass
class Comment:
    comment_id: int = 0
    bug_id: int = 0
    author: int = 0
    comment_date: datetime = field(default_factory=now_utc)
    comment: str = ""

    def to_dict(self) -> dict:
        return {
            "comment_id": self.comment_id,
            "bug_id": self.bug_id,
            "author": self.author,
            "comment_date": format_timestamp(self.comment_date),
            "comment": self.comment,
        }


@dataclass
class Product:
    product_id: int = 0
    product_name: str = ""

    def to_dict(self) -> dict:
        return {"product_id": self.product_id, "product_name": self.product_name}


@dataclass
class Screenshot:
    bug_id: int
    image_id: int
    screenshot_image: bytes | None = None
    caption: str = ""

    def to_dict(self) -> dict:
        return {
            "bug_id": self.bug_id,
            "image_id": self.image_id,
            "caption": self.caption,
            "size": len(self.screenshot_image or b""),
        }

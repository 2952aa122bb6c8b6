"""Init scripts and the declared table layout for each database profile.

The scripts are run once against a fresh database, in order. They are not
idempotent: running one again against a populated database fails on the
first CREATE TABLE.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class InitScript:
    name: str
    sql: str


# --- sampledb ---

SAMPLEDB_USERS = InitScript("01_users.sql", """
CREATE TABLE users (
    id         INTEGER PRIMARY KEY AUTOINCREMENT,
    name       VARCHAR(255) NOT NULL,
    email      VARCHAR(255) NOT NULL,
    created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
);

INSERT INTO users (name, email) VALUES ('cutsea110', 'cutsea110@gmail.com');
INSERT INTO users (name, email) VALUES ('nobsun', 'nobsun@gmail.com');
""")

# --- bookshelf ---

BOOKSHELF_USER = InitScript("01_bookshelf_user.sql", """
CREATE TABLE bookshelf_user (
    id         TEXT PRIMARY KEY,
    created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
);
""")

BOOKSHELF_USERS = InitScript("02_users.sql", """
CREATE TABLE users (
    id         INTEGER PRIMARY KEY AUTOINCREMENT,
    name       VARCHAR(255),
    email      VARCHAR(255),
    created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
);
""")

# --- bugs ---

BUGS_SCHEMA = InitScript("01_bugs_schema.sql", """
CREATE TABLE Accounts (
    account_id     INTEGER PRIMARY KEY AUTOINCREMENT,
    account_name   VARCHAR(20),
    first_name     VARCHAR(20),
    last_name      VARCHAR(20),
    email          VARCHAR(100),
    password_hash  CHAR(64),
    portrait_image BLOB,
    hourly_rate    NUMERIC(9,2)
);

CREATE TABLE BugStatus (
    status VARCHAR(20) NOT NULL PRIMARY KEY
);

CREATE TABLE Bugs (
    bug_id        INTEGER PRIMARY KEY AUTOINCREMENT,
    date_reported DATE NOT NULL,
    summary       VARCHAR(80),
    description   VARCHAR(1000),
    resolution    VARCHAR(1000),
    reported_by   INTEGER NOT NULL,
    assigned_to   INTEGER,
    verified_by   INTEGER,
    status        VARCHAR(20) NOT NULL DEFAULT 'NEW',
    priority      VARCHAR(20),
    hours         NUMERIC(9,2),
    FOREIGN KEY (reported_by) REFERENCES Accounts(account_id),
    FOREIGN KEY (assigned_to) REFERENCES Accounts(account_id),
    FOREIGN KEY (verified_by) REFERENCES Accounts(account_id),
    FOREIGN KEY (status) REFERENCES BugStatus(status)
);

CREATE TABLE Comments (
    comment_id   INTEGER PRIMARY KEY AUTOINCREMENT,
    bug_id       INTEGER NOT NULL,
    author       INTEGER NOT NULL,
    comment_date DATETIME NOT NULL,
    comment      TEXT NOT NULL,
    FOREIGN KEY (bug_id) REFERENCES Bugs(bug_id),
    FOREIGN KEY (author) REFERENCES Accounts(account_id)
);

CREATE TABLE CommentTree (
    ancestor   INTEGER NOT NULL,
    descendant INTEGER NOT NULL,
    PRIMARY KEY (ancestor, descendant),
    FOREIGN KEY (ancestor) REFERENCES Comments(comment_id),
    FOREIGN KEY (descendant) REFERENCES Comments(comment_id)
);

CREATE TABLE Screenshots (
    bug_id           INTEGER NOT NULL,
    image_id         INTEGER NOT NULL,
    screenshot_image BLOB,
    caption          VARCHAR(100),
    PRIMARY KEY (bug_id, image_id),
    FOREIGN KEY (bug_id) REFERENCES Bugs(bug_id)
);

CREATE TABLE Tags (
    bug_id INTEGER NOT NULL,
    tag    VARCHAR(20) NOT NULL,
    PRIMARY KEY (bug_id, tag),
    FOREIGN KEY (bug_id) REFERENCES Bugs(bug_id)
);

CREATE TABLE Products (
    product_id   INTEGER PRIMARY KEY AUTOINCREMENT,
    product_name VARCHAR(50)
);

CREATE TABLE BugProducts (
    bug_id     INTEGER NOT NULL,
    product_id INTEGER NOT NULL,
    PRIMARY KEY (bug_id, product_id),
    FOREIGN KEY (bug_id) REFERENCES Bugs(bug_id),
    FOREIGN KEY (product_id) REFERENCES Products(product_id)
);

CREATE INDEX idx_comments_bug ON Comments(bug_id);
CREATE INDEX idx_commenttree_descendant ON CommentTree(descendant);
""")

BUGS_SEED = InitScript("02_bugs_seed.sql", """
INSERT INTO BugStatus (status) VALUES ('NEW');
INSERT INTO BugStatus (status) VALUES ('IN PROGRESS');
INSERT INTO BugStatus (status) VALUES ('FIXED');

INSERT INTO Accounts (account_id, account_name, first_name, last_name, email, hourly_rate)
    VALUES (1, 'fran', 'Fran', 'Allen', 'fran@example.com', 55.00);
INSERT INTO Accounts (account_id, account_name, first_name, last_name, email, hourly_rate)
    VALUES (2, 'ollie', 'Ollie', 'Oliphant', 'ollie@example.com', 48.50);
INSERT INTO Accounts (account_id, account_name, first_name, last_name, email, hourly_rate)
    VALUES (3, 'kukla', 'Kukla', 'Puppet', 'kukla@example.com', 62.25);

INSERT INTO Products (product_id, product_name) VALUES (1, 'Open RoundFile');

INSERT INTO Bugs (bug_id, date_reported, summary, description, reported_by, assigned_to, status, priority, hours)
    VALUES (1234, '2009-07-01', 'crash when saving',
            'Application crashes when saving a file with an empty name.',
            1, 2, 'NEW', 'HIGH', 4.00);

INSERT INTO Tags (bug_id, tag) VALUES (1234, 'crash');
INSERT INTO BugProducts (bug_id, product_id) VALUES (1234, 1);

INSERT INTO Comments (comment_id, bug_id, author, comment_date, comment)
    VALUES (1, 1234, 1, '2009-07-01 09:00:00', 'What''s the cause of this bug?');
INSERT INTO Comments (comment_id, bug_id, author, comment_date, comment)
    VALUES (2, 1234, 2, '2009-07-01 09:10:00', 'I think it''s a null pointer.');
INSERT INTO Comments (comment_id, bug_id, author, comment_date, comment)
    VALUES (3, 1234, 1, '2009-07-01 09:20:00', 'No, I checked for that.');
INSERT INTO Comments (comment_id, bug_id, author, comment_date, comment)
    VALUES (4, 1234, 3, '2009-07-01 09:30:00', 'We need to check for invalid input.');
INSERT INTO Comments (comment_id, bug_id, author, comment_date, comment)
    VALUES (5, 1234, 2, '2009-07-01 09:40:00', 'Yes, that''s a bug.');
INSERT INTO Comments (comment_id, bug_id, author, comment_date, comment)
    VALUES (6, 1234, 1, '2009-07-01 09:50:00', 'Yes, please add a check.');
INSERT INTO Comments (comment_id, bug_id, author, comment_date, comment)
    VALUES (7, 1234, 3, '2009-07-01 10:00:00', 'That fixed it.');

INSERT INTO CommentTree (ancestor, descendant) VALUES
    (1, 1), (1, 2), (1, 3), (1, 4), (1, 5), (1, 6), (1, 7),
    (2, 2), (2, 3),
    (3, 3),
    (4, 4), (4, 5), (4, 6), (4, 7),
    (5, 5),
    (6, 6), (6, 7),
    (7, 7);
""")


DATABASES: dict[str, list[InitScript]] = {
    "sampledb": [SAMPLEDB_USERS],
    "bookshelf": [BOOKSHELF_USER, BOOKSHELF_USERS],
    "bugs": [BUGS_SCHEMA, BUGS_SEED],
}

DEFAULT_PROFILE = "bugs"


# --- Declared layout ---

@dataclass(frozen=True)
class ColumnSpec:
    name: str
    type: str
    notnull: bool = False
    pk: int = 0  # 1-based position in the primary key, 0 if not part of it


@dataclass(frozen=True)
class ForeignKeySpec:
    column: str
    table: str
    to: str


@dataclass(frozen=True)
class TableSpec:
    name: str
    columns: tuple[ColumnSpec, ...]
    foreign_keys: tuple[ForeignKeySpec, ...] = field(default_factory=tuple)

    @property
    def primary_key(self) -> tuple[str, ...]:
        cols = sorted((c for c in self.columns if c.pk), key=lambda c: c.pk)
        return tuple(c.name for c in cols)


def _timestamps() -> tuple[ColumnSpec, ...]:
    return (
        ColumnSpec("created_at", "TIMESTAMP", notnull=True),
        ColumnSpec("updated_at", "TIMESTAMP", notnull=True),
    )


def _users(nullable: bool) -> TableSpec:
    return TableSpec("users", (
        ColumnSpec("id", "INTEGER", pk=1),
        ColumnSpec("name", "VARCHAR(255)", notnull=not nullable),
        ColumnSpec("email", "VARCHAR(255)", notnull=not nullable),
    ) + _timestamps())


_ACCOUNT_FK = "Accounts", "account_id"

BUGS_TABLES = (
    TableSpec("Accounts", (
        ColumnSpec("account_id", "INTEGER", pk=1),
        ColumnSpec("account_name", "VARCHAR(20)"),
        ColumnSpec("first_name", "VARCHAR(20)"),
        ColumnSpec("last_name", "VARCHAR(20)"),
        ColumnSpec("email", "VARCHAR(100)"),
        ColumnSpec("password_hash", "CHAR(64)"),
        ColumnSpec("portrait_image", "BLOB"),
        ColumnSpec("hourly_rate", "NUMERIC(9,2)"),
    )),
    TableSpec("BugStatus", (
        ColumnSpec("status", "VARCHAR(20)", notnull=True, pk=1),
    )),
    TableSpec("Bugs", (
        ColumnSpec("bug_id", "INTEGER", pk=1),
        ColumnSpec("date_reported", "DATE", notnull=True),
        ColumnSpec("summary", "VARCHAR(80)"),
        ColumnSpec("description", "VARCHAR(1000)"),
        ColumnSpec("resolution", "VARCHAR(1000)"),
        ColumnSpec("reported_by", "INTEGER", notnull=True),
        ColumnSpec("assigned_to", "INTEGER"),
        ColumnSpec("verified_by", "INTEGER"),
        ColumnSpec("status", "VARCHAR(20)", notnull=True),
        ColumnSpec("priority", "VARCHAR(20)"),
        ColumnSpec("hours", "NUMERIC(9,2)"),
    ), (
        ForeignKeySpec("reported_by", *_ACCOUNT_FK),
        ForeignKeySpec("assigned_to", *_ACCOUNT_FK),
        ForeignKeySpec("verified_by", *_ACCOUNT_FK),
        ForeignKeySpec("status", "BugStatus", "status"),
    )),
    TableSpec("Comments", (
        ColumnSpec("comment_id", "INTEGER", pk=1),
        ColumnSpec("bug_id", "INTEGER", notnull=True),
        ColumnSpec("author", "INTEGER", notnull=True),
        ColumnSpec("comment_date", "DATETIME", notnull=True),
        ColumnSpec("comment", "TEXT", notnull=True),
    ), (
        ForeignKeySpec("bug_id", "Bugs", "bug_id"),
        ForeignKeySpec("author", *_ACCOUNT_FK),
    )),
    TableSpec("CommentTree", (
        ColumnSpec("ancestor", "INTEGER", notnull=True, pk=1),
        ColumnSpec("descendant", "INTEGER", notnull=True, pk=2),
    ), (
        ForeignKeySpec("ancestor", "Comments", "comment_id"),
        ForeignKeySpec("descendant", "Comments", "comment_id"),
    )),
    TableSpec("Screenshots", (
        ColumnSpec("bug_id", "INTEGER", notnull=True, pk=1),
        ColumnSpec("image_id", "INTEGER", notnull=True, pk=2),
        ColumnSpec("screenshot_image", "BLOB"),
        ColumnSpec("caption", "VARCHAR(100)"),
    ), (
        ForeignKeySpec("bug_id", "Bugs", "bug_id"),
    )),
    TableSpec("Tags", (
        ColumnSpec("bug_id", "INTEGER", notnull=True, pk=1),
        ColumnSpec("tag", "VARCHAR(20)", notnull=True, pk=2),
    ), (
        ForeignKeySpec("bug_id", "Bugs", "bug_id"),
    )),
    TableSpec("Products", (
        ColumnSpec("product_id", "INTEGER", pk=1),
        ColumnSpec("product_name", "VARCHAR(50)"),
    )),
    TableSpec("BugProducts", (
        ColumnSpec("bug_id", "INTEGER", notnull=True, pk=1),
        ColumnSpec("product_id", "INTEGER", notnull=True, pk=2),
    ), (
        ForeignKeySpec("bug_id", "Bugs", "bug_id"),
        ForeignKeySpec("product_id", "Products", "product_id"),
    )),
)

TABLES: dict[str, tuple[TableSpec, ...]] = {
    "sampledb": (_users(nullable=False),),
    "bookshelf": (
        TableSpec("bookshelf_user", (ColumnSpec("id", "TEXT", pk=1),) + _timestamps()),
        _users(nullable=True),
    ),
    "bugs": BUGS_TABLES,
}


def get_scripts(profile: str) -> list[InitScript]:
    """Return the init scripts of a profile, raising KeyError with the known names."""
    try:
        return DATABASES[profile]
    except KeyError:
        raise KeyError(
            f"unknown profile {profile!r} (known: {', '.join(sorted(DATABASES))})"
        ) from None

"""Database connection, DDL, pooling and subgraph reads for dictionary-search."""

from __future__ import annotations

import itertools
import logging
import queue
import sqlite3
import time
from collections.abc import Generator, Iterable
from contextlib import contextmanager
from pathlib import Path

from dictionary_search.exceptions import DatabaseError, QueryTimeoutError, StoreError
from dictionary_search.models import EntryModel, ExampleModel, MeaningModel
from dictionary_search.normalize import compare_lemmas, normalize
from dictionary_search.ranking import classify

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "1.0"

# Name of the collation ordering lemmas alphabetically
LEXICAL_COLLATION = "LEXICAL"

# SQLite VM instructions between deadline checks
_PROGRESS_STEPS = 1000

# Bound on host parameters per IN (...) list
_MAX_IN_PARAMS = 500

_memory_ids = itertools.count(1)


# ---------------------------------------------------------------------------
# DDL statements
# ---------------------------------------------------------------------------

_DDL = """
-- Meta table
CREATE TABLE IF NOT EXISTS meta (
    key TEXT NOT NULL,
    value TEXT,
    UNIQUE (key)
);

-- Entry tables
CREATE TABLE IF NOT EXISTS entries (
    id INTEGER PRIMARY KEY,
    lemma TEXT NOT NULL,
    root TEXT,
    letter TEXT NOT NULL,
    variant TEXT,
    status TEXT NOT NULL DEFAULT 'imported',
    created_by INTEGER,
    assigned_to INTEGER,
    created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%f', 'now')),
    updated_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%f', 'now'))
);
CREATE INDEX IF NOT EXISTS entry_lemma_index ON entries (lemma);
CREATE INDEX IF NOT EXISTS entry_letter_index ON entries (letter);
CREATE INDEX IF NOT EXISTS entry_status_index ON entries (status);
CREATE INDEX IF NOT EXISTS entry_assigned_index ON entries (assigned_to);

-- Meaning tables
CREATE TABLE IF NOT EXISTS meanings (
    id INTEGER PRIMARY KEY,
    entry_id INTEGER NOT NULL REFERENCES entries (id) ON DELETE CASCADE,
    number INTEGER NOT NULL DEFAULT 1,
    dictionary TEXT,
    grammar_category TEXT,
    origin TEXT,
    social_valuation TEXT,
    social_stratum TEXT,
    style TEXT,
    intentionality TEXT,
    geographical TEXT,
    chronological TEXT,
    frequency TEXT,
    definition TEXT NOT NULL,
    observation TEXT,
    remission TEXT
);
CREATE INDEX IF NOT EXISTS meaning_entry_index ON meanings (entry_id);
CREATE INDEX IF NOT EXISTS meaning_category_index ON meanings (grammar_category);
CREATE INDEX IF NOT EXISTS meaning_dictionary_index ON meanings (dictionary);

-- Example tables
CREATE TABLE IF NOT EXISTS examples (
    id INTEGER PRIMARY KEY,
    meaning_id INTEGER NOT NULL REFERENCES meanings (id) ON DELETE CASCADE,
    value TEXT NOT NULL,
    publication TEXT,
    author TEXT,
    year TEXT,
    city TEXT,
    editorial TEXT,
    format TEXT,
    page TEXT
);
CREATE INDEX IF NOT EXISTS example_meaning_index ON examples (meaning_id);
CREATE INDEX IF NOT EXISTS example_publication_index ON examples (publication);

-- Edit history
CREATE TABLE IF NOT EXISTS edit_history (
    rowid INTEGER PRIMARY KEY,
    entry_id INTEGER NOT NULL,
    field_name TEXT,
    operation TEXT NOT NULL CHECK( operation IN ('CREATE', 'UPDATE', 'DELETE') ),
    old_value TEXT,
    new_value TEXT,
    timestamp TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%f', 'now'))
);
CREATE INDEX IF NOT EXISTS edit_history_entry_index ON edit_history (entry_id);
CREATE INDEX IF NOT EXISTS edit_history_timestamp_index ON edit_history (timestamp);
"""


def _casefold(value: str | None) -> str | None:
    return value.casefold() if value is not None else None


def _match_tier(lemma: str | None, query: str | None) -> int:
    return int(classify(query, lemma or ""))


def connect(
    db_path: str | Path = ":memory:",
    *,
    timeout: float = 5.0,
    check_same_thread: bool = True,
    uri: bool = False,
) -> sqlite3.Connection:
    """Open a database connection with search functions registered.

    Registers the ``normalize(text)``, ``casefold(text)`` and
    ``match_tier(lemma, query)`` SQL functions and the ``LEXICAL``
    collation used to order lemmas.
    """
    db_path_str = str(db_path)
    conn = sqlite3.connect(
        db_path_str,
        timeout=timeout,
        check_same_thread=check_same_thread,
        uri=uri,
    )
    conn.execute("PRAGMA foreign_keys = ON")
    if db_path_str != ":memory:" and "mode=memory" not in db_path_str:
        conn.execute("PRAGMA journal_mode = WAL")
    conn.row_factory = sqlite3.Row
    conn.create_function("normalize", 1, normalize, deterministic=True)
    conn.create_function("casefold", 1, _casefold, deterministic=True)
    conn.create_function("match_tier", 2, _match_tier, deterministic=True)
    conn.create_collation(LEXICAL_COLLATION, compare_lemmas)
    return conn


def init_db(conn: sqlite3.Connection) -> None:
    """Initialize all tables if they don't exist. Set schema version."""
    conn.executescript(_DDL)
    conn.execute(
        "INSERT OR IGNORE INTO meta (key, value) VALUES ('schema_version', ?)",
        (SCHEMA_VERSION,),
    )
    conn.execute(
        "INSERT OR IGNORE INTO meta (key, value) "
        "VALUES ('created_at', strftime('%Y-%m-%dT%H:%M:%f', 'now'))",
    )
    conn.commit()


def check_schema_version(conn: sqlite3.Connection) -> None:
    """Verify the database schema version is compatible."""
    try:
        row = conn.execute(
            "SELECT value FROM meta WHERE key = 'schema_version'"
        ).fetchone()
    except sqlite3.OperationalError:
        # meta table doesn't exist - uninitialized DB
        return
    if row is None:
        return
    version = row[0]
    if version != SCHEMA_VERSION:
        raise DatabaseError(
            f"Incompatible schema version: {version} "
            f"(expected {SCHEMA_VERSION})"
        )


# ---------------------------------------------------------------------------
# Connection pool and request deadline
# ---------------------------------------------------------------------------

class ConnectionPool:
    """A fixed-size pool of connections to one database.

    All connections are opened up front and the schema version is
    checked, but no tables are created; use :func:`init_db` or
    :class:`DictionaryEditor` for that. ``":memory:"`` is backed by a
    named shared-cache database so every pooled connection sees the same
    data.
    """

    def __init__(
        self,
        db_path: str | Path = ":memory:",
        size: int = 4,
        *,
        timeout: float = 5.0,
    ) -> None:
        if size < 1:
            raise DatabaseError(f"Pool size must be at least 1, got {size}")
        path = str(db_path)
        uri = False
        if path == ":memory:":
            path = f"file:dictionary-search-{next(_memory_ids)}?mode=memory&cache=shared"
            uri = True
        self._db_path = path
        self._timeout = timeout
        self._idle: queue.LifoQueue[sqlite3.Connection] = queue.LifoQueue()
        self._all: list[sqlite3.Connection] = []
        try:
            for _ in range(size):
                conn = connect(
                    path, timeout=timeout, check_same_thread=False, uri=uri
                )
                self._all.append(conn)
                self._idle.put(conn)
            check_schema_version(self._all[0])
        except sqlite3.Error as e:
            self.close()
            raise DatabaseError(f"Cannot open database {db_path!s}: {e}") from e
        except DatabaseError:
            self.close()
            raise
        self._closed = False
        logger.debug(f"Opened pool of {size} connections to {db_path!s}")

    @property
    def size(self) -> int:
        return len(self._all)

    @contextmanager
    def acquire(self) -> Generator[sqlite3.Connection, None, None]:
        """Borrow a connection; it is returned on every exit path."""
        if self._closed:
            raise StoreError("Connection pool is closed")
        try:
            conn = self._idle.get(timeout=self._timeout)
        except queue.Empty as e:
            raise StoreError(
                f"No store connection available after {self._timeout}s"
            ) from e
        try:
            yield conn
        finally:
            if conn.in_transaction:
                conn.rollback()
            self._idle.put(conn)

    def close(self) -> None:
        """Close every pooled connection."""
        self._closed = True
        for conn in self._all:
            conn.close()
        self._all.clear()

    def __enter__(self) -> ConnectionPool:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


@contextmanager
def deadline(
    conn: sqlite3.Connection, seconds: float | None
) -> Generator[None, None, None]:
    """Abort statements on *conn* that run past *seconds* from now.

    An aborted statement surfaces as :class:`QueryTimeoutError`.
    """
    if seconds is None or seconds <= 0:
        yield
        return

    expires = time.monotonic() + seconds
    expired = False

    def _check() -> int:
        nonlocal expired
        if time.monotonic() > expires:
            expired = True
            return 1
        return 0

    conn.set_progress_handler(_check, _PROGRESS_STEPS)
    try:
        yield
    except sqlite3.OperationalError as e:
        if expired:
            raise QueryTimeoutError(
                f"Store query exceeded the {seconds}s deadline"
            ) from e
        raise
    finally:
        conn.set_progress_handler(None, 0)


# ---------------------------------------------------------------------------
# Row helpers
# ---------------------------------------------------------------------------

def get_entry_row(conn: sqlite3.Connection, entry_id: int) -> sqlite3.Row | None:
    """Get a full entry row by ID."""
    return conn.execute(
        "SELECT * FROM entries WHERE id = ?",
        (entry_id,),
    ).fetchone()


def get_meaning_row(conn: sqlite3.Connection, meaning_id: int) -> sqlite3.Row | None:
    """Get a full meaning row by ID."""
    return conn.execute(
        "SELECT * FROM meanings WHERE id = ?",
        (meaning_id,),
    ).fetchone()


def _chunks(ids: list[int], size: int = _MAX_IN_PARAMS) -> Iterable[list[int]]:
    for start in range(0, len(ids), size):
        yield ids[start:start + size]


def row_to_example(row: sqlite3.Row) -> ExampleModel:
    return ExampleModel(
        id=row["id"],
        meaning_id=row["meaning_id"],
        value=row["value"],
        publication=row["publication"],
        author=row["author"],
        year=row["year"],
        city=row["city"],
        editorial=row["editorial"],
        format=row["format"],
        page=row["page"],
    )


def row_to_meaning(
    row: sqlite3.Row, examples: tuple[ExampleModel, ...]
) -> MeaningModel:
    return MeaningModel(
        id=row["id"],
        entry_id=row["entry_id"],
        number=row["number"],
        dictionary=row["dictionary"],
        grammar_category=row["grammar_category"],
        origin=row["origin"],
        social_valuation=row["social_valuation"],
        social_stratum=row["social_stratum"],
        style=row["style"],
        intentionality=row["intentionality"],
        geographical=row["geographical"],
        chronological=row["chronological"],
        frequency=row["frequency"],
        definition=row["definition"],
        observation=row["observation"],
        remission=row["remission"],
        examples=examples,
    )


def row_to_entry(
    row: sqlite3.Row, meanings: tuple[MeaningModel, ...]
) -> EntryModel:
    return EntryModel(
        id=row["id"],
        lemma=row["lemma"],
        root=row["root"],
        letter=row["letter"],
        variant=row["variant"],
        status=row["status"],
        created_by=row["created_by"],
        assigned_to=row["assigned_to"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        meanings=meanings,
    )


def fetch_entries(
    conn: sqlite3.Connection, entry_ids: Iterable[int]
) -> dict[int, EntryModel]:
    """Load entries with their meanings (by number) and examples.

    Identifiers with no matching row are simply absent from the result.
    """
    ids = list(dict.fromkeys(entry_ids))
    entry_rows: list[sqlite3.Row] = []
    meaning_rows: list[sqlite3.Row] = []
    example_rows: list[sqlite3.Row] = []

    for chunk in _chunks(ids):
        marks = ", ".join("?" * len(chunk))
        entry_rows.extend(conn.execute(
            f"SELECT * FROM entries WHERE id IN ({marks})", chunk,
        ).fetchall())
        meaning_rows.extend(conn.execute(
            f"SELECT * FROM meanings WHERE entry_id IN ({marks}) "
            "ORDER BY entry_id, number, id",
            chunk,
        ).fetchall())
        example_rows.extend(conn.execute(
            "SELECT ex.* FROM examples ex "
            "JOIN meanings m ON ex.meaning_id = m.id "
            f"WHERE m.entry_id IN ({marks}) ORDER BY ex.id",
            chunk,
        ).fetchall())

    examples_by_meaning: dict[int, list[ExampleModel]] = {}
    for er in example_rows:
        examples_by_meaning.setdefault(er["meaning_id"], []).append(
            row_to_example(er)
        )

    meanings_by_entry: dict[int, list[MeaningModel]] = {}
    for mr in meaning_rows:
        meanings_by_entry.setdefault(mr["entry_id"], []).append(
            row_to_meaning(mr, tuple(examples_by_meaning.get(mr["id"], ())))
        )

    return {
        row["id"]: row_to_entry(row, tuple(meanings_by_entry.get(row["id"], ())))
        for row in entry_rows
    }

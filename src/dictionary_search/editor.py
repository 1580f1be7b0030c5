"""DictionaryEditor: read/write access to the lexical store."""

from __future__ import annotations

import functools
import sqlite3
from collections.abc import Callable, Generator, Iterable, Mapping
from contextlib import contextmanager
from pathlib import Path
from typing import Any, TypeVar

from dictionary_search import db as _db
from dictionary_search import history as _hist
from dictionary_search.exceptions import (
    DatabaseError,
    DuplicateEntityError,
    EntityNotFoundError,
    ValidationError,
)
from dictionary_search.models import (
    MARKER_COLUMNS,
    MARKER_VALUES,
    EditOperation,
    EditRecord,
    EntryModel,
    EntryStatus,
    ExampleModel,
    MarkerKind,
    MeaningModel,
    SearchPage,
    SearchQuery,
    SourceModel,
)
from dictionary_search.normalize import first_letter
from dictionary_search.search import search_words

_F = TypeVar("_F", bound=Callable[..., Any])

# Sentinel for "no change" in update methods
_UNSET: Any = type("_UNSET", (), {"__repr__": lambda self: "..."})()

_VALID_STATUSES = frozenset(s.value for s in EntryStatus)

_NOW = "strftime('%Y-%m-%dT%H:%M:%f', 'now')"


def _modifies_db(method: _F) -> _F:
    """Decorator: wraps mutation methods in a transaction (unless in batch)."""

    @functools.wraps(method)
    def wrapper(self: DictionaryEditor, *args: Any, **kwargs: Any) -> Any:
        if self._in_batch:
            return method(self, *args, **kwargs)
        with self._conn:
            return method(self, *args, **kwargs)

    return wrapper  # type: ignore[return-value]


def _check_status(status: str | EntryStatus) -> str:
    if isinstance(status, EntryStatus):
        return status.value
    if status not in _VALID_STATUSES:
        raise ValidationError(f"Invalid status: {status!r}")
    return status


def _check_lemma(lemma: str) -> str:
    if not isinstance(lemma, str) or not lemma.strip():
        raise ValidationError("Lemma must be a non-empty string")
    return lemma.strip()


def _marker_columns(markers: Mapping[str, str | None] | None) -> dict[str, str | None]:
    """Validate marker values and map them to their meaning columns."""
    columns: dict[str, str | None] = {}
    for key, value in (markers or {}).items():
        try:
            kind = MarkerKind(key)
        except ValueError:
            raise ValidationError(f"Unknown marker kind: {key!r}") from None
        if value is not None and value not in MARKER_VALUES[kind]:
            raise ValidationError(f"Invalid {kind.value} value: {value!r}")
        columns[MARKER_COLUMNS[kind]] = value
    return columns


class DictionaryEditor:
    """Programmatic API for maintaining and searching the dictionary."""

    def __init__(self, db_path: str | Path = ":memory:") -> None:
        self._db_path = str(db_path)
        self._conn = _db.connect(db_path)
        try:
            _db.check_schema_version(self._conn)
        except DatabaseError:
            self._conn.close()
            raise
        _db.init_db(self._conn)
        self._in_batch = False
        self._batch_depth = 0

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    def __enter__(self) -> DictionaryEditor:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Batch context manager
    # ------------------------------------------------------------------

    @contextmanager
    def batch(self) -> Generator[None, None, None]:
        """Group multiple mutations into a single transaction."""
        self._batch_depth += 1
        if self._batch_depth == 1:
            self._in_batch = True
            self._conn.execute("BEGIN")
        try:
            yield
        except BaseException:
            if self._batch_depth == 1:
                self._conn.rollback()
                self._in_batch = False
            self._batch_depth -= 1
            raise
        else:
            self._batch_depth -= 1
            if self._batch_depth == 0:
                self._conn.commit()
                self._in_batch = False

    # ------------------------------------------------------------------
    # Entry operations
    # ------------------------------------------------------------------

    @_modifies_db
    def create_entry(
        self,
        lemma: str,
        *,
        root: str | None = None,
        variant: str | None = None,
        status: str = EntryStatus.IMPORTED.value,
        created_by: int | None = None,
        assigned_to: int | None = None,
    ) -> EntryModel:
        lemma = _check_lemma(lemma)
        status = _check_status(status)
        if self._conn.execute(
            "SELECT 1 FROM entries WHERE lemma = ?", (lemma,)
        ).fetchone() is not None:
            raise DuplicateEntityError(f"Entry already exists: {lemma!r}")

        cur = self._conn.execute(
            "INSERT INTO entries "
            "(lemma, root, letter, variant, status, created_by, assigned_to) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            (lemma, root, first_letter(lemma), variant, status,
             created_by, assigned_to),
        )
        entry_id = cur.lastrowid
        _hist.record_create(
            self._conn, entry_id, {"lemma": lemma, "status": status},
        )
        return self.get_entry(entry_id)

    @_modifies_db
    def update_entry(
        self,
        entry_id: int,
        *,
        lemma: str | None = None,
        root: Any = _UNSET,
        variant: Any = _UNSET,
    ) -> EntryModel:
        row = self._require_entry_row(entry_id)

        updates: dict[str, Any] = {}
        if lemma is not None:
            lemma = _check_lemma(lemma)
            if lemma != row["lemma"] and self._conn.execute(
                "SELECT 1 FROM entries WHERE lemma = ? AND id != ?",
                (lemma, entry_id),
            ).fetchone() is not None:
                raise DuplicateEntityError(f"Entry already exists: {lemma!r}")
            updates["lemma"] = lemma
            updates["letter"] = first_letter(lemma)
        if root is not _UNSET:
            updates["root"] = root
        if variant is not _UNSET:
            updates["variant"] = variant

        self._apply_updates(entry_id, row, updates)
        return self.get_entry(entry_id)

    @_modifies_db
    def update_status(self, entry_id: int, status: str) -> EntryModel:
        row = self._require_entry_row(entry_id)
        status = _check_status(status)
        self._apply_updates(entry_id, row, {"status": status})
        return self.get_entry(entry_id)

    @_modifies_db
    def assign_entry(self, entry_id: int, user_id: int | None) -> EntryModel:
        row = self._require_entry_row(entry_id)
        self._apply_updates(entry_id, row, {"assigned_to": user_id})
        return self.get_entry(entry_id)

    @_modifies_db
    def delete_entry(self, entry_id: int) -> None:
        row = self._require_entry_row(entry_id)
        _hist.record_delete(
            self._conn, entry_id, {"lemma": row["lemma"], "status": row["status"]}
        )
        self._conn.execute("DELETE FROM entries WHERE id = ?", (entry_id,))

    def get_entry(self, entry_id: int) -> EntryModel:
        entry = _db.fetch_entries(self._conn, [entry_id]).get(entry_id)
        if entry is None:
            raise EntityNotFoundError(f"Entry not found: {entry_id!r}")
        return entry

    def get_entry_by_lemma(
        self, lemma: str, *, include_drafts: bool = False
    ) -> EntryModel | None:
        """Look up an entry by its exact lemma.

        Unless *include_drafts* is set, only published entries are found.
        """
        sql = "SELECT id FROM entries WHERE lemma = ?"
        params: list[Any] = [lemma]
        if not include_drafts:
            sql += " AND status = ?"
            params.append(EntryStatus.PUBLISHED.value)
        row = self._conn.execute(sql, params).fetchone()
        if row is None:
            return None
        return self.get_entry(row["id"])

    def get_entries_by_status(self, statuses: Iterable[str]) -> list[EntryModel]:
        """Entries in any of *statuses*, ordered alphabetically by lemma."""
        wanted = list(dict.fromkeys(statuses))
        if not wanted:
            return []
        marks = ", ".join("?" * len(wanted))
        rows = self._conn.execute(
            f"SELECT id FROM entries WHERE status IN ({marks}) "
            f"ORDER BY lemma COLLATE {_db.LEXICAL_COLLATION}, id",
            wanted,
        ).fetchall()
        return self._entries_in_order([r["id"] for r in rows])

    def get_redacted_entries(self) -> list[EntryModel]:
        return self.get_entries_by_status([EntryStatus.REDACTED.value])

    def get_reviewed_lex_entries(self) -> list[EntryModel]:
        return self.get_entries_by_status([EntryStatus.REVIEWED_LEX.value])

    def _require_entry_row(self, entry_id: int) -> sqlite3.Row:
        row = _db.get_entry_row(self._conn, entry_id)
        if row is None:
            raise EntityNotFoundError(f"Entry not found: {entry_id!r}")
        return row

    def _apply_updates(
        self, entry_id: int, row: sqlite3.Row, updates: dict[str, Any]
    ) -> None:
        changed = {k: v for k, v in updates.items() if row[k] != v}
        for field, val in changed.items():
            _hist.record_update(self._conn, entry_id, field, row[field], val)
            self._conn.execute(
                f"UPDATE entries SET {field} = ? WHERE id = ?",
                (val, entry_id),
            )
        if changed:
            self._touch(entry_id)

    def _touch(self, entry_id: int) -> None:
        self._conn.execute(
            f"UPDATE entries SET updated_at = {_NOW} WHERE id = ?",
            (entry_id,),
        )

    def _entries_in_order(self, entry_ids: list[int]) -> list[EntryModel]:
        entries = _db.fetch_entries(self._conn, entry_ids)
        return [entries[i] for i in entry_ids if i in entries]

    # ------------------------------------------------------------------
    # Meaning operations
    # ------------------------------------------------------------------

    @_modifies_db
    def add_meaning(
        self,
        entry_id: int,
        definition: str,
        *,
        number: int | None = None,
        dictionary: str | None = None,
        grammar_category: str | None = None,
        origin: str | None = None,
        markers: Mapping[str, str | None] | None = None,
        observation: str | None = None,
        remission: str | None = None,
    ) -> MeaningModel:
        self._require_entry_row(entry_id)
        if not isinstance(definition, str) or not definition.strip():
            raise ValidationError("Definition must be a non-empty string")
        marker_cols = _marker_columns(markers)

        if number is None:
            max_number = self._conn.execute(
                "SELECT MAX(number) FROM meanings WHERE entry_id = ?",
                (entry_id,),
            ).fetchone()[0]
            number = (max_number or 0) + 1
        elif number < 1:
            raise ValidationError(f"Meaning number must be positive: {number}")

        columns = {
            "entry_id": entry_id,
            "number": number,
            "dictionary": dictionary,
            "grammar_category": grammar_category,
            "origin": origin,
            "definition": definition,
            "observation": observation,
            "remission": remission,
            **marker_cols,
        }
        names = ", ".join(columns)
        marks = ", ".join("?" * len(columns))
        cur = self._conn.execute(
            f"INSERT INTO meanings ({names}) VALUES ({marks})",
            tuple(columns.values()),
        )
        self._touch(entry_id)
        return self.get_meaning(cur.lastrowid)

    @_modifies_db
    def update_meaning(
        self,
        meaning_id: int,
        *,
        definition: str | None = None,
        number: int | None = None,
        dictionary: Any = _UNSET,
        grammar_category: Any = _UNSET,
        origin: Any = _UNSET,
        markers: Mapping[str, str | None] | None = None,
        observation: Any = _UNSET,
        remission: Any = _UNSET,
    ) -> MeaningModel:
        row = self._require_meaning_row(meaning_id)

        updates: dict[str, Any] = {}
        if definition is not None:
            if not definition.strip():
                raise ValidationError("Definition must be a non-empty string")
            updates["definition"] = definition
        if number is not None:
            if number < 1:
                raise ValidationError(f"Meaning number must be positive: {number}")
            updates["number"] = number
        for name, value in (
            ("dictionary", dictionary),
            ("grammar_category", grammar_category),
            ("origin", origin),
            ("observation", observation),
            ("remission", remission),
        ):
            if value is not _UNSET:
                updates[name] = value
        updates.update(_marker_columns(markers))

        for field, val in updates.items():
            self._conn.execute(
                f"UPDATE meanings SET {field} = ? WHERE id = ?",
                (val, meaning_id),
            )
        if updates:
            self._touch(row["entry_id"])
        return self.get_meaning(meaning_id)

    @_modifies_db
    def remove_meaning(self, meaning_id: int) -> None:
        row = self._require_meaning_row(meaning_id)
        self._conn.execute("DELETE FROM meanings WHERE id = ?", (meaning_id,))
        self._touch(row["entry_id"])

    def get_meaning(self, meaning_id: int) -> MeaningModel:
        row = self._require_meaning_row(meaning_id)
        example_rows = self._conn.execute(
            "SELECT * FROM examples WHERE meaning_id = ? ORDER BY id",
            (meaning_id,),
        ).fetchall()
        return _db.row_to_meaning(
            row, tuple(_db.row_to_example(r) for r in example_rows)
        )

    def _require_meaning_row(self, meaning_id: int) -> sqlite3.Row:
        row = _db.get_meaning_row(self._conn, meaning_id)
        if row is None:
            raise EntityNotFoundError(f"Meaning not found: {meaning_id!r}")
        return row

    # ------------------------------------------------------------------
    # Example operations
    # ------------------------------------------------------------------

    @_modifies_db
    def add_example(
        self,
        meaning_id: int,
        value: str,
        *,
        publication: str | None = None,
        author: str | None = None,
        year: str | int | None = None,
        city: str | None = None,
        editorial: str | None = None,
        format: str | None = None,
        page: str | int | None = None,
    ) -> ExampleModel:
        meaning = self._require_meaning_row(meaning_id)
        if not isinstance(value, str) or not value.strip():
            raise ValidationError("Example text must be a non-empty string")
        cur = self._conn.execute(
            "INSERT INTO examples "
            "(meaning_id, value, publication, author, year, city, "
            "editorial, format, page) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (meaning_id, value, publication, author,
             str(year) if year is not None else None, city, editorial,
             format, str(page) if page is not None else None),
        )
        self._touch(meaning["entry_id"])
        row = self._conn.execute(
            "SELECT * FROM examples WHERE id = ?", (cur.lastrowid,)
        ).fetchone()
        return _db.row_to_example(row)

    @_modifies_db
    def remove_example(self, example_id: int) -> None:
        row = self._conn.execute(
            "SELECT ex.id, m.entry_id FROM examples ex "
            "JOIN meanings m ON ex.meaning_id = m.id WHERE ex.id = ?",
            (example_id,),
        ).fetchone()
        if row is None:
            raise EntityNotFoundError(f"Example not found: {example_id!r}")
        self._conn.execute("DELETE FROM examples WHERE id = ?", (example_id,))
        self._touch(row["entry_id"])

    # ------------------------------------------------------------------
    # Bibliography
    # ------------------------------------------------------------------

    def get_unique_sources(self) -> list[SourceModel]:
        """Distinct citation sources of all examples, by publication."""
        rows = self._conn.execute(
            "SELECT DISTINCT publication, author, year, city, editorial, format "
            "FROM examples WHERE publication IS NOT NULL "
            "ORDER BY publication, author, year"
        ).fetchall()
        return [
            SourceModel(
                publication=r["publication"],
                author=r["author"],
                year=r["year"],
                city=r["city"],
                editorial=r["editorial"],
                format=r["format"],
            )
            for r in rows
        ]

    def get_entries_by_source(self, publication: str) -> list[EntryModel]:
        """Entries with at least one example cited from *publication*."""
        rows = self._conn.execute(
            "SELECT DISTINCT e.id, e.lemma FROM examples ex "
            "JOIN meanings m ON ex.meaning_id = m.id "
            "JOIN entries e ON m.entry_id = e.id "
            "WHERE ex.publication = ? "
            f"ORDER BY e.lemma COLLATE {_db.LEXICAL_COLLATION}, e.id",
            (publication,),
        ).fetchall()
        return self._entries_in_order([r["id"] for r in rows])

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def get_history(
        self,
        entry_id: int | None = None,
        *,
        operation: str | EditOperation | None = None,
    ) -> list[EditRecord]:
        return _hist.query_history(
            self._conn, entry_id=entry_id, operation=operation
        )

    def get_changes_since(self, timestamp: str) -> list[EditRecord]:
        return _hist.query_history(self._conn, since=timestamp)

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def search(self, query: SearchQuery | None = None, **filters: Any) -> SearchPage:
        """Search this editor's database.

        Pass a :class:`SearchQuery`, or its fields as keyword arguments.
        """
        if query is None:
            query = SearchQuery(**filters)
        elif filters:
            raise TypeError("Pass either a SearchQuery or keyword filters, not both")
        return search_words(self._conn, query)

"""Word search: filter, select candidates, classify and rank."""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from dictionary_search import db as _db
from dictionary_search.candidates import select_candidates
from dictionary_search.config import SearchConfig
from dictionary_search.exceptions import QueryTimeoutError, StoreError
from dictionary_search.filters import build_filters
from dictionary_search.models import EntryModel, MatchTier, SearchPage, SearchQuery
from dictionary_search.ranking import assemble, classify

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 25
MAX_PAGE_SIZE = 100


def _as_int(value: Any, default: int) -> int:
    if isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def clamp_pagination(
    page: Any,
    page_size: Any,
    *,
    default_page_size: int = DEFAULT_PAGE_SIZE,
    max_page_size: int | None = MAX_PAGE_SIZE,
) -> tuple[int, int]:
    """Coerce page and page size to integers of at least 1.

    Unparseable values fall back to page 1 and the default size; the
    size is capped at *max_page_size*.
    """
    page_num = max(1, _as_int(page, 1))
    size = max(1, _as_int(page_size, default_page_size))
    if max_page_size is not None:
        size = min(size, max_page_size)
    return page_num, size


@contextmanager
def _read_snapshot(conn: sqlite3.Connection) -> Generator[None, None, None]:
    """Run the enclosed reads in one transaction so they share a snapshot."""
    if conn.in_transaction:
        yield
        return
    conn.execute("BEGIN")
    try:
        yield
    finally:
        if conn.in_transaction:
            conn.rollback()


def search_words(
    conn: sqlite3.Connection,
    query: SearchQuery,
    *,
    default_page_size: int = DEFAULT_PAGE_SIZE,
    max_page_size: int | None = MAX_PAGE_SIZE,
    timeout: float | None = None,
) -> SearchPage:
    """Search entries on *conn* and return one ranked page plus the total.

    Store failures raise :class:`StoreError` (or its subclass
    :class:`QueryTimeoutError` when *timeout* seconds elapse); nothing is
    retried and no partial page is returned.
    """
    page, page_size = clamp_pagination(
        query.page, query.page_size,
        default_page_size=default_page_size,
        max_page_size=max_page_size,
    )
    filters = build_filters(query)
    logger.debug(
        f"Searching text={query.text!r} conditions={len(filters.conditions)} "
        f"page={page} page_size={page_size}"
    )

    try:
        with _read_snapshot(conn), _db.deadline(conn, timeout):
            candidates = select_candidates(conn, filters, page, page_size)
            entries: dict[int, EntryModel] = (
                _db.fetch_entries(conn, candidates.ids) if candidates.ids else {}
            )
    except QueryTimeoutError:
        logger.error(f"Search timed out after {timeout}s (text={query.text!r})")
        raise
    except sqlite3.Error as e:
        logger.error(f"Search failed in the store: {e}")
        raise StoreError("Search failed") from e

    text = filters.patterns.text if filters.patterns is not None else None
    classified: list[tuple[EntryModel, MatchTier]] = []
    for entry_id in candidates.ids:
        entry = entries.get(entry_id)
        if entry is None:
            # Deleted between the page query and the detail fetch
            logger.warning(f"Dropping entry {entry_id}: no longer in the store")
            continue
        classified.append((entry, classify(text, entry.lemma)))

    return SearchPage(results=tuple(assemble(classified)), total=candidates.total)


class SearchEngine:
    """Stateless search front end over a pool of store connections."""

    def __init__(
        self,
        pool: _db.ConnectionPool,
        config: SearchConfig | None = None,
    ) -> None:
        self._pool = pool
        self._config = config or SearchConfig()

    @classmethod
    def open(
        cls,
        db_path: str | Path | None = None,
        config: SearchConfig | None = None,
    ) -> SearchEngine:
        """Create an engine with its own pool for *db_path* (or the config's)."""
        config = config or SearchConfig()
        path = str(db_path) if db_path is not None else config.database
        pool = _db.ConnectionPool(
            path, config.pool_size, timeout=config.query_timeout or 5.0
        )
        return cls(pool, config)

    @property
    def config(self) -> SearchConfig:
        return self._config

    @property
    def pool(self) -> _db.ConnectionPool:
        return self._pool

    def search(self, query: SearchQuery) -> SearchPage:
        """Run *query* on a pooled connection."""
        with self._pool.acquire() as conn:
            return search_words(
                conn,
                query,
                default_page_size=self._config.default_page_size,
                max_page_size=self._config.max_page_size,
                timeout=self._config.query_timeout,
            )

    def close(self) -> None:
        """Close the underlying pool."""
        self._pool.close()

    def __enter__(self) -> SearchEngine:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

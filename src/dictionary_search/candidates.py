"""Store-side candidate selection with a distinct total count."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from typing import Any

from dictionary_search.db import LEXICAL_COLLATION
from dictionary_search.filters import FilterSet

_FROM = "FROM entries e LEFT JOIN meanings m ON m.entry_id = e.id"


@dataclass(frozen=True, slots=True)
class CandidatePage:
    """Entry ids of one page in relevance order, plus the distinct total."""

    ids: tuple[int, ...]
    total: int


def _order_by(filters: FilterSet) -> tuple[str, list[Any]]:
    """ORDER BY terms: match tier (text searches only), lemma, id.

    The tier is computed by the registered ``match_tier`` function, the
    same classifier that ranks the page in memory, so page boundaries
    never split a tier out of order.
    """
    lexical = f"e.lemma COLLATE {LEXICAL_COLLATION}, e.id"
    patterns = filters.patterns
    if patterns is None:
        return lexical, []
    return f"match_tier(e.lemma, ?), {lexical}", [patterns.text]


def count_candidates(conn: sqlite3.Connection, filters: FilterSet) -> int:
    """Count distinct entries satisfying *filters*.

    Meanings are joined for meaning-scoped filters; counting distinct
    entry ids keeps an entry with many meanings from counting twice.
    """
    where, params = filters.where_clause()
    row = conn.execute(
        f"SELECT COUNT(DISTINCT e.id) {_FROM} WHERE {where}",
        params,
    ).fetchone()
    return int(row[0] or 0)


def page_candidates(
    conn: sqlite3.Connection,
    filters: FilterSet,
    page: int,
    page_size: int,
) -> tuple[int, ...]:
    """Fetch one page of distinct entry ids in final relevance order."""
    where, params = filters.where_clause()
    order_by, order_params = _order_by(filters)
    offset = (page - 1) * page_size
    rows = conn.execute(
        f"SELECT e.id {_FROM} WHERE {where} "
        "GROUP BY e.id "
        f"ORDER BY {order_by} "
        "LIMIT ? OFFSET ?",
        [*params, *order_params, page_size, offset],
    ).fetchall()
    return tuple(r[0] for r in rows)


def select_candidates(
    conn: sqlite3.Connection,
    filters: FilterSet,
    page: int,
    page_size: int,
) -> CandidatePage:
    """Count and page the entries matching *filters*.

    *page* and *page_size* must already be clamped to at least 1. A page
    past the end yields no ids but still the full total.
    """
    total = count_candidates(conn, filters)
    if total == 0 or (page - 1) * page_size >= total:
        return CandidatePage(ids=(), total=total)
    ids = page_candidates(conn, filters, page, page_size)
    return CandidatePage(ids=ids, total=total)

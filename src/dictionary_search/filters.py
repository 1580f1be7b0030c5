"""Translate a :class:`SearchQuery` into SQL conditions and text patterns."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from dictionary_search.models import (
    MARKER_COLUMNS,
    EntryStatus,
    MarkerKind,
    SearchQuery,
)
from dictionary_search.normalize import escape_like, normalize

logger = logging.getLogger(__name__)

_LIKE = "LIKE ? ESCAPE '\\'"


@dataclass(frozen=True, slots=True)
class Condition:
    """One boolean SQL condition with its bound parameters."""

    sql: str
    params: tuple[Any, ...] = ()


@dataclass(frozen=True, slots=True)
class TextPatterns:
    """LIKE patterns derived from the normalized query text."""

    text: str
    normalized: str
    prefix: str
    inline: str
    contains: str


@dataclass(frozen=True, slots=True)
class FilterSet:
    """Conditions to AND together plus the optional text patterns."""

    conditions: tuple[Condition, ...]
    patterns: TextPatterns | None

    def where_clause(self) -> tuple[str, list[Any]]:
        """Render the conjunction as a WHERE body and its parameters."""
        if not self.conditions:
            return "1=1", []
        sql = " AND ".join(f"({c.sql})" for c in self.conditions)
        params: list[Any] = []
        for c in self.conditions:
            params.extend(c.params)
        return sql, params


def parse_list_param(value: str | None) -> list[str]:
    """Split a comma-separated parameter into trimmed, non-empty items."""
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def parse_assignee_ids(values: Iterable[str | int] | None) -> list[int]:
    """Parse assignee ids as integers, dropping anything non-numeric."""
    ids: list[int] = []
    for value in values or ():
        if isinstance(value, bool):
            continue
        if isinstance(value, int):
            ids.append(value)
            continue
        try:
            ids.append(int(str(value).strip(), 10))
        except ValueError:
            logger.debug(f"Dropping non-numeric assignee id {value!r}")
    return ids


def text_patterns(text: str | None) -> TextPatterns | None:
    """Build the prefix/inline/contains patterns, or None for blank text."""
    if text is None or not text.strip():
        return None
    normalized = normalize(text)
    if not normalized:
        return None
    escaped = escape_like(normalized)
    return TextPatterns(
        text=text.strip(),
        normalized=normalized,
        prefix=f"{escaped}%",
        inline=f"% {escaped}%",
        contains=f"%{escaped}%",
    )


def _clean(values: Sequence[str] | None) -> list[str]:
    return [v.strip() for v in values or () if isinstance(v, str) and v.strip()]


def _any_of(column_sql: str, values: Sequence[Any]) -> Condition:
    return Condition(
        " OR ".join(f"{column_sql} = ?" for _ in values),
        tuple(values),
    )


def build_filters(query: SearchQuery) -> FilterSet:
    """Translate *query* into ordered conditions and text patterns.

    Malformed filter values are dropped rather than rejected.
    """
    conditions: list[Condition] = []

    # Visibility
    if not query.include_drafts:
        conditions.append(Condition("e.status = ?", (EntryStatus.PUBLISHED.value,)))
    elif query.status and query.status.strip():
        conditions.append(Condition("e.status = ?", (query.status.strip(),)))

    assignees = parse_assignee_ids(query.assigned_to)
    if assignees:
        conditions.append(_any_of("e.assigned_to", assignees))

    patterns = text_patterns(query.text)
    if patterns is not None:
        conditions.append(Condition(
            f"normalize(e.lemma) {_LIKE} "
            f"OR normalize(e.lemma) {_LIKE} "
            f"OR normalize(e.lemma) {_LIKE}",
            (patterns.prefix, patterns.inline, patterns.contains),
        ))

    letters = [v.lower() for v in _clean(query.letters)]
    if letters:
        conditions.append(_any_of("e.letter", letters))

    origins = _clean(query.origins)
    if origins:
        conditions.append(Condition(
            " OR ".join(f"casefold(m.origin) {_LIKE}" for _ in origins),
            tuple(f"%{escape_like(o.casefold())}%" for o in origins),
        ))

    dictionaries = _clean(query.dictionaries)
    if dictionaries:
        conditions.append(_any_of("m.dictionary", dictionaries))

    categories = _clean(query.categories)
    if categories:
        conditions.append(_any_of("m.grammar_category", categories))

    known = {kind.value for kind in MarkerKind}
    for key in query.markers:
        if key not in known:
            logger.debug(f"Ignoring unknown marker filter {key!r}")
    for kind in MarkerKind:
        values = _clean(query.markers.get(kind.value))
        if values:
            conditions.append(_any_of(f"m.{MARKER_COLUMNS[kind]}", values))

    return FilterSet(conditions=tuple(conditions), patterns=patterns)

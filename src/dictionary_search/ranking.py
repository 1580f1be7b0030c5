"""Precise match classification and ordering of search candidates."""

from __future__ import annotations

from collections.abc import Iterable

from dictionary_search.models import EntryModel, MatchTier, SearchResult
from dictionary_search.normalize import collation_key, normalize


def _strip_leading_mark(token: str) -> str:
    if token and not token[0].isalnum():
        return token[1:]
    return token


def classify(query: str | None, lemma: str) -> MatchTier:
    """Assign the match tier of *lemma* for the search text *query*.

    Both sides are normalized. Blank queries, and lemmas that do not
    contain the query at all, classify as :attr:`MatchTier.FILTER`.
    """
    needle = normalize(query)
    if not needle:
        return MatchTier.FILTER
    haystack = normalize(lemma)
    if haystack == needle:
        return MatchTier.EXACT
    if haystack.startswith(needle):
        return MatchTier.PREFIX
    tokens = (_strip_leading_mark(t) for t in haystack.split())
    if any(t.startswith(needle) for t in tokens):
        return MatchTier.INLINE
    if needle in haystack:
        return MatchTier.PARTIAL
    return MatchTier.FILTER


def to_result(entry: EntryModel, tier: MatchTier) -> SearchResult:
    """Map an entry to the public result shape.

    Prefix, inline and partial tiers all surface as ``partial_match``.
    """
    return SearchResult(
        id=entry.id,
        lemma=entry.lemma,
        root=entry.root,
        letter=entry.letter,
        status=entry.status,
        assigned_to=entry.assigned_to,
        created_by=entry.created_by,
        meanings=entry.meanings,
        exact_match=tier is MatchTier.EXACT,
        partial_match=tier in (
            MatchTier.PREFIX, MatchTier.INLINE, MatchTier.PARTIAL,
        ),
    )


def assemble(
    candidates: Iterable[tuple[EntryModel, MatchTier]],
) -> list[SearchResult]:
    """Order classified candidates and map them to results.

    Candidates are bucketed by tier; each bucket is sorted alphabetically
    (case and accents ignored) with the entry id breaking ties, and the
    buckets are concatenated from exact down to filter-only.
    """
    buckets: dict[MatchTier, list[EntryModel]] = {tier: [] for tier in MatchTier}
    for entry, tier in candidates:
        buckets[tier].append(entry)

    results: list[SearchResult] = []
    for tier in sorted(MatchTier):
        bucket = sorted(
            buckets[tier], key=lambda e: (collation_key(e.lemma), e.id)
        )
        results.extend(to_result(entry, tier) for entry in bucket)
    return results

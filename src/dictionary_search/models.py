"""Domain model dataclasses and enums for dictionary-search."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum, IntEnum

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class EntryStatus(str, Enum):
    """Editorial workflow status of an entry."""

    IMPORTED = "imported"
    PREREDACTED = "preredacted"
    REDACTED = "redacted"
    REVIEWED_LEX = "reviewedLex"
    REVIEWED_LING = "reviewedLing"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class MarkerKind(str, Enum):
    """Marker classifications carried by a meaning.

    The value is the filter key used by :class:`SearchQuery`.
    """

    SOCIAL_VALUATIONS = "social_valuations"
    SOCIAL_STRATUM = "social_stratum_markers"
    STYLE = "style_markers"
    INTENTIONALITY = "intentionality_markers"
    GEOGRAPHICAL = "geographical_markers"
    CHRONOLOGICAL = "chronological_markers"
    FREQUENCY = "frequency_markers"


class MatchTier(IntEnum):
    """Relevance class of a search result; lower is more relevant."""

    EXACT = 0
    PREFIX = 1
    INLINE = 2
    PARTIAL = 3
    FILTER = 4


class EditOperation(str, Enum):
    """Type of mutation recorded in the edit history."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


# Meaning column holding each marker kind
MARKER_COLUMNS: dict[MarkerKind, str] = {
    MarkerKind.SOCIAL_VALUATIONS: "social_valuation",
    MarkerKind.SOCIAL_STRATUM: "social_stratum",
    MarkerKind.STYLE: "style",
    MarkerKind.INTENTIONALITY: "intentionality",
    MarkerKind.GEOGRAPHICAL: "geographical",
    MarkerKind.CHRONOLOGICAL: "chronological",
    MarkerKind.FREQUENCY: "frequency",
}

# Closed value sets for each marker kind
MARKER_VALUES: dict[MarkerKind, frozenset[str]] = {
    MarkerKind.SOCIAL_VALUATIONS: frozenset({
        "afectivo", "despectivo", "eufemistico", "festivo",
        "malsonante", "vulgar",
    }),
    MarkerKind.SOCIAL_STRATUM: frozenset({"culto", "popular", "inculto"}),
    MarkerKind.STYLE: frozenset({"formal", "informal", "jerga", "literario"}),
    MarkerKind.INTENTIONALITY: frozenset({"enfatico", "humoristico", "ironico"}),
    MarkerKind.GEOGRAPHICAL: frozenset({
        "norte", "centro", "sur", "rural", "urbano",
    }),
    MarkerKind.CHRONOLOGICAL: frozenset({"desusado", "neologismo", "obsoleto"}),
    MarkerKind.FREQUENCY: frozenset({"frecuente", "poco usado"}),
}


# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class ExampleModel:
    """A usage example of a meaning with its citation."""

    id: int
    meaning_id: int
    value: str
    publication: str | None
    author: str | None
    year: str | None
    city: str | None
    editorial: str | None
    format: str | None
    page: str | None


@dataclass(frozen=True, slots=True)
class MeaningModel:
    """One numbered meaning of an entry."""

    id: int
    entry_id: int
    number: int
    dictionary: str | None
    grammar_category: str | None
    origin: str | None
    social_valuation: str | None
    social_stratum: str | None
    style: str | None
    intentionality: str | None
    geographical: str | None
    chronological: str | None
    frequency: str | None
    definition: str
    observation: str | None
    remission: str | None
    examples: tuple[ExampleModel, ...]


@dataclass(frozen=True, slots=True)
class EntryModel:
    """A dictionary entry (headword) with its meanings."""

    id: int
    lemma: str
    root: str | None
    letter: str
    variant: str | None
    status: str
    created_by: int | None
    assigned_to: int | None
    created_at: str
    updated_at: str
    meanings: tuple[MeaningModel, ...]


@dataclass(frozen=True, slots=True)
class SourceModel:
    """A distinct bibliographic source cited by examples."""

    publication: str
    author: str | None
    year: str | None
    city: str | None
    editorial: str | None
    format: str | None


@dataclass(frozen=True, slots=True)
class EditRecord:
    """A single edit-history entry recording one field-level change."""

    id: int
    entry_id: int
    field_name: str | None
    operation: str
    old_value: str | None
    new_value: str | None
    timestamp: str


@dataclass(frozen=True)
class SearchQuery:
    """Search input: free text, facet filters and pagination.

    List-valued filters accept any sequence of strings; empty sequences
    mean "no filter". ``markers`` maps a :class:`MarkerKind` value to the
    accepted marker values.
    """

    text: str | None = None
    categories: Sequence[str] = ()
    origins: Sequence[str] = ()
    letters: Sequence[str] = ()
    dictionaries: Sequence[str] = ()
    markers: Mapping[str, Sequence[str]] = field(default_factory=dict)
    assigned_to: Sequence[str | int] = ()
    status: str | None = None
    include_drafts: bool = False
    page: int = 1
    page_size: int | None = None


@dataclass(frozen=True, slots=True)
class SearchResult:
    """One ranked search hit.

    ``exact_match`` is set for exact lemma matches, ``partial_match`` for
    any other textual match. Results matched only by filters set neither.
    """

    id: int
    lemma: str
    root: str | None
    letter: str
    status: str
    assigned_to: int | None
    created_by: int | None
    meanings: tuple[MeaningModel, ...]
    exact_match: bool
    partial_match: bool


@dataclass(frozen=True, slots=True)
class SearchPage:
    """An ordered page of results plus the total number of matches."""

    results: tuple[SearchResult, ...]
    total: int

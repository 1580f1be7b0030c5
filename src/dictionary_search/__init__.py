__version__ = "0.1.0"

from .exceptions import (
    DictionarySearchError as DictionarySearchError,
    ValidationError as ValidationError,
    EntityNotFoundError as EntityNotFoundError,
    DuplicateEntityError as DuplicateEntityError,
    DatabaseError as DatabaseError,
    StoreError as StoreError,
    QueryTimeoutError as QueryTimeoutError,
    ConfigError as ConfigError,
)

from .models import (
    EntryStatus as EntryStatus,
    MarkerKind as MarkerKind,
    MatchTier as MatchTier,
    EditOperation as EditOperation,
    EntryModel as EntryModel,
    MeaningModel as MeaningModel,
    ExampleModel as ExampleModel,
    SourceModel as SourceModel,
    EditRecord as EditRecord,
    SearchQuery as SearchQuery,
    SearchResult as SearchResult,
    SearchPage as SearchPage,
)

from .normalize import normalize as normalize
from .config import SearchConfig as SearchConfig, load_config as load_config
from .db import ConnectionPool as ConnectionPool
from .search import (
    SearchEngine as SearchEngine,
    search_words as search_words,
)
from .editor import DictionaryEditor as DictionaryEditor
from .loader import load_entries as load_entries, apply_entries as apply_entries

__all__ = [
    # Exceptions
    "DictionarySearchError",
    "ValidationError",
    "EntityNotFoundError",
    "DuplicateEntityError",
    "DatabaseError",
    "StoreError",
    "QueryTimeoutError",
    "ConfigError",
    # Enums
    "EntryStatus",
    "MarkerKind",
    "MatchTier",
    "EditOperation",
    # Models
    "EntryModel",
    "MeaningModel",
    "ExampleModel",
    "SourceModel",
    "EditRecord",
    "SearchQuery",
    "SearchResult",
    "SearchPage",
    # Search
    "normalize",
    "SearchConfig",
    "load_config",
    "ConnectionPool",
    "SearchEngine",
    "search_words",
    # Editing
    "DictionaryEditor",
    "load_entries",
    "apply_entries",
]

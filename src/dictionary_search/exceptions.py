"""Custom exception hierarchy for dictionary-search."""


class DictionarySearchError(Exception):
    """Base exception for all dictionary-search errors."""


class ValidationError(DictionarySearchError):
    """Invalid data (unknown status, bad marker value, empty lemma)."""


class EntityNotFoundError(DictionarySearchError):
    """Entity doesn't exist in the database."""


class DuplicateEntityError(DictionarySearchError):
    """Entity with same identity already exists."""


class DatabaseError(DictionarySearchError):
    """Schema version mismatch, connection failure."""


class StoreError(DictionarySearchError):
    """A store round-trip failed while serving a search."""


class QueryTimeoutError(StoreError):
    """A store round-trip ran past the request deadline."""


class ConfigError(DictionarySearchError):
    """Invalid configuration value or file."""

"""Search engine settings loaded from YAML."""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import yaml

from dictionary_search.exceptions import ConfigError

logger = logging.getLogger(__name__)

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass(frozen=True, slots=True)
class SearchConfig:
    """Settings for the store pool and search pagination."""

    database: str = ":memory:"
    pool_size: int = 4
    query_timeout: float = 5.0
    default_page_size: int = 25
    max_page_size: int = 100
    log_level: str = "WARNING"

    def __post_init__(self) -> None:
        if not isinstance(self.database, str) or not self.database:
            raise ConfigError("'database' must be a non-empty string")
        for name in ("pool_size", "default_page_size", "max_page_size"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ConfigError(f"'{name}' must be a positive integer, got {value!r}")
        if self.default_page_size > self.max_page_size:
            raise ConfigError(
                f"'default_page_size' ({self.default_page_size}) exceeds "
                f"'max_page_size' ({self.max_page_size})"
            )
        timeout = self.query_timeout
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout < 0:
            raise ConfigError(
                f"'query_timeout' must be a non-negative number, got {timeout!r}"
            )
        if not isinstance(self.log_level, str) or self.log_level.upper() not in _LOG_LEVELS:
            raise ConfigError(f"'log_level' must be one of {sorted(_LOG_LEVELS)}")


def _is_file_path(s: str) -> bool:
    """Check if a string looks like a file path."""
    if "\n" in s:
        return False
    if "/" in s or "\\" in s:
        return True
    return s.endswith((".yaml", ".yml"))


def _load_yaml(text: str, origin: str) -> dict[str, Any]:
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {origin}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{origin}: YAML root must be a mapping (dictionary)")
    return data


def load_config(
    source: str | Path | dict[str, Any] | None = None,
    **overrides: Any,
) -> SearchConfig:
    """Build a :class:`SearchConfig` from a YAML file, YAML string or mapping.

    Keyword *overrides* whose value is not None take precedence over the
    loaded values. Unknown keys raise :class:`ConfigError`.
    """
    if source is None:
        data: dict[str, Any] = {}
    elif isinstance(source, dict):
        data = dict(source)
    elif isinstance(source, Path) or _is_file_path(source):
        path = Path(source)
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")
        data = _load_yaml(path.read_text(encoding="utf-8"), str(path))
    else:
        data = _load_yaml(source, "config string")

    # Allow the settings to live under a top-level "search:" key
    if set(data) == {"search"} and isinstance(data["search"], dict):
        data = dict(data["search"])

    data.update({k: v for k, v in overrides.items() if v is not None})

    known = {f.name for f in fields(SearchConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown config key(s): {', '.join(unknown)}")

    if "database" in data and isinstance(data["database"], Path):
        data["database"] = str(data["database"])

    config = SearchConfig(**data)
    logger.debug(f"Loaded config: {config}")
    return config

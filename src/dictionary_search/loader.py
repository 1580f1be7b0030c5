"""
YAML loader for seeding a dictionary database with entries.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Union

import yaml

from dictionary_search.models import EntryModel, EntryStatus

if TYPE_CHECKING:
    from dictionary_search.editor import DictionaryEditor

logger = logging.getLogger(__name__)

_ENTRY_KEYS = {"lemma", "root", "variant", "status", "created_by", "assigned_to", "meanings"}
_MEANING_KEYS = {
    "definition", "number", "dictionary", "grammar_category", "origin",
    "markers", "observation", "remission", "examples",
}
_EXAMPLE_KEYS = {
    "value", "publication", "author", "year", "city", "editorial", "format", "page",
}


class ParseError(Exception):
    """Error parsing an entries file."""

    def __init__(self, message: str, entry: Optional[int] = None):
        self.entry = entry
        super().__init__(message)


@dataclass
class ExampleData:
    """An example as read from the entries file."""
    value: str
    citation: Dict[str, Any] = field(default_factory=dict)


@dataclass
class MeaningData:
    """A meaning as read from the entries file."""
    definition: str
    attributes: Dict[str, Any] = field(default_factory=dict)
    examples: List[ExampleData] = field(default_factory=list)


@dataclass
class EntryData:
    """An entry as read from the entries file."""
    lemma: str
    attributes: Dict[str, Any] = field(default_factory=dict)
    meanings: List[MeaningData] = field(default_factory=list)


def load_entries(source: Union[str, Path, Dict[str, Any]]) -> List[EntryData]:
    """Load entries from a YAML file, YAML string or parsed dictionary.

    Args:
        source: Path to YAML file, YAML string, or parsed dictionary

    Returns:
        List of EntryData in file order

    Raises:
        ParseError: If the content cannot be parsed or is invalid
        FileNotFoundError: If the file does not exist
    """
    if isinstance(source, dict):
        data = source
    elif isinstance(source, Path) or (isinstance(source, str) and _is_file_path(source)):
        path = Path(source)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")
        with open(path, "r", encoding="utf-8") as f:
            data = _load_yaml(f)
    else:
        data = _load_yaml(source)

    entries_data = data.get("entries")
    if entries_data is None:
        raise ParseError("Missing required field: 'entries'")
    if not isinstance(entries_data, list):
        raise ParseError("Field 'entries' must be a list")

    return [_parse_entry(item, i + 1) for i, item in enumerate(entries_data)]


def _is_file_path(s: str) -> bool:
    """Check if a string looks like a file path."""
    if "\n" in s:
        return False
    if "/" in s or "\\" in s:
        return True
    return s.endswith((".yaml", ".yml"))


def _load_yaml(stream: Any) -> Dict[str, Any]:
    try:
        data = yaml.safe_load(stream)
    except yaml.YAMLError as e:
        raise ParseError(f"Invalid YAML: {e}") from e
    if data is None:
        raise ParseError("Empty YAML content")
    if not isinstance(data, dict):
        raise ParseError("YAML root must be a mapping (dictionary)")
    return data


def _check_keys(item: Dict[str, Any], allowed: set, what: str, entry: int) -> None:
    unknown = sorted(set(item) - allowed)
    if unknown:
        raise ParseError(f"Entry #{entry}: unknown {what} field(s): {', '.join(unknown)}", entry=entry)


def _parse_entry(item: Any, n: int) -> EntryData:
    if not isinstance(item, dict):
        raise ParseError(f"Entry #{n} must be a mapping (dictionary)", entry=n)
    _check_keys(item, _ENTRY_KEYS, "entry", n)

    lemma = item.get("lemma")
    if not isinstance(lemma, str) or not lemma.strip():
        raise ParseError(f"Entry #{n}: missing required field 'lemma'", entry=n)

    status = item.get("status", EntryStatus.IMPORTED.value)
    if status not in {s.value for s in EntryStatus}:
        raise ParseError(f"Entry #{n}: invalid status {status!r}", entry=n)

    attributes = {k: v for k, v in item.items() if k not in ("lemma", "meanings")}
    attributes["status"] = status

    meanings_data = item.get("meanings") or []
    if not isinstance(meanings_data, list):
        raise ParseError(f"Entry #{n}: field 'meanings' must be a list", entry=n)

    return EntryData(
        lemma=lemma,
        attributes=attributes,
        meanings=[_parse_meaning(m, n) for m in meanings_data],
    )


def _parse_meaning(item: Any, n: int) -> MeaningData:
    if not isinstance(item, dict):
        raise ParseError(f"Entry #{n}: each meaning must be a mapping", entry=n)
    _check_keys(item, _MEANING_KEYS, "meaning", n)

    definition = item.get("definition")
    if not isinstance(definition, str) or not definition.strip():
        raise ParseError(f"Entry #{n}: meaning is missing 'definition'", entry=n)

    markers = item.get("markers")
    if markers is not None and not isinstance(markers, dict):
        raise ParseError(f"Entry #{n}: field 'markers' must be a mapping", entry=n)

    examples_data = item.get("examples") or []
    if not isinstance(examples_data, list):
        raise ParseError(f"Entry #{n}: field 'examples' must be a list", entry=n)

    examples = []
    for ex in examples_data:
        if isinstance(ex, str):
            examples.append(ExampleData(value=ex))
            continue
        if not isinstance(ex, dict) or not ex.get("value"):
            raise ParseError(f"Entry #{n}: each example needs a 'value'", entry=n)
        _check_keys(ex, _EXAMPLE_KEYS, "example", n)
        examples.append(ExampleData(
            value=ex["value"],
            citation={k: v for k, v in ex.items() if k != "value"},
        ))

    return MeaningData(
        definition=definition,
        attributes={k: v for k, v in item.items() if k not in ("definition", "examples")},
        examples=examples,
    )


def apply_entries(
    editor: DictionaryEditor,
    entries: List[EntryData],
) -> List[EntryModel]:
    """Write parsed entries to *editor* in a single transaction.

    Returns:
        The created entries, with meanings and examples
    """
    created = []
    with editor.batch():
        for data in entries:
            entry = editor.create_entry(data.lemma, **data.attributes)
            for meaning_data in data.meanings:
                meaning = editor.add_meaning(
                    entry.id, meaning_data.definition, **meaning_data.attributes
                )
                for example in meaning_data.examples:
                    editor.add_example(meaning.id, example.value, **example.citation)
            created.append(editor.get_entry(entry.id))
    logger.info(f"Loaded {len(created)} entries")
    return created

"""Shared test fixtures for dictionary-search."""

import pytest

from dictionary_search import DictionaryEditor, SearchConfig, SearchEngine


@pytest.fixture
def editor():
    """Create an in-memory editor for testing."""
    with DictionaryEditor(":memory:") as ed:
        yield ed


def _publish(ed, lemma, **kwargs):
    kwargs.setdefault("status", "published")
    return ed.create_entry(lemma, **kwargs)


@pytest.fixture
def publish():
    """Helper creating a published entry on an editor."""
    return _publish


@pytest.fixture
def editor_with_entries(editor):
    """Editor with a handful of published entries carrying meanings."""
    ed = editor
    casa = _publish(ed, "casa", root="casa")
    ed.add_meaning(
        casa.id, "Edificio para habitar",
        dictionary="DA", grammar_category="f", origin="Latín",
        markers={"style_markers": "formal"},
    )
    ed.add_meaning(
        casa.id, "Familia o linaje",
        dictionary="DA", grammar_category="f", origin="Latín",
    )
    casapuerta = _publish(ed, "casapuerta")
    ed.add_meaning(
        casapuerta.id, "Zaguán de una casa",
        dictionary="DRAE", grammar_category="f", origin="latín",
    )
    mi_casa = _publish(ed, "mi casa linda")
    ed.add_meaning(
        mi_casa.id, "Expresión afectiva",
        dictionary="DA", grammar_category="loc",
        markers={"social_valuations": "afectivo", "style_markers": "informal"},
    )
    cafe = _publish(ed, "café", assigned_to=7)
    ed.add_meaning(
        cafe.id, "Bebida", dictionary="DRAE", grammar_category="m",
        origin="Turco",
    )
    draft = ed.create_entry("casona", status="imported", assigned_to=7)
    ed.add_meaning(draft.id, "Casa grande", grammar_category="f")
    return ed


@pytest.fixture
def db_file(tmp_path):
    """Path of a fresh, initialized database file."""
    path = tmp_path / "dictionary.db"
    with DictionaryEditor(path):
        pass
    return path


@pytest.fixture
def engine(db_file):
    """Search engine with a small pool over ``db_file``."""
    config = SearchConfig(database=str(db_file), pool_size=2, query_timeout=5.0)
    with SearchEngine.open(config=config) as eng:
        yield eng

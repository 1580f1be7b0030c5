"""Tests for the end-to-end word search."""

import sqlite3

import pytest

from dictionary_search import DictionaryEditor, SearchConfig, SearchEngine
from dictionary_search import db as _db
from dictionary_search import search as _search
from dictionary_search.exceptions import QueryTimeoutError, StoreError
from dictionary_search.models import SearchQuery
from dictionary_search.search import clamp_pagination, search_words

_SLOW_SQL = (
    "WITH RECURSIVE n(i) AS (SELECT 1 UNION ALL SELECT i + 1 FROM n LIMIT 100000000) "
    "SELECT COUNT(*) FROM n"
)


def _lemmas(page):
    return [r.lemma for r in page.results]


class TestTextSearch:

    def test_tier_order(self, editor_with_entries):
        page = editor_with_entries.search(text="casa")
        assert _lemmas(page) == ["casa", "casapuerta", "mi casa linda"]
        assert page.total == 3
        assert page.results[0].exact_match
        assert all(r.partial_match for r in page.results[1:])

    def test_accent_insensitive_exact(self, editor_with_entries):
        page = editor_with_entries.search(text="cafe")
        assert _lemmas(page) == ["café"]
        assert page.results[0].exact_match

        page = editor_with_entries.search(text="CAFÉ")
        assert page.results[0].exact_match

    def test_exact_results_really_match(self, editor_with_entries):
        page = editor_with_entries.search(text="Casa")
        for r in page.results:
            if r.exact_match:
                assert r.lemma == "casa"

    def test_meanings_included_in_order(self, editor_with_entries):
        page = editor_with_entries.search(text="casa")
        casa = page.results[0]
        assert [m.number for m in casa.meanings] == [1, 2]
        assert casa.meanings[0].definition == "Edificio para habitar"

    def test_no_match(self, editor_with_entries):
        page = editor_with_entries.search(text="xyz")
        assert page.results == ()
        assert page.total == 0

    def test_blank_text_is_filter_only(self, editor_with_entries):
        page = editor_with_entries.search(text="   ")
        assert page.total == 4
        assert not any(r.exact_match or r.partial_match for r in page.results)


class TestFilterOnly:

    def test_letters_filter(self, editor, publish):
        for lemma in ["ala", "abuelo", "besa"]:
            publish(editor, lemma)
        page = editor.search(letters=["a"])
        assert _lemmas(page) == ["abuelo", "ala"]
        assert page.total == 2
        assert not any(r.exact_match or r.partial_match for r in page.results)

    def test_marker_filter(self, editor_with_entries):
        page = editor_with_entries.search(markers={"style_markers": ["informal"]})
        assert _lemmas(page) == ["mi casa linda"]

    def test_origin_filter_ignores_case(self, editor_with_entries):
        page = editor_with_entries.search(origins=["LATÍN"])
        assert _lemmas(page) == ["casa", "casapuerta"]
        assert page.total == 2

    def test_filters_combine_conjunctively(self, editor_with_entries):
        page = editor_with_entries.search(
            text="casa", dictionaries=["DA"], categories=["f"],
        )
        assert _lemmas(page) == ["casa"]

    def test_assignee_filter(self, editor_with_entries):
        page = editor_with_entries.search(assigned_to=["7", "bogus"])
        assert _lemmas(page) == ["café"]


class TestVisibility:

    def test_drafts_hidden_by_default(self, editor_with_entries):
        page = editor_with_entries.search(text="casona")
        assert page.total == 0

    def test_drafts_visible_when_included(self, editor_with_entries):
        page = editor_with_entries.search(text="casona", include_drafts=True)
        assert _lemmas(page) == ["casona"]

    def test_draft_with_all_filters_matching_still_hidden(self, editor_with_entries):
        page = editor_with_entries.search(
            text="casona", categories=["f"], assigned_to=[7],
        )
        assert page.total == 0

    def test_status_filter_in_draft_mode(self, editor_with_entries):
        page = editor_with_entries.search(
            text="cas", include_drafts=True, status="imported",
        )
        assert _lemmas(page) == ["casona"]

    def test_status_filter_ignored_in_public_mode(self, editor_with_entries):
        page = editor_with_entries.search(text="casona", status="imported")
        assert page.total == 0


class TestPagination:

    @pytest.fixture
    def many(self, editor, publish):
        lemmas = [
            "sol", "Sol", "solar", "soleado", "girasol", "parasol", "el sol",
            "sólido", "solo", "sola", "consola", "un solo", "insolación",
            "solsticio", "sollozo", "resolver", "Soler", "asolar",
        ]
        for lemma in lemmas:
            publish(editor, lemma)
        return editor

    def test_total_counts_every_match(self, many):
        assert many.search(text="sol", page_size=100).total == 18

    def test_pages_concatenate_to_full_result(self, many):
        full = many.search(text="sol", page_size=100)
        collected = []
        for page_num in range(1, 6):
            page = many.search(text="sol", page=page_num, page_size=4)
            assert page.total == full.total
            collected.extend(r.id for r in page.results)
        assert collected == [r.id for r in full.results]
        assert len(set(collected)) == len(collected)

    def test_idempotent(self, many):
        q = SearchQuery(text="sol", page=2, page_size=5)
        assert many.search(q) == many.search(q)

    def test_page_past_end(self, many):
        page = many.search(text="sol", page=50, page_size=5)
        assert page.results == ()
        assert page.total == 18

    def test_invalid_page_clamped(self, many):
        first = many.search(text="sol", page=1, page_size=3)
        assert many.search(text="sol", page=0, page_size=3) == first
        assert many.search(text="sol", page=-4, page_size=3) == first

    def test_default_page_size(self, many):
        page = many.search(text="sol")
        assert len(page.results) == 18


class TestTierAcrossPages:

    @pytest.fixture
    def mixed(self, editor, publish):
        for lemma in [
            "abcasa", "zeta (casa)", "zeta\tcasa", "escasa", "casa",
            "casamiento", "la casa", "¡casa!", "bocacasa",
        ]:
            publish(editor, lemma)
        return editor

    def test_full_page_in_tier_order(self, mixed):
        page = mixed.search(text="casa", page_size=100)
        assert _lemmas(page) == [
            "casa",
            "casamiento",
            "¡casa!",
            "la casa",
            "zeta\tcasa",
            "zeta (casa)",
            "abcasa",
            "bocacasa",
            "escasa",
        ]

    def test_single_item_pages_match_full_order(self, mixed):
        full = mixed.search(text="casa", page_size=100)
        collected = []
        for page_num in range(1, full.total + 1):
            page = mixed.search(text="casa", page=page_num, page_size=1)
            collected.extend(_lemmas(page))
        assert collected == _lemmas(full)

    def test_partial_never_before_inline_on_earlier_page(self, editor, publish):
        publish(editor, "abcasa")
        publish(editor, "zeta (casa)")
        first = editor.search(text="casa", page=1, page_size=1)
        second = editor.search(text="casa", page=2, page_size=1)
        assert _lemmas(first) == ["zeta (casa)"]
        assert _lemmas(second) == ["abcasa"]
        assert first.results[0].partial_match


class TestFilterOnlyPagination:

    def test_pages_without_text(self, editor, publish):
        for lemma in ["ala", "abuelo", "besa", "¡ajá!", "Árbol"]:
            publish(editor, lemma)
        full = editor.search(page_size=100)
        assert _lemmas(full) == ["¡ajá!", "abuelo", "ala", "Árbol", "besa"]
        collected = []
        for page_num in (1, 2, 3):
            collected.extend(_lemmas(editor.search(page=page_num, page_size=2)))
        assert collected == _lemmas(full)

    def test_letters_only_through_engine(self, engine, db_file):
        with DictionaryEditor(db_file) as ed:
            for lemma in ["ala", "abuelo", "besa"]:
                ed.create_entry(lemma, status="published")
        page = engine.search(SearchQuery(letters=["a"]))
        assert _lemmas(page) == ["abuelo", "ala"]
        assert page.total == 2


class TestClampPagination:

    @pytest.mark.parametrize("page, size, expected", [
        (1, 10, (1, 10)),
        (0, 10, (1, 10)),
        (-3, -3, (1, 1)),
        (2, None, (2, 25)),
        ("3", "7", (3, 7)),
        ("abc", "x", (1, 25)),
        (True, 10, (1, 10)),
        (1, 1000, (1, 100)),
    ])
    def test_clamp(self, page, size, expected):
        assert clamp_pagination(page, size) == expected

    def test_custom_limits(self):
        assert clamp_pagination(1, None, default_page_size=5, max_page_size=8) == (1, 5)
        assert clamp_pagination(1, 50, max_page_size=None) == (1, 50)


class TestStoreFailures:

    def test_sqlite_error_wrapped(self, editor_with_entries, monkeypatch):
        def boom(*args, **kwargs):
            raise sqlite3.OperationalError("disk I/O error")

        monkeypatch.setattr(_search, "select_candidates", boom)
        with pytest.raises(StoreError, match="Search failed"):
            editor_with_entries.search(text="casa")

    def test_deadline_raises_timeout(self, editor_with_entries, monkeypatch):
        def slow(conn, *args, **kwargs):
            conn.execute(_SLOW_SQL).fetchone()

        monkeypatch.setattr(_search, "select_candidates", slow)
        with pytest.raises(QueryTimeoutError):
            search_words(
                editor_with_entries._conn, SearchQuery(text="casa"), timeout=0.05,
            )

    def test_timeout_is_a_store_error(self):
        assert issubclass(QueryTimeoutError, StoreError)

    def test_connection_usable_after_failure(self, editor_with_entries, monkeypatch):
        def boom(*args, **kwargs):
            raise sqlite3.OperationalError("boom")

        with monkeypatch.context() as m:
            m.setattr(_search, "select_candidates", boom)
            with pytest.raises(StoreError):
                editor_with_entries.search(text="casa")
        assert editor_with_entries.search(text="casa").total == 3

    def test_entry_missing_from_detail_fetch_is_dropped(
        self, editor_with_entries, monkeypatch,
    ):
        real_fetch = _db.fetch_entries

        def partial_fetch(conn, ids):
            entries = real_fetch(conn, ids)
            casa = next(i for i, e in entries.items() if e.lemma == "casa")
            del entries[casa]
            return entries

        monkeypatch.setattr(_db, "fetch_entries", partial_fetch)
        page = editor_with_entries.search(text="casa")
        assert _lemmas(page) == ["casapuerta", "mi casa linda"]
        assert page.total == 3


class TestSearchEngine:

    def test_search_through_pool(self, engine, db_file):
        with DictionaryEditor(db_file) as ed:
            ed.create_entry("casa", status="published")
            ed.create_entry("casita", status="published")
        page = engine.search(SearchQuery(text="casa"))
        assert _lemmas(page) == ["casa"]
        assert page.total == 1

    def test_config_limits_apply(self, db_file):
        with DictionaryEditor(db_file) as ed:
            for lemma in ["a", "b", "c", "d"]:
                ed.create_entry(lemma, status="published")
        config = SearchConfig(
            database=str(db_file), pool_size=1,
            default_page_size=2, max_page_size=3,
        )
        with SearchEngine.open(config=config) as eng:
            assert len(eng.search(SearchQuery()).results) == 2
            assert len(eng.search(SearchQuery(page_size=50)).results) == 3

    def test_open_with_explicit_path(self, db_file):
        with SearchEngine.open(db_file) as eng:
            assert eng.pool.size == eng.config.pool_size
            assert eng.search(SearchQuery()).total == 0

    def test_closed_engine_raises(self, db_file):
        eng = SearchEngine.open(db_file)
        eng.close()
        with pytest.raises(StoreError):
            eng.search(SearchQuery())

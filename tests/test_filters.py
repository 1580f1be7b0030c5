"""Tests for translating queries into SQL conditions."""

from dictionary_search.filters import (
    build_filters,
    parse_assignee_ids,
    parse_list_param,
    text_patterns,
)
from dictionary_search.models import SearchQuery


class TestParsing:

    def test_list_param_splits_and_trims(self):
        assert parse_list_param(" a, b ,,c ") == ["a", "b", "c"]

    def test_list_param_empty(self):
        assert parse_list_param(None) == []
        assert parse_list_param("") == []
        assert parse_list_param(" , ") == []

    def test_assignee_ids_drop_non_numeric(self):
        assert parse_assignee_ids(["3", "x", 5, " 8 ", True, "2.5"]) == [3, 5, 8]

    def test_assignee_ids_none(self):
        assert parse_assignee_ids(None) == []


class TestTextPatterns:

    def test_patterns_use_normalized_text(self):
        p = text_patterns("  Café ")
        assert p.text == "Café"
        assert p.normalized == "cafe"
        assert p.prefix == "cafe%"
        assert p.inline == "% cafe%"
        assert p.contains == "%cafe%"

    def test_wildcards_are_escaped(self):
        p = text_patterns("a_b")
        assert p.prefix == "a\\_b%"

    def test_blank_text_has_no_patterns(self):
        assert text_patterns(None) is None
        assert text_patterns("   ") is None


class TestBuildFilters:

    def test_published_only_by_default(self):
        f = build_filters(SearchQuery())
        assert len(f.conditions) == 1
        assert f.conditions[0].sql == "e.status = ?"
        assert f.conditions[0].params == ("published",)
        assert f.patterns is None

    def test_status_filter_ignored_without_drafts(self):
        f = build_filters(SearchQuery(status="imported"))
        assert f.conditions[0].params == ("published",)

    def test_drafts_with_status(self):
        f = build_filters(SearchQuery(include_drafts=True, status="imported"))
        assert f.conditions[0].params == ("imported",)

    def test_drafts_without_status_has_no_visibility_condition(self):
        f = build_filters(SearchQuery(include_drafts=True, status="  "))
        assert f.conditions == ()
        assert f.where_clause() == ("1=1", [])

    def test_visibility_is_first(self):
        f = build_filters(SearchQuery(text="casa", letters=["c"]))
        assert f.conditions[0].sql == "e.status = ?"
        assert "normalize(e.lemma)" in f.conditions[1].sql

    def test_facet_becomes_one_or_group(self):
        f = build_filters(SearchQuery(categories=["f", "m"], dictionaries=["DA"]))
        sqls = [c.sql for c in f.conditions]
        assert "m.grammar_category = ? OR m.grammar_category = ?" in sqls
        assert "m.dictionary = ?" in sqls

    def test_empty_facets_are_skipped(self):
        f = build_filters(SearchQuery(categories=[], origins=["", "  "]))
        assert len(f.conditions) == 1

    def test_letters_lowercased(self):
        f = build_filters(SearchQuery(letters=["A"]))
        assert f.conditions[1].params == ("a",)

    def test_origin_is_case_insensitive_substring(self):
        f = build_filters(SearchQuery(origins=["Latín"]))
        cond = f.conditions[1]
        assert "casefold(m.origin) LIKE" in cond.sql
        assert cond.params == ("%latín%",)

    def test_markers_map_to_columns(self):
        f = build_filters(SearchQuery(markers={
            "style_markers": ["formal", "jerga"],
            "frequency_markers": ["frecuente"],
        }))
        sqls = [c.sql for c in f.conditions]
        assert "m.style = ? OR m.style = ?" in sqls
        assert "m.frequency = ?" in sqls

    def test_unknown_marker_key_ignored(self):
        f = build_filters(SearchQuery(markers={"colour_markers": ["red"]}))
        assert len(f.conditions) == 1

    def test_assignees(self):
        f = build_filters(SearchQuery(assigned_to=["4", "nope"]))
        cond = f.conditions[1]
        assert cond.sql == "e.assigned_to = ?"
        assert cond.params == (4,)

    def test_where_clause_joins_with_and(self):
        f = build_filters(SearchQuery(letters=["a"], categories=["f"]))
        sql, params = f.where_clause()
        assert sql == "(e.status = ?) AND (e.letter = ?) AND (m.grammar_category = ?)"
        assert params == ["published", "a", "f"]

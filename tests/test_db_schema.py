"""Tests for schema versioning of dictionary databases."""

import sqlite3

import pytest

from dictionary_search import DictionaryEditor
from dictionary_search.db import SCHEMA_VERSION, check_schema_version, connect, init_db
from dictionary_search.exceptions import DatabaseError


def _versioned(version):
    conn = sqlite3.connect(":memory:")
    conn.execute("CREATE TABLE meta (key TEXT, value TEXT)")
    conn.execute("INSERT INTO meta (key, value) VALUES ('schema_version', ?)", (version,))
    return conn


class TestSchemaVersion:

    def test_incompatible_version(self):
        conn = _versioned("99.9")
        with pytest.raises(
            DatabaseError,
            match=rf"Incompatible schema version: 99.9 \(expected {SCHEMA_VERSION}\)",
        ):
            check_schema_version(conn)
        conn.close()

    def test_uninitialized_database_passes(self):
        """No meta table yet: nothing to check."""
        conn = sqlite3.connect(":memory:")
        check_schema_version(conn)
        conn.close()

    def test_meta_without_version_passes(self):
        conn = sqlite3.connect(":memory:")
        conn.execute("CREATE TABLE meta (key TEXT, value TEXT)")
        check_schema_version(conn)
        conn.close()

    def test_compatible_version(self):
        conn = _versioned(SCHEMA_VERSION)
        check_schema_version(conn)
        conn.close()

    def test_fresh_database_is_compatible(self):
        conn = connect(":memory:")
        init_db(conn)
        check_schema_version(conn)
        tables = {
            r[0] for r in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")
        }
        assert {"entries", "meanings", "examples", "edit_history", "meta"} <= tables
        conn.close()

    def test_editor_refuses_incompatible_file(self, tmp_path):
        path = tmp_path / "old.db"
        conn = sqlite3.connect(path)
        conn.execute("CREATE TABLE meta (key TEXT, value TEXT)")
        conn.execute("INSERT INTO meta (key, value) VALUES ('schema_version', '0.1')")
        conn.commit()
        conn.close()

        with pytest.raises(DatabaseError):
            DictionaryEditor(path)

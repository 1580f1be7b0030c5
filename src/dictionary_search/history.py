"""Edit history recording and querying for dictionary entries."""

from __future__ import annotations

import json
import sqlite3

from dictionary_search.models import EditOperation, EditRecord


def record_create(
    conn: sqlite3.Connection,
    entry_id: int,
    new_value: dict | None = None,
) -> None:
    """Record a CREATE operation in edit history."""
    conn.execute(
        "INSERT INTO edit_history (entry_id, operation, new_value) "
        "VALUES (?, 'CREATE', ?)",
        (entry_id, json.dumps(new_value) if new_value else None),
    )


def record_update(
    conn: sqlite3.Connection,
    entry_id: int,
    field_name: str,
    old_value: str | int | float | bool | None,
    new_value: str | int | float | bool | None,
) -> None:
    """Record an UPDATE operation in edit history."""
    conn.execute(
        "INSERT INTO edit_history "
        "(entry_id, field_name, operation, old_value, new_value) "
        "VALUES (?, ?, 'UPDATE', ?, ?)",
        (entry_id, field_name, json.dumps(old_value), json.dumps(new_value)),
    )


def record_delete(
    conn: sqlite3.Connection,
    entry_id: int,
    old_value: dict | None = None,
) -> None:
    """Record a DELETE operation in edit history."""
    conn.execute(
        "INSERT INTO edit_history (entry_id, operation, old_value) "
        "VALUES (?, 'DELETE', ?)",
        (entry_id, json.dumps(old_value) if old_value else None),
    )


def query_history(
    conn: sqlite3.Connection,
    *,
    entry_id: int | None = None,
    since: str | None = None,
    operation: str | EditOperation | None = None,
) -> list[EditRecord]:
    """Query edit history with optional filters, oldest first."""
    clauses: list[str] = []
    params: list[str | int] = []

    if entry_id is not None:
        clauses.append("entry_id = ?")
        params.append(entry_id)
    if since is not None:
        clauses.append("timestamp > ?")
        params.append(since)
    if operation is not None:
        clauses.append("operation = ?")
        params.append(EditOperation(operation).value)

    where = " AND ".join(clauses) if clauses else "1=1"
    sql = (
        f"SELECT rowid, * FROM edit_history WHERE {where} "
        "ORDER BY timestamp ASC, rowid ASC"
    )

    rows = conn.execute(sql, params).fetchall()
    return [
        EditRecord(
            id=row["rowid"],
            entry_id=row["entry_id"],
            field_name=row["field_name"],
            operation=row["operation"],
            old_value=row["old_value"],
            new_value=row["new_value"],
            timestamp=row["timestamp"],
        )
        for row in rows
    ]

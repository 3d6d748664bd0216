"""Audit log repository - append-only trail of significant actions.

Uses raw SQL with psycopg2 (no ORM). Rows are never updated or deleted by
the application.
"""

import re
from dataclasses import dataclass
from typing import Any

from psycopg2.extensions import cursor as PgCursor

from frontdesk.infra.db import fetchall, fetchone

_ACTION_TYPE_PATTERN = re.compile(r"^[A-Z_]+$")

MAX_DESCRIPTION_LENGTH = 1000


@dataclass(frozen=True)
class AuditEntry:
    """An audit record about to be written.

    Attributes:
        action_type: Uppercase tag, e.g. GUEST_MERGE.
        target_table: Table the action applies to.
        record_id: Primary key of the affected row.
        change_description: Human-readable summary.
        user_id: Actor that performed the action.
    """

    action_type: str
    target_table: str
    record_id: str | None
    change_description: str
    user_id: str | None

    def __post_init__(self) -> None:
        if not _ACTION_TYPE_PATTERN.match(self.action_type) or len(self.action_type) > 50:
            raise ValueError("Action type must be uppercase with underscores")
        if not self.target_table or len(self.target_table) > 50:
            raise ValueError("Target table is required")
        if not self.change_description or len(self.change_description) > MAX_DESCRIPTION_LENGTH:
            raise ValueError("Change description must be 1-1000 characters")


def append_audit_entry(cur: PgCursor, entry: AuditEntry) -> int:
    """Insert an audit entry.

    Returns:
        Id of the new audit row.
    """
    row = fetchone(
        cur,
        """
        INSERT INTO audit_log (action_type, target_table, record_id, change_description, user_id)
        VALUES (%s, %s, %s, %s, %s)
        RETURNING id
        """,
        (
            entry.action_type,
            entry.target_table,
            entry.record_id,
            entry.change_description,
            entry.user_id,
        ),
    )
    return row[0]


def list_audit_entries(
    cur: PgCursor,
    *,
    record_id: str | None = None,
    action_type: str | None = None,
    limit: int = 100,
) -> list[dict[str, Any]]:
    """List audit entries newest first, optionally filtered."""
    conditions: list[str] = []
    params: list = []

    if record_id:
        conditions.append("record_id = %s")
        params.append(record_id)
    if action_type:
        conditions.append("action_type = %s")
        params.append(action_type)

    where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
    params.append(limit)

    rows = fetchall(
        cur,
        f"""
        SELECT id, action_type, target_table, record_id, change_description, user_id, timestamp
        FROM audit_log
        {where}
        ORDER BY timestamp DESC
        LIMIT %s
        """,  # noqa: S608
        params,
    )
    return [
        {
            "id": row[0],
            "action_type": row[1],
            "target_table": row[2],
            "record_id": str(row[3]) if row[3] else None,
            "change_description": row[4],
            "user_id": str(row[5]) if row[5] else None,
            "timestamp": row[6].isoformat(),
        }
        for row in rows
    ]

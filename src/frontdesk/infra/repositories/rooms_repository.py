"""Rooms repository - room inventory for the single hotel.

Uses raw SQL with psycopg2 (no ORM).
"""

from decimal import Decimal
from typing import Any

from psycopg2.extensions import cursor as PgCursor

from frontdesk.infra.db import fetchall, fetchone

_ROOM_COLUMNS = "id, room_number, room_type, rate, is_active, created_at"


def _row_to_room(row: tuple) -> dict[str, Any]:
    return {
        "id": str(row[0]),
        "room_number": row[1],
        "room_type": row[2],
        "rate": str(row[3]),
        "is_active": row[4],
        "created_at": row[5].isoformat(),
    }


def list_rooms(cur: PgCursor, *, active_only: bool = False) -> list[dict[str, Any]]:
    """List rooms ordered by room_number."""
    where = " WHERE is_active" if active_only else ""
    rows = fetchall(cur, f"SELECT {_ROOM_COLUMNS} FROM rooms{where} ORDER BY room_number")  # noqa: S608
    return [_row_to_room(r) for r in rows]


def insert_room(
    cur: PgCursor,
    *,
    room_number: str,
    room_type: str,
    rate: Decimal,
    is_active: bool = True,
) -> dict[str, Any]:
    """Insert a room and return the stored row."""
    row = fetchone(
        cur,
        f"""
        INSERT INTO rooms (room_number, room_type, rate, is_active)
        VALUES (%s, %s, %s, %s)
        RETURNING {_ROOM_COLUMNS}
        """,  # noqa: S608
        (room_number, room_type, rate, is_active),
    )
    return _row_to_room(row)


def update_room(cur: PgCursor, room_id: str, fields: dict[str, Any]) -> dict[str, Any] | None:
    """Partially update a room.

    Accepted keys: room_number, room_type, rate, is_active.

    Returns:
        Updated room dict, or None if the room does not exist.
    """
    allowed = ("room_number", "room_type", "rate", "is_active")
    columns = [name for name in allowed if name in fields]
    if not columns:
        raise ValueError("No fields to update")

    sets = ", ".join(f"{name} = %s" for name in columns)
    params = [fields[name] for name in columns] + [room_id]
    row = fetchone(
        cur,
        f"UPDATE rooms SET {sets} WHERE id = %s RETURNING {_ROOM_COLUMNS}",  # noqa: S608
        params,
    )
    return _row_to_room(row) if row else None


def delete_room(cur: PgCursor, room_id: str) -> bool:
    """Delete a room. Raises ForeignKeyViolation if reservations reference it."""
    row = fetchone(cur, "DELETE FROM rooms WHERE id = %s RETURNING id", (room_id,))
    return row is not None

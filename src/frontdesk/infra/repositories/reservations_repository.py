"""Reservations repository - persistence for reservation records.

Uses raw SQL with psycopg2 (no ORM). Reads return the reservation joined
with its guest and room so the calendar view needs a single query.
"""

from datetime import date
from typing import Any

from psycopg2.extensions import cursor as PgCursor

from frontdesk.infra.db import fetchall, fetchone

VALID_STATUSES = ("pending", "confirmed", "checked_in", "checked_out", "cancelled")

_JOINED_SELECT = """
    SELECT r.id, r.guest_id, r.room_id, r.start_date, r.end_date, r.status, r.created_at,
           g.full_name, g.email,
           rm.room_number, rm.room_type
    FROM reservations r
    JOIN guests g ON g.id = r.guest_id
    JOIN rooms rm ON rm.id = r.room_id
"""


def _row_to_reservation(row: tuple) -> dict[str, Any]:
    return {
        "id": str(row[0]),
        "guest_id": str(row[1]),
        "room_id": str(row[2]),
        "start_date": row[3].isoformat(),
        "end_date": row[4].isoformat(),
        "status": row[5],
        "created_at": row[6].isoformat(),
        "guest": {"id": str(row[1]), "full_name": row[7], "email": row[8]},
        "room": {"id": str(row[2]), "room_number": row[9], "room_type": row[10]},
    }


def get_reservation(cur: PgCursor, reservation_id: str) -> dict[str, Any] | None:
    """Get a reservation (with guest and room) by id."""
    row = fetchone(cur, _JOINED_SELECT + " WHERE r.id = %s", (reservation_id,))
    return _row_to_reservation(row) if row else None


def list_reservations(
    cur: PgCursor,
    *,
    from_date: date | None = None,
    to_date: date | None = None,
) -> list[dict[str, Any]]:
    """List reservations ordered by start_date.

    Args:
        cur: Database cursor.
        from_date: Keep reservations starting on or after this date.
        to_date: Keep reservations ending on or before this date.
    """
    conditions: list[str] = []
    params: list = []

    if from_date:
        conditions.append("r.start_date >= %s")
        params.append(from_date)
    if to_date:
        conditions.append("r.end_date <= %s")
        params.append(to_date)

    where = f" WHERE {' AND '.join(conditions)}" if conditions else ""
    rows = fetchall(cur, _JOINED_SELECT + where + " ORDER BY r.start_date", params)
    return [_row_to_reservation(r) for r in rows]


def insert_reservation(
    cur: PgCursor,
    *,
    guest_id: str,
    room_id: str,
    start_date: date,
    end_date: date,
    status: str = "pending",
) -> str:
    """Insert a reservation.

    Returns:
        UUID string of the new reservation.

    Raises:
        ValueError: If status is unknown or end_date is not after start_date.
    """
    if status not in VALID_STATUSES:
        raise ValueError(f"Invalid status: {status}. Must be one of {VALID_STATUSES}")
    if end_date <= start_date:
        raise ValueError("End date must be after start date")

    row = fetchone(
        cur,
        """
        INSERT INTO reservations (guest_id, room_id, start_date, end_date, status)
        VALUES (%s, %s, %s, %s, %s)
        RETURNING id
        """,
        (guest_id, room_id, start_date, end_date, status),
    )
    return str(row[0])


def update_reservation(cur: PgCursor, reservation_id: str, fields: dict[str, Any]) -> bool:
    """Partially update a reservation.

    Accepted keys: guest_id, room_id, start_date, end_date, status.

    Returns:
        True if the reservation exists and was updated.
    """
    allowed = ("guest_id", "room_id", "start_date", "end_date", "status")
    columns = [name for name in allowed if name in fields]
    if not columns:
        raise ValueError("No fields to update")
    if "status" in fields and fields["status"] not in VALID_STATUSES:
        raise ValueError(f"Invalid status: {fields['status']}. Must be one of {VALID_STATUSES}")

    sets = ", ".join(f"{name} = %s" for name in columns)
    params = [fields[name] for name in columns] + [reservation_id]
    row = fetchone(
        cur,
        f"UPDATE reservations SET {sets} WHERE id = %s RETURNING id",  # noqa: S608
        params,
    )
    return row is not None


def set_reservation_status(cur: PgCursor, reservation_id: str, status: str) -> bool:
    """Set the lifecycle status of a reservation (check-in, check-out, ...)."""
    return update_reservation(cur, reservation_id, {"status": status})


def delete_reservation(cur: PgCursor, reservation_id: str) -> bool:
    """Delete a reservation. Returns False if it did not exist."""
    row = fetchone(cur, "DELETE FROM reservations WHERE id = %s RETURNING id", (reservation_id,))
    return row is not None


def reassign_guest(cur: PgCursor, *, from_guest_id: str, to_guest_id: str) -> int:
    """Move every reservation of one guest to another.

    A single UPDATE scoped by the source guest id; matching zero rows is not
    an error.

    Returns:
        Number of reservations reassigned.
    """
    cur.execute(
        "UPDATE reservations SET guest_id = %s WHERE guest_id = %s",
        (to_guest_id, from_guest_id),
    )
    return cur.rowcount

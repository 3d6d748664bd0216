"""Guests repository - persistence for guest records.

Uses raw SQL with psycopg2 (no ORM). Every function takes a cursor; the
caller owns the transaction (with txn() as cur:).

Email uniqueness is a business rule only.  The schema does not enforce it,
which is why duplicate guests can appear and have to be merged.
"""

from typing import Any

from psycopg2.extensions import cursor as PgCursor

from frontdesk.infra.db import fetchall, fetchone

# Reservation statuses that no longer block deleting a guest
TERMINAL_STATUSES = ("checked_out", "cancelled")

GUEST_COLUMNS = "id, full_name, email, phone_number, address, created_at"

# Columns that update_guest_fields may touch
UPDATABLE_FIELDS = ("full_name", "email", "phone_number", "address")


def row_to_guest(row: tuple) -> dict[str, Any]:
    """Map a row selected with GUEST_COLUMNS to a guest dict."""
    return {
        "id": str(row[0]),
        "full_name": row[1],
        "email": row[2],
        "phone_number": row[3],
        "address": row[4],
        "created_at": row[5].isoformat() if hasattr(row[5], "isoformat") else str(row[5]),
    }


def find_guest(cur: PgCursor, guest_id: str, *, lock: bool = False) -> dict[str, Any] | None:
    """Get a guest by id.

    Args:
        cur: Database cursor.
        guest_id: Guest UUID.
        lock: If True, lock the row FOR UPDATE until the transaction ends.

    Returns:
        Guest dict or None if not found.
    """
    suffix = " FOR UPDATE" if lock else ""
    row = fetchone(
        cur,
        f"SELECT {GUEST_COLUMNS} FROM guests WHERE id = %s{suffix}",  # noqa: S608
        (guest_id,),
    )
    return row_to_guest(row) if row else None


def list_guests(cur: PgCursor, *, search: str | None = None, limit: int = 500) -> list[dict[str, Any]]:
    """List guests ordered by full_name, optionally filtered.

    Args:
        cur: Database cursor.
        search: Case-insensitive substring matched against full_name and email.
        limit: Maximum rows returned.
    """
    pattern = f"%{search}%" if search else None
    rows = fetchall(
        cur,
        f"""
        SELECT {GUEST_COLUMNS}
        FROM guests
        WHERE %s::text IS NULL
           OR full_name ILIKE %s
           OR email     ILIKE %s
        ORDER BY full_name
        LIMIT %s
        """,  # noqa: S608
        (search, pattern, pattern, limit),
    )
    return [row_to_guest(r) for r in rows]


def search_guests_by_name(cur: PgCursor, term: str, *, limit: int = 10) -> list[dict[str, Any]]:
    """Quick lookup by partial name (guest pickers)."""
    rows = fetchall(
        cur,
        f"SELECT {GUEST_COLUMNS} FROM guests WHERE full_name ILIKE %s ORDER BY full_name LIMIT %s",  # noqa: S608
        (f"%{term}%", limit),
    )
    return [row_to_guest(r) for r in rows]


def search_guests_by_email(cur: PgCursor, term: str, *, limit: int = 10) -> list[dict[str, Any]]:
    """Quick lookup by partial email (guest pickers)."""
    rows = fetchall(
        cur,
        f"SELECT {GUEST_COLUMNS} FROM guests WHERE email ILIKE %s ORDER BY full_name LIMIT %s",  # noqa: S608
        (f"%{term}%", limit),
    )
    return [row_to_guest(r) for r in rows]


def insert_guest(
    cur: PgCursor,
    *,
    full_name: str,
    email: str,
    phone_number: str | None = None,
    address: str | None = None,
) -> dict[str, Any]:
    """Insert a guest and return the stored row."""
    row = fetchone(
        cur,
        f"""
        INSERT INTO guests (full_name, email, phone_number, address)
        VALUES (%s, %s, %s, %s)
        RETURNING {GUEST_COLUMNS}
        """,  # noqa: S608
        (full_name, email, phone_number, address),
    )
    return row_to_guest(row)


def update_guest_fields(cur: PgCursor, guest_id: str, fields: dict[str, Any]) -> dict[str, Any] | None:
    """Overwrite the given profile fields of a guest.

    Only keys listed in UPDATABLE_FIELDS are written; values are stored as
    given (None clears the column).

    Args:
        cur: Database cursor.
        guest_id: Guest UUID.
        fields: Mapping of column name to new value.

    Returns:
        Updated guest dict, or None if the guest does not exist.

    Raises:
        ValueError: If fields is empty or names an unknown column.
    """
    unknown = set(fields) - set(UPDATABLE_FIELDS)
    if unknown:
        raise ValueError(f"Unknown guest fields: {sorted(unknown)}")
    if not fields:
        raise ValueError("No fields to update")

    columns = [name for name in UPDATABLE_FIELDS if name in fields]
    sets = ", ".join(f"{name} = %s" for name in columns)
    params = [fields[name] for name in columns] + [guest_id]

    row = fetchone(
        cur,
        f"UPDATE guests SET {sets} WHERE id = %s RETURNING {GUEST_COLUMNS}",  # noqa: S608 – whitelisted columns only
        params,
    )
    return row_to_guest(row) if row else None


def delete_guest(cur: PgCursor, guest_id: str) -> bool:
    """Delete a guest by id.

    Returns:
        True if a row was deleted, False if the guest did not exist.
    """
    row = fetchone(cur, "DELETE FROM guests WHERE id = %s RETURNING id", (guest_id,))
    return row is not None


def guest_has_active_reservations(cur: PgCursor, guest_id: str) -> bool:
    """Check whether a guest holds any reservation in a non-terminal status."""
    row = fetchone(
        cur,
        """
        SELECT 1 FROM reservations
        WHERE guest_id = %s
          AND status <> ALL(%s::reservation_status[])
        LIMIT 1
        """,
        (guest_id, list(TERMINAL_STATUSES)),
    )
    return row is not None

"""Owner profile and hotel settings - first-run setup state.

Uses raw SQL with psycopg2 (no ORM). The system serves a single hotel with
a single owner: owner_profile holds at most one row and hotel_settings is a
singleton keyed by id = 1.
"""

from typing import Any

from psycopg2.extensions import cursor as PgCursor

from frontdesk.infra.db import fetchone


def owner_exists(cur: PgCursor) -> bool:
    """Check whether the hotel owner has been registered."""
    return fetchone(cur, "SELECT 1 FROM owner_profile LIMIT 1") is not None


def get_owner_profile(cur: PgCursor, user_id: str | None = None) -> dict[str, Any] | None:
    """Get the owner profile, optionally requiring a specific user id."""
    if user_id is None:
        row = fetchone(cur, "SELECT id, full_name, created_at FROM owner_profile LIMIT 1")
    else:
        row = fetchone(
            cur,
            "SELECT id, full_name, created_at FROM owner_profile WHERE id = %s",
            (user_id,),
        )
    if row is None:
        return None
    return {"id": str(row[0]), "full_name": row[1], "created_at": row[2].isoformat()}


def create_owner_if_none_exists(cur: PgCursor, *, user_id: str, full_name: str) -> bool:
    """Register the owner unless one already exists.

    Takes a transaction-scoped advisory lock so two concurrent setup
    requests cannot both see an empty table.

    Returns:
        True if the owner was created, False if an owner already existed.
    """
    cur.execute("SELECT pg_advisory_xact_lock(hashtext('owner_profile'))")
    if owner_exists(cur):
        return False
    cur.execute(
        "INSERT INTO owner_profile (id, full_name) VALUES (%s, %s)",
        (user_id, full_name),
    )
    return True


def get_hotel_settings(cur: PgCursor) -> dict[str, Any] | None:
    """Get the singleton hotel settings row."""
    row = fetchone(
        cur,
        "SELECT name, timezone, current_app_version FROM hotel_settings WHERE id = 1",
    )
    if row is None:
        return None
    return {"name": row[0], "timezone": row[1], "current_app_version": row[2]}


def upsert_hotel_settings(
    cur: PgCursor,
    *,
    name: str,
    timezone: str,
    current_app_version: str | None = None,
) -> dict[str, Any]:
    """Create or replace the singleton hotel settings row."""
    cur.execute(
        """
        INSERT INTO hotel_settings (id, name, timezone, current_app_version)
        VALUES (1, %s, %s, %s)
        ON CONFLICT (id) DO UPDATE
        SET name = EXCLUDED.name,
            timezone = EXCLUDED.timezone,
            current_app_version = EXCLUDED.current_app_version
        """,
        (name, timezone, current_app_version),
    )
    return {"name": name, "timezone": timezone, "current_app_version": current_app_version}

"""Payments repository - append-only payment records per reservation.

Uses raw SQL with psycopg2 (no ORM). Payments are logged manually at the
desk; there is no gateway, no status and no update/delete path.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from psycopg2.extensions import cursor as PgCursor

from frontdesk.infra.db import fetchall, fetchone
from frontdesk.infra.time import utc_now

_PAYMENT_COLUMNS = "id, reservation_id, amount, payment_date, payment_method, notes, created_at"


def _row_to_payment(row: tuple) -> dict[str, Any]:
    return {
        "id": str(row[0]),
        "reservation_id": str(row[1]),
        "amount": str(row[2]),
        "payment_date": row[3].isoformat(),
        "payment_method": row[4],
        "notes": row[5],
        "created_at": row[6].isoformat(),
    }


def insert_payment(
    cur: PgCursor,
    *,
    reservation_id: str,
    amount: Decimal,
    payment_date: datetime | None = None,
    payment_method: str | None = None,
    notes: str | None = None,
) -> dict[str, Any]:
    """Record a payment against a reservation.

    Args:
        cur: Database cursor.
        reservation_id: Reservation UUID.
        amount: Positive amount with at most 2 decimal places.
        payment_date: When the payment was taken. Defaults to now (UTC).
        payment_method: Free text (cash, card, transfer...).
        notes: Free text.

    Returns:
        The stored payment dict.

    Raises:
        ValueError: If amount is not positive.
    """
    if amount <= 0:
        raise ValueError("Amount must be positive")

    row = fetchone(
        cur,
        f"""
        INSERT INTO payments (reservation_id, amount, payment_date, payment_method, notes)
        VALUES (%s, %s, %s, %s, %s)
        RETURNING {_PAYMENT_COLUMNS}
        """,  # noqa: S608
        (reservation_id, amount, payment_date or utc_now(), payment_method, notes),
    )
    return _row_to_payment(row)


def list_payments_for_reservation(cur: PgCursor, reservation_id: str) -> list[dict[str, Any]]:
    """List payments of a reservation ordered by payment_date."""
    rows = fetchall(
        cur,
        f"""
        SELECT {_PAYMENT_COLUMNS}
        FROM payments
        WHERE reservation_id = %s
        ORDER BY payment_date
        """,  # noqa: S608
        (reservation_id,),
    )
    return [_row_to_payment(r) for r in rows]

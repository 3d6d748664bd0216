"""PostgreSQL access for the front desk (psycopg2, raw SQL).

Repositories receive a cursor; routes own the transaction boundary:

    with txn() as cur:
        guest = guests_repository.find_guest(cur, guest_id)

- get_conn(): new connection from DATABASE_URL (+ DB_PASSWORD)
- txn(): commit on success, roll back on error
- savepoint(): isolate a best-effort write inside an open txn
- fetchone/fetchall: execute-and-fetch shorthands
"""

import os
import re
from contextlib import contextmanager
from typing import Any, Iterator, Sequence
from urllib.parse import urlparse

import psycopg2
from psycopg2.extensions import connection as PgConnection, cursor as PgCursor

Params = Sequence[Any] | None

_SAVEPOINT_NAME = re.compile(r"^[a-z_][a-z0-9_]*$")


def _dsn_has_password(dsn: str) -> bool:
    """True if a URL or libpq key=value DSN already carries a password."""
    if "://" in dsn:
        return bool(urlparse(dsn).password)
    return any(part.startswith("password=") for part in dsn.split())


def get_conn() -> PgConnection:
    """Open a connection to the front-desk database.

    DATABASE_URL may be a URL or a libpq DSN.  If it has no password and
    DB_PASSWORD is set, that password is used, so the secret can be
    mounted separately from the DSN.

    Raises:
        RuntimeError: DATABASE_URL is unset.
        psycopg2.Error: The server refused or could not be reached.
    """
    dsn = os.environ.get("DATABASE_URL")
    if not dsn:
        raise RuntimeError("DATABASE_URL environment variable not set")

    kwargs: dict[str, str] = {}
    password = os.environ.get("DB_PASSWORD")
    if password and not _dsn_has_password(dsn):
        kwargs["password"] = password
    return psycopg2.connect(dsn, **kwargs)


@contextmanager
def txn(conn: PgConnection | None = None) -> Iterator[PgCursor]:
    """Run the enclosed block as one transaction.

    Args:
        conn: Connection to reuse.  When omitted a connection is opened for
              the block and closed afterwards.

    Yields:
        Cursor bound to the transaction.
    """
    borrowed = conn is not None
    if conn is None:
        conn = get_conn()

    try:
        with conn.cursor() as cur:
            yield cur
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        if not borrowed:
            conn.close()


@contextmanager
def savepoint(cur: PgCursor, name: str = "sp") -> Iterator[PgCursor]:
    """Nest a SAVEPOINT inside the cursor's open transaction.

    A failure inside the block undoes only the block's statements and is
    re-raised; the surrounding transaction can still commit.

    Raises:
        ValueError: name is not a lowercase SQL identifier.
    """
    if not _SAVEPOINT_NAME.match(name):
        raise ValueError(f"Invalid savepoint name: {name}")

    cur.execute(f"SAVEPOINT {name}")
    try:
        yield cur
    except Exception:
        cur.execute(f"ROLLBACK TO SAVEPOINT {name}")
        raise
    cur.execute(f"RELEASE SAVEPOINT {name}")


def fetchone(cur: PgCursor, query: str, params: Params = None) -> tuple[Any, ...] | None:
    """Execute a query (%s placeholders) and return its first row or None."""
    cur.execute(query, params)
    return cur.fetchone()


def fetchall(cur: PgCursor, query: str, params: Params = None) -> list[tuple[Any, ...]]:
    """Execute a query (%s placeholders) and return every row."""
    cur.execute(query, params)
    return cur.fetchall()

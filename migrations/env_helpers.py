"""Database URL helpers for Alembic migrations.

Kept apart from env.py so they can be tested without an alembic context.
The runtime connects with psycopg2 and accepts either a URL or a libpq
key=value DSN in DATABASE_URL; Alembic needs a SQLAlchemy URL, so both
forms are normalised here.
"""

from __future__ import annotations

import os

from psycopg2.extensions import parse_dsn
from sqlalchemy.engine import URL, make_url

DRIVERNAME = "postgresql+psycopg2"

# Schemes accepted in DATABASE_URL that mean plain PostgreSQL
_POSTGRES_SCHEMES = ("postgres", "postgresql", DRIVERNAME)


def _fallback_password(password: str | None) -> str | None:
    """DB_PASSWORD fills in a password missing from the DSN."""
    return password or os.environ.get("DB_PASSWORD") or None


def libpq_dsn_to_url(dsn: str) -> URL:
    """Convert a libpq key=value DSN to a SQLAlchemy URL.

    A host starting with "/" is a Unix socket directory (Cloud SQL) and is
    passed as the ?host= query parameter.
    """
    params = parse_dsn(dsn)
    host = params.get("host") or "localhost"
    socket = host.startswith("/")

    return URL.create(
        DRIVERNAME,
        username=params.get("user"),
        password=_fallback_password(params.get("password")),
        host=None if socket else host,
        port=None if socket else int(params.get("port") or 5432),
        database=params.get("dbname"),
        query={"host": host} if socket else {},
    )


def _normalize_url(raw: str) -> URL:
    url = make_url(raw)
    if url.drivername not in _POSTGRES_SCHEMES:
        raise RuntimeError(f"Unsupported DATABASE_URL scheme: {url.drivername}")
    return url.set(drivername=DRIVERNAME, password=_fallback_password(url.password))


def get_database_url() -> str:
    """DATABASE_URL as a SQLAlchemy URL string with the psycopg2 driver.

    Raises:
        RuntimeError: If DATABASE_URL is missing or not PostgreSQL.
    """
    raw = os.environ.get("DATABASE_URL")
    if not raw:
        raise RuntimeError("DATABASE_URL is required to run migrations")

    url = _normalize_url(raw) if "://" in raw else libpq_dsn_to_url(raw)
    return url.render_as_string(hide_password=False)

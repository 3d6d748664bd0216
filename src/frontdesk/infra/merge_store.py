"""PostgreSQL-backed store for the guest merge pipeline.

Two modes, selected with GUEST_MERGE_MODE:

- atomic (default): every step shares one cursor inside a single txn().
  Guests are read FOR UPDATE, the audit insert runs in a SAVEPOINT so a
  failed audit write rolls back only itself, and any hard failure rolls
  back all steps already applied.
- stepwise: each step opens and commits its own txn().  A failure after
  the reassignment leaves earlier steps applied.
"""

from __future__ import annotations

import os
from contextlib import contextmanager
from typing import Any, Iterator, Literal

from psycopg2.extensions import cursor as PgCursor

from frontdesk.infra.db import savepoint, txn
from frontdesk.infra.repositories import audit_repository, guests_repository, reservations_repository
from frontdesk.infra.repositories.audit_repository import AuditEntry

MergeMode = Literal["atomic", "stepwise"]

_VALID_MODES = ("atomic", "stepwise")


def get_merge_mode() -> MergeMode:
    """Read GUEST_MERGE_MODE from the environment (default: atomic).

    Raises:
        RuntimeError: If the variable holds an unknown mode.
    """
    mode = os.environ.get("GUEST_MERGE_MODE", "atomic").strip().lower()
    if mode not in _VALID_MODES:
        raise RuntimeError(f"GUEST_MERGE_MODE must be one of {_VALID_MODES}, got {mode!r}")
    return mode  # type: ignore[return-value]


class PgGuestMergeStore:
    """GuestMergeStore over the guests, reservations and audit_log tables.

    Args:
        cur: Cursor of an open transaction (atomic mode).  When None, each
             call runs in its own short transaction (stepwise mode).
    """

    def __init__(self, cur: PgCursor | None = None) -> None:
        self._cur = cur

    @property
    def atomic(self) -> bool:
        return self._cur is not None

    @contextmanager
    def _cursor(self) -> Iterator[PgCursor]:
        if self._cur is not None:
            yield self._cur
        else:
            with txn() as cur:
                yield cur

    def find_guest(self, guest_id: str) -> dict[str, Any] | None:
        with self._cursor() as cur:
            return guests_repository.find_guest(cur, guest_id, lock=self.atomic)

    def reassign_reservations(self, from_guest_id: str, to_guest_id: str) -> int:
        with self._cursor() as cur:
            return reservations_repository.reassign_guest(
                cur, from_guest_id=from_guest_id, to_guest_id=to_guest_id
            )

    def update_guest_fields(self, guest_id: str, fields: dict[str, Any]) -> dict[str, Any] | None:
        with self._cursor() as cur:
            return guests_repository.update_guest_fields(cur, guest_id, fields)

    def append_audit_entry(self, entry: AuditEntry) -> None:
        with self._cursor() as cur:
            if self.atomic:
                with savepoint(cur, "merge_audit"):
                    audit_repository.append_audit_entry(cur, entry)
            else:
                audit_repository.append_audit_entry(cur, entry)

    def delete_guest(self, guest_id: str) -> bool:
        with self._cursor() as cur:
            return guests_repository.delete_guest(cur, guest_id)

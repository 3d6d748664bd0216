"""Audit log (read-only).

GET /audit-log?record_id=...&action_type=...   → newest first (owner)
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from frontdesk.api.access import OwnerContext, require_owner
from frontdesk.infra.db import txn
from frontdesk.infra.repositories.audit_repository import list_audit_entries

router = APIRouter(prefix="/audit-log", tags=["audit"])


@router.get("")
def list_audit_log(
    record_id: str | None = Query(None),
    action_type: str | None = Query(None, pattern=r"^[A-Z_]+$"),
    limit: int = Query(100, ge=1, le=500),
    ctx: OwnerContext = Depends(require_owner),
) -> list[dict]:
    with txn() as cur:
        return list_audit_entries(cur, record_id=record_id, action_type=action_type, limit=limit)

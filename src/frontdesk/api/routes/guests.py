"""Guests endpoints for the front desk.

GET    /guests?search=...            → list
GET    /guests/search?name=|email=   → quick lookup (guest pickers)
GET    /guests/{id}                  → read
POST   /guests                       → create
PATCH  /guests/{id}                  → update
DELETE /guests/{id}                  → delete (409 while reservations are active)
POST   /guests/merge                 → merge a duplicate into the kept guest

All endpoints require the hotel owner.
"""

from __future__ import annotations

from typing import Any

import psycopg2
from fastapi import APIRouter, Depends, HTTPException, Path, Query
from fastapi.responses import JSONResponse
from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from frontdesk.api.access import OwnerContext, require_owner
from frontdesk.domain.guest_merge import GuestMergeError, merge_guests
from frontdesk.domain.guests import GuestValidationError, normalize_guest_fields, normalize_guest_update
from frontdesk.infra.db import txn
from frontdesk.infra.merge_store import PgGuestMergeStore, get_merge_mode
from frontdesk.infra.repositories import guests_repository
from frontdesk.observability.correlation import get_correlation_id
from frontdesk.observability.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/guests", tags=["guests"])


# ── Schemas ───────────────────────────────────────────────────────────────────


class CreateGuestRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    full_name: str
    email: str
    phone_number: str | None = None
    address: str | None = None


class UpdateGuestRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    full_name: str | None = None
    email: str | None = None
    phone_number: str | None = None
    address: str | None = None


class MergeGuestsRequest(BaseModel):
    """Body sent by the merge dialog.

    Fields are optional at the schema level so that missing values are
    reported as a 400 merge error rather than a 422 schema error.
    """

    target_guest_id: str | None = Field(None, alias="targetGuestId")
    source_guest_id: str | None = Field(None, alias="sourceGuestId")
    merged_data: dict[str, Any] | None = Field(
        None,
        validation_alias=AliasChoices("mergedData", "mergedFields"),
    )


# ── Helpers ───────────────────────────────────────────────────────────────────


def _validation_error(exc: GuestValidationError) -> HTTPException:
    return HTTPException(status_code=422, detail=exc.issues)


def _merge_error_response(exc: GuestMergeError) -> JSONResponse:
    content: dict[str, Any] = {"error": exc.message}
    if exc.details:
        content["details"] = exc.details
    return JSONResponse(status_code=exc.status_code, content=content)


# ── GET /guests ───────────────────────────────────────────────────────────────


@router.get("")
def list_guests(
    search: str | None = None,
    ctx: OwnerContext = Depends(require_owner),
) -> list[dict]:
    """List guests ordered by full_name.

    Args:
        search: Case-insensitive substring matched against full_name and email.
    """
    with txn() as cur:
        return guests_repository.list_guests(cur, search=search)


@router.get("/search")
def search_guests(
    name: str | None = Query(None, min_length=1),
    email: str | None = Query(None, min_length=1),
    ctx: OwnerContext = Depends(require_owner),
) -> list[dict]:
    """Up to 10 guests matching a partial name or email."""
    if name is None and email is None:
        raise HTTPException(status_code=400, detail="Provide name or email")

    with txn() as cur:
        if name is not None:
            return guests_repository.search_guests_by_name(cur, name)
        return guests_repository.search_guests_by_email(cur, email)


# ── GET /guests/{guest_id} ────────────────────────────────────────────────────


@router.get("/{guest_id}")
def get_guest(
    guest_id: str = Path(..., description="Guest UUID"),
    ctx: OwnerContext = Depends(require_owner),
) -> dict:
    with txn() as cur:
        guest = guests_repository.find_guest(cur, guest_id)
    if guest is None:
        raise HTTPException(status_code=404, detail="Guest not found")
    return guest


# ── POST /guests ──────────────────────────────────────────────────────────────


@router.post("", status_code=201)
def create_guest(
    body: CreateGuestRequest,
    ctx: OwnerContext = Depends(require_owner),
) -> dict:
    """Create a guest. Email is lowercased, blank optional fields become null."""
    try:
        fields = normalize_guest_fields(body.model_dump())
    except GuestValidationError as exc:
        raise _validation_error(exc)

    with txn() as cur:
        return guests_repository.insert_guest(cur, **fields)


# ── PATCH /guests/{guest_id} ──────────────────────────────────────────────────


@router.patch("/{guest_id}")
def update_guest(
    guest_id: str = Path(..., description="Guest UUID"),
    body: UpdateGuestRequest = ...,
    ctx: OwnerContext = Depends(require_owner),
) -> dict:
    """Update only the fields present in the request body."""
    try:
        fields = normalize_guest_update(body.model_dump(exclude_unset=True))
    except GuestValidationError as exc:
        raise _validation_error(exc)

    with txn() as cur:
        guest = guests_repository.update_guest_fields(cur, guest_id, fields)

    if guest is None:
        raise HTTPException(status_code=404, detail="Guest not found")
    return guest


# ── DELETE /guests/{guest_id} ─────────────────────────────────────────────────


@router.delete("/{guest_id}", status_code=204)
def delete_guest(
    guest_id: str = Path(..., description="Guest UUID"),
    ctx: OwnerContext = Depends(require_owner),
) -> None:
    """Delete a guest.

    Fails with 409 while the guest holds a reservation that is not checked
    out or cancelled; merging is the way to remove such a duplicate.
    """
    with txn() as cur:
        if guests_repository.guest_has_active_reservations(cur, guest_id):
            raise HTTPException(
                status_code=409,
                detail="Guest has active reservations and cannot be deleted",
            )
        deleted = guests_repository.delete_guest(cur, guest_id)

    if not deleted:
        raise HTTPException(status_code=404, detail="Guest not found")


# ── POST /guests/merge ────────────────────────────────────────────────────────


@router.post("/merge")
def merge_guests_endpoint(
    body: MergeGuestsRequest,
    ctx: OwnerContext = Depends(require_owner),
) -> Any:
    """Merge the source guest into the target guest.

    Returns {success, message, targetGuestId, mergedData,
    reassignedReservations} or {error, details?} with 400/401/404/500.
    The caller refreshes its guest list afterwards.
    """
    correlation_id = get_correlation_id()
    mode = get_merge_mode()

    logger.info(
        "merging guests",
        extra={
            "extra_fields": {
                "correlationId": correlation_id,
                "target_guest_id": body.target_guest_id,
                "source_guest_id": body.source_guest_id,
                "mode": mode,
            },
        },
    )

    kwargs = {
        "target_guest_id": body.target_guest_id,
        "source_guest_id": body.source_guest_id,
        "merged_fields": body.merged_data,
        "actor_id": ctx.user.id,
    }

    try:
        if mode == "atomic":
            with txn() as cur:
                result = merge_guests(PgGuestMergeStore(cur), **kwargs)
        else:
            result = merge_guests(PgGuestMergeStore(), **kwargs)
    except GuestMergeError as exc:
        logger.warning(
            "guest merge failed",
            extra={
                "extra_fields": {
                    "correlationId": correlation_id,
                    "status_code": exc.status_code,
                    "error": exc.message,
                    "step": getattr(exc, "step", None),
                },
            },
        )
        return _merge_error_response(exc)
    except psycopg2.Error as exc:
        logger.error(
            "guest merge database error",
            exc_info=True,
            extra={"extra_fields": {"correlationId": correlation_id}},
        )
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "details": str(exc).strip()},
        )

    return {
        "success": True,
        "message": "Guests merged successfully",
        "targetGuestId": result.target_guest_id,
        "mergedData": result.merged_fields,
        "reassignedReservations": result.reassigned_reservations,
    }

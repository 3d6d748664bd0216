"""Rooms endpoint for the front desk.

GET    /rooms            → list (?active=true: bookable rooms only)
POST   /rooms            → create
PATCH  /rooms/{id}       → update
DELETE /rooms/{id}       → delete (409 while reservations reference it, 204)

All endpoints require the hotel owner.
"""

from __future__ import annotations

from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from psycopg2 import errors as pg_errors
from pydantic import BaseModel, ConfigDict, Field

from frontdesk.api.access import OwnerContext, require_owner
from frontdesk.infra.db import txn
from frontdesk.infra.repositories import rooms_repository

router = APIRouter(prefix="/rooms", tags=["rooms"])

_ROOM_NUMBER_PATTERN = r"^[A-Za-z0-9\-]+$"


# ── Schemas ───────────────────────────────────────────────────────────────────


class CreateRoomRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    room_number: str = Field(..., min_length=1, max_length=20, pattern=_ROOM_NUMBER_PATTERN)
    room_type: str = Field(..., min_length=1, max_length=50)
    rate: Decimal = Field(..., gt=0, le=Decimal("999999.99"), decimal_places=2)
    is_active: bool = True


class UpdateRoomRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    room_number: str | None = Field(None, min_length=1, max_length=20, pattern=_ROOM_NUMBER_PATTERN)
    room_type: str | None = Field(None, min_length=1, max_length=50)
    rate: Decimal | None = Field(None, gt=0, le=Decimal("999999.99"), decimal_places=2)
    is_active: bool | None = None


# ── Endpoints ─────────────────────────────────────────────────────────────────


@router.get("")
def list_rooms(
    active: bool = Query(False),
    ctx: OwnerContext = Depends(require_owner),
) -> list[dict]:
    """List rooms ordered by room_number; active=true keeps only bookable rooms."""
    with txn() as cur:
        return rooms_repository.list_rooms(cur, active_only=active)


@router.post("", status_code=201)
def create_room(
    body: CreateRoomRequest,
    ctx: OwnerContext = Depends(require_owner),
) -> dict:
    """Create a room. 409 if the room number is already taken."""
    with txn() as cur:
        try:
            return rooms_repository.insert_room(cur, **body.model_dump())
        except pg_errors.UniqueViolation:
            raise HTTPException(status_code=409, detail="Room number already exists")


@router.patch("/{room_id}")
def update_room(
    room_id: str = Path(..., description="Room UUID"),
    body: UpdateRoomRequest = ...,
    ctx: OwnerContext = Depends(require_owner),
) -> dict:
    """Partially update a room."""
    fields = body.model_dump(exclude_none=True)
    if not fields:
        raise HTTPException(status_code=400, detail="No fields to update")

    with txn() as cur:
        try:
            room = rooms_repository.update_room(cur, room_id, fields)
        except pg_errors.UniqueViolation:
            raise HTTPException(status_code=409, detail="Room number already exists")

    if room is None:
        raise HTTPException(status_code=404, detail="Room not found")
    return room


@router.delete("/{room_id}", status_code=204)
def delete_room(
    room_id: str = Path(..., description="Room UUID"),
    ctx: OwnerContext = Depends(require_owner),
) -> None:
    """Delete a room; rooms with reservations must be deactivated instead."""
    with txn() as cur:
        try:
            deleted = rooms_repository.delete_room(cur, room_id)
        except pg_errors.ForeignKeyViolation:
            raise HTTPException(
                status_code=409,
                detail="Room is assigned to reservations and cannot be deleted",
            )

    if not deleted:
        raise HTTPException(status_code=404, detail="Room not found")

"""Reservations and payments endpoints for the front desk.

GET    /reservations?from=...&to=...               → list (calendar view)
GET    /reservations/{id}                          → read
POST   /reservations                               → create
PATCH  /reservations/{id}                          → update
DELETE /reservations/{id}                          → delete
POST   /reservations/{id}/actions/check-in         → status checked_in
POST   /reservations/{id}/actions/check-out        → status checked_out
GET    /reservations/{id}/payments                 → list payments
POST   /reservations/{id}/payments                 → log a payment

All endpoints require the hotel owner. Payments are logged by hand; there
is no gateway.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from psycopg2 import errors as pg_errors
from pydantic import BaseModel, ConfigDict, Field, model_validator

from frontdesk.api.access import OwnerContext, require_owner
from frontdesk.infra.db import txn
from frontdesk.infra.repositories import payments_repository, reservations_repository
from frontdesk.observability.correlation import get_correlation_id
from frontdesk.observability.logging import get_logger
from frontdesk.observability.redaction import safe_log_context

logger = get_logger(__name__)

router = APIRouter(prefix="/reservations", tags=["reservations"])

ReservationStatus = Literal["pending", "confirmed", "checked_in", "checked_out", "cancelled"]


# ── Schemas ───────────────────────────────────────────────────────────────────


class CreateReservationRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    guest_id: str
    room_id: str
    start_date: date
    end_date: date
    status: ReservationStatus = "pending"

    @model_validator(mode="after")
    def _end_after_start(self) -> "CreateReservationRequest":
        if self.end_date <= self.start_date:
            raise ValueError("End date must be after start date")
        return self


class UpdateReservationRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    guest_id: str | None = None
    room_id: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    status: ReservationStatus | None = None


class CreatePaymentRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    amount: Decimal = Field(..., gt=0, le=Decimal("999999.99"), decimal_places=2)
    payment_date: datetime | None = None
    payment_method: str | None = Field(None, max_length=50)
    notes: str | None = Field(None, max_length=500)


# ── Helpers ───────────────────────────────────────────────────────────────────


def _get_or_404(cur, reservation_id: str) -> dict:
    reservation = reservations_repository.get_reservation(cur, reservation_id)
    if reservation is None:
        raise HTTPException(status_code=404, detail="Reservation not found")
    return reservation


def _set_status(reservation_id: str, status: str, ctx: OwnerContext) -> dict:
    with txn() as cur:
        if not reservations_repository.set_reservation_status(cur, reservation_id, status):
            raise HTTPException(status_code=404, detail="Reservation not found")
        reservation = _get_or_404(cur, reservation_id)

    logger.info(
        "reservation status changed",
        extra={
            "extra_fields": safe_log_context(
                correlationId=get_correlation_id(),
                reservation_id=reservation_id,
                status=status,
                user_id=ctx.user.id,
            )
        },
    )
    return reservation


# ── Reservations ──────────────────────────────────────────────────────────────


@router.get("")
def list_reservations(
    from_date: date | None = Query(None, alias="from", description="start_date >= from"),
    to_date: date | None = Query(None, alias="to", description="end_date <= to"),
    ctx: OwnerContext = Depends(require_owner),
) -> list[dict]:
    """List reservations with guest and room, ordered by start_date."""
    with txn() as cur:
        return reservations_repository.list_reservations(cur, from_date=from_date, to_date=to_date)


@router.get("/{reservation_id}")
def get_reservation(
    reservation_id: str = Path(..., description="Reservation UUID"),
    ctx: OwnerContext = Depends(require_owner),
) -> dict:
    with txn() as cur:
        return _get_or_404(cur, reservation_id)


@router.post("", status_code=201)
def create_reservation(
    body: CreateReservationRequest,
    ctx: OwnerContext = Depends(require_owner),
) -> dict:
    """Create a reservation. 422 if guest_id or room_id does not exist."""
    with txn() as cur:
        try:
            reservation_id = reservations_repository.insert_reservation(cur, **body.model_dump())
        except pg_errors.ForeignKeyViolation:
            raise HTTPException(status_code=422, detail="guest_id or room_id not found")
        return _get_or_404(cur, reservation_id)


@router.patch("/{reservation_id}")
def update_reservation(
    reservation_id: str = Path(..., description="Reservation UUID"),
    body: UpdateReservationRequest = ...,
    ctx: OwnerContext = Depends(require_owner),
) -> dict:
    """Partially update a reservation; the resulting dates must stay ordered."""
    fields = body.model_dump(exclude_none=True)
    if not fields:
        raise HTTPException(status_code=400, detail="No fields to update")

    with txn() as cur:
        current = _get_or_404(cur, reservation_id)
        start = fields.get("start_date") or date.fromisoformat(current["start_date"])
        end = fields.get("end_date") or date.fromisoformat(current["end_date"])
        if end <= start:
            raise HTTPException(status_code=422, detail="End date must be after start date")

        try:
            reservations_repository.update_reservation(cur, reservation_id, fields)
        except pg_errors.ForeignKeyViolation:
            raise HTTPException(status_code=422, detail="guest_id or room_id not found")
        return _get_or_404(cur, reservation_id)


@router.delete("/{reservation_id}", status_code=204)
def delete_reservation(
    reservation_id: str = Path(..., description="Reservation UUID"),
    ctx: OwnerContext = Depends(require_owner),
) -> None:
    with txn() as cur:
        deleted = reservations_repository.delete_reservation(cur, reservation_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Reservation not found")


@router.post("/{reservation_id}/actions/check-in")
def check_in(
    reservation_id: str = Path(..., description="Reservation UUID"),
    ctx: OwnerContext = Depends(require_owner),
) -> dict:
    return _set_status(reservation_id, "checked_in", ctx)


@router.post("/{reservation_id}/actions/check-out")
def check_out(
    reservation_id: str = Path(..., description="Reservation UUID"),
    ctx: OwnerContext = Depends(require_owner),
) -> dict:
    return _set_status(reservation_id, "checked_out", ctx)


# ── Payments ──────────────────────────────────────────────────────────────────


@router.get("/{reservation_id}/payments")
def list_payments(
    reservation_id: str = Path(..., description="Reservation UUID"),
    ctx: OwnerContext = Depends(require_owner),
) -> list[dict]:
    """Payments of a reservation ordered by payment_date."""
    with txn() as cur:
        return payments_repository.list_payments_for_reservation(cur, reservation_id)


@router.post("/{reservation_id}/payments", status_code=201)
def create_payment(
    reservation_id: str = Path(..., description="Reservation UUID"),
    body: CreatePaymentRequest = ...,
    ctx: OwnerContext = Depends(require_owner),
) -> dict:
    """Log a payment. payment_date defaults to now."""
    with txn() as cur:
        _get_or_404(cur, reservation_id)
        payment = payments_repository.insert_payment(
            cur,
            reservation_id=reservation_id,
            amount=body.amount,
            payment_date=body.payment_date,
            payment_method=body.payment_method,
            notes=body.notes,
        )

    logger.info(
        "payment recorded",
        extra={
            "extra_fields": safe_log_context(
                correlationId=get_correlation_id(),
                reservation_id=reservation_id,
                payment_id=payment["id"],
                amount=body.amount,
            )
        },
    )
    return payment

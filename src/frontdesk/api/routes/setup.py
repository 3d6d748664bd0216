"""First-run setup endpoints.

GET  /setup/status   → {owner_exists, hotel_configured}   (no auth)
POST /setup/owner    → register the caller as owner       (token, once)
PUT  /setup/hotel    → create/replace hotel settings      (owner)
GET  /setup/hotel    → read hotel settings                (owner)

The first authenticated user to call POST /setup/owner becomes the single
owner; later calls get 409.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from frontdesk.api.access import OwnerContext, require_owner
from frontdesk.api.auth import CurrentUser, get_current_user
from frontdesk.infra.db import txn
from frontdesk.infra.repositories import owner_repository
from frontdesk.observability.correlation import get_correlation_id
from frontdesk.observability.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/setup", tags=["setup"])


class CreateOwnerRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    full_name: str = Field(..., min_length=1, max_length=100, pattern=r"^[a-zA-Z\s\-\.\']+$")


class HotelSettingsRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1, max_length=100)
    timezone: str = Field(..., pattern=r"^[A-Za-z_]+/[A-Za-z_]+$")
    current_app_version: str | None = None


@router.get("/status")
def setup_status() -> dict:
    """Tell the UI whether the setup wizard still has to run."""
    with txn() as cur:
        has_owner = owner_repository.owner_exists(cur)
        settings = owner_repository.get_hotel_settings(cur)
    return {"owner_exists": has_owner, "hotel_configured": settings is not None}


@router.post("/owner", status_code=201)
def create_owner(
    body: CreateOwnerRequest,
    user: CurrentUser = Depends(get_current_user),
) -> dict:
    """Register the authenticated caller as the hotel owner."""
    with txn() as cur:
        created = owner_repository.create_owner_if_none_exists(
            cur, user_id=user.id, full_name=body.full_name.strip()
        )

    if not created:
        raise HTTPException(status_code=409, detail="Owner already exists")

    logger.info(
        "owner registered",
        extra={"extra_fields": {"correlationId": get_correlation_id(), "user_id": user.id}},
    )
    return {"id": user.id, "full_name": body.full_name.strip()}


@router.get("/hotel")
def get_hotel_settings(ctx: OwnerContext = Depends(require_owner)) -> dict:
    with txn() as cur:
        settings = owner_repository.get_hotel_settings(cur)
    if settings is None:
        raise HTTPException(status_code=404, detail="Hotel not configured")
    return settings


@router.put("/hotel")
def put_hotel_settings(
    body: HotelSettingsRequest,
    ctx: OwnerContext = Depends(require_owner),
) -> dict:
    with txn() as cur:
        return owner_repository.upsert_hotel_settings(cur, **body.model_dump())

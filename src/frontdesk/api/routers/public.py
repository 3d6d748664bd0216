"""Public routes: health and the front-desk resource routers."""

from fastapi import APIRouter

from frontdesk.api.routes import audit, guests, reservations, rooms, setup

router = APIRouter()


@router.get("/health")
def health() -> dict:
    """Health check endpoint."""
    return {"status": "ok"}


router.include_router(setup.router)
router.include_router(guests.router)
router.include_router(reservations.router)
router.include_router(rooms.router)
router.include_router(audit.router)

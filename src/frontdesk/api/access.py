"""Owner access guard.

The system serves one hotel with one owner.  Every data route requires a
valid token whose subject is the registered owner (owner_profile.id).

Provides:
- require_owner(): FastAPI dependency returning an OwnerContext
"""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Depends, HTTPException

from frontdesk.api.auth import CurrentUser, get_current_user


@dataclass
class OwnerContext:
    """Context returned by require_owner."""

    user: CurrentUser
    owner_name: str


def _get_owner_name(user_id: str) -> str | None:
    """Lookup the owner profile for a user.

    Returns:
        Owner full_name if the user is the owner, None otherwise.
    """
    from frontdesk.infra.db import txn
    from frontdesk.infra.repositories.owner_repository import get_owner_profile

    with txn() as cur:
        profile = get_owner_profile(cur, user_id)
    return profile["full_name"] if profile else None


def require_owner(user: CurrentUser = Depends(get_current_user)) -> OwnerContext:
    """FastAPI dependency: the caller must be the registered owner.

    Usage:
        @router.get("/something")
        def endpoint(ctx: OwnerContext = Depends(require_owner)):
            ...

    Raises:
        HTTPException: 401 from authentication, 403 if not the owner.
    """
    owner_name = _get_owner_name(user.id)
    if owner_name is None:
        raise HTTPException(status_code=403, detail="Not the hotel owner")
    return OwnerContext(user=user, owner_name=owner_name)

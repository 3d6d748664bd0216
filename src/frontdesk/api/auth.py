"""Bearer-token authentication against an OIDC provider (RS256 + JWKS).

The token subject identifies the acting user everywhere downstream: it is
the owner_profile id and the user_id of audit entries.  Route code only
ever sees a CurrentUser, never the raw token.

Configuration (environment):
    OIDC_ISSUER, OIDC_AUDIENCE, OIDC_JWKS_URL   required
    OIDC_AUTHORIZED_PARTIES                     optional, comma-separated azp allow-list
"""

from __future__ import annotations

import os
import threading
import time
from dataclasses import dataclass
from typing import Any

import jwt
import requests
from fastapi import HTTPException, Request

# Signing keys are cached for _JWKS_CACHE_TTL seconds and refetched early
# when a token names a kid the cache does not know (key rotation).
_jwks_cache: dict[str, Any] | None = None
_jwks_cache_time: float = 0
_jwks_cache_lock = threading.Lock()
_JWKS_CACHE_TTL = 600


@dataclass
class CurrentUser:
    """Caller identity taken from verified token claims."""

    id: str
    email: str | None
    name: str | None


@dataclass(frozen=True)
class OidcSettings:
    issuer: str | None
    audience: str | None
    jwks_url: str | None
    authorized_parties: tuple[str, ...]

    @property
    def complete(self) -> bool:
        return bool(self.issuer and self.audience and self.jwks_url)


def _get_settings() -> OidcSettings:
    raw_parties = os.environ.get("OIDC_AUTHORIZED_PARTIES", "")
    return OidcSettings(
        issuer=os.environ.get("OIDC_ISSUER"),
        audience=os.environ.get("OIDC_AUDIENCE"),
        jwks_url=os.environ.get("OIDC_JWKS_URL"),
        authorized_parties=tuple(p.strip() for p in raw_parties.split(",") if p.strip()),
    )


def _fetch_jwks(jwks_url: str) -> dict[str, Any]:
    resp = requests.get(jwks_url, timeout=10)
    resp.raise_for_status()
    return resp.json()


def _get_jwks(jwks_url: str, force_refresh: bool = False) -> dict[str, Any]:
    """Return the cached key set, fetching it when stale or forced.

    Raises:
        HTTPException: 503 when the provider cannot be reached.
    """
    global _jwks_cache, _jwks_cache_time

    with _jwks_cache_lock:
        now = time.time()
        fresh = _jwks_cache is not None and now - _jwks_cache_time < _JWKS_CACHE_TTL
        if fresh and not force_refresh:
            return _jwks_cache

        try:
            _jwks_cache = _fetch_jwks(jwks_url)
        except requests.RequestException:
            raise HTTPException(status_code=503, detail="Auth temporarily unavailable")
        _jwks_cache_time = now
        return _jwks_cache


def _unauthorized(detail: str = "Invalid token") -> HTTPException:
    return HTTPException(status_code=401, detail=detail)


def _signing_key(jwks_url: str, kid: str, *, refresh: bool) -> Any:
    """Public key for kid, or None if the key set does not contain it."""
    jwks = _get_jwks(jwks_url, force_refresh=refresh)
    for key_data in jwks.get("keys", []):
        if key_data.get("kid") == kid:
            try:
                return jwt.algorithms.RSAAlgorithm.from_jwk(key_data)
            except (ValueError, TypeError, KeyError):
                raise _unauthorized()
    return None


def verify_token(token: str) -> dict[str, Any]:
    """Validate a bearer token and return its claims.

    The key set is refetched once when the kid is unknown or the signature
    does not verify, then the token is rejected.

    Raises:
        HTTPException: 401 for any invalid, expired or foreign token,
            503 if the key set cannot be fetched.
    """
    settings = _get_settings()
    if not settings.complete:
        raise _unauthorized("OIDC not configured")

    try:
        kid = jwt.get_unverified_header(token).get("kid")
    except jwt.exceptions.DecodeError:
        raise _unauthorized()
    if not kid:
        raise _unauthorized()

    claims: dict[str, Any] | None = None
    for refresh in (False, True):
        key = _signing_key(settings.jwks_url, kid, refresh=refresh)
        if key is None:
            continue
        try:
            claims = jwt.decode(
                token,
                key,
                algorithms=["RS256"],
                issuer=settings.issuer,
                audience=settings.audience,
                options={"require": ["exp", "iss", "aud", "sub"]},
            )
            break
        except jwt.InvalidSignatureError:
            continue
        except jwt.ExpiredSignatureError:
            raise _unauthorized("Token expired")
        except jwt.InvalidTokenError:
            raise _unauthorized()

    if claims is None or not claims.get("sub"):
        raise _unauthorized()

    azp = claims.get("azp")
    if settings.authorized_parties and azp is not None and azp not in settings.authorized_parties:
        raise _unauthorized()

    return claims


def _extract_bearer_token(request: Request) -> str:
    header = request.headers.get("Authorization")
    if not header:
        raise _unauthorized("Authorization header missing")

    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token or " " in token.strip():
        raise _unauthorized("Invalid authorization header")
    return token.strip()


def get_current_user(request: Request) -> CurrentUser:
    """FastAPI dependency: the caller identified by the bearer token.

    Raises:
        HTTPException: 401 if the header or token is missing or invalid.
    """
    claims = verify_token(_extract_bearer_token(request))
    return CurrentUser(
        id=str(claims["sub"]),
        email=claims.get("email"),
        name=claims.get("name"),
    )

"""Shared test helper functions for front-desk tests.

This module contains helper functions that can be imported by both conftest.py
and individual test files. These are NOT fixtures - they are regular functions.
"""

from __future__ import annotations

import base64
import time
from contextlib import contextmanager
from unittest.mock import MagicMock

import jwt
from cryptography.hazmat.primitives.asymmetric import rsa

OIDC_ENV = {
    "OIDC_ISSUER": "https://clerk.example.com",
    "OIDC_AUDIENCE": "frontdesk-api",
    "OIDC_JWKS_URL": "https://clerk.example.com/.well-known/jwks.json",
}

OWNER_ID = "user-123"


def _generate_rsa_keypair():
    """Generate RSA key pair for test JWT signing."""
    private_key = rsa.generate_private_key(
        public_exponent=65537,
        key_size=2048,
    )
    public_key = private_key.public_key()
    return private_key, public_key


def _create_jwks(public_key, kid: str = "test-key-1") -> dict:
    """Create JWKS from public key."""
    public_numbers = public_key.public_numbers()

    def int_to_base64(n: int) -> str:
        byte_length = (n.bit_length() + 7) // 8
        return (
            base64.urlsafe_b64encode(n.to_bytes(byte_length, "big"))
            .rstrip(b"=")
            .decode()
        )

    return {
        "keys": [
            {
                "kty": "RSA",
                "use": "sig",
                "alg": "RS256",
                "kid": kid,
                "n": int_to_base64(public_numbers.n),
                "e": int_to_base64(public_numbers.e),
            }
        ]
    }


def _create_token(
    private_key,
    kid: str = "test-key-1",
    sub: str = OWNER_ID,
    iss: str = "https://clerk.example.com",
    aud: str = "frontdesk-api",
    exp: int | None = None,
    azp: str | None = None,
    email: str | None = None,
) -> str:
    """Create signed JWT for testing."""
    now = int(time.time())
    payload = {
        "sub": sub,
        "iss": iss,
        "aud": aud,
        "exp": exp if exp is not None else now + 3600,
        "iat": now,
    }
    if azp:
        payload["azp"] = azp
    if email:
        payload["email"] = email

    return jwt.encode(payload, private_key, algorithm="RS256", headers={"kid": kid})


def make_owner_context(user_id: str = OWNER_ID):
    """OwnerContext as require_owner would return it for the owner."""
    from frontdesk.api.access import OwnerContext
    from frontdesk.api.auth import CurrentUser

    return OwnerContext(
        user=CurrentUser(id=user_id, email="owner@example.com", name="Owner"),
        owner_name="Hotel Owner",
    )


def fake_txn(cur=None):
    """Replacement for infra.db.txn yielding a MagicMock cursor.

    Returns (txn_callable, cursor) so tests can inspect the cursor.
    """
    cursor = cur if cur is not None else MagicMock()

    @contextmanager
    def _txn(conn=None):
        yield cursor

    return _txn, cursor

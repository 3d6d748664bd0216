"""Shared pytest fixtures for front-desk tests."""
import sys
sys.dont_write_bytecode = True

import pytest  # noqa: E402


@pytest.fixture(autouse=True)
def _reset_oidc_jwks_cache():
    """Reset global JWKS cache to avoid cross-test contamination.

    The OIDC JWKS cache is a module-level global that persists between tests.
    Without this reset, tests may fail intermittently with 401 errors when
    a cached JWKS from a previous test doesn't match the current test's keys.
    """
    import frontdesk.api.auth as auth_module

    auth_module._jwks_cache = None
    auth_module._jwks_cache_time = 0
    yield
    auth_module._jwks_cache = None
    auth_module._jwks_cache_time = 0


@pytest.fixture(autouse=True)
def _default_merge_mode(monkeypatch):
    """Tests start from the default merge mode unless they set one."""
    monkeypatch.delenv("GUEST_MERGE_MODE", raising=False)


@pytest.fixture
def owner_client():
    """TestClient whose caller is already the registered owner.

    Yields (client, owner_context).
    """
    from fastapi.testclient import TestClient

    from frontdesk.api.access import require_owner
    from frontdesk.api.factory import create_app

    from helpers import make_owner_context

    ctx = make_owner_context()
    app = create_app()
    app.dependency_overrides[require_owner] = lambda: ctx
    yield TestClient(app), ctx
    app.dependency_overrides.clear()

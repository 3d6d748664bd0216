"""Tests for /guests endpoints, including POST /guests/merge.

Repositories and the merge orchestrator are patched; the owner guard is
overridden by the owner_client fixture.
"""

from __future__ import annotations

from unittest.mock import MagicMock, patch
from uuid import uuid4

import psycopg2
import pytest
from psycopg2 import errors as pg_errors
from fastapi.testclient import TestClient

from frontdesk.api.factory import create_app
from frontdesk.domain.guest_merge import (
    GuestNotFoundError,
    MergeInvalidRequestError,
    MergeMutationError,
    MergeResult,
)

from helpers import OWNER_ID, fake_txn

TARGET_ID = str(uuid4())
SOURCE_ID = str(uuid4())

MERGE_BODY = {
    "targetGuestId": TARGET_ID,
    "sourceGuestId": SOURCE_ID,
    "mergedData": {"full_name": "Jane Doe", "email": "jane@x.com", "phone_number": None, "address": None},
}


def _guest(guest_id: str | None = None, **overrides) -> dict:
    guest = {
        "id": guest_id or str(uuid4()),
        "full_name": "Jane Doe",
        "email": "jane@x.com",
        "phone_number": None,
        "address": None,
        "created_at": "2026-01-01T00:00:00+00:00",
    }
    guest.update(overrides)
    return guest


@pytest.fixture
def txn_patch():
    _txn, cur = fake_txn()
    with patch("frontdesk.api.routes.guests.txn", _txn):
        yield cur


class TestGuestsRequireOwner:
    def test_no_token_is_401(self):
        client = TestClient(create_app())
        response = client.get("/guests")
        assert response.status_code == 401

    def test_merge_without_token_is_401(self):
        client = TestClient(create_app())
        response = client.post("/guests/merge", json=MERGE_BODY)
        assert response.status_code == 401


class TestGuestCrud:
    def test_list_passes_search(self, owner_client, txn_patch):
        client, _ = owner_client
        with patch(
            "frontdesk.infra.repositories.guests_repository.list_guests",
            return_value=[_guest()],
        ) as mock_list:
            response = client.get("/guests", params={"search": "jane"})

        assert response.status_code == 200
        assert response.json()[0]["full_name"] == "Jane Doe"
        assert mock_list.call_args.kwargs == {"search": "jane"}

    def test_search_requires_name_or_email(self, owner_client, txn_patch):
        client, _ = owner_client
        response = client.get("/guests/search")
        assert response.status_code == 400

    def test_search_by_email(self, owner_client, txn_patch):
        client, _ = owner_client
        with patch(
            "frontdesk.infra.repositories.guests_repository.search_guests_by_email",
            return_value=[],
        ) as mock_search:
            response = client.get("/guests/search", params={"email": "jane@"})

        assert response.status_code == 200
        mock_search.assert_called_once_with(txn_patch, "jane@")

    def test_get_missing_guest(self, owner_client, txn_patch):
        client, _ = owner_client
        with patch("frontdesk.infra.repositories.guests_repository.find_guest", return_value=None):
            response = client.get(f"/guests/{uuid4()}")
        assert response.status_code == 404

    def test_create_blanks_optionals_only(self, owner_client, txn_patch):
        client, _ = owner_client
        with patch(
            "frontdesk.infra.repositories.guests_repository.insert_guest",
            side_effect=lambda cur, **fields: _guest(**fields),
        ) as mock_insert:
            response = client.post(
                "/guests",
                json={"full_name": "Jane Doe", "email": "Jane@X.com", "phone_number": "  "},
            )

        assert response.status_code == 201
        assert mock_insert.call_args.kwargs == {
            "full_name": "Jane Doe",
            "email": "Jane@X.com",
            "phone_number": None,
            "address": None,
        }

    def test_create_invalid_email_is_422(self, owner_client, txn_patch):
        client, _ = owner_client
        with patch("frontdesk.infra.repositories.guests_repository.insert_guest") as mock_insert:
            response = client.post("/guests", json={"full_name": "Jane", "email": "nope"})

        assert response.status_code == 422
        assert "email: Valid email is required" in response.json()["detail"]
        mock_insert.assert_not_called()

    def test_create_rejects_unknown_field(self, owner_client, txn_patch):
        client, _ = owner_client
        response = client.post("/guests", json={"full_name": "Jane", "email": "j@x.com", "vip": True})
        assert response.status_code == 422

    def test_patch_only_sent_fields(self, owner_client, txn_patch):
        client, _ = owner_client
        guest_id = str(uuid4())
        with patch(
            "frontdesk.infra.repositories.guests_repository.update_guest_fields",
            return_value=_guest(guest_id, phone_number="+1 555 0100"),
        ) as mock_update:
            response = client.patch(f"/guests/{guest_id}", json={"phone_number": "+1 555 0100"})

        assert response.status_code == 200
        mock_update.assert_called_once_with(txn_patch, guest_id, {"phone_number": "+1 555 0100"})

    def test_patch_empty_body_is_422(self, owner_client, txn_patch):
        client, _ = owner_client
        response = client.patch(f"/guests/{uuid4()}", json={})
        assert response.status_code == 422

    def test_delete_blocked_by_active_reservation(self, owner_client, txn_patch):
        client, _ = owner_client
        with patch(
            "frontdesk.infra.repositories.guests_repository.guest_has_active_reservations",
            return_value=True,
        ), patch("frontdesk.infra.repositories.guests_repository.delete_guest") as mock_delete:
            response = client.delete(f"/guests/{uuid4()}")

        assert response.status_code == 409
        assert response.json()["detail"] == "Guest has active reservations and cannot be deleted"
        mock_delete.assert_not_called()

    def test_delete_guest(self, owner_client, txn_patch):
        client, _ = owner_client
        with patch(
            "frontdesk.infra.repositories.guests_repository.guest_has_active_reservations",
            return_value=False,
        ), patch("frontdesk.infra.repositories.guests_repository.delete_guest", return_value=True):
            response = client.delete(f"/guests/{uuid4()}")
        assert response.status_code == 204

    def test_delete_missing_guest(self, owner_client, txn_patch):
        client, _ = owner_client
        with patch(
            "frontdesk.infra.repositories.guests_repository.guest_has_active_reservations",
            return_value=False,
        ), patch("frontdesk.infra.repositories.guests_repository.delete_guest", return_value=False):
            response = client.delete(f"/guests/{uuid4()}")
        assert response.status_code == 404


class TestMergeEndpoint:
    """POST /guests/merge maps orchestrator outcomes to HTTP responses."""

    def _result(self, reassigned: int = 2) -> MergeResult:
        return MergeResult(
            target_guest_id=TARGET_ID,
            merged_fields=MERGE_BODY["mergedData"],
            reassigned_reservations=reassigned,
            audit_recorded=True,
        )

    def test_success_response(self, owner_client, txn_patch):
        client, _ = owner_client
        with patch("frontdesk.api.routes.guests.merge_guests", return_value=self._result()) as mock_merge:
            response = client.post("/guests/merge", json=MERGE_BODY)

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "message": "Guests merged successfully",
            "targetGuestId": TARGET_ID,
            "mergedData": MERGE_BODY["mergedData"],
            "reassignedReservations": 2,
        }
        kwargs = mock_merge.call_args.kwargs
        assert kwargs["target_guest_id"] == TARGET_ID
        assert kwargs["source_guest_id"] == SOURCE_ID
        assert kwargs["actor_id"] == OWNER_ID

    def test_atomic_mode_shares_request_cursor(self, owner_client, txn_patch):
        client, _ = owner_client
        with patch("frontdesk.api.routes.guests.merge_guests", return_value=self._result()) as mock_merge:
            client.post("/guests/merge", json=MERGE_BODY)

        store = mock_merge.call_args.args[0]
        assert store.atomic is True

    def test_stepwise_mode_uses_unbound_store(self, owner_client, monkeypatch):
        client, _ = owner_client
        monkeypatch.setenv("GUEST_MERGE_MODE", "stepwise")
        with patch("frontdesk.api.routes.guests.txn") as mock_txn, patch(
            "frontdesk.api.routes.guests.merge_guests", return_value=self._result()
        ) as mock_merge:
            response = client.post("/guests/merge", json=MERGE_BODY)

        assert response.status_code == 200
        assert mock_merge.call_args.args[0].atomic is False
        mock_txn.assert_not_called()

    def test_merged_fields_alias_accepted(self, owner_client, txn_patch):
        client, _ = owner_client
        body = {**MERGE_BODY}
        body["mergedFields"] = body.pop("mergedData")
        with patch("frontdesk.api.routes.guests.merge_guests", return_value=self._result()) as mock_merge:
            response = client.post("/guests/merge", json=body)

        assert response.status_code == 200
        assert mock_merge.call_args.kwargs["merged_fields"] == MERGE_BODY["mergedData"]

    def test_self_merge_is_400(self, owner_client, txn_patch):
        client, _ = owner_client
        body = {**MERGE_BODY, "sourceGuestId": TARGET_ID}
        with patch("frontdesk.infra.repositories.guests_repository.find_guest") as mock_find:
            response = client.post("/guests/merge", json=body)

        assert response.status_code == 400
        assert response.json() == {"error": "Cannot merge guest with itself"}
        mock_find.assert_not_called()

    def test_missing_fields_is_400(self, owner_client, txn_patch):
        client, _ = owner_client
        response = client.post("/guests/merge", json={"targetGuestId": TARGET_ID})

        assert response.status_code == 400
        assert response.json()["error"] == "Missing required fields"

    def test_invalid_merged_data_is_400_with_details(self, owner_client, txn_patch):
        client, _ = owner_client
        body = {**MERGE_BODY, "mergedData": {"full_name": "Jane", "email": "bad"}}
        response = client.post("/guests/merge", json=body)

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid merged data"
        assert "email" in response.json()["details"]

    def test_target_not_found_is_404(self, owner_client, txn_patch):
        client, _ = owner_client
        with patch(
            "frontdesk.api.routes.guests.merge_guests",
            side_effect=GuestNotFoundError("Target guest not found"),
        ):
            response = client.post("/guests/merge", json=MERGE_BODY)

        assert response.status_code == 404
        assert response.json() == {"error": "Target guest not found"}

    def test_source_not_found_against_repository(self, owner_client, txn_patch):
        """Runs the real orchestrator; the source lookup comes back empty."""
        client, _ = owner_client
        with patch("frontdesk.infra.repositories.guests_repository.find_guest", return_value=None), patch(
            "frontdesk.infra.repositories.reservations_repository.reassign_guest"
        ) as mock_reassign:
            response = client.post("/guests/merge", json=MERGE_BODY)

        assert response.status_code == 404
        assert response.json() == {"error": "Source guest not found"}
        mock_reassign.assert_not_called()

    def test_malformed_source_id_is_404(self, owner_client, txn_patch):
        """Runs the real orchestrator; the malformed id never reaches the database."""
        client, _ = owner_client
        txn_patch.execute.side_effect = pg_errors.InvalidTextRepresentation(
            'invalid input syntax for type uuid: "not-a-uuid"'
        )
        body = {**MERGE_BODY, "sourceGuestId": "not-a-uuid"}

        response = client.post("/guests/merge", json=body)

        assert response.status_code == 404
        assert response.json() == {"error": "Source guest not found"}
        txn_patch.execute.assert_not_called()

    def test_mutation_failure_is_500(self, owner_client, txn_patch):

        client, _ = owner_client
        with patch(
            "frontdesk.api.routes.guests.merge_guests",
            side_effect=MergeMutationError("update_target", "Failed to update target guest", "deadlock detected"),
        ):
            response = client.post("/guests/merge", json=MERGE_BODY)

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to update target guest", "details": "deadlock detected"}

    def test_database_error_is_500(self, owner_client, txn_patch):
        client, _ = owner_client
        with patch(
            "frontdesk.api.routes.guests.merge_guests",
            side_effect=psycopg2.OperationalError("server closed the connection"),
        ):
            response = client.post("/guests/merge", json=MERGE_BODY)

        assert response.status_code == 500
        assert response.json()["error"] == "Internal server error"

    def test_invalid_request_error_passthrough(self, owner_client, txn_patch):
        client, _ = owner_client
        with patch(
            "frontdesk.api.routes.guests.merge_guests",
            side_effect=MergeInvalidRequestError("Invalid merged data", "full_name: Name is required"),
        ):
            response = client.post("/guests/merge", json=MERGE_BODY)

        assert response.status_code == 400
        assert response.json()["details"] == "full_name: Name is required"


class TestMergeEndToEnd:
    """Real orchestrator and store over a scripted cursor."""

    def test_full_merge_statements(self, owner_client):
        client, _ = owner_client
        now = MagicMock(isoformat=lambda: "2026-01-01T00:00:00+00:00")
        target_row = (TARGET_ID, "Jane Doe", "jane@x.com", None, None, now)
        source_row = (SOURCE_ID, "J. Doe", "jdoe@x.com", None, None, now)

        cur = MagicMock()
        cur.rowcount = 2
        cur.fetchone.side_effect = [source_row, target_row, target_row, (1,), (SOURCE_ID,)]
        _txn, _ = fake_txn(cur)

        with patch("frontdesk.api.routes.guests.txn", _txn):
            response = client.post("/guests/merge", json=MERGE_BODY)

        assert response.status_code == 200
        assert response.json()["reassignedReservations"] == 2
        statements = [" ".join(str(c.args[0]).split()) for c in cur.execute.call_args_list]
        assert statements[0].endswith("FOR UPDATE")
        assert statements[2].startswith("UPDATE reservations SET guest_id")
        assert statements[3].startswith("UPDATE guests SET")
        assert statements[4] == "SAVEPOINT merge_audit"
        assert statements[5].startswith("INSERT INTO audit_log")
        assert statements[6] == "RELEASE SAVEPOINT merge_audit"
        assert statements[7].startswith("DELETE FROM guests")

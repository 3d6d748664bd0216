"""Guest merge - consolidate a duplicate guest into the record being kept.

Linear pipeline, no resumable intermediate state:

    validate → reassign reservations → update target → audit (best-effort) → delete source

Ordering is load-bearing: reservations are repointed before the source is
deleted, and the audit row is written before the destructive delete so a
failed delete still leaves a trace of the reassignment.

The orchestrator performs no compensation of its own.  Whether a failure
after step k undoes steps 1..k-1 depends on the store it is handed (see
frontdesk.infra.merge_store: atomic vs stepwise).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol
from uuid import UUID

from frontdesk.domain.guests import GuestValidationError, normalize_guest_fields
from frontdesk.infra.repositories.audit_repository import MAX_DESCRIPTION_LENGTH, AuditEntry
from frontdesk.observability.redaction import safe_log_context

logger = logging.getLogger(__name__)

AUDIT_ACTION_TYPE = "GUEST_MERGE"
AUDIT_TARGET_TABLE = "guests"


class GuestMergeError(Exception):
    """Base class for merge failures; carries the HTTP-ish category."""

    status_code = 500

    def __init__(self, message: str, details: str | None = None) -> None:
        self.message = message
        self.details = details
        super().__init__(message if details is None else f"{message}: {details}")


class MergeUnauthorizedError(GuestMergeError):
    """Raised when no actor identity accompanies the request."""

    status_code = 401


class MergeInvalidRequestError(GuestMergeError):
    """Raised for identical ids or missing/malformed merged fields."""

    status_code = 400


class GuestNotFoundError(GuestMergeError):
    """Raised when the source or target guest does not exist."""

    status_code = 404


class MergeMutationError(GuestMergeError):
    """Raised when reassignment, target update or source deletion fails.

    Attributes:
        step: Pipeline step that failed (reassign, update_target, delete_source).
    """

    status_code = 500

    def __init__(self, step: str, message: str, details: str | None = None) -> None:
        self.step = step
        super().__init__(message, details)


class GuestMergeStore(Protocol):
    """Persistence operations the merge pipeline needs."""

    def find_guest(self, guest_id: str) -> dict[str, Any] | None:
        ...

    def reassign_reservations(self, from_guest_id: str, to_guest_id: str) -> int:
        ...

    def update_guest_fields(self, guest_id: str, fields: dict[str, Any]) -> dict[str, Any] | None:
        ...

    def append_audit_entry(self, entry: AuditEntry) -> None:
        ...

    def delete_guest(self, guest_id: str) -> bool:
        ...


@dataclass(frozen=True)
class MergeResult:
    """Outcome of a successful merge."""

    target_guest_id: str
    merged_fields: dict[str, Any] = field(default_factory=dict)
    reassigned_reservations: int = 0
    audit_recorded: bool = False


def build_merge_description(source_guest: dict[str, Any], merged_fields: dict[str, Any]) -> str:
    """Human-readable audit summary naming the source and the final profile."""
    description = (
        f'Merged guest "{source_guest.get("full_name")}" ({source_guest.get("email")}) '
        f'into "{merged_fields["full_name"]}" ({merged_fields["email"]}). '
        "All reservations reassigned."
    )
    return description[:MAX_DESCRIPTION_LENGTH]


def _validate_request(
    target_guest_id: str,
    source_guest_id: str,
    merged_fields: Any,
    actor_id: str | None,
) -> dict[str, Any]:
    if not actor_id:
        raise MergeUnauthorizedError("Invalid authorization token")

    if not target_guest_id or not source_guest_id or merged_fields is None:
        raise MergeInvalidRequestError("Missing required fields")

    if target_guest_id == source_guest_id:
        raise MergeInvalidRequestError("Cannot merge guest with itself")

    try:
        return normalize_guest_fields(merged_fields)
    except GuestValidationError as exc:
        raise MergeInvalidRequestError("Invalid merged data", "; ".join(exc.issues)) from exc


def _find_existing(store: GuestMergeStore, guest_id: str, label: str) -> dict[str, Any]:
    """Look up one side of the merge; a malformed id names no guest."""
    try:
        UUID(str(guest_id))
    except ValueError:
        raise GuestNotFoundError(f"{label} guest not found") from None

    guest = store.find_guest(guest_id)
    if guest is None:
        raise GuestNotFoundError(f"{label} guest not found")
    return guest


def _record_audit(store: GuestMergeStore, entry_kwargs: dict[str, Any]) -> bool:
    """Write the audit row; any failure is logged and reported as False."""
    try:
        store.append_audit_entry(AuditEntry(**entry_kwargs))
    except Exception:
        logger.error(
            "failed to create merge audit entry",
            exc_info=True,
            extra={
                "extra_fields": {
                    "record_id": entry_kwargs["record_id"],
                    "action_type": AUDIT_ACTION_TYPE,
                },
            },
        )
        return False
    return True


def merge_guests(
    store: GuestMergeStore,
    *,
    target_guest_id: str,
    source_guest_id: str,
    merged_fields: Any,
    actor_id: str | None,
) -> MergeResult:
    """Merge the source guest into the target guest.

    Args:
        store: Persistence backend (see GuestMergeStore).
        target_guest_id: Guest that is kept.
        source_guest_id: Guest that is removed.
        merged_fields: Reconciled profile: full_name, email and optionally
                       phone_number and address.
        actor_id: Authenticated user performing the merge, resolved upstream.

    Returns:
        MergeResult with the target id, the merged fields as stored, the
        number of reassigned reservations and whether the audit row landed.

    Raises:
        MergeUnauthorizedError: actor_id missing.
        MergeInvalidRequestError: ids identical or merged fields invalid.
        GuestNotFoundError: source or target guest missing or its id malformed.
        MergeMutationError: a required write failed; earlier writes are not
            undone here.
    """
    fields = _validate_request(target_guest_id, source_guest_id, merged_fields, actor_id)

    source_guest = _find_existing(store, source_guest_id, "Source")
    _find_existing(store, target_guest_id, "Target")

    # Step 1: move reservations off the source before it can be deleted
    try:
        reassigned = store.reassign_reservations(source_guest_id, target_guest_id)
    except Exception as exc:
        raise MergeMutationError("reassign", "Failed to reassign reservations", str(exc)) from exc

    # Step 2: overwrite the kept profile
    try:
        updated = store.update_guest_fields(target_guest_id, fields)
    except Exception as exc:
        raise MergeMutationError("update_target", "Failed to update target guest", str(exc)) from exc
    if updated is None:
        raise MergeMutationError("update_target", "Failed to update target guest", "Target guest not found")

    # Step 3: best-effort audit
    audit_recorded = _record_audit(
        store,
        {
            "action_type": AUDIT_ACTION_TYPE,
            "target_table": AUDIT_TARGET_TABLE,
            "record_id": target_guest_id,
            "change_description": build_merge_description(source_guest, fields),
            "user_id": actor_id,
        },
    )

    # Step 4: remove the duplicate
    try:
        deleted = store.delete_guest(source_guest_id)
    except Exception as exc:
        raise MergeMutationError("delete_source", "Failed to delete source guest", str(exc)) from exc
    if not deleted:
        logger.warning(
            "source guest already gone at delete step",
            extra={"extra_fields": safe_log_context(source_guest_id=source_guest_id)},
        )

    logger.info(
        "guests merged",
        extra={
            "extra_fields": safe_log_context(
                target_guest_id=target_guest_id,
                source_guest_id=source_guest_id,
                reassigned_reservations=reassigned,
                audit_recorded=audit_recorded,
                actor_id=actor_id,
            )
        },
    )

    return MergeResult(
        target_guest_id=target_guest_id,
        merged_fields=fields,
        reassigned_reservations=reassigned,
        audit_recorded=audit_recorded,
    )

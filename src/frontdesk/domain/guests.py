"""Guest profile validation.

Name and email are kept exactly as submitted; blank optional fields
become NULL.

Shared by the guest CRUD routes and the merge orchestrator so a merged
profile obeys the same rules as a hand-entered one.
"""

from __future__ import annotations

import re
from typing import Any

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PHONE_PATTERN = re.compile(r"^\+?[\d\s\-()]{7,15}$")

MAX_NAME_LENGTH = 100
MAX_ADDRESS_LENGTH = 500


class GuestValidationError(ValueError):
    """Raised when guest profile fields are missing or malformed."""

    def __init__(self, issues: list[str]) -> None:
        self.issues = issues
        super().__init__(f"Validation failed: {', '.join(issues)}")


def _clean_optional(value: Any) -> str | None:
    """Blank or missing optional values are stored as NULL, never ''."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _check_name(value: Any, issues: list[str]) -> Any:
    if not isinstance(value, str) or not value.strip():
        issues.append("full_name: Name is required")
    elif len(value) > MAX_NAME_LENGTH:
        issues.append("full_name: Guest name too long")
    return value


def _check_email(value: Any, issues: list[str]) -> Any:
    if not isinstance(value, str) or not EMAIL_PATTERN.match(value):
        issues.append("email: Valid email is required")
    return value


def _check_phone(value: Any, issues: list[str]) -> str | None:
    phone = _clean_optional(value)
    if phone is not None and not PHONE_PATTERN.match(phone):
        issues.append("phone_number: Invalid phone number format")
    return phone


def _check_address(value: Any, issues: list[str]) -> str | None:
    address = _clean_optional(value)
    if address is not None and len(address) > MAX_ADDRESS_LENGTH:
        issues.append("address: Address too long")
    return address


def normalize_guest_fields(data: Any) -> dict[str, str | None]:
    """Validate a complete guest profile.

    Args:
        data: Mapping with full_name, email and optionally phone_number
              and address.

    Returns:
        Dict with exactly the four profile keys; name and email unchanged,
        optional fields None when absent or blank.

    Raises:
        GuestValidationError: Listing every failing field.
    """
    if not isinstance(data, dict):
        raise GuestValidationError(["mergedData: Missing required fields"])

    issues: list[str] = []
    fields = {
        "full_name": _check_name(data.get("full_name"), issues),
        "email": _check_email(data.get("email"), issues),
        "phone_number": _check_phone(data.get("phone_number"), issues),
        "address": _check_address(data.get("address"), issues),
    }
    if issues:
        raise GuestValidationError(issues)
    return fields


def normalize_guest_update(data: dict[str, Any]) -> dict[str, str | None]:
    """Validate a partial guest update; only keys present are checked.

    Raises:
        GuestValidationError: If a present field is malformed or nothing
            is left to update.
    """
    issues: list[str] = []
    fields: dict[str, str | None] = {}

    if "full_name" in data:
        fields["full_name"] = _check_name(data["full_name"], issues)
    if "email" in data:
        fields["email"] = _check_email(data["email"], issues)
    if "phone_number" in data:
        fields["phone_number"] = _check_phone(data["phone_number"], issues)
    if "address" in data:
        fields["address"] = _check_address(data["address"], issues)

    if not fields:
        issues.append("No fields to update")
    if issues:
        raise GuestValidationError(issues)
    return fields

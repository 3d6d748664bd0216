#!/usr/bin/env python3
"""Security & PII gate for source files.

Guest names, emails, phone numbers and addresses must never reach the logs
unredacted.  Fails if:
- print( found in runtime code (src/**)
- a logger call line mentions guest PII or request bodies without redaction

Usage:
    python scripts/gate_security_pii.py
"""

import re
import sys
from pathlib import Path

# Keywords that must not appear in logger calls without redaction
SENSITIVE_KEYWORDS = (
    "email",
    "phone",
    "full_name",
    "address",
    "merged_data",
    "request.json",
    "body.",
)

PRINT_PATTERN = re.compile(r"\bprint\s*\(")

LOGGER_CALL_PATTERN = re.compile(
    r"logger\.(debug|info|warning|error|critical|exception)\s*\("
)

REDACTION_PATTERNS = (
    "safe_log_context",
    "redact_value",
    "redact_string",
)


def check_source(source: str, label: str = "<string>") -> list[str]:
    """Check source text. Returns list of error messages."""
    errors = []

    for lineno, line in enumerate(source.splitlines(), start=1):
        code_part = line.split("#", 1)[0]
        if not code_part.strip():
            continue

        if PRINT_PATTERN.search(code_part):
            errors.append(f"{label}:{lineno}: print() not allowed in runtime code")

        if LOGGER_CALL_PATTERN.search(code_part):
            line_lower = code_part.lower()
            has_redaction = any(rp in code_part for rp in REDACTION_PATTERNS)
            for keyword in SENSITIVE_KEYWORDS:
                if keyword in line_lower and not has_redaction:
                    errors.append(
                        f"{label}:{lineno}: logger call with '{keyword}' "
                        "must use redaction (safe_log_context/redact_value)"
                    )

    return errors


def check_file(filepath: Path) -> list[str]:
    """Check a single file for violations."""
    try:
        content = filepath.read_text(encoding="utf-8")
    except UnicodeDecodeError:
        return []
    return check_source(content, str(filepath))


def main() -> int:
    """Run gate check on src directory."""
    src_dir = Path("src")
    if not src_dir.exists():
        src_dir = Path(__file__).parent.parent / "src"

    if not src_dir.exists():
        sys.stderr.write("Error: src directory not found\n")
        return 1

    all_errors: list[str] = []
    for pyfile in sorted(src_dir.rglob("*.py")):
        all_errors.extend(check_file(pyfile))

    if all_errors:
        sys.stderr.write("PII gate FAILED - violations found:\n")
        for err in all_errors:
            sys.stderr.write(f"  {err}\n")
        return 1

    sys.stdout.write("PII gate PASSED\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())

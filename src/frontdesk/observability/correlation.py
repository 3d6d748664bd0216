"""Correlation ID management for request tracing.

Each HTTP request carries an id (X-Correlation-ID, generated when absent)
that is attached to every log line emitted while serving it.
"""

import uuid
from contextvars import ContextVar, Token

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")

CORRELATION_ID_HEADER = "X-Correlation-ID"

# Incoming ids longer than this are replaced rather than echoed back
MAX_CORRELATION_ID_LENGTH = 128


def generate_correlation_id() -> str:
    """Generate a new correlation ID."""
    return str(uuid.uuid4())


def resolve_correlation_id(incoming: str | None) -> str:
    """Use the caller's id when it is sane, otherwise mint a new one."""
    if incoming and len(incoming) <= MAX_CORRELATION_ID_LENGTH and incoming.isprintable():
        return incoming
    return generate_correlation_id()


def get_correlation_id() -> str:
    """Get current correlation ID from context."""
    return correlation_id_var.get()


def set_correlation_id(cid: str) -> Token[str]:
    """Set correlation ID in context."""
    return correlation_id_var.set(cid)


def reset_correlation_id(token: Token[str]) -> None:
    """Reset correlation ID to previous value."""
    correlation_id_var.reset(token)

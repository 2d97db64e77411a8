"""Stable identifiers for items, sessions and review records."""

from ulid import ULID


def generate_session_id() -> str:
    """Generate a sortable session ID using ULID."""
    return f"session_{ULID()}"


def generate_review_id() -> str:
    return f"review_{ULID()}"


def generate_item_id() -> str:
    return f"item_{ULID()}"

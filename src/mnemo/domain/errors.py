"""
Error taxonomy for the scheduling engine.

Sparse history is never an error: factors and analysis fall back to
neutral values instead of raising.
"""


class MnemoError(Exception):
    """Base class for every error raised by mnemo."""


class ValidationError(MnemoError):
    """Input rejected before any state was touched (bad rating, missing field)."""


class NotFoundError(MnemoError):
    """Unknown session or item id."""


class StateError(MnemoError):
    """Operation not allowed in the current session state."""


class PersistenceError(MnemoError):
    """
    A store write failed.

    The review is treated as if it never happened, so the caller may retry
    the same submission. The underlying store exception is kept as __cause__.
    """

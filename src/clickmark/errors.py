"""Exception hierarchy shared by the store and the directory backends."""

from __future__ import annotations


class ClickmarkError(Exception):
    """Base class for every error raised by clickmark."""


class NotAuthenticated(ClickmarkError):
    """An operation that needs an identity was called without one."""


# ── Local validation (never reaches the network) ─────────────


class ValidationError(ClickmarkError):
    """Input rejected before any remote call was made."""

    kind = "invalid"


class CapacityExceeded(ValidationError):
    kind = "capacity_exceeded"


class EmptyInput(ValidationError):
    kind = "empty_input"


class InputTooLong(ValidationError):
    kind = "input_too_long"


class DuplicateEntry(ValidationError):
    kind = "duplicate_entry"


# ── Remote failures ──────────────────────────────────────────


class RemoteError(ClickmarkError):
    """The remote directory did not complete a call."""


class RemoteUnavailable(RemoteError):
    """Transport, authentication or timeout failure."""


class RemoteRejected(RemoteError):
    """The directory declined a well-formed request."""

"""Error taxonomy for identity resolution.

``client_error`` tells an entry point whether the failure was caused by the
request (and should be reported as such) or by the server side.
"""

from __future__ import annotations

from typing import ClassVar


class ContactLinkError(Exception):
    """Base class for every error raised by the resolution core."""

    client_error: ClassVar[bool] = False


class InvalidIdentityQueryError(ContactLinkError, ValueError):
    """Raised when a request carries no usable identifier."""

    client_error: ClassVar[bool] = True


class StoreUnavailableError(ContactLinkError):
    """Raised when the contact store fails while a unit of work is running."""


class ConcurrencyConflictError(StoreUnavailableError):
    """Raised when the store rejects a unit of work because of a concurrent writer."""


class RetriesExhaustedError(ContactLinkError):
    """Raised when conflicts persist after every permitted attempt."""

    def __init__(self, attempts: int) -> None:
        super().__init__(f"Identity resolution still conflicting after {attempts} attempt(s)")
        self.attempts = attempts


class GroupIntegrityError(ContactLinkError):
    """Raised when stored contacts violate the grouping invariants."""

"""Ports for persisting contacts."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Collection, Sequence

    from contactlink.domain.model import Contact, LinkPrecedence


@runtime_checkable
class ContactRepository(Protocol):
    """Persistence contract for contacts.

    Every lookup excludes tombstoned contacts.
    """

    def find_by_identifiers(
        self,
        email: str | None,
        phone_number: str | None,
    ) -> Sequence[Contact]:
        """Return contacts whose email or phone number equals the given value."""
        ...

    def get(self, contact_id: int) -> Contact | None: ...

    def find_by_linked_id(self, contact_id: int) -> Sequence[Contact]: ...

    def find_group(self, primary_id: int) -> Sequence[Contact]:
        """Return the primary and every secondary linked to it."""
        ...

    def add(self, contact: Contact) -> Contact:
        """Persist ``contact``, assigning its id and timestamps."""
        ...

    def relink(
        self,
        contact_ids: Collection[int],
        *,
        linked_id: int,
        link_precedence: LinkPrecedence | None = None,
    ) -> None:
        """Point ``contact_ids`` at ``linked_id``, optionally changing their precedence."""
        ...

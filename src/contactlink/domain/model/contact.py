"""The contact record and its grouping semantics.

A contact is either the primary of its group or a secondary that points
directly at that primary through ``linked_id``. Groups are kept flat: a
secondary never points at another secondary.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from contactlink.domain.model.enums import LinkPrecedence

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(eq=False, kw_only=True)
class Contact:
    email: str | None = None
    phone_number: str | None = None
    link_precedence: LinkPrecedence = LinkPrecedence.PRIMARY
    linked_id: int | None = None

    # assigned by the store
    id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    deleted_at: datetime | None = None

    @classmethod
    def new_primary(cls, *, email: str | None, phone_number: str | None) -> Contact:
        return cls(email=email, phone_number=phone_number)

    @classmethod
    def new_secondary(
        cls,
        *,
        primary: Contact,
        email: str | None,
        phone_number: str | None,
    ) -> Contact:
        return cls(
            email=email,
            phone_number=phone_number,
            link_precedence=LinkPrecedence.SECONDARY,
            linked_id=primary.require_id(),
        )

    @property
    def is_primary(self) -> bool:
        return self.link_precedence is LinkPrecedence.PRIMARY

    @property
    def is_secondary(self) -> bool:
        return self.link_precedence is LinkPrecedence.SECONDARY

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def resolved_id(self) -> int:
        """Return the id of the group's primary (own id for primaries)."""
        if self.is_secondary and self.linked_id is not None:
            return self.linked_id
        return self.require_id()

    def require_id(self) -> int:
        if self.id is None:
            raise ValueError("Contact has not been persisted yet")
        return self.id

    def seniority_key(self) -> tuple[datetime, int]:
        """Ordering key for primary selection: oldest first, lowest id on ties."""
        if self.created_at is None:
            raise ValueError(f"Contact {self.id} has no creation timestamp")
        return (self.created_at, self.require_id())

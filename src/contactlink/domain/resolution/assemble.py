"""Project a resolved group into its external view."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .contracts import ContactGroupView
from .errors import GroupIntegrityError

if TYPE_CHECKING:
    from contactlink.domain.ports import ContactRepository


def assemble_group_view(contacts: ContactRepository, primary_id: int) -> ContactGroupView:
    """Reload the group of ``primary_id`` and build its view.

    Emails and phone numbers are deduplicated and sorted lexicographically;
    secondary ids ascend numerically.
    """

    members = contacts.find_group(primary_id)
    if not any(member.id == primary_id and member.is_primary for member in members):
        raise GroupIntegrityError(f"Contact {primary_id} is not a live primary")

    emails = {member.email for member in members if member.email}
    phone_numbers = {member.phone_number for member in members if member.phone_number}
    secondary_ids = {
        member.require_id()
        for member in members
        if member.is_secondary and member.linked_id == primary_id
    }
    return ContactGroupView(
        primary_contact_id=primary_id,
        emails=tuple(sorted(emails)),
        phone_numbers=tuple(sorted(phone_numbers)),
        secondary_contact_ids=tuple(sorted(secondary_ids)),
    )

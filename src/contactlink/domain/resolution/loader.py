"""Load every primary touched by an identity query."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .errors import GroupIntegrityError

if TYPE_CHECKING:
    from contactlink.domain.model import Contact
    from contactlink.domain.ports import ContactRepository

    from .contracts import IdentityQuery

log = logging.getLogger(__name__)


def load_candidate_primaries(
    contacts: ContactRepository,
    query: IdentityQuery,
) -> tuple[Contact, ...]:
    """Return the distinct primaries of all groups matched by ``query``, oldest first."""

    matches = contacts.find_by_identifiers(query.email, query.phone_number)

    primaries: dict[int, Contact] = {}
    for contact in matches:
        if contact.is_primary:
            primaries[contact.require_id()] = contact
            continue
        primary = _resolve_primary(contacts, contact)
        primaries.setdefault(primary.require_id(), primary)

    ordered = tuple(sorted(primaries.values(), key=lambda primary: primary.seniority_key()))
    log.debug(
        "Query matched %d contact(s) across %d group(s): %s",
        len(matches),
        len(ordered),
        [primary.id for primary in ordered],
    )
    return ordered


def _resolve_primary(contacts: ContactRepository, secondary: Contact) -> Contact:
    if secondary.linked_id is None:
        raise GroupIntegrityError(f"Secondary contact {secondary.id} has no linked primary")
    primary = contacts.get(secondary.linked_id)
    if primary is None:
        raise GroupIntegrityError(
            f"Secondary contact {secondary.id} links to missing contact {secondary.linked_id}"
        )
    if not primary.is_primary:
        raise GroupIntegrityError(
            f"Secondary contact {secondary.id} links to contact {primary.id}, "
            "which is not a primary"
        )
    return primary

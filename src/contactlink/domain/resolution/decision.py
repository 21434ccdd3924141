"""Decide whether a query carries information its group does not hold yet."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from contactlink.domain.model import Contact

if TYPE_CHECKING:
    from collections.abc import Iterable

    from contactlink.domain.ports import ContactRepository

    from .contracts import IdentityQuery

log = logging.getLogger(__name__)


def is_represented(group: Iterable[Contact], query: IdentityQuery) -> bool:
    """Return whether every identifier of ``query`` already appears in ``group``.

    Absent identifiers are always satisfied. Present ones must equal the value of
    some contact in the group; they need not sit on the same contact.
    """

    members = list(group)
    email_satisfied = query.email is None or any(
        member.email == query.email for member in members
    )
    phone_satisfied = query.phone_number is None or any(
        member.phone_number == query.phone_number for member in members
    )
    return email_satisfied and phone_satisfied


def holds_pair(group: Iterable[Contact], query: IdentityQuery) -> bool:
    """Return whether a single contact carries both identifiers of ``query``."""

    return any(
        (query.email is None or member.email == query.email)
        and (query.phone_number is None or member.phone_number == query.phone_number)
        for member in group
    )


def ensure_secondary(
    contacts: ContactRepository,
    primary: Contact,
    query: IdentityQuery,
    *,
    merged: bool = False,
) -> Contact | None:
    """Create a secondary under ``primary`` when ``query`` adds something new.

    After a merge the query's pair is the only record joining the former groups by
    value, so it is stored unless one contact already holds it.
    """

    group = contacts.find_group(primary.require_id())
    known = holds_pair(group, query) if merged else is_represented(group, query)
    if known:
        log.debug("Query already represented in group %s", primary.id)
        return None

    secondary = contacts.add(
        Contact.new_secondary(
            primary=primary,
            email=query.email,
            phone_number=query.phone_number,
        )
    )
    log.info("Created secondary contact %s under primary %s", secondary.id, primary.id)
    return secondary

"""Fold several groups into the one with the oldest primary.

The surviving primary is the first candidate. Every other candidate is demoted
to a secondary of the survivor, and the secondaries that pointed at a demoted
primary are relinked to the survivor in the same unit of work so no group ever
holds a two-hop chain.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from contactlink.domain.model import LinkPrecedence

from .contracts import MergeOutcome
from .errors import GroupIntegrityError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from contactlink.domain.model import Contact
    from contactlink.domain.ports import ContactRepository

log = logging.getLogger(__name__)


def select_primary(candidates: Sequence[Contact]) -> Contact:
    """Return the oldest candidate (lowest id on equal timestamps)."""

    if not candidates:
        raise ValueError("Cannot select a primary from an empty candidate set")
    return min(candidates, key=lambda candidate: candidate.seniority_key())


def merge_primaries(
    contacts: ContactRepository,
    candidates: Sequence[Contact],
) -> MergeOutcome:
    """Demote every candidate but the oldest and flatten their secondaries."""

    survivor = select_primary(candidates)
    survivor_id = survivor.require_id()

    demoted_ids = tuple(
        sorted(
            {
                candidate.require_id()
                for candidate in candidates
                if candidate.require_id() != survivor_id
            }
        )
    )
    if not demoted_ids:
        return MergeOutcome(primary_id=survivor_id)

    for candidate in candidates:
        if candidate.require_id() in demoted_ids and not candidate.is_primary:
            raise GroupIntegrityError(f"Merge candidate {candidate.id} is not a primary")

    dependents: set[int] = set()
    for demoted_id in demoted_ids:
        dependents.update(
            dependent.require_id() for dependent in contacts.find_by_linked_id(demoted_id)
        )
    dependents.difference_update(demoted_ids)
    dependents.discard(survivor_id)
    relinked_ids = tuple(sorted(dependents))

    log.info("Demoting primaries %s under primary %s", list(demoted_ids), survivor_id)
    contacts.relink(
        demoted_ids,
        linked_id=survivor_id,
        link_precedence=LinkPrecedence.SECONDARY,
    )
    if relinked_ids:
        log.info("Relinking secondaries %s to primary %s", list(relinked_ids), survivor_id)
        contacts.relink(relinked_ids, linked_id=survivor_id)

    return MergeOutcome(
        primary_id=survivor_id,
        demoted_ids=demoted_ids,
        relinked_ids=relinked_ids,
    )

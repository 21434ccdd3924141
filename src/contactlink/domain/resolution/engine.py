"""Run identity resolution as one atomic, retryable unit of work."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from contactlink.domain.model import Contact

from .assemble import assemble_group_view
from .decision import ensure_secondary
from .errors import ConcurrencyConflictError, RetriesExhaustedError
from .loader import load_candidate_primaries
from .merge import merge_primaries

if TYPE_CHECKING:
    from collections.abc import Callable

    from contactlink.domain.ports import ContactRepository, ContactUnitOfWork

    from .contracts import ContactGroupView, IdentityQuery

DEFAULT_MAX_ATTEMPTS = 3

log = logging.getLogger(__name__)


def resolve_identity(contacts: ContactRepository, query: IdentityQuery) -> ContactGroupView:
    """Load, merge, decide and assemble against an open unit of work.

    The caller owns the transaction; nothing here commits.
    """

    candidates = load_candidate_primaries(contacts, query)

    if not candidates:
        primary = contacts.add(
            Contact.new_primary(email=query.email, phone_number=query.phone_number)
        )
        log.info("Created primary contact %s", primary.id)
        return assemble_group_view(contacts, primary.require_id())

    outcome = merge_primaries(contacts, candidates)
    primary = next(candidate for candidate in candidates if candidate.id == outcome.primary_id)
    ensure_secondary(contacts, primary, query, merged=outcome.merged)
    return assemble_group_view(contacts, outcome.primary_id)


@dataclass(slots=True)
class IdentityResolver:
    """Retry :func:`resolve_identity` from scratch whenever the store reports a conflict."""

    unit_of_work_factory: Callable[[], ContactUnitOfWork]
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    backoff_seconds: float = 0.0
    sleep: Callable[[float], None] = time.sleep

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    def identify(self, query: IdentityQuery) -> ContactGroupView:
        attempt = 0
        while True:
            attempt += 1
            try:
                with self.unit_of_work_factory() as uow:
                    view = resolve_identity(uow.repositories.contacts, query)
                    uow.commit()
                    return view
            except ConcurrencyConflictError as exc:
                log.warning(
                    "Resolution attempt %d/%d conflicted: %s",
                    attempt,
                    self.max_attempts,
                    exc,
                )
                if attempt >= self.max_attempts:
                    raise RetriesExhaustedError(attempt) from exc
                if self.backoff_seconds:
                    self.sleep(self.backoff_seconds * attempt)


def identify(
    query: IdentityQuery,
    *,
    unit_of_work_factory: Callable[[], ContactUnitOfWork],
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    backoff_seconds: float = 0.0,
) -> ContactGroupView:
    """Resolve ``query`` into its contact group, committing the result."""

    resolver = IdentityResolver(
        unit_of_work_factory=unit_of_work_factory,
        max_attempts=max_attempts,
        backoff_seconds=backoff_seconds,
    )
    return resolver.identify(query)

"""Application orchestration entry points."""

from __future__ import annotations

from collections.abc import Callable
from logging import getLogger
from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError

from contactlink.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyContactUnitOfWork,
    is_started,
    startup,
)
from contactlink.config import get_resolution_config
from contactlink.domain.ports.unit_of_work import ContactUnitOfWork
from contactlink.domain.resolution import IdentityQuery, StoreUnavailableError, identify

if TYPE_CHECKING:
    from contactlink.config import ResolutionConfig
    from contactlink.domain.resolution import ContactGroupView

UnitOfWorkFactory = Callable[[], ContactUnitOfWork]


log = getLogger(__name__)


def identify_contact(
    *,
    email: str | None = None,
    phone_number: str | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    config: ResolutionConfig | None = None,
) -> ContactGroupView:
    """Reconcile an email and/or phone number into its contact group."""

    query = IdentityQuery(email=email, phone_number=phone_number)
    return identify_query(query, unit_of_work_factory=unit_of_work_factory, config=config)


def identify_query(
    query: IdentityQuery,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    config: ResolutionConfig | None = None,
) -> ContactGroupView:
    """Resolve an already validated query using the configured adapters."""

    if unit_of_work_factory is None:
        if not is_started():
            try:
                startup()
            except SQLAlchemyError as exc:
                raise StoreUnavailableError(f"Contact store unavailable: {exc}") from exc
        unit_of_work_factory = SqlAlchemyContactUnitOfWork
    settings = config or get_resolution_config()

    log.debug(
        "Identifying contact: email=%s, phone_number=%s",
        query.email,
        query.phone_number,
    )
    view = identify(
        query,
        unit_of_work_factory=unit_of_work_factory,
        max_attempts=settings.max_attempts,
        backoff_seconds=settings.retry_backoff_seconds,
    )
    log.info(
        "Resolved primary %s with %d secondary contact(s)",
        view.primary_contact_id,
        len(view.secondary_contact_ids),
    )
    return view

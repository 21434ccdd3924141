"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, cast

from sqlalchemy import or_, select, update

from contactlink.adapters.sqlalchemy.mappings import contact_table
from contactlink.domain.model import Contact

if TYPE_CHECKING:
    from collections.abc import Collection, Sequence

    from sqlalchemy.orm import Session

    from contactlink.domain.model import LinkPrecedence


def _utcnow() -> datetime:
    return datetime.now(UTC)


class SqlAlchemyContactRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def find_by_identifiers(
        self,
        email: str | None,
        phone_number: str | None,
    ) -> Sequence[Contact]:
        criteria = []
        if email is not None:
            criteria.append(contact_table.c.email == email)
        if phone_number is not None:
            criteria.append(contact_table.c.phone_number == phone_number)
        if not criteria:
            return []
        stmt = (
            select(Contact)
            .where(or_(*criteria))
            .where(contact_table.c.deleted_at.is_(None))
            .order_by(contact_table.c.created_at, contact_table.c.id)
        )
        return self.session.execute(stmt).scalars().all()

    def get(self, contact_id: int) -> Contact | None:
        contact = self.session.get(Contact, contact_id)
        if contact is None or contact.is_deleted:
            return None
        return contact

    def find_by_linked_id(self, contact_id: int) -> Sequence[Contact]:
        stmt = (
            select(Contact)
            .where(contact_table.c.linked_id == contact_id)
            .where(contact_table.c.deleted_at.is_(None))
            .order_by(contact_table.c.id)
        )
        return self.session.execute(stmt).scalars().all()

    def find_group(self, primary_id: int) -> Sequence[Contact]:
        stmt = (
            select(Contact)
            .where(
                or_(contact_table.c.id == primary_id, contact_table.c.linked_id == primary_id)
            )
            .where(contact_table.c.deleted_at.is_(None))
            .order_by(contact_table.c.created_at, contact_table.c.id)
        )
        return self.session.execute(stmt).scalars().all()

    def add(self, contact: Contact) -> Contact:
        self._prepare_contact(contact)
        self.session.add(contact)
        self.session.flush()
        return contact

    def relink(
        self,
        contact_ids: Collection[int],
        *,
        linked_id: int,
        link_precedence: LinkPrecedence | None = None,
    ) -> None:
        if not contact_ids:
            return
        values: dict[str, object] = {"linked_id": linked_id, "updated_at": _utcnow()}
        if link_precedence is not None:
            values["link_precedence"] = link_precedence
        stmt = (
            update(Contact)
            .where(contact_table.c.id.in_(sorted(contact_ids)))
            .values(values)
            .execution_options(synchronize_session="fetch")
        )
        self.session.execute(stmt)

    @staticmethod
    def _prepare_contact(contact: Contact) -> None:
        now = _utcnow()
        if contact.created_at is None:
            contact.created_at = now
        if contact.updated_at is None:
            contact.updated_at = contact.created_at


if TYPE_CHECKING:
    from contactlink.domain.ports.persistence import ContactRepository

    _session_stub = cast("Session", object())
    _repo_check: ContactRepository = SqlAlchemyContactRepository(_session_stub)

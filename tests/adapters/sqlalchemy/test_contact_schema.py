from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import inspect

from contactlink.adapters.sqlalchemy import start_mappers

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine


def test_start_mappers_is_idempotent() -> None:
    assert start_mappers() is start_mappers()


def test_migrations_create_contact_table(sqlite_engine: Engine) -> None:
    inspector = inspect(sqlite_engine)

    assert {"contact", "alembic_version"} <= set(inspector.get_table_names())
    columns = {column["name"]: column for column in inspector.get_columns("contact")}
    assert set(columns) == {
        "id",
        "phone_number",
        "email",
        "linked_id",
        "link_precedence",
        "created_at",
        "updated_at",
        "deleted_at",
    }
    assert columns["deleted_at"]["nullable"]
    assert not columns["created_at"]["nullable"]


def test_migrations_index_lookup_columns(sqlite_engine: Engine) -> None:
    inspector = inspect(sqlite_engine)

    indexes = {index["name"]: index["column_names"] for index in inspector.get_indexes("contact")}
    assert indexes == {
        "ix_contact_email": ["email"],
        "ix_contact_phone_number": ["phone_number"],
        "ix_contact_linked_id": ["linked_id"],
    }
    (foreign_key,) = inspector.get_foreign_keys("contact")
    assert foreign_key["referred_table"] == "contact"
    assert foreign_key["constrained_columns"] == ["linked_id"]

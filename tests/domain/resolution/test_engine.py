from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from contactlink.domain.model import LinkPrecedence
from contactlink.domain.resolution import (
    ConcurrencyConflictError,
    GroupIntegrityError,
    IdentityQuery,
    IdentityResolver,
    RetriesExhaustedError,
    StoreUnavailableError,
    identify,
)
from tests.helpers.contacts import (
    FakeContactUnitOfWork,
    InMemoryContactRepository,
    assert_group_invariants,
    make_contact,
)

if TYPE_CHECKING:
    from collections.abc import Callable


def test_first_submission_founds_a_group(
    fake_unit_of_work: Callable[[], FakeContactUnitOfWork],
    contact_store: InMemoryContactRepository,
) -> None:
    view = identify(
        IdentityQuery(email="a@x.com", phone_number="111"),
        unit_of_work_factory=fake_unit_of_work,
    )

    assert view.emails == ("a@x.com",)
    assert view.phone_numbers == ("111",)
    assert view.secondary_contact_ids == ()
    assert contact_store.contacts[view.primary_contact_id].is_primary


def test_new_phone_extends_group_with_one_secondary(
    fake_unit_of_work: Callable[[], FakeContactUnitOfWork],
    contact_store: InMemoryContactRepository,
) -> None:
    first = identify(
        IdentityQuery(email="a@x.com", phone_number="111"),
        unit_of_work_factory=fake_unit_of_work,
    )
    second = identify(
        IdentityQuery(email="a@x.com", phone_number="222"),
        unit_of_work_factory=fake_unit_of_work,
    )

    assert second.primary_contact_id == first.primary_contact_id
    assert second.phone_numbers == ("111", "222")
    assert len(second.secondary_contact_ids) == 1
    assert len(contact_store.contacts) == 2


def test_exact_resubmission_creates_nothing(
    fake_unit_of_work: Callable[[], FakeContactUnitOfWork],
    contact_store: InMemoryContactRepository,
) -> None:
    identify(
        IdentityQuery(email="a@x.com", phone_number="111"),
        unit_of_work_factory=fake_unit_of_work,
    )
    extended = identify(
        IdentityQuery(email="a@x.com", phone_number="222"),
        unit_of_work_factory=fake_unit_of_work,
    )
    repeated = identify(
        IdentityQuery(email="a@x.com", phone_number="111"),
        unit_of_work_factory=fake_unit_of_work,
    )

    assert repeated == extended
    assert len(contact_store.contacts) == 2


@pytest.mark.parametrize(
    "query",
    [
        IdentityQuery(email="a@x.com"),
        IdentityQuery(phone_number="222"),
        IdentityQuery(email="b@x.com", phone_number="111"),
    ],
)
def test_partial_queries_with_known_values_create_nothing(
    fake_unit_of_work: Callable[[], FakeContactUnitOfWork],
    contact_store: InMemoryContactRepository,
    query: IdentityQuery,
) -> None:
    primary = contact_store.add(make_contact(email="a@x.com", phone_number="111"))
    contact_store.add(
        make_contact(
            email="b@x.com",
            phone_number="222",
            link_precedence=LinkPrecedence.SECONDARY,
            linked_id=primary.id,
        )
    )

    view = identify(query, unit_of_work_factory=fake_unit_of_work)

    assert view.primary_contact_id == primary.id
    assert len(contact_store.contacts) == 2


def test_bridging_submission_merges_younger_group_into_older(
    fake_unit_of_work: Callable[[], FakeContactUnitOfWork],
    contact_store: InMemoryContactRepository,
) -> None:
    group_a = identify(
        IdentityQuery(email="a@x.com", phone_number="111"),
        unit_of_work_factory=fake_unit_of_work,
    )
    group_b = identify(
        IdentityQuery(email="b@y.com", phone_number="222"),
        unit_of_work_factory=fake_unit_of_work,
    )
    grown_b = identify(
        IdentityQuery(email="b2@y.com", phone_number="222"),
        unit_of_work_factory=fake_unit_of_work,
    )
    (b_child,) = grown_b.secondary_contact_ids

    merged = identify(
        IdentityQuery(email="a@x.com", phone_number="222"),
        unit_of_work_factory=fake_unit_of_work,
    )

    assert merged.primary_contact_id == group_a.primary_contact_id
    assert {group_b.primary_contact_id, b_child} <= set(merged.secondary_contact_ids)
    assert merged.emails == ("a@x.com", "b2@y.com", "b@y.com")
    assert merged.phone_numbers == ("111", "222")
    demoted = contact_store.contacts[group_b.primary_contact_id]
    assert demoted.link_precedence is LinkPrecedence.SECONDARY
    assert demoted.linked_id == group_a.primary_contact_id
    assert contact_store.contacts[b_child].linked_id == group_a.primary_contact_id
    assert_group_invariants(contact_store.contacts.values())


def test_invariants_hold_across_a_long_sequence(
    fake_unit_of_work: Callable[[], FakeContactUnitOfWork],
    contact_store: InMemoryContactRepository,
) -> None:
    submissions = [
        ("lorraine@hillvalley.edu", "123456"),
        ("mcfly@hillvalley.edu", "123456"),
        ("george@hillvalley.edu", "919191"),
        ("biffsucks@hillvalley.edu", "717171"),
        ("george@hillvalley.edu", "717171"),
        (None, "123456"),
        ("doc@hillvalley.edu", None),
        ("doc@hillvalley.edu", "919191"),
        ("lorraine@hillvalley.edu", "717171"),
        ("mcfly@hillvalley.edu", None),
    ]
    for email, phone in submissions:
        identify(
            IdentityQuery(email=email, phone_number=phone),
            unit_of_work_factory=fake_unit_of_work,
        )
        assert_group_invariants(contact_store.contacts.values())

    primaries = [contact for contact in contact_store.contacts.values() if contact.is_primary]
    assert [primary.id for primary in primaries] == [1]


def test_conflicts_are_retried_from_scratch(contact_store: InMemoryContactRepository) -> None:
    attempts: list[FakeContactUnitOfWork] = []
    errors: list[BaseException] = [ConcurrencyConflictError("serialization failure")]

    def factory() -> FakeContactUnitOfWork:
        uow = FakeContactUnitOfWork(contact_store, commit_errors=errors)
        attempts.append(uow)
        return uow

    view = identify(
        IdentityQuery(email="a@x.com", phone_number="111"),
        unit_of_work_factory=factory,
    )

    assert len(attempts) == 2
    assert attempts[0].rolled_back
    assert attempts[1].committed
    assert len(contact_store.contacts) == 1
    assert view.primary_contact_id == next(iter(contact_store.contacts))


def test_persistent_conflicts_exhaust_retries(
    contact_store: InMemoryContactRepository,
) -> None:
    sleeps: list[float] = []
    errors: list[BaseException] = [ConcurrencyConflictError("conflict") for _ in range(3)]
    resolver = IdentityResolver(
        unit_of_work_factory=lambda: FakeContactUnitOfWork(contact_store, commit_errors=errors),
        max_attempts=3,
        backoff_seconds=0.5,
        sleep=sleeps.append,
    )

    with pytest.raises(RetriesExhaustedError) as excinfo:
        resolver.identify(IdentityQuery(email="a@x.com"))

    assert excinfo.value.attempts == 3
    assert sleeps == [0.5, 1.0]
    assert contact_store.contacts == {}


def test_plain_store_failures_are_not_retried(
    contact_store: InMemoryContactRepository,
) -> None:
    attempts: list[FakeContactUnitOfWork] = []

    def factory() -> FakeContactUnitOfWork:
        uow = FakeContactUnitOfWork(
            contact_store, commit_errors=[StoreUnavailableError("connection reset")]
        )
        attempts.append(uow)
        return uow

    with pytest.raises(StoreUnavailableError):
        identify(IdentityQuery(email="a@x.com"), unit_of_work_factory=factory)

    assert len(attempts) == 1
    assert contact_store.contacts == {}


def test_integrity_violation_aborts_the_unit_of_work(
    fake_unit_of_work: Callable[[], FakeContactUnitOfWork],
    contact_store: InMemoryContactRepository,
) -> None:
    older = contact_store.add(make_contact(email="a@x.com"))
    younger = contact_store.add(make_contact(phone_number="222"))
    contact_store.add(
        make_contact(
            email="broken@x.com",
            link_precedence=LinkPrecedence.SECONDARY,
            linked_id=None,
        )
    )

    with pytest.raises(GroupIntegrityError):
        identify(
            IdentityQuery(email="broken@x.com", phone_number="222"),
            unit_of_work_factory=fake_unit_of_work,
        )

    assert younger.is_primary
    assert older.is_primary
    assert len(contact_store.contacts) == 3


def test_resolver_requires_at_least_one_attempt(
    fake_unit_of_work: Callable[[], FakeContactUnitOfWork],
) -> None:
    with pytest.raises(ValueError, match="max_attempts"):
        IdentityResolver(unit_of_work_factory=fake_unit_of_work, max_attempts=0)


def test_failed_commit_after_merge_leaves_groups_untouched(
    contact_store: InMemoryContactRepository,
) -> None:
    older = contact_store.add(make_contact(email="a@x.com", phone_number="111"))
    younger = contact_store.add(make_contact(email="b@y.com", phone_number="222"))

    with pytest.raises(StoreUnavailableError):
        identify(
            IdentityQuery(email="a@x.com", phone_number="222"),
            unit_of_work_factory=lambda: FakeContactUnitOfWork(
                contact_store, commit_errors=[StoreUnavailableError("disk full")]
            ),
        )

    assert contact_store.contacts[older.require_id()].is_primary
    assert contact_store.contacts[younger.require_id()].is_primary
    assert contact_store.relink_calls == []
    assert len(contact_store.contacts) == 2

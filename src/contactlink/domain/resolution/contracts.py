"""Shared contracts for the resolution stages."""

from __future__ import annotations

from dataclasses import dataclass, field

from .errors import InvalidIdentityQueryError

MAX_EMAIL_LENGTH = 255
MAX_PHONE_NUMBER_LENGTH = 20


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


@dataclass(frozen=True, slots=True)
class IdentityQuery:
    """An email and/or phone number submitted for resolution.

    Blank values count as absent. At least one identifier must remain.
    """

    email: str | None = None
    phone_number: str | None = None

    def __post_init__(self) -> None:
        email = _clean(self.email)
        phone_number = _clean(self.phone_number)
        if email is None and phone_number is None:
            raise InvalidIdentityQueryError(
                "At least one of email or phoneNumber must be provided"
            )
        if email is not None and len(email) > MAX_EMAIL_LENGTH:
            raise InvalidIdentityQueryError(
                f"email must be at most {MAX_EMAIL_LENGTH} characters"
            )
        if phone_number is not None and len(phone_number) > MAX_PHONE_NUMBER_LENGTH:
            raise InvalidIdentityQueryError(
                f"phoneNumber must be at most {MAX_PHONE_NUMBER_LENGTH} characters"
            )
        object.__setattr__(self, "email", email)
        object.__setattr__(self, "phone_number", phone_number)


@dataclass(frozen=True, slots=True)
class ContactGroupView:
    """Externally visible projection of a resolved group."""

    primary_contact_id: int
    emails: tuple[str, ...] = ()
    phone_numbers: tuple[str, ...] = ()
    secondary_contact_ids: tuple[int, ...] = ()


@dataclass(frozen=True, slots=True)
class MergeOutcome:
    """Result of folding candidate primaries into the oldest one."""

    primary_id: int
    demoted_ids: tuple[int, ...] = field(default_factory=tuple)
    relinked_ids: tuple[int, ...] = field(default_factory=tuple)

    @property
    def merged(self) -> bool:
        return bool(self.demoted_ids)

"""Pydantic models for the identify request and response payloads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from contactlink.domain.resolution import ContactGroupView, IdentityQuery


class IdentifyRequest(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    email: str | None = None
    phone_number: str | None = Field(default=None, alias="phoneNumber")

    @field_validator("phone_number", mode="before")
    @classmethod
    def _accept_numeric_phone(cls, value: object) -> object:
        # clients often send phone numbers as JSON numbers
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    def to_query(self) -> IdentityQuery:
        return IdentityQuery(email=self.email, phone_number=self.phone_number)


class ContactPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    primary_contact_id: int = Field(alias="primaryContactId")
    emails: list[str] = Field(default_factory=list)
    phone_numbers: list[str] = Field(default_factory=list, alias="phoneNumbers")
    secondary_contact_ids: list[int] = Field(default_factory=list, alias="secondaryContactIds")


class IdentifyResponse(BaseModel):
    contact: ContactPayload

    @classmethod
    def from_view(cls, view: ContactGroupView) -> IdentifyResponse:
        return cls(
            contact=ContactPayload(
                primary_contact_id=view.primary_contact_id,
                emails=list(view.emails),
                phone_numbers=list(view.phone_numbers),
                secondary_contact_ids=list(view.secondary_contact_ids),
            )
        )

    def to_json(self, *, indent: int | None = None) -> str:
        return self.model_dump_json(by_alias=True, indent=indent)

"""Indication data models, from parsed label text to persisted rows."""

from datetime import datetime, timezone
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class RawIndication(BaseModel):
    """One indication block lifted from the INDICATIONS AND USAGE section.

    ``title`` is empty only for text that appears before the first title
    marker of the section.
    """

    title: str = ""
    text: str

    @field_validator("text")
    @classmethod
    def _text_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("indication text must not be empty")
        return value


class ClassifiedIndication(RawIndication):
    """A raw indication paired with its ICD-10 code, or None when unmappable."""

    model_config = ConfigDict(populate_by_name=True)

    code: str | None = Field(default=None, alias="icd10_code")
    description: str | None = Field(default=None, alias="icd10_description")

    @model_validator(mode="after")
    def _code_and_description_together(self) -> "ClassifiedIndication":
        if (self.code is None) != (self.description is None):
            raise ValueError("code and description must both be set or both be None")
        return self


class PersistedIndication(ClassifiedIndication):
    """A stored indication row for one canonical drug name."""

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    id: UUID
    drug_name: str
    created_at: datetime
    updated_at: datetime

    @field_validator("created_at", "updated_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # SQLite hands back naive timestamps for timezone-aware columns
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class IndicationUpdate(BaseModel):
    """Full replacement of a single stored indication's content."""

    title: str
    text: str
    code: str | None = None
    description: str | None = None

    @model_validator(mode="after")
    def _code_and_description_together(self) -> "IndicationUpdate":
        if (self.code is None) != (self.description is None):
            raise ValueError("code and description must both be set or both be None")
        return self

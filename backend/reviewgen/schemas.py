from decimal import Decimal
from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from .models import (
    AgeBand,
    Gender,
    PersonaAttributes,
    StoreRecord,
    VisitFrequency,
    parse_persona_value,
)
from .selection import SubmittedSelection


class GenerateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    store_id: str = Field(
        default="",
        max_length=120,
        validation_alias=AliasChoices("storeId", "storeIdentifier", "store_id"),
    )
    store_name: str | None = Field(
        default=None, max_length=200, validation_alias=AliasChoices("storeName", "store_name")
    )
    store_category: str | None = Field(
        default=None,
        max_length=80,
        validation_alias=AliasChoices("storeCategory", "store_category"),
    )
    good_tags: list[str] = Field(
        default_factory=list, validation_alias=AliasChoices("goodTags", "good_tags")
    )
    neutral_tags: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("neutralTags", "normalTags", "neutral_tags"),
    )
    bad_tags: list[str] = Field(
        default_factory=list, validation_alias=AliasChoices("badTags", "bad_tags")
    )
    good_is_none: bool = Field(
        default=False, validation_alias=AliasChoices("goodIsNone", "good_is_none")
    )
    neutral_is_none: bool = Field(
        default=False, validation_alias=AliasChoices("neutralIsNone", "neutral_is_none")
    )
    bad_is_none: bool = Field(
        default=False, validation_alias=AliasChoices("badIsNone", "bad_is_none")
    )
    gender: Gender | None = Field(
        default=None, validation_alias=AliasChoices("gender", "userGender")
    )
    age_band: AgeBand | None = Field(
        default=None, validation_alias=AliasChoices("ageBand", "userAge", "age_band")
    )
    visit_frequency: VisitFrequency | None = Field(
        default=None, validation_alias=AliasChoices("visitFrequency", "visit_frequency")
    )
    language: str | None = Field(default=None, max_length=16)

    @field_validator("good_tags", "neutral_tags", "bad_tags", mode="before")
    @classmethod
    def _tags(cls, value):  # type: ignore[override]
        if value is None:
            return []
        return value

    @field_validator("gender", mode="before")
    @classmethod
    def _gender(cls, value):  # type: ignore[override]
        return parse_persona_value(Gender, value)

    @field_validator("age_band", mode="before")
    @classmethod
    def _age_band(cls, value):  # type: ignore[override]
        return parse_persona_value(AgeBand, value)

    @field_validator("visit_frequency", mode="before")
    @classmethod
    def _visit_frequency(cls, value):  # type: ignore[override]
        return parse_persona_value(VisitFrequency, value)

    def selection(self) -> SubmittedSelection:
        return SubmittedSelection(
            good=tuple(self.good_tags),
            neutral=tuple(self.neutral_tags),
            bad=tuple(self.bad_tags),
            good_is_none=self.good_is_none,
            neutral_is_none=self.neutral_is_none,
            bad_is_none=self.bad_is_none,
        )

    def persona(self) -> PersonaAttributes:
        return PersonaAttributes(
            gender=self.gender, age_band=self.age_band, visit_frequency=self.visit_frequency
        )


class ReviewMeta(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    tone: Literal["short", "casual", "detailed"]
    language: str
    token_count: int = Field(serialization_alias="tokenCount")
    cost: Decimal


class GenerateResponse(BaseModel):
    review: str
    meta: ReviewMeta


class ErrorResponse(BaseModel):
    error: str


class TagOut(BaseModel):
    category: str
    tag_name: str = Field(serialization_alias="tagName")
    context: str = ""
    localized_names: dict[str, str] = Field(
        default_factory=dict, serialization_alias="localizedNames"
    )


class StoreOut(BaseModel):
    id: str
    name: str
    category: str
    description: str = ""
    google_maps_url: str = Field(default="", serialization_alias="googleMapsUrl")
    selectable_tags: list[TagOut] = Field(
        default_factory=list, serialization_alias="selectableTags"
    )

    @classmethod
    def from_record(cls, record: StoreRecord) -> "StoreOut":
        return cls(
            id=record.id,
            name=record.name,
            category=record.category,
            description=record.description,
            google_maps_url=record.google_maps_url,
            selectable_tags=[
                TagOut(
                    category=tag.category,
                    tag_name=tag.name,
                    context=tag.context,
                    localized_names=dict(tag.localized_names),
                )
                for tag in record.tags
            ],
        )


class StoreResponse(BaseModel):
    store: StoreOut


class LanguagesResponse(BaseModel):
    base: str
    languages: dict[str, str]

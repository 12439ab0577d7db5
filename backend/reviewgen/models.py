from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from decimal import Decimal
from enum import Enum


class WriterStyle(str, Enum):
    SHORT = "short"
    CASUAL = "casual"
    DETAILED = "detailed"


class TagCategory(str, Enum):
    GOOD = "good"
    NEUTRAL = "neutral"
    BAD = "bad"


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class AgeBand(str, Enum):
    TEENS = "teens"
    TWENTIES = "twenties"
    THIRTIES = "thirties"
    FORTIES = "forties"
    FIFTIES = "fifties"
    SIXTIES_PLUS = "sixties_plus"


class VisitFrequency(str, Enum):
    FIRST_TIME = "first_time"
    OCCASIONAL = "occasional"
    REGULAR = "regular"


# Labels used by the original Japanese form
_PERSONA_LABELS: dict[str, Enum] = {
    "男性": Gender.MALE,
    "女性": Gender.FEMALE,
    "その他": Gender.OTHER,
    "10代": AgeBand.TEENS,
    "20代": AgeBand.TWENTIES,
    "30代": AgeBand.THIRTIES,
    "40代": AgeBand.FORTIES,
    "50代": AgeBand.FIFTIES,
    "60代以上": AgeBand.SIXTIES_PLUS,
    "初めて": VisitFrequency.FIRST_TIME,
    "数回": VisitFrequency.OCCASIONAL,
    "常連": VisitFrequency.REGULAR,
}


def parse_persona_value(enum_cls: type[Enum], raw: str | Enum | None):
    """Parse an enum value, accepting either the enum value or the Japanese form label."""
    if raw is None or raw == "":
        return None
    if isinstance(raw, enum_cls):
        return raw
    text = str(raw).strip()
    if not text:
        return None
    labelled = _PERSONA_LABELS.get(text)
    if isinstance(labelled, enum_cls):
        return labelled
    try:
        return enum_cls(text.lower())
    except ValueError as exc:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValueError(f"Unsupported value {text!r}; expected one of: {allowed}") from exc


@dataclass(slots=True, frozen=True)
class TagRecord:
    category: str
    name: str
    context: str = ""
    localized_names: dict[str, str] = field(default_factory=dict)

    def display_name(self, lang: str) -> str:
        return self.localized_names.get(lang) or self.name


@dataclass(slots=True)
class TagCatalog:
    """Store category -> selectable tags, in sheet order."""

    by_category: dict[str, list[TagRecord]] = field(default_factory=dict)

    @classmethod
    def from_records(cls, records: Iterable[TagRecord]) -> TagCatalog:
        grouped: dict[str, list[TagRecord]] = {}
        for record in records:
            grouped.setdefault(record.category, []).append(record)
        return cls(by_category=grouped)

    def tags_for(self, category: str) -> list[TagRecord]:
        return list(self.by_category.get(category, []))

    def lookup(self, category: str, name: str) -> TagRecord | None:
        for record in self.by_category.get(category, []):
            if record.name == name:
                return record
        return None

    def __len__(self) -> int:
        return sum(len(tags) for tags in self.by_category.values())


@dataclass(slots=True)
class StoreRecord:
    id: str
    name: str
    category: str
    description: str = ""
    google_maps_url: str = ""
    tags: list[TagRecord] = field(default_factory=list)

    def as_catalog(self) -> TagCatalog:
        return TagCatalog.from_records(self.tags)


@dataclass(slots=True, frozen=True)
class PersonaAttributes:
    gender: Gender | None = None
    age_band: AgeBand | None = None
    visit_frequency: VisitFrequency | None = None

    @classmethod
    def from_raw(
        cls,
        gender: str | None = None,
        age_band: str | None = None,
        visit_frequency: str | None = None,
    ) -> PersonaAttributes:
        return cls(
            gender=parse_persona_value(Gender, gender),
            age_band=parse_persona_value(AgeBand, age_band),
            visit_frequency=parse_persona_value(VisitFrequency, visit_frequency),
        )

    @property
    def is_empty(self) -> bool:
        return self.gender is None and self.age_band is None and self.visit_frequency is None


@dataclass(slots=True, frozen=True)
class EffectiveSelection:
    good: tuple[str, ...] = ()
    neutral: tuple[str, ...] = ()
    bad: tuple[str, ...] = ()

    @property
    def total(self) -> int:
        return len(self.good) + len(self.neutral) + len(self.bad)

    def groups(self) -> list[tuple[TagCategory, tuple[str, ...]]]:
        return [
            (TagCategory.GOOD, self.good),
            (TagCategory.NEUTRAL, self.neutral),
            (TagCategory.BAD, self.bad),
        ]


@dataclass(slots=True, frozen=True)
class SelectionState:
    """The three tag sets a patron has picked plus a "none" flag per category.

    Invariants, checked on construction:
      * a tag id sits in at most one of the three sets;
      * a category flagged none has an empty set.
    Use ``toggle`` / ``mark_none`` to derive new states; they apply the
    clearing rules so the invariants keep holding.
    """

    good: frozenset[str] = frozenset()
    neutral: frozenset[str] = frozenset()
    bad: frozenset[str] = frozenset()
    good_is_none: bool = False
    neutral_is_none: bool = False
    bad_is_none: bool = False

    def __post_init__(self) -> None:
        for category in TagCategory:
            if self.is_none(category) and self.tags(category):
                raise ValueError(f"Category {category.value!r} is marked none but has tags")
        overlap = (self.good & self.neutral) | (self.good & self.bad) | (self.neutral & self.bad)
        if overlap:
            raise ValueError(f"Tags selected in more than one category: {sorted(overlap)}")

    def tags(self, category: TagCategory) -> frozenset[str]:
        return getattr(self, category.value)

    def is_none(self, category: TagCategory) -> bool:
        return getattr(self, f"{category.value}_is_none")

    def toggle(self, category: TagCategory, tag: str) -> SelectionState:
        current = self.tags(category)
        if tag in current:
            return replace(self, **{category.value: current - {tag}})
        changes: dict[str, object] = {
            category.value: current | {tag},
            f"{category.value}_is_none": False,
        }
        for other in TagCategory:
            if other is not category and tag in self.tags(other):
                changes[other.value] = self.tags(other) - {tag}
        return replace(self, **changes)

    def mark_none(self, category: TagCategory) -> SelectionState:
        if self.is_none(category):
            return replace(self, **{f"{category.value}_is_none": False})
        return replace(
            self, **{category.value: frozenset(), f"{category.value}_is_none": True}
        )

    def effective(self) -> EffectiveSelection:
        from .selection import effective_selection

        return effective_selection(
            sorted(self.good),
            sorted(self.neutral),
            sorted(self.bad),
            good_is_none=self.good_is_none,
            neutral_is_none=self.neutral_is_none,
            bad_is_none=self.bad_is_none,
        )


@dataclass(slots=True, frozen=True)
class GenerationResult:
    text: str
    style: WriterStyle
    language: str
    token_estimate: int
    cost_estimate: Decimal


@dataclass(slots=True, frozen=True)
class UsageRecord:
    timestamp: str
    subject: str
    language: str
    cost: Decimal
    token_count: int

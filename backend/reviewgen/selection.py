from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from .errors import EmptySelectionError
from .models import EffectiveSelection


def _clean(tags: Iterable[str] | None) -> tuple[str, ...]:
    if not tags:
        return ()
    return tuple(tag.strip() for tag in tags if isinstance(tag, str) and tag.strip())


def effective_selection(
    good: Iterable[str] | None,
    neutral: Iterable[str] | None,
    bad: Iterable[str] | None,
    *,
    good_is_none: bool = False,
    neutral_is_none: bool = False,
    bad_is_none: bool = False,
) -> EffectiveSelection:
    """Collapse submitted tag lists into the lists a review may mention.

    A category flagged none is emptied whatever was submitted for it. A tag
    that shows up under several categories is kept in each one; keeping the
    categories apart is the form's job, not ours.
    """
    selection = EffectiveSelection(
        good=() if good_is_none else _clean(good),
        neutral=() if neutral_is_none else _clean(neutral),
        bad=() if bad_is_none else _clean(bad),
    )
    if selection.total == 0:
        raise EmptySelectionError("No effective tags selected")
    return selection


@dataclass(slots=True, frozen=True)
class SubmittedSelection:
    """Tag lists and none flags exactly as a caller sent them.

    Unlike ``SelectionState`` nothing is enforced here; ``effective`` applies
    the none flags and rejects an empty result.
    """

    good: tuple[str, ...] = ()
    neutral: tuple[str, ...] = ()
    bad: tuple[str, ...] = ()
    good_is_none: bool = False
    neutral_is_none: bool = False
    bad_is_none: bool = False

    def effective(self) -> EffectiveSelection:
        return effective_selection(
            self.good,
            self.neutral,
            self.bad,
            good_is_none=self.good_is_none,
            neutral_is_none=self.neutral_is_none,
            bad_is_none=self.bad_is_none,
        )

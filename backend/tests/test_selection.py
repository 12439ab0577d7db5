import pytest
from backend.reviewgen.errors import EmptySelectionError
from backend.reviewgen.models import EffectiveSelection, SelectionState, TagCategory
from backend.reviewgen.selection import SubmittedSelection, effective_selection


def test_all_categories_none_is_rejected():
    with pytest.raises(EmptySelectionError):
        effective_selection(
            ["スープ"], ["接客"], ["待ち時間"],
            good_is_none=True, neutral_is_none=True, bad_is_none=True,
        )


def test_empty_lists_are_rejected():
    with pytest.raises(EmptySelectionError) as excinfo:
        effective_selection([], None, [])
    assert excinfo.value.status_code == 400
    assert excinfo.value.public_message == "Select at least one tag"


def test_none_flag_clears_submitted_tags():
    selection = effective_selection(["スープ"], ["接客"], ["待ち時間"], neutral_is_none=True)
    assert selection == EffectiveSelection(good=("スープ",), neutral=(), bad=("待ち時間",))
    assert selection.total == 2


def test_blank_tags_are_dropped():
    selection = effective_selection(["  ", "スープ ", ""], [], [])
    assert selection.good == ("スープ",)


def test_single_good_tag_with_other_categories_none():
    selection = SubmittedSelection(
        good=("スープ",), neutral_is_none=True, bad_is_none=True
    ).effective()
    groups = dict(selection.groups())
    assert groups[TagCategory.GOOD] == ("スープ",)
    assert groups[TagCategory.NEUTRAL] == ()
    assert groups[TagCategory.BAD] == ()


def test_submitted_overlap_is_kept_in_each_category():
    selection = effective_selection(["接客"], [], ["接客"])
    assert selection.good == ("接客",)
    assert selection.bad == ("接客",)


class TestSelectionState:
    def test_toggle_adds_and_removes(self):
        state = SelectionState().toggle(TagCategory.GOOD, "スープ")
        assert state.good == frozenset({"スープ"})
        state = state.toggle(TagCategory.GOOD, "スープ")
        assert state.good == frozenset()

    def test_toggle_moves_tag_between_categories(self):
        state = SelectionState().toggle(TagCategory.GOOD, "接客")
        state = state.toggle(TagCategory.BAD, "接客")
        assert state.good == frozenset()
        assert state.bad == frozenset({"接客"})

    def test_mark_none_clears_and_flags(self):
        state = SelectionState().toggle(TagCategory.NEUTRAL, "量").mark_none(TagCategory.NEUTRAL)
        assert state.neutral == frozenset()
        assert state.neutral_is_none is True
        assert state.mark_none(TagCategory.NEUTRAL).neutral_is_none is False

    def test_toggle_after_none_clears_flag(self):
        state = SelectionState().mark_none(TagCategory.BAD).toggle(TagCategory.BAD, "待ち時間")
        assert state.bad_is_none is False
        assert state.bad == frozenset({"待ち時間"})

    def test_invariants_checked_on_construction(self):
        with pytest.raises(ValueError):
            SelectionState(good=frozenset({"スープ"}), good_is_none=True)
        with pytest.raises(ValueError):
            SelectionState(good=frozenset({"接客"}), bad=frozenset({"接客"}))

    def test_effective_from_state(self):
        state = (
            SelectionState()
            .toggle(TagCategory.GOOD, "スープ")
            .mark_none(TagCategory.NEUTRAL)
            .mark_none(TagCategory.BAD)
        )
        assert state.effective() == EffectiveSelection(good=("スープ",))

    def test_effective_all_none_raises(self):
        state = SelectionState(good_is_none=True, neutral_is_none=True, bad_is_none=True)
        with pytest.raises(EmptySelectionError):
            state.effective()

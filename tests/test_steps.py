"""Tests for step flag parsing."""

import pytest

from coursesetup.core.steps import Step, StepSelection


def test_empty_string_selects_all_steps() -> None:
    """Test that no flags means every step."""
    selection = StepSelection.parse("")
    assert list(selection) == list(Step)


@pytest.mark.parametrize("step", list(Step))
def test_each_flag_selects_only_its_step(step: Step) -> None:
    """Test that a single letter enables exactly one step."""
    selection = StepSelection.parse(step.flag)
    assert list(selection) == [step]
    for other in Step:
        if other is not step:
            assert other not in selection


def test_flags_are_independent_of_order() -> None:
    """Test that the run order is fixed regardless of the flag order."""
    selection = StepSelection.parse("xsp")
    assert list(selection) == [Step.PACKAGES, Step.SKELETON, Step.EXTRAS]
    assert selection == StepSelection.parse("psx")


def test_repeated_flags() -> None:
    """Test that repeating a flag is harmless."""
    assert StepSelection.parse("gg") == StepSelection.parse("g")


def test_invalid_character_rejects_everything() -> None:
    """Test that one bad character rejects the whole string."""
    with pytest.raises(ValueError, match="'z'"):
        StepSelection.parse("pgz")


def test_flags_are_unique() -> None:
    """Test that no two steps share a letter."""
    flags = [step.flag for step in Step]
    assert len(flags) == len(set(flags))
    assert "d" not in flags
    assert "r" not in flags

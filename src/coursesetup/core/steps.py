"""Setup steps and flag-string selection."""

from __future__ import annotations

from enum import Enum
from typing import FrozenSet, Iterable, Iterator


class Step(Enum):
    """A group of setup actions, in the order they run."""

    PACKAGES = "p"
    HOST = "h"
    REPO = "g"
    SKELETON = "s"
    CONFIGURE = "c"
    EXTRAS = "x"

    @property
    def flag(self) -> str:
        return self.value

    @property
    def title(self) -> str:
        return STEP_TITLES[self]


STEP_TITLES = {
    Step.PACKAGES: "Base packages",
    Step.HOST: "Host setup and SSH key",
    Step.REPO: "Course git repository",
    Step.SKELETON: "Skeleton files",
    Step.CONFIGURE: "Shell and desktop configuration",
    Step.EXTRAS: "Extra packages",
}


class StepSelection:
    """The set of steps chosen for one run."""

    def __init__(self, steps: Iterable[Step]):
        self.steps: FrozenSet[Step] = frozenset(steps)

    @classmethod
    def all(cls) -> "StepSelection":
        return cls(Step)

    @classmethod
    def parse(cls, flags: str) -> "StepSelection":
        """Parse a flag string such as ``"pgs"``.

        An empty string selects every step. Each letter enables exactly one
        step; a single unknown character rejects the whole string.

        Raises:
            ValueError: If the string contains a character that is not a
                step letter.
        """
        if not flags:
            return cls.all()

        by_flag = {step.flag: step for step in Step}
        invalid = sorted({ch for ch in flags if ch not in by_flag})
        if invalid:
            valid = "".join(step.flag for step in Step)
            raise ValueError(
                f"Invalid step flag(s) {''.join(invalid)!r}; valid flags are {valid!r}"
            )
        return cls(by_flag[ch] for ch in flags)

    def __contains__(self, step: object) -> bool:
        return step in self.steps

    def __iter__(self) -> Iterator[Step]:
        """Iterate selected steps in run order."""
        return (step for step in Step if step in self.steps)

    def __len__(self) -> int:
        return len(self.steps)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, StepSelection):
            return NotImplemented
        return self.steps == other.steps

    def __hash__(self) -> int:
        return hash(self.steps)

    def __repr__(self) -> str:
        return f"StepSelection({''.join(step.flag for step in self)!r})"

# model.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple


@dataclass(frozen=True)
class Step:
    """A single named command in a pipeline."""
    title: str
    command: Tuple[str, ...]

    @property
    def shell(self) -> bool:
        # one string -> /bin/sh -c, several -> argv
        return len(self.command) == 1

    @property
    def display(self) -> str:
        return " ".join(self.command)

    def args(self) -> str | list[str]:
        """The command in the form subprocess expects."""
        return self.command[0] if self.shell else list(self.command)


@dataclass(frozen=True)
class StepResult:
    success: bool
    title: str


class Mode(Enum):
    SEQUENTIAL = "sequential"
    SEQUENTIAL_FAIL_FAST = "fail-fast"
    SEQUENTIAL_CONTINUE = "continue"
    SEQUENTIAL_FAIL_FAST_CONTINUE = "fail-fast+continue"
    PARALLEL = "parallel"

    @property
    def fail_fast(self) -> bool:
        return self in (Mode.SEQUENTIAL_FAIL_FAST, Mode.SEQUENTIAL_FAIL_FAST_CONTINUE)

    @property
    def continue_mode(self) -> bool:
        return self in (Mode.SEQUENTIAL_CONTINUE, Mode.SEQUENTIAL_FAIL_FAST_CONTINUE)

    @property
    def parallel(self) -> bool:
        return self is Mode.PARALLEL


@dataclass(frozen=True)
class ScopeState:
    """
    Snapshot handed from a report scope to its child and back.

    skip_until stays set after the resume target is reached so the mode
    line can still name it; `skipping` is what step() consults.
    """
    skip_until: Optional[str] = None
    skipping: bool = False
    titles: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def resuming_from(cls, title: Optional[str]) -> "ScopeState":
        return cls(skip_until=title, skipping=title is not None)

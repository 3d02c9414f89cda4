# errors.py
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class ModeConflictError(ValueError):
    """Two execution modes that cannot run together were requested."""
    first: str
    second: str

    def __str__(self) -> str:
        return f"Cannot combine --{self.first} with --{self.second}"


@dataclass
class DuplicateStepError(ValueError):
    """A step title was declared twice; titles are the resume key."""
    title: str

    def __str__(self) -> str:
        return f"Duplicate step title: {self.title!r} (step titles must be unique)"


@dataclass
class PipelineLoadError(Exception):
    """
    Structured pipeline loading error with enough context for
    clean CLI output without a traceback.
    """
    path: Path
    message: str
    details: list[str] = field(default_factory=list)

    def __str__(self) -> str:
        lines = [f"{self.message}: {self.path}"]
        lines.extend(self.details)
        return "\n".join(lines)

# config.py
from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional, TextIO

from .errors import ModeConflictError
from .model import Mode

DEFAULT_TITLE = "Continuous Integration"
DEFAULT_SUBTITLE = "Running tests, style checks, and security audits"


def detect_plain(
    stream: TextIO,
    environ: Mapping[str, str],
    plain_flag: bool = False,
) -> bool:
    """
    Decide whether output must be plain (no colors, no cursor movement).

    Any one of these forces plain output:
      - the --plain flag
      - the output stream is not a terminal
      - TERM=dumb
      - NO_COLOR is set (any value)
      - CI_PLAIN=1 or CI_PLAIN=true
    """
    if plain_flag:
        return True
    isatty = getattr(stream, "isatty", None)
    if isatty is None or not isatty():
        return True
    if environ.get("TERM") == "dumb":
        return True
    if "NO_COLOR" in environ:
        return True
    if environ.get("CI_PLAIN") in ("1", "true"):
        return True
    return False


@dataclass(frozen=True)
class RunConfig:
    """
    Everything the engine needs to know about one invocation.

    Built once at the edge (CLI or host script) and passed down; the engine
    never reads argv, the process environment or the cwd on its own.
    """
    fail_fast: bool = False
    continue_mode: bool = False
    parallel: bool = False
    plain: bool = True
    title: str = DEFAULT_TITLE
    subtitle: str = DEFAULT_SUBTITLE
    cwd: Path = field(default_factory=Path.cwd)
    env: Mapping[str, str] = field(default_factory=lambda: dict(os.environ))
    debug: bool = False

    @classmethod
    def from_environment(
        cls,
        *,
        fail_fast: bool = False,
        continue_mode: bool = False,
        parallel: bool = False,
        plain: bool = False,
        title: Optional[str] = None,
        subtitle: Optional[str] = None,
        debug: bool = False,
        stream: Optional[TextIO] = None,
        environ: Optional[Mapping[str, str]] = None,
        cwd: str | Path | None = None,
    ) -> "RunConfig":
        environ = dict(os.environ if environ is None else environ)
        return cls(
            fail_fast=fail_fast,
            continue_mode=continue_mode,
            parallel=parallel,
            plain=detect_plain(stream or sys.stdout, environ, plain),
            title=title or DEFAULT_TITLE,
            subtitle=subtitle or DEFAULT_SUBTITLE,
            cwd=Path(cwd).resolve() if cwd is not None else Path.cwd(),
            env=environ,
            debug=debug,
        )

    @property
    def mode(self) -> Mode:
        if self.parallel:
            if self.fail_fast:
                raise ModeConflictError("parallel", "fail-fast")
            if self.continue_mode:
                raise ModeConflictError("parallel", "continue")
            return Mode.PARALLEL
        if self.fail_fast and self.continue_mode:
            return Mode.SEQUENTIAL_FAIL_FAST_CONTINUE
        if self.fail_fast:
            return Mode.SEQUENTIAL_FAIL_FAST
        if self.continue_mode:
            return Mode.SEQUENTIAL_CONTINUE
        return Mode.SEQUENTIAL

    def validate(self) -> Mode:
        """Raise ModeConflictError before anything runs."""
        return self.mode

    def child_env(self) -> dict[str, str]:
        env = dict(self.env)
        env["CI"] = "true"
        return env

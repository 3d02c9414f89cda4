# state.py
# Resume state: the title of the step a `--continue` run should start from.
# One plain-text file in the working directory, written only by the runner.

from __future__ import annotations

from pathlib import Path
from typing import Optional

from .ui.console import Console

STATE_FILE = ".ci_state"


class ResumeStateStore:
    def __init__(self, cwd: str | Path, console: Optional[Console] = None):
        self.path = Path(cwd) / STATE_FILE
        self.console = console

    def save(self, title: str) -> None:
        """Persist `title` as the resume point, replacing any previous one."""
        self.path.write_text(title, encoding="utf-8")
        self._debug(f"resume state saved: {title!r}")

    def load(self) -> Optional[str]:
        """
        Return the stored title, or None.

        A missing, unreadable or empty file means there is nothing to
        resume from; it never fails the run.
        """
        try:
            title = self.path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            self._debug(f"ignoring unreadable resume state {self.path}: {e}")
            return None
        return title or None

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)

    def _debug(self, message: str) -> None:
        if self.console is not None:
            self.console.print_debug(message)

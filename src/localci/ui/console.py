"""Console output formatting utilities for localci."""

from __future__ import annotations

import sys
from typing import Iterable, Optional, TextIO

import click

from ..report import format_duration

# click.style arguments per kind of line
STYLES = {
    "banner": {"fg": "green", "bold": True},
    "title": {"fg": "magenta", "bold": True},
    "subtitle": {"fg": "bright_black", "bold": True},
    "error": {"fg": "red", "bold": True},
    "success": {"fg": "green", "bold": True},
    "skip": {"fg": "yellow", "bold": True},
    "pending": {"fg": "blue", "bold": True},
}

INDICATORS = {"pending": "•", "success": "✅", "error": "❌"}
PLAIN_INDICATORS = {"pending": "-", "success": "OK", "error": "FAIL"}

RULE_WIDTH = 60


class Console:
    """Centralized console output formatting."""

    def __init__(
        self,
        plain: bool = True,
        debug: bool = False,
        stream: Optional[TextIO] = None,
        err_stream: Optional[TextIO] = None,
    ):
        """
        Initialize console formatter.

        Args:
            plain: If True, never emit colors or cursor movement
            debug: If True, show debug lines and stack traces
            stream: Where regular output goes (stdout by default)
            err_stream: Where errors and debug lines go (stderr by default)
        """
        self.plain = plain
        self.debug = debug
        self._stream = stream
        self._err_stream = err_stream

    @property
    def stream(self) -> TextIO:
        return self._stream if self._stream is not None else sys.stdout

    @property
    def err_stream(self) -> TextIO:
        return self._err_stream if self._err_stream is not None else sys.stderr

    def colorize(self, text: str, kind: str) -> str:
        if self.plain:
            return text
        return click.style(text, **STYLES[kind])

    def echo(self, text: str, kind: str, *, err: bool = False) -> None:
        click.echo(
            self.colorize(text, kind),
            file=self.err_stream if err else self.stream,
            color=not self.plain,
        )

    def heading(
        self,
        heading: str,
        subtitle: Optional[str] = None,
        kind: str = "banner",
        padding: bool = True,
    ) -> None:
        """Print a heading line with an optional gray subtitle beneath it."""
        self.echo(("\n\n" if padding else "") + heading, kind)
        if subtitle:
            self.echo(subtitle + ("\n" if padding else ""), "subtitle")

    def print_mode_info(self, modes: Iterable[str]) -> None:
        modes = list(modes)
        if modes:
            self.echo(f"Mode: {', '.join(modes)}\n", "subtitle")

    def print_report_result(
        self,
        title: str,
        success: bool,
        elapsed: str,
        failed_titles: Iterable[str] = (),
    ) -> None:
        """Print the closing banner of a report scope."""
        if success:
            self.echo(f"\n✅ {title} passed in {elapsed}", "success")
            return
        self.echo(f"\n❌ {title} failed in {elapsed}", "error")
        for failed in failed_titles:
            self.echo(f"   ↳ {failed} failed", "error")

    # ------------------------------------------------------------------
    # Parallel status lines
    # ------------------------------------------------------------------

    def parallel_line(self, title: str, status: str, duration: Optional[float] = None) -> str:
        indicator = (PLAIN_INDICATORS if self.plain else INDICATORS)[status]
        if duration is None:
            return f"   {indicator} {title}"
        return f"   {indicator} {title} ({format_duration(duration)})"

    def print_parallel_header(self, titles: list[str]) -> None:
        """Print the header and, on a terminal, one pending line per step."""
        self.echo(f"\n⏳ Running {len(titles)} steps in parallel:", "subtitle")
        if self.plain:
            return
        for title in titles:
            self.echo(self.parallel_line(title, "pending"), "pending")

    def update_parallel_line(self, index: int, total: int, text: str, status: str) -> None:
        """
        Rewrite the pending line of step `index` in place.

        The cursor sits just below the last pending line, so step `index`
        is `total - index` lines up. Terminal output only.
        """
        lines_up = total - index
        out = "\033[s"
        if lines_up > 0:
            out += f"\033[{lines_up}A"
        out += "\r\033[2K" + self.colorize(text, status) + "\033[u"
        click.echo(out, file=self.stream, nl=False, color=True)
        self.stream.flush()

    def print_failed_output_header(self) -> None:
        self.echo("\n" + "─" * RULE_WIDTH, "error")
        self.echo("Failed step output:", "error")
        self.echo("─" * RULE_WIDTH, "error")

    def print_failed_step(
        self,
        title: str,
        exit_label: str,
        command: str,
        stdout: str,
        stderr: str,
    ) -> None:
        """Print one failed parallel step with its captured output."""
        self.echo(f"\n┌── {title} ({exit_label})", "error")
        self.echo(f"│   Command: {command}", "subtitle")

        if not stdout and not stderr:
            self.echo("│   (no output)", "subtitle")
        if stdout:
            self.echo("│", "subtitle")
            self.echo("│   ── stdout ──", "subtitle")
            for line in stdout.splitlines():
                self.echo(f"│   {line}", "subtitle")
        if stderr:
            self.echo("│", "subtitle")
            self.echo("│   ── stderr ──", "error")
            for line in stderr.splitlines():
                self.echo(f"│   {line}", "error")

        self.echo("└" + "─" * (RULE_WIDTH - 1), "error")

    # ------------------------------------------------------------------
    # CLI-level messages
    # ------------------------------------------------------------------

    def print_error(
        self,
        title: str,
        message: str,
        details: Optional[list[str]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        """
        Print structured error message.

        Args:
            title: Error title
            message: Main error message
            details: Optional list of detail lines
            suggestion: Optional suggestion for user
        """
        self.echo(f"\nERROR: {title}", "error", err=True)
        self.echo(message, "error", err=True)
        for detail in details or []:
            click.echo(f"  {detail}", file=self.err_stream)
        if suggestion:
            click.echo(f"\n{suggestion}", file=self.err_stream)

    def print_exception(self, exc: BaseException) -> None:
        """Print exception, with full traceback only in debug mode."""
        if self.debug:
            import traceback
            traceback.print_exception(type(exc), exc, exc.__traceback__, file=self.err_stream)
        else:
            click.echo(f"Error: {exc}", file=self.err_stream)

    def print_info(self, message: str) -> None:
        """Print informational message."""
        click.echo(message, file=self.stream)

    def print_debug(self, message: str) -> None:
        """Print debug message (only if debug mode enabled)."""
        if self.debug:
            click.echo(f"[DEBUG] {message}", file=self.err_stream)

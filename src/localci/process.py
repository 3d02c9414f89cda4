"""Child process execution.

CONTRACT
- run_command: blocking, inherits stdout/stderr, returns True on exit 0.
- ProcessJob: one background command in its own process group with
  stdout/stderr captured to anonymous temp files.
- Never raises for a non-zero exit. A background command that cannot
  start is a finished job with exit code 127.
"""

from __future__ import annotations

import os
import signal
import subprocess
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Mapping, Optional

from .model import Step

MAX_OUTPUT_BYTES = 100 * 1024  # per captured stream

# exit code reported when the command could not be started at all
EXIT_NOT_STARTED = 127


def run_command(step: Step, *, cwd: Path, env: Mapping[str, str]) -> bool:
    """
    Run a step in the foreground; the child writes straight to our terminal.

    Raises OSError if the command cannot be started.
    """
    proc = subprocess.run(step.args(), shell=step.shell, cwd=str(cwd), env=dict(env))
    return proc.returncode == 0


def truncated_output(sink: IO[bytes], max_bytes: int = MAX_OUTPUT_BYTES) -> str:
    """
    Read a capture file, keeping only its last `max_bytes` bytes.

    Dropped bytes are announced with a marker giving the exact count.
    """
    sink.flush()
    size = sink.seek(0, os.SEEK_END)
    if size > max_bytes:
        sink.seek(-max_bytes, os.SEEK_END)
        marker = f"[... truncated {size - max_bytes} bytes ...]\n"
    else:
        sink.seek(0)
        marker = ""
    text = marker + sink.read().decode("utf-8", errors="replace")
    return text.strip()


@dataclass
class ProcessJob:
    index: int
    step: Step
    process: Optional[subprocess.Popen]
    stdout: IO[bytes]
    stderr: IO[bytes]
    started_at: float

    success: Optional[bool] = None
    duration: Optional[float] = None
    exit_code: Optional[int] = None
    released: bool = False

    @classmethod
    def spawn(cls, index: int, step: Step, *, cwd: Path, env: Mapping[str, str]) -> "ProcessJob":
        stdout = tempfile.TemporaryFile(prefix=f"ci_stdout_{index}_", suffix=".log")
        stderr = tempfile.TemporaryFile(prefix=f"ci_stderr_{index}_", suffix=".log")
        started_at = time.monotonic()
        try:
            # start_new_session -> the child leads its own process group,
            # so cancellation reaches everything it forks.
            proc = subprocess.Popen(
                step.args(),
                shell=step.shell,
                cwd=str(cwd),
                env=dict(env),
                stdin=subprocess.DEVNULL,
                stdout=stdout,
                stderr=stderr,
                start_new_session=True,
            )
        except OSError as e:
            stderr.write(f"could not start {step.display!r}: {e}\n".encode("utf-8"))
            proc = None
        return cls(index=index, step=step, process=proc, stdout=stdout, stderr=stderr, started_at=started_at)

    @property
    def pid(self) -> Optional[int]:
        return self.process.pid if self.process is not None else None

    @property
    def title(self) -> str:
        return self.step.title

    @property
    def done(self) -> bool:
        return self.exit_code is not None

    def poll(self) -> bool:
        """
        Non-blocking reap. Returns True exactly once, on the pass where the
        job is first seen finished, after filling in the result fields.
        """
        if self.done:
            return False
        if self.process is None:
            returncode = EXIT_NOT_STARTED
        else:
            returncode = self.process.poll()
            if returncode is None:
                return False
        self._finish(returncode)
        return True

    def _finish(self, returncode: int) -> None:
        self.exit_code = returncode
        self.success = returncode == 0
        self.duration = time.monotonic() - self.started_at

    @property
    def exit_label(self) -> str:
        if self.exit_code is not None and self.exit_code < 0:
            try:
                name = signal.Signals(-self.exit_code).name
            except ValueError:
                name = str(-self.exit_code)
            return f"killed by {name}"
        return f"exit {self.exit_code}"

    def signal_group(self, sig: int) -> None:
        """Signal the job's whole process group; a group that is gone is fine."""
        if self.process is None:
            return
        try:
            os.killpg(self.process.pid, sig)
        except (ProcessLookupError, PermissionError):
            pass

    def reap(self) -> None:
        """Blocking wait; only called after SIGKILL so it cannot hang."""
        if self.process is None:
            return
        try:
            self.process.wait()
        except ChildProcessError:
            pass

    def output(self) -> tuple[str, str]:
        return truncated_output(self.stdout), truncated_output(self.stderr)

    def release(self) -> None:
        """Close (and so delete) both capture files. Safe to call twice."""
        if self.released:
            return
        self.released = True
        for sink in (self.stdout, self.stderr):
            try:
                sink.close()
            except OSError:
                pass

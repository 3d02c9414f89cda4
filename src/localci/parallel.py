# parallel.py
from __future__ import annotations

import signal
import time
from pathlib import Path
from typing import List, Mapping, Sequence

from .model import Step, StepResult
from .process import ProcessJob
from .ui.console import Console

POLL_INTERVAL = 0.1   # seconds between poll passes that reaped nothing
GRACE_PERIOD = 1.0    # seconds between SIGTERM and SIGKILL on cancellation


class ParallelEngine:
    """
    Runs every step at once, each in its own process group, and supervises
    them from a single polling loop.

    One engine runs one batch. `interrupt()` may be called from a signal
    handler while `run()` is polling.
    """

    def __init__(
        self,
        console: Console,
        *,
        cwd: Path,
        env: Mapping[str, str],
        poll_interval: float = POLL_INTERVAL,
        grace_period: float = GRACE_PERIOD,
    ):
        self.console = console
        self.cwd = cwd
        self.env = env
        self.poll_interval = poll_interval
        self.grace_period = grace_period

        self.jobs: List[ProcessJob] = []      # every spawned job, by index
        self.running: List[ProcessJob] = []   # not reaped yet

    def run(self, steps: Sequence[Step]) -> List[StepResult]:
        """
        Spawn all steps, wait for all of them, print failures.

        Status lines appear as jobs finish on a terminal, and all at once in
        declaration order in plain mode. Results are in declaration order.
        """
        total = len(steps)

        try:
            # spawn first: debug lines must not land between the pending
            # lines and the cursor, or the in-place rewrites hit the wrong rows
            for index, step in enumerate(steps):
                job = ProcessJob.spawn(index, step, cwd=self.cwd, env=self.env)
                self.console.print_debug(f"spawned {step.title!r} pid={job.pid}")
                self.jobs.append(job)
                self.running.append(job)

            self.console.print_parallel_header([s.title for s in steps])

            while self.running:
                reaped_any = False

                for job in list(self.running):
                    if not job.poll():
                        continue
                    reaped_any = True
                    self.running.remove(job)

                    if not self.console.plain:
                        self.console.update_parallel_line(job.index, total, self._status_line(job), self._status(job))
                    if job.success:
                        job.release()

                if not reaped_any:
                    time.sleep(self.poll_interval)

            if self.console.plain:
                for job in self.jobs:
                    self.console.echo(self._status_line(job), self._status(job))

            self._print_summary()
        finally:
            # only non-empty if we are leaving on an exception
            if self.running:
                self.interrupt()
            self.release_all()

        return [StepResult(success=bool(job.success), title=job.title) for job in self.jobs]

    @staticmethod
    def _status(job: ProcessJob) -> str:
        return "success" if job.success else "error"

    def _status_line(self, job: ProcessJob) -> str:
        return self.console.parallel_line(job.title, self._status(job), duration=job.duration)

    def interrupt(self) -> None:
        """
        Stop every outstanding job: SIGTERM each process group, give them
        the grace period, SIGKILL each group, reap, release all captures.
        """
        outstanding = list(self.running)
        if outstanding:
            for job in outstanding:
                job.signal_group(signal.SIGTERM)

            time.sleep(self.grace_period)

            for job in outstanding:
                job.signal_group(signal.SIGKILL)
            for job in outstanding:
                job.reap()

            self.running.clear()

        self.release_all()

    def release_all(self) -> None:
        for job in self.jobs:
            job.release()

    def _print_summary(self) -> None:
        failed = [job for job in self.jobs if job.done and not job.success]
        if not failed:
            return

        self.console.print_failed_output_header()
        for job in failed:
            stdout, stderr = job.output()
            self.console.print_failed_step(
                job.title,
                job.exit_label,
                job.step.display,
                stdout,
                stderr,
            )
            job.release()

# runner.py
from __future__ import annotations

import runpy
import signal
from contextlib import contextmanager
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Callable, Iterator, List, Optional

from .config import RunConfig
from .errors import DuplicateStepError, PipelineLoadError
from .model import Mode, ScopeState, Step, StepResult
from .parallel import ParallelEngine
from .process import run_command
from .report import Stopwatch, all_passed, failed_titles, trap_signals
from .state import ResumeStateStore
from .ui.console import Console

Pipeline = Callable[["Runner"], None]


class Runner:
    """
    What a pipeline talks to: `step()` declares and (outside parallel mode)
    runs a command, `report()` opens a nested, timed scope.

    Every scope gets its own Runner. The parent hands its ScopeState to the
    child and takes the child's updated state back when the scope closes.
    """

    def __init__(
        self,
        config: RunConfig,
        console: Console,
        store: ResumeStateStore,
        state: Optional[ScopeState] = None,
    ):
        self.config = config
        self.console = console
        self.store = store
        self.state = state or ScopeState()

        self.results: List[StepResult] = []
        self.parallel_steps: List[Step] = []
        self.engine: Optional[ParallelEngine] = None

    # ------------------------------------------------------------------
    # Pipeline API
    # ------------------------------------------------------------------

    def step(self, title: str, *command: str) -> None:
        if not command:
            raise ValueError(f"step({title!r}) needs a command")
        if title in self.state.titles:
            raise DuplicateStepError(title)
        self.state = replace(self.state, titles=self.state.titles | {title})
        step = Step(title=title, command=tuple(command))

        if self.state.skipping:
            if title != self.state.skip_until:
                self.console.heading(title, f"skipped (resuming from: {self.state.skip_until})", kind="skip")
                self.results.append(StepResult(success=True, title=title))
                return
            # target reached: it runs, and the old resume point is gone either way
            self.state = replace(self.state, skipping=False)
            self.store.clear()

        if self.config.parallel:
            self.parallel_steps.append(step)
            return

        self.console.heading(title, step.display, kind="title")
        with self.report(title) as scope:
            scope._execute(step)

    @contextmanager
    def report(self, title: str) -> Iterator["Runner"]:
        child = Runner(self.config, self.console, self.store, self.state)

        with trap_signals(self._signal_handler(child, title)):
            stopwatch = Stopwatch()
            yield child
            child.run_parallel_steps()

            self.state = child.state
            self.console.print_report_result(
                title,
                child.success,
                str(stopwatch),
                failed_titles(child.results) if len(child.results) > 1 else (),
            )
            self.results.extend(child.results)

    @property
    def success(self) -> bool:
        return all_passed(self.results)

    @property
    def failures(self) -> List[StepResult]:
        return [r for r in self.results if not r.success]

    def failure(self, title: str, subtitle: Optional[str] = None) -> None:
        """Print an error heading; for pipelines that detect problems themselves."""
        self.console.heading(title, subtitle, kind="error")

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def _execute(self, step: Step) -> None:
        try:
            success = run_command(step, cwd=self.config.cwd, env=self.config.child_env())
        except OSError as e:
            self.console.echo(f"could not start {step.display!r}: {e}", "error", err=True)
            success = False

        self.results.append(StepResult(success=success, title=step.title))

        if not success and self.config.fail_fast:
            self.store.save(step.title)
            self.console.echo(f"\n❌ {step.title} failed (fail-fast enabled)", "error", err=True)
            raise SystemExit(1)

    def run_parallel_steps(self) -> None:
        if not (self.config.parallel and self.parallel_steps):
            return

        steps, self.parallel_steps = self.parallel_steps, []
        self.engine = ParallelEngine(self.console, cwd=self.config.cwd, env=self.config.child_env())
        try:
            self.results.extend(self.engine.run(steps))
        finally:
            self.engine = None

    def _signal_handler(self, child: "Runner", title: str):
        def handler(signum, frame):
            if child.engine is not None:
                child.engine.interrupt()
            verb = "interrupted" if signum == signal.SIGINT else "terminated"
            self.console.echo(f"\n❌ {title} {verb}", "error", err=True)
            raise SystemExit(1)

        return handler


# ----------------------------------------------------------------------
# Top level
# ----------------------------------------------------------------------

def describe_mode(mode: Mode, skip_until: Optional[str]) -> List[str]:
    modes = []
    if mode.fail_fast:
        modes.append("fail-fast")
    if skip_until:
        modes.append(f"continue from '{skip_until}'")
    if mode.parallel:
        modes.append("parallel")
    return modes


def run_pipeline(
    config: RunConfig,
    pipeline: Pipeline,
    console: Optional[Console] = None,
) -> bool:
    """
    Run a whole pipeline under one top-level report.

    Raises ModeConflictError before anything runs if the modes clash.
    Fail-fast failures and signals end the run with SystemExit(1).

    Returns:
      True if every step passed (or was skipped while resuming).
    """
    mode = config.validate()
    if console is None:
        console = Console(plain=config.plain, debug=config.debug)

    store = ResumeStateStore(config.cwd, console)
    skip_until = store.load() if mode.continue_mode else None
    root = Runner(config, console, store, ScopeState.resuming_from(skip_until))

    console.heading(config.title, config.subtitle, padding=False)
    console.print_mode_info(describe_mode(mode, skip_until))

    with root.report(config.title) as ci:
        pipeline(ci)

    if root.success:
        store.clear()
    else:
        store.save(root.failures[0].title)
    return root.success


# ----------------------------------------------------------------------
# Pipeline loading (local file)
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class LoadedPipeline:
    path: Path
    run: Pipeline
    title: Optional[str] = None
    subtitle: Optional[str] = None


def load_pipeline(path: str | Path) -> LoadedPipeline:
    """
    Load a pipeline from a python file path.

    The file must define:
      - pipeline(ci) -> None
    and may define TITLE / SUBTITLE for the top-level heading.
    """
    pl_path = Path(path).expanduser().resolve()
    if not pl_path.exists():
        raise PipelineLoadError(pl_path, "Pipeline file not found")
    if pl_path.suffix != ".py":
        raise PipelineLoadError(pl_path, "Pipeline must be a .py file")

    module_name = f"localci_pipeline_{pl_path.stem}"
    globals_dict = runpy.run_path(str(pl_path), run_name=module_name)

    run = globals_dict.get("pipeline")
    if not callable(run):
        raise PipelineLoadError(
            pl_path,
            "Pipeline file does not define pipeline(ci)",
            details=["Example:", "  def pipeline(ci):", "      ci.step('Tests', 'pytest -q')"],
        )

    return LoadedPipeline(
        path=pl_path,
        run=run,
        title=globals_dict.get("TITLE"),
        subtitle=globals_dict.get("SUBTITLE"),
    )

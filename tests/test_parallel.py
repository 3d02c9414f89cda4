import os
import time
from pathlib import Path

import pytest

from localci.model import Step
from localci.parallel import ParallelEngine
from localci.process import ProcessJob
from localci.ui.console import Console


def _engine(console, tmp_path, **kwargs):
    kwargs.setdefault("poll_interval", 0.02)
    return ParallelEngine(console, cwd=tmp_path, env=dict(os.environ), **kwargs)


def _alive(pid: int) -> bool:
    """True unless the process is gone or a zombie."""
    try:
        stat = Path(f"/proc/{pid}/stat").read_text()
    except FileNotFoundError:
        return False
    return stat.rsplit(")", 1)[1].split()[0] != "Z"


def test_one_result_per_step_in_declaration_order(console, tmp_path):
    steps = [
        Step("Slow", ("sleep 0.3",)),
        Step("Fast", ("true",)),
        Step("Broken", ("exit 4",)),
    ]
    results = _engine(console, tmp_path).run(steps)

    assert [r.title for r in results] == ["Slow", "Fast", "Broken"]
    assert [r.success for r in results] == [True, True, False]


def test_all_steps_start_before_any_finishes(console, tmp_path):
    steps = [Step(f"S{i}", ("sleep 0.5",)) for i in range(4)]
    started = time.monotonic()
    _engine(console, tmp_path).run(steps)
    assert time.monotonic() - started < 1.9


def test_plain_lines_and_failure_summary(console, output, tmp_path):
    steps = [
        Step("Lint", ("echo all good",)),
        Step("Test", ("echo some output; echo boom >&2; exit 1",)),
        Step("Quiet", ("false",)),
    ]
    _engine(console, tmp_path).run(steps)
    text = output.getvalue()

    assert "Running 3 steps in parallel:" in text
    assert "   - " not in text  # no pending placeholders in plain mode
    assert "   OK Lint (" in text
    assert "   FAIL Test (" in text
    assert "Failed step output:" in text
    assert "┌── Test (exit 1)" in text
    assert "│   Command: echo some output; echo boom >&2; exit 1" in text
    assert "│   some output" in text
    assert "│   boom" in text
    assert "┌── Quiet (exit 1)" in text
    assert "│   (no output)" in text
    # passing step output is never printed
    assert "all good" not in text


def test_failure_summary_keeps_the_tail(console, output, tmp_path):
    cmd = "head -c 102500 /dev/zero | tr '\\0' x; echo; echo LAST LINE; exit 1"
    _engine(console, tmp_path).run([Step("Noisy", (cmd,))])
    text = output.getvalue()

    # 102500 x's + 2 newlines + "LAST LINE" = 102511 bytes
    assert "[... truncated 111 bytes ...]" in text
    assert "│   LAST LINE" in text


def test_interactive_rendering_rewrites_lines_in_place(output, tmp_path):
    console = Console(plain=False, stream=output, err_stream=output)
    _engine(console, tmp_path).run([Step("One", ("true",)), Step("Two", ("true",))])
    text = output.getvalue()

    assert "•" in text
    assert "\033[s" in text and "\033[u" in text
    assert "\033[2K" in text
    assert "✅" in text


def test_plain_lines_printed_once_in_declaration_order(console, output, tmp_path):
    steps = [
        Step("Slow", ("sleep 0.4; false",)),
        Step("Fast", ("false",)),
        Step("Ok", ("true",)),
    ]
    _engine(console, tmp_path).run(steps)
    text = output.getvalue()

    assert text.count("FAIL Slow (") == 1
    assert text.count("FAIL Fast (") == 1
    assert text.index("FAIL Slow (") < text.index("FAIL Fast (") < text.index("OK Ok (")
    # failure boxes follow declaration order too
    assert text.index("┌── Slow") < text.index("┌── Fast")


def test_debug_lines_come_before_pending_lines(output, tmp_path):
    console = Console(plain=False, debug=True, stream=output, err_stream=output)
    _engine(console, tmp_path).run([Step("One", ("true",)), Step("Two", ("true",))])
    text = output.getvalue()

    header = text.index("Running 2 steps in parallel")
    assert text.count("[DEBUG] spawned") == 2
    assert text.rindex("[DEBUG]") < header


def test_captures_released_after_run(console, tmp_path):
    engine = _engine(console, tmp_path)
    engine.run([Step("Ok", ("true",)), Step("Bad", ("false",))])
    for job in engine.jobs:
        assert job.released
        assert job.stdout.closed and job.stderr.closed


@pytest.mark.skipif(not Path("/proc/self/stat").exists(), reason="needs /proc")
def test_interrupt_kills_every_process_group(console, tmp_path):
    engine = _engine(console, tmp_path, grace_period=0.2)
    for i in range(2):
        # the shell leaves a grandchild behind in its process group
        step = Step(f"Job{i}", (f"sleep 30 & echo $! > child{i}.pid; wait",))
        job = ProcessJob.spawn(i, step, cwd=tmp_path, env=dict(os.environ))
        engine.jobs.append(job)
        engine.running.append(job)

    deadline = time.monotonic() + 5
    pid_files = [tmp_path / f"child{i}.pid" for i in range(2)]
    while not all(p.exists() and p.read_text().strip() for p in pid_files):
        assert time.monotonic() < deadline
        time.sleep(0.02)
    grandchildren = [int(p.read_text()) for p in pid_files]

    started = time.monotonic()
    engine.interrupt()

    assert time.monotonic() - started < 5
    assert engine.running == []
    for job in engine.jobs:
        assert job.process.returncode is not None
        assert job.released

    deadline = time.monotonic() + 2
    while any(_alive(pid) for pid in grandchildren):
        assert time.monotonic() < deadline, "grandchild survived the interrupt"
        time.sleep(0.02)


def test_interrupt_without_outstanding_jobs_returns_immediately(console, tmp_path):
    engine = _engine(console, tmp_path, grace_period=5)
    started = time.monotonic()
    engine.interrupt()
    assert time.monotonic() - started < 1

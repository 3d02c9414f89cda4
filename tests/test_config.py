import io

import pytest

from localci.config import RunConfig, detect_plain
from localci.errors import ModeConflictError
from localci.model import Mode


class FakeTTY(io.StringIO):
    def isatty(self):
        return True


TTY_ENV = {"TERM": "xterm-256color"}


@pytest.mark.parametrize(
    "flags, expected",
    [
        ({}, Mode.SEQUENTIAL),
        ({"fail_fast": True}, Mode.SEQUENTIAL_FAIL_FAST),
        ({"continue_mode": True}, Mode.SEQUENTIAL_CONTINUE),
        ({"fail_fast": True, "continue_mode": True}, Mode.SEQUENTIAL_FAIL_FAST_CONTINUE),
        ({"parallel": True}, Mode.PARALLEL),
    ],
)
def test_mode_from_flags(tmp_path, flags, expected):
    assert RunConfig(cwd=tmp_path, **flags).mode is expected


def test_parallel_incompatible_with_fail_fast(tmp_path):
    with pytest.raises(ModeConflictError, match="Cannot combine --parallel with --fail-fast"):
        RunConfig(cwd=tmp_path, parallel=True, fail_fast=True).validate()


def test_parallel_incompatible_with_continue(tmp_path):
    with pytest.raises(ModeConflictError, match="Cannot combine --parallel with --continue"):
        RunConfig(cwd=tmp_path, parallel=True, continue_mode=True).validate()


def test_plain_mode_enabled_by_flag():
    assert detect_plain(FakeTTY(), TTY_ENV, plain_flag=True)


def test_plain_mode_enabled_when_not_tty():
    assert detect_plain(io.StringIO(), TTY_ENV)


def test_plain_mode_disabled_when_tty_and_no_flag():
    assert not detect_plain(FakeTTY(), TTY_ENV)


@pytest.mark.parametrize(
    "env",
    [
        {"TERM": "dumb"},
        {"TERM": "xterm", "NO_COLOR": ""},
        {"TERM": "xterm", "CI_PLAIN": "1"},
        {"TERM": "xterm", "CI_PLAIN": "true"},
    ],
)
def test_plain_mode_from_environment(env):
    assert detect_plain(FakeTTY(), env)


def test_ci_plain_other_values_ignored():
    assert not detect_plain(FakeTTY(), {"TERM": "xterm", "CI_PLAIN": "0"})


def test_from_environment_uses_given_inputs(tmp_path):
    config = RunConfig.from_environment(
        parallel=True,
        stream=FakeTTY(),
        environ={"TERM": "xterm", "PATH": "/bin"},
        cwd=tmp_path,
    )
    assert config.plain is False
    assert config.cwd == tmp_path.resolve()
    assert config.title == "Continuous Integration"
    assert config.mode is Mode.PARALLEL


def test_child_env_marks_ci(tmp_path):
    config = RunConfig(cwd=tmp_path, env={"PATH": "/bin"})
    assert config.child_env() == {"PATH": "/bin", "CI": "true"}
    assert "CI" not in config.env

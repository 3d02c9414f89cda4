import io

import pytest

from localci.config import RunConfig
from localci.ui.console import Console


@pytest.fixture
def output():
    return io.StringIO()


@pytest.fixture
def console(output):
    return Console(plain=True, stream=output, err_stream=output)


@pytest.fixture
def make_config(tmp_path):
    def _make(**kwargs):
        kwargs.setdefault("cwd", tmp_path)
        kwargs.setdefault("plain", True)
        return RunConfig(**kwargs)

    return _make

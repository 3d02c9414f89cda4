# ci_pipeline.py
# Pipeline for checking localci itself: `localci run`, `localci run -p`, `localci run -fc`
from __future__ import annotations

TITLE = "localci"
SUBTITLE = "Tests and style checks"


def pipeline(ci):
    ci.step("Install", "python -m pip install -q -e .[test]")

    with ci.report("Checks") as checks:
        checks.step("Tests", "python", "-m", "pytest", "-q")
        checks.step("Ruff", "ruff", "check", "src", "tests")

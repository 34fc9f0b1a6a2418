"""Shared test fixtures for racejudge."""

import shlex
import sys
import textwrap

import pytest

from racejudge.core.types import RaceCourse


@pytest.fixture
def tmp_output(tmp_path):
    """Provide a temporary output directory for test runs."""
    return tmp_path / "output"


@pytest.fixture
def course():
    """A 3x4 course with one obstacle, short vision and a roomy budget."""
    return RaceCourse(
        width=3,
        length=4,
        vision=2,
        think_time=10000,
        step_limit=5,
        squares=((0, 0, 0), (0, 1, 0), (0, 0, 2), (0, 0, 0)),
    )


@pytest.fixture
def make_ai(tmp_path):
    """Write a Python stub AI to disk and return the command launching it."""
    counter = iter(range(1000))

    def _make(source: str) -> str:
        path = tmp_path / f"ai_{next(counter)}.py"
        path.write_text(textwrap.dedent(source))
        return f"{shlex.quote(sys.executable)} {shlex.quote(str(path))}"

    return _make

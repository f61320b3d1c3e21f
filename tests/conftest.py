"""Pytest configuration shared by unit and integration tests.

The CLI writes through module-level state (the output timer stream and a
stderr handler on the ``autoprobe`` logger). Both are bound to whatever
sys.stderr was when a test ran, which pytest closes after capture, so they
are reset after every test.
"""

import logging
import sys

import pytest

from autoprobe import output


@pytest.fixture(autouse=True)
def _restore_stdio():  # noqa: PT004
    """Ensure stdout/stderr and autoprobe's output state are restored after each test."""
    yield

    if sys.stdout.closed:
        sys.stdout = sys.__stdout__
    if sys.stderr.closed:
        sys.stderr = sys.__stderr__

    output.init_timer(None)
    output.set_verbose(False)
    logger = logging.getLogger("autoprobe")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)

"""Configuration for pytest."""

import logging
from typing import Generator

import pytest

# Import fixtures to make them available to all tests
from pyghstack.tests.e2e.fixtures import stack_repo  # noqa: F401


@pytest.fixture(autouse=True)
def restore_log_handlers() -> Generator[None, None, None]:
    """CLI runs replace the root handlers with one bound to the runner's stderr."""
    handlers = logging.getLogger().handlers[:]
    yield
    logging.getLogger().handlers[:] = handlers

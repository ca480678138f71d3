"""Global pytest configuration and shared fixtures for linode_engine."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Final

import numpy as np
import pytest

from linode_engine.backends import LinalgBackend, get_backend, set_backend

BACKEND_NAMES: Final[tuple[str, ...]] = ("native", "lapack")


# -----------------------------------------------------------------------------
# Backend selection
# -----------------------------------------------------------------------------


@pytest.fixture(params=BACKEND_NAMES)
def backend(request: pytest.FixtureRequest) -> Iterator[LinalgBackend]:
    """
    Run the test once per linear algebra backend.

    The previously configured backend is restored afterwards.

    Yields:
        The active backend for the test.
    """
    previous = set_backend(request.param)
    try:
        yield get_backend()
    finally:
        set_backend(previous)


# -----------------------------------------------------------------------------
# Random inputs
# -----------------------------------------------------------------------------


@pytest.fixture
def rng() -> np.random.Generator:
    """Deterministic random generator."""
    return np.random.default_rng(12345)

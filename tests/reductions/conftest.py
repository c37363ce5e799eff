from __future__ import annotations

import logging

import numpy as np
import pytest


@pytest.fixture
def fast_training() -> dict:
    """Small, CPU-only training schedule that keeps the neural variants quick."""
    return {"epochs": 15, "batch_size": 16, "learning_rate": 1e-2, "seed": 0, "device": "cpu"}


@pytest.fixture
def X_ae() -> np.ndarray:
    """(40x5) data with a 2-D nonlinear structure."""
    rng = np.random.default_rng(3)
    t = rng.uniform(-1.0, 1.0, size=(40, 2))
    return np.column_stack([t[:, 0], t[:, 1], t[:, 0] ** 2, t[:, 0] * t[:, 1], np.sin(t[:, 1])])


@pytest.fixture
def latentia_records(caplog):
    """Capture records of the package logger (it does not propagate to the root logger)."""
    pkg = logging.getLogger("latentia")
    pkg.addHandler(caplog.handler)
    yield caplog
    pkg.removeHandler(caplog.handler)

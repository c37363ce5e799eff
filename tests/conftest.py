"""Shared fixtures for all test suites."""
from __future__ import annotations

import os
from collections.abc import Iterator

import numpy as np
import pandas as pd
import pytest

from latentia.core.variant_registry import reset_registry


@pytest.fixture(autouse=True)
def _quiet_logs(tmp_path, monkeypatch) -> Iterator[None]:
    """Redirect logs to a temporary file and clean LATENTIA_LOG_* environment variables."""
    for k in list(os.environ.keys()):
        if k.startswith("LATENTIA_LOG_"):
            monkeypatch.delenv(k, raising=False)
    monkeypatch.setenv("LATENTIA_LOG_FILE", str(tmp_path / "latentia.log"))
    yield


@pytest.fixture(autouse=True)
def _restore_registry() -> Iterator[None]:
    """Every test starts and ends with only the built-in variants registered."""
    reset_registry()
    yield
    reset_registry()


@pytest.fixture
def X_small() -> np.ndarray:
    """Provide a small (12x6) random array."""
    rng = np.random.default_rng(0)
    return rng.normal(size=(12, 6))


@pytest.fixture
def X_lowrank() -> np.ndarray:
    """(100x10) data driven by 3 latent factors plus a little noise."""
    rng = np.random.default_rng(7)
    factors = rng.normal(size=(100, 3)) * np.array([5.0, 2.0, 1.0])
    loadings = rng.normal(size=(3, 10))
    return factors @ loadings + 0.05 * rng.normal(size=(100, 10)) + 3.0


@pytest.fixture
def df_small(X_small) -> pd.DataFrame:
    """Wrap X_small in a DataFrame with feature columns and a custom index."""
    return pd.DataFrame(
        X_small,
        columns=[f"f{i}" for i in range(X_small.shape[1])],
        index=[f"s{i}" for i in range(X_small.shape[0])],
    )

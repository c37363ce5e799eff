from __future__ import annotations

from typing import Optional

import numpy as np
import pandas as pd
from sklearn.preprocessing import StandardScaler

from latentia.constants.tool_constants import SCALING_OPTIONS
from latentia.core.errors import DimensionMismatch, InvalidConfig, NumericFailure
from latentia.types import DatasetLike, Scaling


def as_matrix(dataset: DatasetLike, *, name: str = "dataset") -> np.ndarray:
    """
    Coerce `dataset` into a finite float64 matrix of shape (N, D).

    Raises
    ------
    InvalidConfig
        If the values are not numeric.
    DimensionMismatch
        If the input is not 2-D or has no rows/columns.
    NumericFailure
        If the input contains NaN or infinite values.
    """
    if isinstance(dataset, pd.DataFrame):
        dataset = dataset.to_numpy()
    arr = np.asarray(dataset)
    if arr.ndim != 2:
        raise DimensionMismatch(f"Expected 2D {name}, got shape {arr.shape}")
    if arr.shape[0] < 1 or arr.shape[1] < 1:
        raise DimensionMismatch(f"{name} must have at least one row and one column; got shape {arr.shape}")
    if not (np.issubdtype(arr.dtype, np.number) or arr.dtype == np.bool_):
        try:
            arr = arr.astype(np.float64)
        except (TypeError, ValueError) as exc:
            raise InvalidConfig(f"{name} must be numeric.") from exc
    if np.iscomplexobj(arr):
        raise InvalidConfig(f"{name} must be real-valued.")
    arr = arr.astype(np.float64, copy=False)
    if not np.isfinite(arr).all():
        raise NumericFailure(f"{name} contains NaN or infinite values.")
    return arr


def centering_statistics(X: np.ndarray, scaling: Scaling = "none") -> tuple[np.ndarray, Optional[np.ndarray]]:
    """
    Feature-wise mean and (optionally) scale of `X`.

    ``scaling="standardize"`` uses the population standard deviation; features
    with zero variance get a scale of 1.0.
    """
    if scaling not in SCALING_OPTIONS:
        raise InvalidConfig(f"Unknown scaling option '{scaling}'. Expected one of {SCALING_OPTIONS}.")
    scaler = StandardScaler(with_mean=True, with_std=scaling == "standardize").fit(X)
    mean = np.asarray(scaler.mean_, dtype=np.float64)
    scale = None if scaler.scale_ is None else np.asarray(scaler.scale_, dtype=np.float64)
    return mean, scale


def center_and_scale(X: np.ndarray, mean: np.ndarray, scale: Optional[np.ndarray]) -> np.ndarray:
    centered = X - mean
    if scale is not None:
        centered = centered / scale
    return centered


def uncenter(Xs: np.ndarray, mean: np.ndarray, scale: Optional[np.ndarray]) -> np.ndarray:
    if scale is not None:
        Xs = Xs * scale
    return Xs + mean

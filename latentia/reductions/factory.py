from __future__ import annotations

import logging
from typing import Any, Optional

import numpy as np
import pandas as pd

from latentia.constants.tool_constants import OUTPUT_COLUMN_PREFIX
from latentia.core.errors import DimensionMismatch, InvalidConfig, UnknownVariant
from latentia.core.reduction_config import ReductionConfig
from latentia.core.variant_registry import (
    create_estimator,
    get_variant_spec,
    list_registered_variants,
    register_alias,
    register_variant,
)
from latentia.core.variant_spec import VariantSpec
from latentia.logging import add_context, get_logger
from latentia.types import DatasetLike, ReturnType

from .autoencoders import AutoencoderReducer, DenoisingAutoencoderReducer
from .base_estimator import ReductionEstimator
from .linear_reductions import IncrementalPCAReducer, PCAReducer
from .quantum_reductions import QuantumDenoisingAutoencoderReducer

# -----------------------------------------------------------------------------
# Built-in variants
# -----------------------------------------------------------------------------
_BUILTIN_VARIANTS: tuple[tuple[type[ReductionEstimator], str], ...] = (
    (PCAReducer, "Covariance eigendecomposition (PCA)"),
    (IncrementalPCAReducer, "Mini-batch incremental PCA"),
    (AutoencoderReducer, "Dense MLP autoencoder"),
    (DenoisingAutoencoderReducer, "Dense autoencoder trained on corrupted inputs"),
    (QuantumDenoisingAutoencoderReducer, "Denoising autoencoder with a simulated rotation-circuit encoder"),
)

_BUILTIN_ALIASES: dict[str, str] = {
    "linear_pca": "pca",
    "ipca": "incremental_pca",
    "ae": "autoencoder",
    "dae": "denoising_autoencoder",
    "qdae": "quantum_denoising_autoencoder",
    "qdenoising_ae": "quantum_denoising_autoencoder",
}


def register_builtin_variants() -> None:
    """(Re-)register the variants shipped with latentia and their aliases."""
    for cls, description in _BUILTIN_VARIANTS:
        spec = VariantSpec(name=cls.variant_name, factory=cls, kind=cls.kind, description=description)
        register_variant(spec, builtin=True)
    for alias, canonical in _BUILTIN_ALIASES.items():
        register_alias(alias, canonical, builtin=True)


register_builtin_variants()

# --- logging: ensure parent, then a child logger for the factory -------------
_ = get_logger("latentia")
logger = logging.getLogger("latentia.reductions.factory")
add_context(logger, component="reductions", facility="factory")


def get_available_methods(kind: Optional[str] = None) -> list[str]:
    """
    List method names (aliases included) accepted by `reduce_dimensionality`.

    Parameters
    ----------
    kind : {"linear", "autoencoder", "parameterized"}, optional
        Filter by variant family. If None, returns all.
    """
    return list_registered_variants(include_aliases=True, kind=kind)


def is_linear_method(name: str) -> bool:
    """Return True if `name` is a registered linear variant."""
    try:
        return get_variant_spec(name).is_linear
    except UnknownVariant:
        return False


def is_nonlinear_method(name: str) -> bool:
    """Return True if `name` is a registered variant that is not linear."""
    try:
        return not get_variant_spec(name).is_linear
    except UnknownVariant:
        return False


def make_headers(n_components: int) -> list[str]:
    return [f"{OUTPUT_COLUMN_PREFIX}{i + 1}" for i in range(n_components)]


def to_output(
    values: np.ndarray,
    return_type: ReturnType = "numpy",
    *,
    index: Optional[pd.Index] = None,
) -> np.ndarray | pd.DataFrame:
    """
    Build the final reduced output.

    - ``return_type='numpy'`` returns the (N, K) array unchanged.
    - ``return_type='pandas'`` returns a DataFrame with columns ``p_1..p_K``
      (and `index`, when given).
    """
    arr = np.asarray(values)
    if arr.ndim != 2:
        raise DimensionMismatch(f"Expected 2D reduced array, got shape {arr.shape}")
    if return_type == "numpy":
        return arr
    if return_type == "pandas":
        return pd.DataFrame(data=arr, columns=make_headers(arr.shape[1]), index=index)
    raise InvalidConfig(f"return_type must be 'numpy' or 'pandas'; got {return_type!r}.")


def reduce_dimensionality(
    method: str,
    dataset: DatasetLike,
    *,
    latent_dim: int,
    return_type: ReturnType = "numpy",
    strict: bool = True,
    debug: bool = True,
    debug_mode: int = logging.INFO,
    logger_name: str = "latentia.reductions.factory",
    **variant_params: Any,
) -> tuple[ReductionEstimator, np.ndarray | pd.DataFrame]:
    """
    Fit a registered variant by name and return ``(fitted_estimator, transformed)``.

    Parameters
    ----------
    method : str
        Variant name or alias (case-insensitive). See `get_available_methods()`.
    dataset : np.ndarray or pandas.DataFrame
        Input matrix of shape (N, D).
    latent_dim : int
        Number of output dimensions.
    return_type : {"numpy", "pandas"}, default "numpy"
        Output container for the transformed data. A DataFrame input keeps
        its index in pandas output.
    strict : bool, default True
        Reject variant params the estimator does not declare.
    debug : bool, default True
        Enable/disable logging for this call.
    debug_mode : int, default logging.INFO
        Logging level used by the internal and estimator loggers.
    logger_name : str, default "latentia.reductions.factory"
        Name for the logger (child of package logger).
    **variant_params : Any
        Variant hyperparameters (e.g., whiten, epochs, noise_level, ...).

    Raises
    ------
    UnknownVariant
        If the method name is not registered.
    InvalidConfig, DimensionMismatch, NumericFailure
        Propagated from configuration or fitting.
    """
    log = logging.getLogger(logger_name)
    log.setLevel(debug_mode if debug else logging.NOTSET)
    add_context(log, method=method.lower())

    if return_type not in ("numpy", "pandas"):
        raise InvalidConfig(f"return_type must be 'numpy' or 'pandas'; got {return_type!r}.")

    spec = get_variant_spec(method)
    log.info("Dispatching method='%s' (kind=%s) | latent_dim=%s | params=%s", spec.name, spec.kind, latent_dim, variant_params)

    config = ReductionConfig(latent_dim, variant_params)
    estimator = create_estimator(spec.name, config, strict=strict, debug=debug, debug_mode=debug_mode)
    try:
        transformed = estimator.fit_transform(dataset)
    except Exception as e:
        log.error("%s failed: %s", spec.name, e)
        raise

    index = dataset.index if isinstance(dataset, pd.DataFrame) else None
    log.info("%s successful. Output shape=%s", spec.name, transformed.shape)
    return estimator, to_output(transformed, return_type, index=index)

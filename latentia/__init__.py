# latentia/__init__.py
from __future__ import annotations

from importlib import metadata as _metadata

"""
Latentia public package surface.

Re-exports the config, trained-state, registry and estimator symbols at the
top-level so that users can:
    import latentia as lt
    est = lt.create_estimator("pca", {"latent_dim": 2}).fit(X)
    est.get_trained_state()
    lt.reduce_dimensionality("dae", X, latent_dim=3)
"""

# Version
try:
    __version__ = _metadata.version("latentia")
except _metadata.PackageNotFoundError:  # local dev / not installed
    __version__ = "0.0.1-dev"

# Public core API (re-export); core must load before the built-in variants register
from .core import (  # noqa: E402
    DimensionMismatch,
    InvalidConfig,
    NotFitted,
    NumericFailure,
    ReductionConfig,
    ReductionError,
    TrainedState,
    UnknownVariant,
    UnsupportedOperation,
    VariantSpec,
    clear_registry,
    create_estimator,
    get_config,
    get_variant_spec,
    list_registered_variants,
    register_alias,
    register_variant,
    reset_registry,
    set_cache_root,
    set_seed,
    temporary_seed,
    unregister,
)
from .reductions import (  # noqa: E402
    AutoencoderReducer,
    DenoisingAutoencoderReducer,
    Estimator,
    IncrementalPCAReducer,
    PCAReducer,
    QuantumDenoisingAutoencoderReducer,
    ReductionEstimator,
    get_available_methods,
    is_linear_method,
    is_nonlinear_method,
    reduce_dimensionality,
)

__all__ = [
    "__version__",
    # config
    "get_config",
    "set_seed",
    "set_cache_root",
    "temporary_seed",
    # value objects
    "ReductionConfig",
    "TrainedState",
    "VariantSpec",
    # errors
    "ReductionError",
    "InvalidConfig",
    "DimensionMismatch",
    "NotFitted",
    "UnsupportedOperation",
    "NumericFailure",
    "UnknownVariant",
    # registry API
    "register_variant",
    "register_alias",
    "unregister",
    "clear_registry",
    "reset_registry",
    "list_registered_variants",
    "get_variant_spec",
    "create_estimator",
    # estimators
    "Estimator",
    "ReductionEstimator",
    "PCAReducer",
    "IncrementalPCAReducer",
    "AutoencoderReducer",
    "DenoisingAutoencoderReducer",
    "QuantumDenoisingAutoencoderReducer",
    # factory
    "reduce_dimensionality",
    "get_available_methods",
    "is_linear_method",
    "is_nonlinear_method",
]

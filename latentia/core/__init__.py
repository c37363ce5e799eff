# core/__init__.py
from __future__ import annotations

from .config import get_config, set_cache_root, set_seed, temporary_seed
from .errors import (
    DimensionMismatch,
    InvalidConfig,
    NotFitted,
    NumericFailure,
    ReductionError,
    UnknownVariant,
    UnsupportedOperation,
)
from .reduction_config import ReductionConfig
from .trained_state import TrainedState
from .variant_registry import (
    clear_registry,
    create_estimator,
    get_variant_spec,
    list_registered_variants,
    register_alias,
    register_variant,
    reset_registry,
    unregister,
)
from .variant_spec import VariantSpec

__all__ = [
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
]

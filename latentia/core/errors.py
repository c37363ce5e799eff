# core/errors.py
from __future__ import annotations


class ReductionError(Exception):
    """Base error for every failure reported by latentia estimators."""


class InvalidConfig(ReductionError, ValueError):
    """Raised when hyperparameters or input data violate a precondition."""


class DimensionMismatch(InvalidConfig):
    """
    Raised when shapes disagree: ``latent_dim`` above the feature count, empty
    or non-2D data, or a feature count different from the fitted one.
    """


class NotFitted(ReductionError, RuntimeError):
    """Raised when an operation needs a trained state and none was published."""


class UnsupportedOperation(ReductionError, NotImplementedError):
    """Raised when a variant has no implementation for the requested operation."""


class NumericFailure(ReductionError, ArithmeticError):
    """
    Raised on non-finite inputs, linear-algebra failures, training divergence
    after every restart, or a trained state that breaks its own invariants.
    """


class UnknownVariant(InvalidConfig, LookupError):
    """Raised when a variant name (or alias) is not found in the registry."""


__all__ = [
    "ReductionError",
    "InvalidConfig",
    "DimensionMismatch",
    "NotFitted",
    "UnsupportedOperation",
    "NumericFailure",
    "UnknownVariant",
]

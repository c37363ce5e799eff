"""
Dimensionality reduction subpackage for latentia.

Public API:
- Contract: `Estimator`, `ReductionEstimator`, `TrainedStateSlot`
- Linear variants: `PCAReducer`, `IncrementalPCAReducer`
- Autoencoder variants: `AutoencoderReducer`, `DenoisingAutoencoderReducer`
- Parameterized variant: `QuantumDenoisingAutoencoderReducer`
- Factory helpers: `reduce_dimensionality`, `get_available_methods`,
  `is_linear_method`, `is_nonlinear_method`

Importing this subpackage registers the built-in variants.
"""

from .autoencoders import AutoencoderReducer, DenoisingAutoencoderReducer
from .base_estimator import Estimator, FitOutcome, ReductionEstimator, TrainedStateSlot
from .factory import (
    get_available_methods,
    is_linear_method,
    is_nonlinear_method,
    reduce_dimensionality,
    register_builtin_variants,
)
from .linear_reductions import IncrementalPCAReducer, PCAReducer
from .quantum_reductions import QuantumDenoisingAutoencoderReducer

__all__ = [
    "Estimator",
    "ReductionEstimator",
    "TrainedStateSlot",
    "FitOutcome",
    "PCAReducer",
    "IncrementalPCAReducer",
    "AutoencoderReducer",
    "DenoisingAutoencoderReducer",
    "QuantumDenoisingAutoencoderReducer",
    "reduce_dimensionality",
    "get_available_methods",
    "is_linear_method",
    "is_nonlinear_method",
    "register_builtin_variants",
]

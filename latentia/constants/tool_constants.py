# tool_constants.py
from __future__ import annotations

# Environment variable prefix used across the project (e.g., LATENTIA_CACHE_ROOT)
_ENV_PREFIX: str = "LATENTIA_"

DEFAULT_SEED: int = 42

# Variant families exposed by the registry
VARIANT_KINDS: tuple[str, ...] = ("linear", "autoencoder", "parameterized")

# Feature scaling applied after centering
SCALING_OPTIONS: tuple[str, ...] = ("none", "standardize")

# Input corruption used by the denoising variants
NOISE_KINDS: tuple[str, ...] = ("gaussian", "masking")

# How encoder variants fill `explained_variance_ratio`
VARIANCE_PROXIES: tuple[str, ...] = ("reconstruction", "uniform")

# Column prefix of pandas outputs: p_1, p_2, ...
OUTPUT_COLUMN_PREFIX: str = "p_"

# Relative slack accepted when checking that variance ratios sum to <= 1
VARIANCE_SUM_TOLERANCE: float = 1e-6

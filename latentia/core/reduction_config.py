# core/reduction_config.py
from __future__ import annotations

import numbers
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional

import numpy as np

from latentia.types import ParamValue

from .errors import DimensionMismatch, InvalidConfig


def _freeze_value(name: str, value: Any) -> ParamValue:
    """Normalize a variant parameter to an immutable, serializable value."""
    if value is None or isinstance(value, (bool, str)):
        return value
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, numbers.Number) and not isinstance(value, complex):
        return value
    if isinstance(value, (list, tuple, np.ndarray)):
        items = np.asarray(value).ravel().tolist() if isinstance(value, np.ndarray) else list(value)
        out = []
        for item in items:
            if isinstance(item, np.generic):
                item = item.item()
            if isinstance(item, bool) or not isinstance(item, numbers.Real):
                raise InvalidConfig(
                    f"Parameter '{name}' must be a sequence of numbers; got element {item!r}."
                )
            out.append(item)
        return tuple(out)
    raise InvalidConfig(
        f"Parameter '{name}' has unsupported type {type(value).__name__}; "
        "expected a number, string, boolean, None or a sequence of numbers."
    )


@dataclass(frozen=True)
class ReductionConfig:
    """
    Immutable hyperparameters of one dimensionality-reduction variant.

    Parameters
    ----------
    latent_dim : int
        Target number of output dimensions.
    variant_params : Mapping[str, ParamValue], optional
        Variant-specific knobs (e.g. ``whiten``, ``epochs``, ``noise_level``).
        Stored as a read-only mapping; sequences are frozen into tuples.

    Notes
    -----
    ``latent_dim`` must be an integer at construction. Its range is checked by
    :meth:`validate`, since the feature dimensionality is only known at fit time.
    """

    latent_dim: int
    variant_params: Mapping[str, ParamValue] = field(default_factory=dict)

    def __post_init__(self) -> None:
        dim = self.latent_dim
        if isinstance(dim, np.generic):
            dim = dim.item()
        if isinstance(dim, bool) or not isinstance(dim, numbers.Integral):
            raise InvalidConfig(f"latent_dim must be an integer; got {self.latent_dim!r}.")
        object.__setattr__(self, "latent_dim", int(dim))

        if not isinstance(self.variant_params, Mapping):
            raise InvalidConfig("variant_params must be a mapping of name -> value.")
        frozen: dict[str, ParamValue] = {}
        for key, value in self.variant_params.items():
            if not isinstance(key, str) or not key:
                raise InvalidConfig(f"Parameter names must be non-empty strings; got {key!r}.")
            frozen[key] = _freeze_value(key, value)
        object.__setattr__(self, "variant_params", MappingProxyType(frozen))

    def __hash__(self) -> int:
        return hash((self.latent_dim, tuple(sorted(self.variant_params.items()))))

    # ----------------------------
    # Construction helpers
    # ----------------------------

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "ReductionConfig":
        """
        Build a config from ``{"latent_dim": k, **params}``.

        A nested ``"variant_params"`` mapping is merged with the remaining keys;
        top-level keys win on conflict.
        """
        if isinstance(mapping, ReductionConfig):
            return mapping
        if not isinstance(mapping, Mapping):
            raise InvalidConfig(f"Expected a mapping, got {type(mapping).__name__}.")
        data = dict(mapping)
        if "latent_dim" not in data:
            raise InvalidConfig("Config mapping must define 'latent_dim'.")
        latent_dim = data.pop("latent_dim")
        nested = data.pop("variant_params", None) or {}
        if not isinstance(nested, Mapping):
            raise InvalidConfig("'variant_params' must be a mapping.")
        return cls(latent_dim=latent_dim, variant_params={**nested, **data})

    def with_params(self, **updates: Any) -> "ReductionConfig":
        """Return a new config with `updates` merged into the variant params."""
        return ReductionConfig(self.latent_dim, {**self.variant_params, **updates})

    # ----------------------------
    # Inspection
    # ----------------------------

    def get(self, name: str, default: Any = None) -> Any:
        return self.variant_params.get(name, default)

    def as_dict(self) -> dict[str, Any]:
        """Plain dict view: ``{"latent_dim": k, "variant_params": {...}}``."""
        return {"latent_dim": self.latent_dim, "variant_params": dict(self.variant_params)}

    # ----------------------------
    # Validation
    # ----------------------------

    def validate(self, original_dim: Optional[int] = None) -> None:
        """
        Check ``1 <= latent_dim <= original_dim``.

        Raises
        ------
        InvalidConfig
            If ``latent_dim < 1`` or ``original_dim < 1``.
        DimensionMismatch
            If ``latent_dim`` exceeds ``original_dim``.
        """
        if self.latent_dim < 1:
            raise InvalidConfig(f"latent_dim must be >= 1; got {self.latent_dim}.")
        if original_dim is None:
            return
        if original_dim < 1:
            raise InvalidConfig(f"original_dim must be >= 1; got {original_dim}.")
        if self.latent_dim > original_dim:
            raise DimensionMismatch(
                f"latent_dim={self.latent_dim} exceeds the number of features ({original_dim})."
            )

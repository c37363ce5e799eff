# core/trained_state.py
from __future__ import annotations

import numbers
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional

import numpy as np

from latentia.constants.tool_constants import VARIANCE_SUM_TOLERANCE
from latentia.types import ParamValue

from .errors import DimensionMismatch, InvalidConfig, NumericFailure

_ARRAY_FIELDS = ("components", "explained_variance_ratio", "mean", "scale")
_BAG_FIELDS = ("quantum_parameters", "model_parameters", "training_statistics")


def _frozen_array(values: Any, name: str, ndim: int) -> np.ndarray:
    arr = np.array(values, dtype=np.float64, copy=True)
    if arr.ndim != ndim:
        raise DimensionMismatch(f"TrainedState.{name} must be {ndim}-D; got shape {arr.shape}.")
    arr.setflags(write=False)
    return arr


def _freeze_bag(bag: Optional[Mapping[str, Any]], name: str) -> Mapping[str, ParamValue]:
    """Copy a parameter bag into a read-only mapping of tagged values."""
    out: dict[str, ParamValue] = {}
    for key, value in (bag or {}).items():
        if not isinstance(key, str):
            raise InvalidConfig(f"Keys of TrainedState.{name} must be strings; got {key!r}.")
        if isinstance(value, np.generic):
            value = value.item()
        if value is None or isinstance(value, (bool, str)):
            out[key] = value
        elif isinstance(value, numbers.Real):
            out[key] = value
        elif isinstance(value, (list, tuple, np.ndarray)):
            try:
                arr = np.array(value, dtype=np.float64, copy=True)
            except (TypeError, ValueError) as exc:
                raise InvalidConfig(f"TrainedState.{name}['{key}'] is not numeric.") from exc
            arr.setflags(write=False)
            out[key] = arr
        else:
            raise InvalidConfig(
                f"TrainedState.{name}['{key}'] has unsupported type {type(value).__name__}."
            )
    return MappingProxyType(out)


def _values_equal(a: Any, b: Any) -> bool:
    if isinstance(a, np.ndarray) or isinstance(b, np.ndarray):
        return (
            isinstance(a, np.ndarray)
            and isinstance(b, np.ndarray)
            and a.shape == b.shape
            and bool(np.array_equal(a, b, equal_nan=True))
        )
    return a == b


def _bags_equal(a: Mapping[str, Any], b: Mapping[str, Any]) -> bool:
    return a.keys() == b.keys() and all(_values_equal(a[k], b[k]) for k in a)


def _plain(value: Any) -> Any:
    return value.tolist() if isinstance(value, np.ndarray) else value


@dataclass(frozen=True, eq=False)
class TrainedState:
    """
    Immutable artifact produced by one successful ``fit``.

    Parameters
    ----------
    components : array-like, shape (latent_dim, n_features)
        Basis vectors (linear variants) or encoder-row equivalents (encoder
        Jacobian at the centered origin for neural variants).
    explained_variance_ratio : array-like, shape (latent_dim,)
        True variance share for linear variants; a documented proxy otherwise
        (see ``training_statistics["variance_proxy"]``).
    mean : array-like, shape (n_features,)
        Feature-wise average of the fit data.
    scale : array-like, shape (n_features,), optional
        Feature-wise scale applied after centering; ``None`` when unscaled.
    quantum_parameters, model_parameters, training_statistics : Mapping
        Open parameter bags. Values are numbers, strings, booleans, ``None``
        or read-only float arrays.

    Notes
    -----
    All arrays are copied on construction and marked read-only, so a state can
    be shared between threads. :meth:`clone` returns a fully independent copy.
    """

    components: np.ndarray
    explained_variance_ratio: np.ndarray
    mean: np.ndarray
    scale: Optional[np.ndarray] = None
    quantum_parameters: Mapping[str, ParamValue] = field(default_factory=dict)
    model_parameters: Mapping[str, ParamValue] = field(default_factory=dict)
    training_statistics: Mapping[str, ParamValue] = field(default_factory=dict)

    def __post_init__(self) -> None:
        components = _frozen_array(self.components, "components", 2)
        ratio = _frozen_array(self.explained_variance_ratio, "explained_variance_ratio", 1)
        mean = _frozen_array(self.mean, "mean", 1)
        scale = None if self.scale is None else _frozen_array(self.scale, "scale", 1)

        if components.shape[0] != ratio.shape[0]:
            raise DimensionMismatch(
                f"components has {components.shape[0]} rows but explained_variance_ratio "
                f"has {ratio.shape[0]} entries."
            )
        if components.shape[1] != mean.shape[0]:
            raise DimensionMismatch(
                f"components rows have length {components.shape[1]} but mean has {mean.shape[0]}."
            )
        if scale is not None and scale.shape != mean.shape:
            raise DimensionMismatch(f"scale has shape {scale.shape}, expected {mean.shape}.")

        object.__setattr__(self, "components", components)
        object.__setattr__(self, "explained_variance_ratio", ratio)
        object.__setattr__(self, "mean", mean)
        object.__setattr__(self, "scale", scale)
        for name in _BAG_FIELDS:
            object.__setattr__(self, name, _freeze_bag(getattr(self, name), name))

    # ----------------------------
    # Inspection
    # ----------------------------

    @property
    def latent_dim(self) -> int:
        return int(self.components.shape[0])

    @property
    def n_features(self) -> int:
        return int(self.mean.shape[0])

    @property
    def has_scaling(self) -> bool:
        return self.scale is not None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TrainedState):
            return NotImplemented
        if (self.scale is None) != (other.scale is None):
            return False
        return all(
            _values_equal(getattr(self, name), getattr(other, name))
            for name in _ARRAY_FIELDS
            if getattr(self, name) is not None
        ) and all(_bags_equal(getattr(self, name), getattr(other, name)) for name in _BAG_FIELDS)

    def allclose(self, other: "TrainedState", *, rtol: float = 1e-6, atol: float = 1e-9) -> bool:
        """Tolerance equality of the numeric fields (bags are ignored)."""
        if (self.scale is None) != (other.scale is None):
            return False
        for name in _ARRAY_FIELDS:
            a, b = getattr(self, name), getattr(other, name)
            if a is None:
                continue
            if a.shape != b.shape or not np.allclose(a, b, rtol=rtol, atol=atol):
                return False
        return True

    def __repr__(self) -> str:
        return (
            f"TrainedState(latent_dim={self.latent_dim}, n_features={self.n_features}, "
            f"scaled={self.has_scaling}, "
            f"explained_variance_ratio={np.round(self.explained_variance_ratio, 4).tolist()}, "
            f"quantum_parameters={sorted(self.quantum_parameters)}, "
            f"model_parameters={sorted(self.model_parameters)}, "
            f"training_statistics={sorted(self.training_statistics)})"
        )

    # ----------------------------
    # Copies & invariants
    # ----------------------------

    def clone(self) -> "TrainedState":
        """Deep, independent copy (construction copies every array)."""
        return TrainedState(
            components=self.components,
            explained_variance_ratio=self.explained_variance_ratio,
            mean=self.mean,
            scale=self.scale,
            quantum_parameters=self.quantum_parameters,
            model_parameters=self.model_parameters,
            training_statistics=self.training_statistics,
        )

    def check_invariants(self, *, sorted_variance: bool = False) -> None:
        """
        Validate the numeric invariants of the state.

        Parameters
        ----------
        sorted_variance : bool, default False
            Also require a non-increasing ``explained_variance_ratio``
            (linear/eigen-based variants).

        Raises
        ------
        NumericFailure
            On non-finite values, negative ratios, ratios summing above 1,
            or (when requested) unsorted ratios.
        """
        for name in _ARRAY_FIELDS:
            arr = getattr(self, name)
            if arr is not None and not np.isfinite(arr).all():
                raise NumericFailure(f"TrainedState.{name} contains non-finite values.")
        ratio = self.explained_variance_ratio
        if (ratio < 0).any():
            raise NumericFailure("explained_variance_ratio has negative entries.")
        if ratio.sum() > 1.0 + VARIANCE_SUM_TOLERANCE:
            raise NumericFailure(f"explained_variance_ratio sums to {ratio.sum():.6f} > 1.")
        if sorted_variance and (np.diff(ratio) > VARIANCE_SUM_TOLERANCE).any():
            raise NumericFailure("explained_variance_ratio is not sorted in non-increasing order.")
        if self.scale is not None and (self.scale <= 0).any():
            raise NumericFailure("scale must be strictly positive.")

    # ----------------------------
    # Plain-data layout
    # ----------------------------

    def to_dict(self) -> dict[str, Any]:
        """JSON-compatible dict (arrays become nested lists)."""
        out: dict[str, Any] = {name: _plain(getattr(self, name)) for name in _ARRAY_FIELDS}
        for name in _BAG_FIELDS:
            out[name] = {k: _plain(v) for k, v in getattr(self, name).items()}
        return out

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TrainedState":
        """Inverse of :meth:`to_dict`."""
        missing = [name for name in ("components", "explained_variance_ratio", "mean") if name not in data]
        if missing:
            raise InvalidConfig(f"TrainedState payload is missing fields: {missing}")
        return cls(
            components=data["components"],
            explained_variance_ratio=data["explained_variance_ratio"],
            mean=data["mean"],
            scale=data.get("scale"),
            quantum_parameters=data.get("quantum_parameters") or {},
            model_parameters=data.get("model_parameters") or {},
            training_statistics=data.get("training_statistics") or {},
        )

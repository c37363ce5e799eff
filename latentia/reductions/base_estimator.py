from __future__ import annotations

import logging
import math
import numbers
import time
from dataclasses import dataclass, field
from threading import RLock
from typing import Any, ClassVar, Mapping, Optional, Protocol, Sequence, Union, runtime_checkable

import numpy as np

from latentia.constants.tool_constants import SCALING_OPTIONS
from latentia.core.config import get_config
from latentia.core.errors import (
    DimensionMismatch,
    InvalidConfig,
    NotFitted,
    NumericFailure,
    ReductionError,
    UnsupportedOperation,
)
from latentia.core.reduction_config import ReductionConfig
from latentia.core.trained_state import TrainedState
from latentia.logging import add_context, get_logger
from latentia.types import DatasetLike, ParamValue, VariantKind

from .preprocessing import as_matrix, center_and_scale, centering_statistics, uncenter

ConfigLike = Union[ReductionConfig, Mapping[str, Any], int]


def _is_positive_int(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, numbers.Integral):
        return value >= 1
    return (
        isinstance(value, numbers.Real)
        and math.isfinite(value)
        and float(value).is_integer()
        and value >= 1
    )


@runtime_checkable
class Estimator(Protocol):
    """Capability set shared by every dimensionality-reduction variant."""

    config: ReductionConfig

    def fit(self, data: DatasetLike) -> "Estimator": ...

    def transform(self, data: DatasetLike) -> np.ndarray: ...

    def inverse_transform(self, latent: DatasetLike) -> np.ndarray: ...

    def get_trained_state(self) -> Optional[TrainedState]: ...


class TrainedStateSlot:
    """
    Holder of the current TrainedState of one estimator.

    A new state is built off to the side and swapped in with a single locked
    assignment; readers take the reference under the same lock. States are
    immutable, so a reader sees either the old or the new state in full.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._state: Optional[TrainedState] = None

    def publish(self, state: TrainedState) -> None:
        with self._lock:
            self._state = state

    def peek(self) -> Optional[TrainedState]:
        """Current state by reference (internal use only)."""
        with self._lock:
            return self._state

    def require(self) -> TrainedState:
        state = self.peek()
        if state is None:
            raise NotFitted("This estimator has not been fitted yet; call fit() first.")
        return state

    def snapshot(self) -> Optional[TrainedState]:
        """Independent copy of the current state, or None."""
        state = self.peek()
        return None if state is None else state.clone()


@dataclass
class FitOutcome:
    """Variant-specific part of a TrainedState, computed on centered/scaled data."""

    components: np.ndarray
    explained_variance_ratio: np.ndarray
    quantum_parameters: dict[str, ParamValue] = field(default_factory=dict)
    model_parameters: dict[str, ParamValue] = field(default_factory=dict)
    training_statistics: dict[str, ParamValue] = field(default_factory=dict)


class ReductionEstimator:
    """
    Shared fit/transform lifecycle for dimensionality-reduction variants.

    Responsibilities
    ----------------
    - Hold one immutable :class:`ReductionConfig` and check its variant params
      against the params the concrete class declares.
    - Validate inputs, compute centering/scaling statistics, and delegate the
      variant algorithm to :meth:`_fit_components`.
    - Publish the resulting :class:`TrainedState` atomically; a failed fit
      leaves any previous state untouched.
    - Provide a child logger ``latentia.reductions.<ClassName>`` consistent with
      the rest of the library.

    Parameters
    ----------
    config : ReductionConfig | Mapping | int
        Hyperparameters. An int is taken as ``latent_dim``; a mapping must
        contain ``latent_dim``.
    strict : bool, default True
        Reject variant params the class does not declare. If False, unknown
        params are dropped with a warning.
    debug : bool, default False
        If True (or if ``ToolConfig.debug`` is set), set this component's logger
        to `debug_mode`.
    debug_mode : int, default logging.INFO
        Logging level when ``debug=True``.
    **params :
        Extra variant params merged over those in `config`.
    """

    variant_name: ClassVar[str] = "base"
    kind: ClassVar[VariantKind] = "linear"
    default_params: ClassVar[Mapping[str, ParamValue]] = {"scaling": "none"}
    supports_inverse: ClassVar[bool] = True

    def __init__(
        self,
        config: ConfigLike,
        *,
        strict: bool = True,
        debug: bool = False,
        debug_mode: int = logging.INFO,
        **params: Any,
    ) -> None:
        # Ensure the package logger exists exactly once, then get a child
        _ = get_logger("latentia")
        name_logging = type(self).__name__
        self.__logger__ = logging.getLogger(f"latentia.reductions.{name_logging}")
        self.__logger__.setLevel(debug_mode if (debug or get_config().debug) else logging.NOTSET)
        add_context(self.__logger__, component="reductions", variant=self.variant_name)

        if isinstance(config, numbers.Integral) and not isinstance(config, bool):
            config = ReductionConfig(int(config))
        cfg = ReductionConfig.from_mapping(config)
        if params:
            cfg = cfg.with_params(**params)

        declared = self.declared_params()
        unknown = sorted(set(cfg.variant_params) - set(declared))
        if unknown:
            if strict:
                msg = f"Unknown parameters for variant '{self.variant_name}': {unknown}. Allowed: {sorted(declared)}"
                self.__logger__.error(msg)
                raise InvalidConfig(msg)
            self.__logger__.warning("Ignoring unknown parameters for '%s': %s", self.variant_name, unknown)
            cfg = ReductionConfig(
                cfg.latent_dim, {k: v for k, v in cfg.variant_params.items() if k in declared}
            )

        self.config: ReductionConfig = cfg
        self.params: dict[str, Any] = {**declared, **cfg.variant_params}
        self._slot = TrainedStateSlot()

        self.scaling: str = self._choice("scaling", SCALING_OPTIONS)
        self._check_params()

        self.__logger__.info(
            "Initialized %s | latent_dim=%d | params=%s", name_logging, cfg.latent_dim, dict(cfg.variant_params)
        )

    # -----------------------------
    # Declared params & validation
    # -----------------------------
    @classmethod
    def declared_params(cls) -> dict[str, ParamValue]:
        """Defaults of every param the class accepts (merged along the MRO)."""
        merged: dict[str, ParamValue] = {}
        for klass in reversed(cls.__mro__):
            merged.update(vars(klass).get("default_params", {}))
        return merged

    def _check_params(self) -> None:
        """Variant hook: validate `self.params`, raising InvalidConfig."""

    def _invalid(self, message: str) -> InvalidConfig:
        self.__logger__.error(message)
        return InvalidConfig(message)

    def _choice(self, name: str, choices: Sequence[str]) -> str:
        value = self.params[name]
        if value not in choices:
            raise self._invalid(f"'{name}' must be one of {tuple(choices)}; got {value!r}.")
        return str(value)

    def _int(self, name: str, *, minimum: int = 0, allow_none: bool = False) -> Optional[int]:
        value = self.params[name]
        if value is None and allow_none:
            return None
        if isinstance(value, bool) or not isinstance(value, numbers.Integral) or value < minimum:
            raise self._invalid(f"'{name}' must be an integer >= {minimum}; got {value!r}.")
        return int(value)

    def _float(self, name: str, *, minimum: float = 0.0, maximum: Optional[float] = None,
               strict_min: bool = False, strict_max: bool = False) -> float:
        value = self.params[name]
        if isinstance(value, bool) or not isinstance(value, numbers.Real):
            raise self._invalid(f"'{name}' must be a number; got {value!r}.")
        value = float(value)
        too_low = value <= minimum if strict_min else value < minimum
        too_high = maximum is not None and (value >= maximum if strict_max else value > maximum)
        if too_low or too_high or not np.isfinite(value):
            upper = "inf" if maximum is None else maximum
            raise self._invalid(f"'{name}' is out of range (min={minimum}, max={upper}); got {value!r}.")
        return value

    def _bool(self, name: str) -> bool:
        value = self.params[name]
        if not isinstance(value, (bool, np.bool_)):
            raise self._invalid(f"'{name}' must be a boolean; got {value!r}.")
        return bool(value)

    def _int_tuple(self, name: str) -> tuple[int, ...]:
        value = self.params[name]
        items = tuple(value) if isinstance(value, (tuple, list)) else None
        if items is None or not all(_is_positive_int(v) for v in items):
            raise self._invalid(f"'{name}' must be a sequence of positive integers; got {value!r}.")
        return tuple(int(v) for v in items)

    # -----------------------------
    # Variant hooks
    # -----------------------------
    def _as_matrix(self, data: DatasetLike, name: str = "dataset") -> np.ndarray:
        try:
            return as_matrix(data, name=name)
        except ReductionError as e:
            self.__logger__.error("Rejected %s input: %s", self.variant_name, e)
            raise

    def _fit_components(self, Xs: np.ndarray) -> FitOutcome:
        """Compute the variant-specific state parts from centered/scaled data."""
        raise NotImplementedError

    def _encode(self, state: TrainedState, Xs: np.ndarray) -> np.ndarray:
        """Project centered/scaled data with `state`; linear by default."""
        return Xs @ state.components.T

    def _decode(self, state: TrainedState, Z: np.ndarray) -> np.ndarray:
        """Map latent data back to centered/scaled feature space."""
        return Z @ state.components

    # -----------------------------
    # Lifecycle
    # -----------------------------
    @property
    def latent_dim(self) -> int:
        return self.config.latent_dim

    @property
    def is_fitted(self) -> bool:
        return self._slot.peek() is not None

    def _build_state(self, X: np.ndarray) -> TrainedState:
        n_samples, n_features = X.shape
        try:
            self.config.validate(n_features)
        except InvalidConfig as e:
            self.__logger__.error("Invalid configuration for data with %d features: %s", n_features, e)
            raise

        t0 = time.perf_counter()
        mean, scale = centering_statistics(X, self.scaling)  # type: ignore[arg-type]
        Xs = center_and_scale(X, mean, scale)
        self.__logger__.info(
            "Fitting %s on data shape=%s | scaling=%s", self.variant_name, X.shape, self.scaling
        )
        try:
            outcome = self._fit_components(Xs)
        except np.linalg.LinAlgError as e:
            self.__logger__.error("%s fit failed: %s", self.variant_name, e)
            raise NumericFailure(f"{self.variant_name}: linear algebra failure: {e}") from e
        except ReductionError as e:
            self.__logger__.error("%s fit failed: %s", self.variant_name, e)
            raise
        except RuntimeError as e:
            self.__logger__.error("%s fit failed: %s", self.variant_name, e)
            raise NumericFailure(f"{self.variant_name}: fit failed: {e}") from e

        stats: dict[str, ParamValue] = {
            "variant": self.variant_name,
            "n_samples": int(n_samples),
            "n_features": int(n_features),
            "scaling": self.scaling,
        }
        stats.update(outcome.training_statistics)

        state = TrainedState(
            components=outcome.components,
            explained_variance_ratio=outcome.explained_variance_ratio,
            mean=mean,
            scale=scale,
            quantum_parameters=outcome.quantum_parameters,
            model_parameters=outcome.model_parameters,
            training_statistics=stats,
        )
        try:
            state.check_invariants(sorted_variance=self.kind == "linear")
        except NumericFailure as e:
            self.__logger__.error("%s produced an invalid state: %s", self.variant_name, e)
            raise
        self.__logger__.debug("%s fit took %.3fs", self.variant_name, time.perf_counter() - t0)
        return state

    def fit(self, data: DatasetLike) -> "ReductionEstimator":
        """
        Fit the variant on `data` (N, D) and publish a new TrainedState.

        Any previous state is replaced only when the whole computation succeeds.

        Raises
        ------
        InvalidConfig, DimensionMismatch, NumericFailure
        """
        X = self._as_matrix(data)
        state = self._build_state(X)
        self._slot.publish(state)
        self.__logger__.info(
            "%s fitted. components=%s | explained_variance_ratio=%s",
            self.variant_name,
            state.components.shape,
            np.round(state.explained_variance_ratio, 4).tolist(),
        )
        return self

    def get_trained_state(self) -> Optional[TrainedState]:
        """Independent copy of the current TrainedState, or None if never fitted."""
        return self._slot.snapshot()

    def _check_width(self, X: np.ndarray, expected: int, what: str) -> None:
        if X.shape[1] != expected:
            msg = f"{what} has {X.shape[1]} columns; the fitted state expects {expected}."
            self.__logger__.error(msg)
            raise DimensionMismatch(msg)

    def transform(self, data: DatasetLike) -> np.ndarray:
        """
        Center, optionally scale, and project `data` into the latent space.

        Returns
        -------
        np.ndarray, shape (N, latent_dim)
        """
        state = self._slot.require()
        X = self._as_matrix(data)
        self._check_width(X, state.n_features, "data")
        return self._encode(state, center_and_scale(X, state.mean, state.scale))

    def inverse_transform(self, latent: DatasetLike) -> np.ndarray:
        """
        Map latent data (N, latent_dim) back to feature space.

        Raises
        ------
        UnsupportedOperation
            If the variant has no inverse.
        NotFitted, DimensionMismatch
        """
        if not self.supports_inverse:
            raise UnsupportedOperation(f"Variant '{self.variant_name}' does not support inverse_transform.")
        state = self._slot.require()
        Z = self._as_matrix(latent, name="latent")
        self._check_width(Z, state.latent_dim, "latent")
        return uncenter(self._decode(state, Z), state.mean, state.scale)

    def fit_transform(self, data: DatasetLike) -> np.ndarray:
        """Fit on `data` and project it with the state this call produced."""
        X = self._as_matrix(data)
        state = self._build_state(X)
        self._slot.publish(state)
        return self._encode(state, center_and_scale(X, state.mean, state.scale))

    def reconstruction_error(self, data: DatasetLike) -> float:
        """Mean squared error of ``inverse_transform(transform(data))``."""
        if not self.supports_inverse:
            raise UnsupportedOperation(f"Variant '{self.variant_name}' does not support inverse_transform.")
        state = self._slot.require()
        X = self._as_matrix(data)
        self._check_width(X, state.n_features, "data")
        Xs = center_and_scale(X, state.mean, state.scale)
        recon = uncenter(self._decode(state, self._encode(state, Xs)), state.mean, state.scale)
        return float(np.mean((recon - X) ** 2))

    def __repr__(self) -> str:
        params = ", ".join(f"{k}={v!r}" for k, v in self.config.variant_params.items())
        sep = ", " if params else ""
        return f"{type(self).__name__}(latent_dim={self.latent_dim}{sep}{params})"

from __future__ import annotations

from typing import Any, ClassVar, Mapping, Optional

import numpy as np
from sklearn.decomposition import PCA, IncrementalPCA
from sklearn.utils import gen_batches
from sklearn.utils.extmath import svd_flip

from latentia.core.errors import DimensionMismatch
from latentia.core.trained_state import TrainedState
from latentia.types import ParamValue, VariantKind

from .base_estimator import FitOutcome, ReductionEstimator

_PCA_SOLVERS = ("eigh", "svd")
# Components whose variance falls below this are not rescaled when whitening
_WHITEN_FLOOR = 1e-12


def _flip_signs(components: np.ndarray) -> np.ndarray:
    """Deterministic signs: the largest-magnitude entry of each row is positive."""
    components = np.array(components, dtype=np.float64, copy=True)
    _, components = svd_flip(np.ones((1, components.shape[0])), components, u_based_decision=False)
    return components


def _total_variance(Xs: np.ndarray) -> float:
    n = Xs.shape[0]
    return float(np.sum(Xs ** 2) / max(n - 1, 1))


def _variance_outcome(
    components: np.ndarray,
    explained_variance: np.ndarray,
    total_var: float,
    n_samples: int,
    n_features: int,
    *,
    whiten: bool,
) -> tuple[np.ndarray, dict[str, ParamValue]]:
    """Ratios and the shared `model_parameters` of the linear variants."""
    explained_variance = np.clip(np.asarray(explained_variance, dtype=np.float64), 0.0, None)
    k = components.shape[0]
    if total_var > 0:
        ratio = explained_variance / total_var
    else:
        ratio = np.zeros(k, dtype=np.float64)
    # Residual variance per discarded direction (probabilistic PCA noise model)
    n_rest = min(n_samples, n_features) - k
    noise_variance = max(total_var - float(explained_variance.sum()), 0.0) / n_rest if n_rest > 0 else 0.0
    model_parameters: dict[str, ParamValue] = {
        "explained_variance": explained_variance,
        "singular_values": np.sqrt(explained_variance * max(n_samples - 1, 1)),
        "noise_variance": float(noise_variance),
        "whiten": bool(whiten),
    }
    return ratio, model_parameters


def _latent_scale(state: TrainedState) -> Optional[np.ndarray]:
    """Per-component whitening scale, or None when the state is not whitened."""
    if not state.model_parameters.get("whiten", False):
        return None
    ev = np.asarray(state.model_parameters["explained_variance"], dtype=np.float64)
    return np.where(ev > _WHITEN_FLOOR, np.sqrt(ev), 1.0)


class _LinearProjection(ReductionEstimator):
    """Projection/back-projection through `components`, with optional whitening."""

    kind: ClassVar[VariantKind] = "linear"
    default_params: ClassVar[Mapping[str, ParamValue]] = {"whiten": False}

    def _check_params(self) -> None:
        self.whiten: bool = self._bool("whiten")

    def _encode(self, state: TrainedState, Xs: np.ndarray) -> np.ndarray:
        Z = Xs @ state.components.T
        scale = _latent_scale(state)
        return Z if scale is None else Z / scale

    def _decode(self, state: TrainedState, Z: np.ndarray) -> np.ndarray:
        scale = _latent_scale(state)
        if scale is not None:
            Z = Z * scale
        return Z @ state.components


class PCAReducer(_LinearProjection):
    """
    Principal component analysis via covariance eigendecomposition.

    The default ``solver="eigh"`` decomposes the (D, D) covariance matrix of the
    centered data with :func:`numpy.linalg.eigh` and keeps the ``latent_dim``
    leading eigenvectors. It is deterministic and also defined for fewer
    samples than components: the surplus directions carry zero variance.
    ``solver="svd"`` delegates to :class:`sklearn.decomposition.PCA`
    (``svd_solver="full"``) and requires at least ``max(2, latent_dim)`` samples.

    Parameters
    ----------
    whiten : bool, default False
        Scale each latent coordinate to unit variance.
    solver : {"eigh", "svd"}, default "eigh"
    scaling : {"none", "standardize"}, default "none"
    """

    variant_name: ClassVar[str] = "pca"
    default_params: ClassVar[Mapping[str, ParamValue]] = {"solver": "eigh"}

    def _check_params(self) -> None:
        super()._check_params()
        self.solver: str = self._choice("solver", _PCA_SOLVERS)

    def _fit_components(self, Xs: np.ndarray) -> FitOutcome:
        n, d = Xs.shape
        k = self.latent_dim
        total_var = _total_variance(Xs)

        if self.solver == "svd":
            if n < max(2, k):
                raise DimensionMismatch(
                    f"solver='svd' needs at least {max(2, k)} samples for latent_dim={k}; got {n}."
                )
            model = PCA(n_components=k, svd_solver="full").fit(Xs)
            components = _flip_signs(model.components_)
            explained_variance = np.asarray(model.explained_variance_, dtype=np.float64)
        else:
            cov = (Xs.T @ Xs) / max(n - 1, 1)
            eigvals, eigvecs = np.linalg.eigh(cov)
            order = np.argsort(eigvals)[::-1][:k]
            components = _flip_signs(eigvecs[:, order].T)
            explained_variance = eigvals[order]

        ratio, model_parameters = _variance_outcome(
            components, explained_variance, total_var, n, d, whiten=self.whiten
        )
        self.__logger__.debug("PCA (%s) total variance=%.6g", self.solver, total_var)
        return FitOutcome(
            components=components,
            explained_variance_ratio=ratio,
            model_parameters=model_parameters,
            training_statistics={
                "solver": self.solver,
                "total_variance": total_var,
                "variance_proxy": "true_variance",
            },
        )


class IncrementalPCAReducer(_LinearProjection):
    """
    PCA fitted over mini-batches with :class:`sklearn.decomposition.IncrementalPCA`.

    Parameters
    ----------
    batch_size : int or None, default None
        Rows per batch; ``None`` uses ``5 * n_features``. Must not be smaller
        than ``latent_dim``.
    whiten : bool, default False
    scaling : {"none", "standardize"}, default "none"
    """

    variant_name: ClassVar[str] = "incremental_pca"
    default_params: ClassVar[Mapping[str, ParamValue]] = {"batch_size": None}

    def _check_params(self) -> None:
        super()._check_params()
        self.batch_size: Optional[int] = self._int("batch_size", minimum=1, allow_none=True)

    def _fit_components(self, Xs: np.ndarray) -> FitOutcome:
        n, d = Xs.shape
        k = self.latent_dim
        if n < max(2, k):
            raise DimensionMismatch(
                f"incremental_pca needs at least {max(2, k)} samples for latent_dim={k}; got {n}."
            )
        batch_size = self.batch_size if self.batch_size is not None else 5 * d
        if batch_size < k:
            raise self._invalid(f"batch_size={batch_size} must be >= latent_dim={k}.")

        model: Any = IncrementalPCA(n_components=k, batch_size=batch_size).fit(Xs)
        n_batches = sum(1 for _ in gen_batches(n, batch_size, min_batch_size=k))
        total_var = _total_variance(Xs)
        components = _flip_signs(model.components_)
        ratio, model_parameters = _variance_outcome(
            components, model.explained_variance_, total_var, n, d, whiten=self.whiten
        )
        self.__logger__.debug("IncrementalPCA processed %d batches of size %d", n_batches, batch_size)
        return FitOutcome(
            components=components,
            explained_variance_ratio=ratio,
            model_parameters=model_parameters,
            training_statistics={
                "batch_size": int(batch_size),
                "n_batches": int(n_batches),
                "total_variance": total_var,
                "variance_proxy": "true_variance",
            },
        )

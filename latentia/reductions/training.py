from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, ClassVar, Mapping, Optional

import numpy as np
import torch
from torch import nn
from torch.utils.data import DataLoader, TensorDataset

from latentia.constants.tool_constants import NOISE_KINDS, VARIANCE_PROXIES
from latentia.core.config import get_config
from latentia.core.errors import NumericFailure
from latentia.core.trained_state import TrainedState
from latentia.types import NoiseKind, ParamValue, VarianceProxy, VariantKind

from .base_estimator import FitOutcome, ReductionEstimator

# Prefix of the model_parameters entries that hold module weights
STATE_PREFIX = "state."

TRAINING_DEFAULTS: Mapping[str, ParamValue] = {
    "epochs": 200,
    "batch_size": 64,
    "learning_rate": 1e-2,
    "weight_decay": 0.0,
    "patience": 20,
    "tolerance": 1e-6,
    "max_restarts": 2,
    "seed": None,
    "device": None,
    "variance_proxy": "reconstruction",
    "noise_kind": None,
    "noise_level": 0.0,
}


class TrainingDiverged(ArithmeticError):
    """Raised inside one training attempt when the loss stops being finite."""


@dataclass
class TrainingResult:
    module: nn.Module
    epochs_run: int
    initial_loss: float
    best_loss: float
    final_loss: float
    converged: bool
    seed: int
    restart_count: int = 0
    history: list[float] = field(default_factory=list)


def _as_tensor(data: np.ndarray, device: torch.device) -> torch.Tensor:
    return torch.as_tensor(np.asarray(data, dtype=np.float32), device=device)


def corrupt(
    batch: torch.Tensor,
    kind: Optional[str],
    level: float,
    generator: Optional[torch.Generator] = None,
) -> torch.Tensor:
    """
    Corrupt a batch for denoising training.

    ``"gaussian"`` adds N(0, level²) noise; ``"masking"`` zeroes each entry
    with probability `level`. ``kind=None`` or ``level=0`` returns the batch.
    """
    if kind is None or level <= 0:
        return batch
    if kind == "gaussian":
        noise = torch.randn(batch.shape, generator=generator, dtype=batch.dtype)
        return batch + level * noise.to(batch.device)
    if kind == "masking":
        keep = torch.rand(batch.shape, generator=generator) >= level
        return batch * keep.to(device=batch.device, dtype=batch.dtype)
    raise ValueError(f"Unknown noise kind '{kind}'. Expected one of {NOISE_KINDS}.")


def _evaluate(module: nn.Module, data: torch.Tensor) -> float:
    module.eval()
    with torch.no_grad():
        return float(nn.functional.mse_loss(module(data), data).item())


def _run_attempt(
    module: nn.Module,
    data: torch.Tensor,
    *,
    seed: int,
    epochs: int,
    batch_size: int,
    learning_rate: float,
    weight_decay: float,
    patience: int,
    tolerance: float,
    noise_kind: Optional[str],
    noise_level: float,
    logger: logging.Logger,
) -> TrainingResult:
    generator = torch.Generator().manual_seed(seed)
    dataset = TensorDataset(data)
    loader = DataLoader(dataset, batch_size=min(batch_size, len(dataset)), shuffle=True, generator=generator)
    optimizer = torch.optim.Adam(module.parameters(), lr=learning_rate, weight_decay=weight_decay)
    mse_loss = nn.MSELoss()

    initial_loss = _evaluate(module, data)
    if not np.isfinite(initial_loss):
        raise TrainingDiverged("initial reconstruction loss is not finite")

    history: list[float] = []
    best_loss = float("inf")
    best_state = {k: v.detach().clone() for k, v in module.state_dict().items()}
    wait = 0
    converged = False
    for epoch in range(epochs):
        module.train()
        epoch_loss = 0.0
        for (batch,) in loader:
            optimizer.zero_grad(set_to_none=True)
            recon = module(corrupt(batch, noise_kind, noise_level, generator))
            loss = mse_loss(recon, batch)
            if not torch.isfinite(loss):
                raise TrainingDiverged(f"loss became non-finite at epoch {epoch + 1}")
            loss.backward()
            optimizer.step()
            epoch_loss += loss.item() * batch.size(0)
        epoch_loss /= len(dataset)
        history.append(epoch_loss)

        # Early stopping on the training loss; the best weights are restored below
        if epoch_loss < best_loss - tolerance:
            best_loss = epoch_loss
            best_state = {k: v.detach().clone() for k, v in module.state_dict().items()}
            wait = 0
        else:
            wait += 1
            if patience > 0 and wait >= patience:
                converged = True
                logger.debug("Early stopping at epoch %d (best loss %.6g)", epoch + 1, best_loss)
                break

    module.load_state_dict(best_state)
    final_loss = _evaluate(module, data)
    if not np.isfinite(final_loss):
        raise TrainingDiverged("final reconstruction loss is not finite")
    return TrainingResult(
        module=module,
        epochs_run=len(history),
        initial_loss=initial_loss,
        best_loss=float(best_loss),
        final_loss=final_loss,
        converged=converged,
        seed=seed,
        history=history,
    )


def train_reconstruction(
    build_module: Callable[[], nn.Module],
    X: np.ndarray,
    *,
    epochs: int,
    batch_size: int,
    learning_rate: float,
    weight_decay: float = 0.0,
    patience: int = 0,
    tolerance: float = 0.0,
    max_restarts: int = 0,
    seed: int = 0,
    device: torch.device | str = "cpu",
    noise_kind: Optional[str] = None,
    noise_level: float = 0.0,
    logger: Optional[logging.Logger] = None,
) -> TrainingResult:
    """
    Train a fresh module (from `build_module`) to reconstruct `X` with Adam + MSE.

    Each attempt seeds torch with ``seed + attempt`` inside a forked RNG, so the
    caller's global RNG state is left untouched and runs are reproducible on CPU.
    An attempt whose loss turns non-finite is discarded and retried up to
    `max_restarts` times.

    Raises
    ------
    NumericFailure
        If every attempt diverged.
    """
    log = logger or logging.getLogger("latentia.reductions.training")
    device = torch.device(device)
    data = _as_tensor(X, device)
    last_error: Optional[TrainingDiverged] = None
    for attempt in range(max_restarts + 1):
        attempt_seed = seed + attempt
        with torch.random.fork_rng(devices=[]):
            torch.manual_seed(attempt_seed)
            module = build_module().to(device)
            try:
                result = _run_attempt(
                    module,
                    data,
                    seed=attempt_seed,
                    epochs=epochs,
                    batch_size=batch_size,
                    learning_rate=learning_rate,
                    weight_decay=weight_decay,
                    patience=patience,
                    tolerance=tolerance,
                    noise_kind=noise_kind,
                    noise_level=noise_level,
                    logger=log,
                )
            except TrainingDiverged as e:
                last_error = e
                log.warning("Training attempt %d (seed=%d) diverged: %s", attempt + 1, attempt_seed, e)
                continue
        result.restart_count = attempt
        return result
    raise NumericFailure(f"Training diverged after {max_restarts + 1} attempt(s): {last_error}")


# -----------------------------
# TrainedState helpers
# -----------------------------
def export_state_dict(module: nn.Module) -> dict[str, np.ndarray]:
    """Module weights as float64 arrays keyed ``state.<param name>``."""
    return {
        f"{STATE_PREFIX}{name}": tensor.detach().cpu().numpy().astype(np.float64)
        for name, tensor in module.state_dict().items()
    }


def import_state_dict(params: Mapping[str, Any]) -> dict[str, torch.Tensor]:
    """Inverse of :func:`export_state_dict` (float32 tensors on CPU)."""
    return {
        name[len(STATE_PREFIX):]: torch.as_tensor(np.asarray(value, dtype=np.float32))
        for name, value in params.items()
        if name.startswith(STATE_PREFIX)
    }


def encoder_jacobian(encode: Callable[[torch.Tensor], torch.Tensor], n_features: int,
                     device: torch.device) -> np.ndarray:
    """Jacobian (latent_dim, n_features) of `encode` at the centered origin."""
    origin = torch.zeros(n_features, dtype=torch.float32, device=device)
    jac = torch.autograd.functional.jacobian(encode, origin)
    return jac.detach().cpu().numpy().astype(np.float64)


def variance_proxy_ratio(Xs: np.ndarray, recon: np.ndarray, Z: np.ndarray, proxy: str) -> tuple[np.ndarray, float]:
    """
    Explained-variance proxy of an encoder variant and the reconstruction R².

    ``"reconstruction"`` shares ``R² = clip(1 - MSE / mean(Xs²), 0, 1)`` among
    the latent units in proportion to the variance of their activations;
    ``"uniform"`` gives each unit ``1 / latent_dim``.
    """
    k = Z.shape[1]
    mse = float(np.mean((recon - Xs) ** 2))
    total = float(np.mean(Xs ** 2))
    r2 = float(np.clip(1.0 - mse / total, 0.0, 1.0)) if total > 0 else 0.0
    if proxy == "uniform":
        return np.full(k, 1.0 / k), r2
    if proxy != "reconstruction":
        raise ValueError(f"Unknown variance proxy '{proxy}'. Expected one of {VARIANCE_PROXIES}.")
    activity = Z.var(axis=0) if Z.shape[0] > 1 else np.zeros(k)
    share = activity / activity.sum() if activity.sum() > 0 else np.full(k, 1.0 / k)
    return r2 * share, r2


class ReconstructionEstimator(ReductionEstimator):
    """
    Base for variants trained by gradient descent to reconstruct their input.

    Subclasses provide the torch module through :meth:`_build_module`; the
    module must expose ``encode`` and ``decode``. Its weights are stored in
    ``model_parameters`` and the module is rebuilt from the TrainedState for
    ``transform`` and ``inverse_transform``.

    Parameters
    ----------
    epochs, batch_size, learning_rate, weight_decay :
        Adam training schedule.
    patience : int, default 20
        Early-stopping patience in epochs (0 disables).
    tolerance : float, default 1e-6
        Minimal loss improvement that resets the patience counter.
    max_restarts : int, default 2
        Re-seeded retries after a diverging attempt.
    seed : int or None
        Defaults to ``ToolConfig.seed``.
    device : str or None
        Defaults to ``ToolConfig.default_device``.
    variance_proxy : {"reconstruction", "uniform"}
    noise_kind : {"gaussian", "masking"} or None
    noise_level : float
        Std of the gaussian noise, or drop probability (< 1) for masking.
    """

    kind: ClassVar[VariantKind] = "autoencoder"
    default_params: ClassVar[Mapping[str, ParamValue]] = TRAINING_DEFAULTS

    _module_cache: Optional[tuple[TrainedState, nn.Module]] = None

    def _check_params(self) -> None:
        self.epochs = self._int("epochs", minimum=1)
        self.batch_size = self._int("batch_size", minimum=1)
        self.learning_rate = self._float("learning_rate", strict_min=True)
        self.weight_decay = self._float("weight_decay")
        self.patience = self._int("patience", minimum=0)
        self.tolerance = self._float("tolerance")
        self.max_restarts = self._int("max_restarts", minimum=0)
        seed = self._int("seed", minimum=0, allow_none=True)
        self.seed: int = int(get_config().seed if seed is None else seed)
        self.variance_proxy: VarianceProxy = self._choice("variance_proxy", VARIANCE_PROXIES)  # type: ignore[assignment]

        device = self.params["device"]
        if device is None:
            device = get_config().default_device
        try:
            self.device = torch.device(device)
        except (RuntimeError, TypeError) as e:
            raise self._invalid(f"Invalid device {device!r}: {e}") from e
        if self.device.type == "cuda":
            if not torch.cuda.is_available():
                raise self._invalid(f"Device {device!r} requested but CUDA is not available.")
            index = self.device.index
            if index is not None and index >= torch.cuda.device_count():
                raise self._invalid(
                    f"Device {device!r} requested but only {torch.cuda.device_count()} CUDA device(s) exist."
                )

        noise_kind = self.params["noise_kind"]
        self.noise_kind: Optional[NoiseKind] = (
            None if noise_kind is None else self._choice("noise_kind", NOISE_KINDS)  # type: ignore[assignment]
        )
        self.noise_level = self._float(
            "noise_level", maximum=1.0 if self.noise_kind == "masking" else None, strict_max=True
        )
        if self.noise_kind is None and self.noise_level > 0:
            self.__logger__.warning(
                "noise_level=%g has no effect without noise_kind; training on clean inputs.", self.noise_level
            )
            self.noise_level = 0.0

    # -----------------------------
    # Variant hooks
    # -----------------------------
    def _build_module(self, n_features: int) -> nn.Module:
        raise NotImplementedError

    def _architecture(self) -> dict[str, ParamValue]:
        """Extra model_parameters describing the module layout."""
        return {}

    def _quantum_parameters(self, module: nn.Module) -> dict[str, ParamValue]:
        return {}

    # -----------------------------
    # Fit
    # -----------------------------
    def _fit_components(self, Xs: np.ndarray) -> FitOutcome:
        n, d = Xs.shape
        self.__logger__.info(
            "Training %s on device=%s | epochs=%d | batch_size=%d | lr=%g | seed=%d | noise=%s(%g)",
            self.variant_name, self.device, self.epochs, self.batch_size, self.learning_rate,
            self.seed, self.noise_kind, self.noise_level,
        )
        result = train_reconstruction(
            lambda: self._build_module(d),
            Xs,
            epochs=self.epochs,
            batch_size=self.batch_size,
            learning_rate=self.learning_rate,
            weight_decay=self.weight_decay,
            patience=self.patience,
            tolerance=self.tolerance,
            max_restarts=self.max_restarts,
            seed=self.seed,
            device=self.device,
            noise_kind=self.noise_kind,
            noise_level=self.noise_level,
            logger=self.__logger__,
        )
        module = result.module.eval()
        with torch.no_grad():
            Z_t = module.encode(_as_tensor(Xs, self.device))
            recon = module.decode(Z_t).cpu().numpy().astype(np.float64)
        Z = Z_t.cpu().numpy().astype(np.float64)
        ratio, r2 = variance_proxy_ratio(Xs, recon, Z, self.variance_proxy)
        components = encoder_jacobian(module.encode, d, self.device)

        self.__logger__.info(
            "%s trained in %d epoch(s) | final_loss=%.6g | r2=%.4f | restarts=%d",
            self.variant_name, result.epochs_run, result.final_loss, r2, result.restart_count,
        )
        return FitOutcome(
            components=components,
            explained_variance_ratio=ratio,
            quantum_parameters=self._quantum_parameters(module),
            model_parameters={**self._architecture(), **export_state_dict(module)},
            training_statistics={
                "epochs_run": result.epochs_run,
                "initial_loss": result.initial_loss,
                "best_loss": result.best_loss,
                "final_loss": result.final_loss,
                "converged": result.converged,
                "restart_count": result.restart_count,
                "reconstruction_mse": float(np.mean((recon - Xs) ** 2)),
                "r2": r2,
                "variance_proxy": self.variance_proxy,
                "seed": result.seed,
                "noise_kind": self.noise_kind,
                "noise_level": self.noise_level,
            },
        )

    # -----------------------------
    # Transform
    # -----------------------------
    def _module_for(self, state: TrainedState) -> nn.Module:
        cached = self._module_cache
        if cached is not None and cached[0] is state:
            return cached[1]
        with torch.random.fork_rng(devices=[]):
            module = self._build_module(state.n_features)
        module.load_state_dict(import_state_dict(state.model_parameters))
        module = module.to(self.device).eval()
        self._module_cache = (state, module)
        return module

    def _encode(self, state: TrainedState, Xs: np.ndarray) -> np.ndarray:
        module = self._module_for(state)
        with torch.no_grad():
            Z = module.encode(_as_tensor(Xs, self.device))
        return Z.cpu().numpy().astype(np.float64)

    def _decode(self, state: TrainedState, Z: np.ndarray) -> np.ndarray:
        module = self._module_for(state)
        with torch.no_grad():
            X = module.decode(_as_tensor(Z, self.device))
        return X.cpu().numpy().astype(np.float64)

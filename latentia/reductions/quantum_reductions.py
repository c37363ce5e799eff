from __future__ import annotations

import math
from typing import ClassVar, Mapping, Sequence

import numpy as np
import torch
from torch import nn

from latentia.types import ParamValue, VariantKind

from .training import ReconstructionEstimator

# Initial entanglement coupling and spread of the initial rotation offsets
_INITIAL_COUPLING = 0.1
_ROTATION_JITTER = 0.01


class RotationCircuitAutoencoder(nn.Module):
    """
    Autoencoder whose encoder simulates a layered single-qubit rotation circuit.

    The input is angle-encoded onto ``n_qubits`` rotation angles ``θ = W x + b``.
    Each variational layer adds a trainable per-qubit rotation offset, then
    couples neighbouring qubits on a ring (``θ_i += γ_i sin θ_{i+1}``). The
    latent code is the Pauli-Z expectation ``cos θ`` of every qubit, so latent
    values lie in [-1, 1]. The decoder is classical: linear, or an MLP when
    `decoder_hidden_dims` is non-empty.
    """

    def __init__(
        self,
        input_dim: int,
        n_qubits: int,
        n_layers: int = 2,
        decoder_hidden_dims: Sequence[int] = (),
    ) -> None:
        super().__init__()
        self.n_qubits = n_qubits
        self.n_layers = n_layers
        self.angle_encoder = nn.Linear(input_dim, n_qubits)
        self.rotation_angles = nn.Parameter(
            math.pi / 2 + _ROTATION_JITTER * torch.randn(n_layers, n_qubits)
        )
        self.entangling_strengths = nn.Parameter(torch.full((n_layers, n_qubits), _INITIAL_COUPLING))

        layers: list[nn.Module] = []
        in_dim = n_qubits
        for hidden in decoder_hidden_dims:
            layers += [nn.Linear(in_dim, hidden), nn.ReLU()]
            in_dim = hidden
        layers.append(nn.Linear(in_dim, input_dim))
        self.decoder = nn.Sequential(*layers)

    def circuit_angles(self, x: torch.Tensor) -> torch.Tensor:
        theta = self.angle_encoder(x)
        for layer in range(self.n_layers):
            theta = theta + self.rotation_angles[layer]
            theta = theta + self.entangling_strengths[layer] * torch.sin(torch.roll(theta, shifts=-1, dims=-1))
        return theta

    def encode(self, x: torch.Tensor) -> torch.Tensor:
        return torch.cos(self.circuit_angles(x))

    def decode(self, z: torch.Tensor) -> torch.Tensor:
        return self.decoder(z)

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        return self.decode(self.encode(x))


class QuantumDenoisingAutoencoderReducer(ReconstructionEstimator):
    """
    Denoising autoencoder with a simulated rotation-circuit encoder.

    One qubit per latent dimension. The trained circuit parameters are exposed
    in ``quantum_parameters``: ``n_qubits``, ``n_layers``, ``encoding``,
    ``rotation_angles`` and ``entangling_strengths`` (both flattened
    ``n_layers x n_qubits``), and ``readout``.

    Parameters
    ----------
    n_layers : int, default 2
        Number of variational layers.
    decoder_hidden_dims : sequence of int, default ()
        Hidden widths of the classical decoder (empty means linear).
    noise_kind : {"gaussian", "masking"}, default "gaussian"
    noise_level : float, default 0.1
    """

    variant_name: ClassVar[str] = "quantum_denoising_autoencoder"
    kind: ClassVar[VariantKind] = "parameterized"
    default_params: ClassVar[Mapping[str, ParamValue]] = {
        "n_layers": 2,
        "decoder_hidden_dims": (),
        "noise_kind": "gaussian",
        "noise_level": 0.1,
    }

    def _check_params(self) -> None:
        super()._check_params()
        self.n_layers = self._int("n_layers", minimum=1)
        self.decoder_hidden_dims = self._int_tuple("decoder_hidden_dims")

    def _build_module(self, n_features: int) -> nn.Module:
        return RotationCircuitAutoencoder(n_features, self.latent_dim, self.n_layers, self.decoder_hidden_dims)

    def _architecture(self) -> dict[str, ParamValue]:
        return {
            "n_layers": self.n_layers,
            "decoder_hidden_dims": tuple(float(h) for h in self.decoder_hidden_dims),
        }

    def _quantum_parameters(self, module: nn.Module) -> dict[str, ParamValue]:
        def flat(p: torch.Tensor) -> np.ndarray:
            return p.detach().cpu().numpy().astype(np.float64).ravel()

        return {
            "n_qubits": module.n_qubits,
            "n_layers": module.n_layers,
            "encoding": "angle",
            "rotation_angles": flat(module.rotation_angles),
            "entangling_strengths": flat(module.entangling_strengths),
            "readout": "pauli_z",
        }

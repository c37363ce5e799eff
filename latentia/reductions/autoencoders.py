from __future__ import annotations

from typing import ClassVar, Mapping, Sequence

import torch
from torch import nn

from latentia.types import ParamValue

from .training import ReconstructionEstimator


class DenseAutoencoder(nn.Module):
    """MLP encoder (ReLU hidden layers) to `latent_dim` with a mirrored decoder."""

    def __init__(self, input_dim: int, latent_dim: int, hidden_dims: Sequence[int] = (64,)) -> None:
        super().__init__()
        encoder_layers: list[nn.Module] = []
        in_dim = input_dim
        for hidden in hidden_dims:
            encoder_layers += [nn.Linear(in_dim, hidden), nn.ReLU()]
            in_dim = hidden
        encoder_layers.append(nn.Linear(in_dim, latent_dim))
        self.encoder = nn.Sequential(*encoder_layers)

        decoder_layers: list[nn.Module] = []
        in_dim = latent_dim
        for hidden in reversed(tuple(hidden_dims)):
            decoder_layers += [nn.Linear(in_dim, hidden), nn.ReLU()]
            in_dim = hidden
        decoder_layers.append(nn.Linear(in_dim, input_dim))
        self.decoder = nn.Sequential(*decoder_layers)

    def encode(self, x: torch.Tensor) -> torch.Tensor:
        return self.encoder(x)

    def decode(self, z: torch.Tensor) -> torch.Tensor:
        return self.decoder(z)

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        return self.decode(self.encode(x))


class AutoencoderReducer(ReconstructionEstimator):
    """
    Nonlinear reduction with a dense autoencoder trained on reconstruction MSE.

    ``components`` holds the encoder Jacobian at the centered origin, i.e. the
    best linear approximation of the encoder around the data mean.

    Parameters
    ----------
    hidden_dims : sequence of int, default (64,)
        Widths of the encoder hidden layers (the decoder mirrors them).
    """

    variant_name: ClassVar[str] = "autoencoder"
    default_params: ClassVar[Mapping[str, ParamValue]] = {"hidden_dims": (64,)}

    def _check_params(self) -> None:
        super()._check_params()
        self.hidden_dims = self._int_tuple("hidden_dims")

    def _build_module(self, n_features: int) -> nn.Module:
        return DenseAutoencoder(n_features, self.latent_dim, self.hidden_dims)

    def _architecture(self) -> dict[str, ParamValue]:
        return {"hidden_dims": tuple(float(h) for h in self.hidden_dims)}


class DenoisingAutoencoderReducer(AutoencoderReducer):
    """
    Dense autoencoder trained to recover clean inputs from corrupted ones.

    Parameters
    ----------
    noise_kind : {"gaussian", "masking"}, default "gaussian"
    noise_level : float, default 0.1
        Std of the additive noise, or probability of zeroing an entry.
    """

    variant_name: ClassVar[str] = "denoising_autoencoder"
    default_params: ClassVar[Mapping[str, ParamValue]] = {"noise_kind": "gaussian", "noise_level": 0.1}

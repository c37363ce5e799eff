# tests/core/test_reduction_config.py
from __future__ import annotations

import numpy as np
import pytest

from latentia.core import DimensionMismatch, InvalidConfig, ReductionConfig


def test_valid_config_passes_validation():
    cfg = ReductionConfig(2, {"whiten": True})
    cfg.validate(5)
    cfg.validate(2)
    cfg.validate()
    assert cfg.latent_dim == 2
    assert cfg.get("whiten") is True
    assert cfg.get("missing", 7) == 7


@pytest.mark.parametrize("latent_dim", [0, -3])
def test_non_positive_latent_dim_is_invalid(latent_dim):
    cfg = ReductionConfig(latent_dim)
    with pytest.raises(InvalidConfig):
        cfg.validate(5)


def test_latent_dim_above_original_dim_is_dimension_mismatch():
    cfg = ReductionConfig(6)
    with pytest.raises(DimensionMismatch):
        cfg.validate(5)
    # DimensionMismatch is also an InvalidConfig
    with pytest.raises(InvalidConfig):
        cfg.validate(5)


@pytest.mark.parametrize("bad", [2.5, "3", True, None])
def test_latent_dim_must_be_an_integer(bad):
    with pytest.raises(InvalidConfig):
        ReductionConfig(bad)


def test_numpy_integer_latent_dim_is_accepted():
    cfg = ReductionConfig(np.int64(3))
    assert cfg.latent_dim == 3 and type(cfg.latent_dim) is int


def test_variant_params_are_frozen():
    hidden = [32, 16]
    cfg = ReductionConfig(2, {"hidden_dims": hidden})
    hidden.append(8)
    assert cfg.variant_params["hidden_dims"] == (32, 16)
    with pytest.raises(TypeError):
        cfg.variant_params["hidden_dims"] = (1,)  # type: ignore[index]
    with pytest.raises(AttributeError):
        cfg.latent_dim = 4  # type: ignore[misc]


def test_unsupported_param_values_are_rejected():
    with pytest.raises(InvalidConfig):
        ReductionConfig(2, {"callback": object()})
    with pytest.raises(InvalidConfig):
        ReductionConfig(2, {"hidden_dims": ["a", "b"]})
    with pytest.raises(InvalidConfig):
        ReductionConfig(2, {"": 1})


def test_from_mapping_merges_nested_params():
    cfg = ReductionConfig.from_mapping(
        {"latent_dim": 3, "variant_params": {"epochs": 5, "seed": 1}, "seed": 2}
    )
    assert cfg.latent_dim == 3
    assert dict(cfg.variant_params) == {"epochs": 5, "seed": 2}

    with pytest.raises(InvalidConfig):
        ReductionConfig.from_mapping({"whiten": True})


def test_with_params_returns_new_config_and_is_hashable():
    cfg = ReductionConfig(2, {"whiten": False})
    other = cfg.with_params(whiten=True)
    assert cfg.get("whiten") is False
    assert other.get("whiten") is True
    assert cfg == ReductionConfig(2, {"whiten": False})
    assert len({cfg, ReductionConfig(2, {"whiten": False}), other}) == 2
    assert other.as_dict() == {"latent_dim": 2, "variant_params": {"whiten": True}}

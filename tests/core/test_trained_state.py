# tests/core/test_trained_state.py
from __future__ import annotations

import json

import numpy as np
import pytest

from latentia.core import DimensionMismatch, InvalidConfig, NumericFailure, TrainedState


def _state(**overrides) -> TrainedState:
    fields = dict(
        components=np.eye(2, 3),
        explained_variance_ratio=np.array([0.6, 0.3]),
        mean=np.array([1.0, 2.0, 3.0]),
        model_parameters={"whiten": False, "explained_variance": np.array([2.0, 1.0])},
        training_statistics={"n_samples": 10, "variant": "pca"},
    )
    fields.update(overrides)
    return TrainedState(**fields)


def test_shapes_and_properties():
    s = _state()
    assert s.latent_dim == 2
    assert s.n_features == 3
    assert not s.has_scaling
    assert s.components.dtype == np.float64
    assert "latent_dim=2" in repr(s)


def test_arrays_are_copied_and_read_only():
    comps = np.eye(2, 3)
    s = _state(components=comps)
    comps[0, 0] = 99.0
    assert s.components[0, 0] == 1.0
    with pytest.raises(ValueError):
        s.components[0, 0] = 5.0
    with pytest.raises(ValueError):
        s.model_parameters["explained_variance"][0] = 5.0
    with pytest.raises(TypeError):
        s.training_statistics["n_samples"] = 3  # type: ignore[index]


def test_inconsistent_shapes_raise_dimension_mismatch():
    with pytest.raises(DimensionMismatch):
        _state(explained_variance_ratio=np.array([0.5]))
    with pytest.raises(DimensionMismatch):
        _state(mean=np.zeros(4))
    with pytest.raises(DimensionMismatch):
        _state(scale=np.ones(2))
    with pytest.raises(DimensionMismatch):
        _state(components=np.ones(3))


def test_bag_values_must_be_supported():
    with pytest.raises(InvalidConfig):
        _state(quantum_parameters={"circuit": object()})
    with pytest.raises(InvalidConfig):
        _state(quantum_parameters={1: 2.0})


def test_clone_is_equal_and_independent():
    s = _state(scale=np.array([1.0, 2.0, 0.5]))
    c = s.clone()
    assert c == s
    assert c is not s
    assert c.components is not s.components
    assert not np.shares_memory(c.components, s.components)
    assert c.model_parameters is not s.model_parameters


def test_equality_is_value_based():
    assert _state() == _state()
    assert _state() != _state(mean=np.array([1.0, 2.0, 4.0]))
    assert _state() != _state(scale=np.ones(3))
    assert _state() != _state(training_statistics={"n_samples": 11, "variant": "pca"})
    assert _state().allclose(_state(mean=np.array([1.0, 2.0, 3.0 + 1e-12])))


def test_check_invariants():
    _state().check_invariants(sorted_variance=True)
    with pytest.raises(NumericFailure):
        _state(explained_variance_ratio=np.array([0.3, 0.6])).check_invariants(sorted_variance=True)
    # Unsorted ratios are fine for non-linear variants
    _state(explained_variance_ratio=np.array([0.3, 0.6])).check_invariants()
    with pytest.raises(NumericFailure):
        _state(explained_variance_ratio=np.array([0.8, 0.7])).check_invariants()
    with pytest.raises(NumericFailure):
        _state(explained_variance_ratio=np.array([0.5, -0.1])).check_invariants()
    with pytest.raises(NumericFailure):
        _state(mean=np.array([np.nan, 0.0, 0.0])).check_invariants()
    with pytest.raises(NumericFailure):
        _state(scale=np.array([1.0, 0.0, 1.0])).check_invariants()


def test_dict_layout_is_json_compatible_and_restorable():
    s = _state(scale=np.array([1.0, 2.0, 0.5]), quantum_parameters={"readout": "pauli_z", "n_qubits": 2})
    payload = json.loads(json.dumps(s.to_dict()))
    restored = TrainedState.from_dict(payload)
    assert restored == s
    assert restored.quantum_parameters["readout"] == "pauli_z"

    with pytest.raises(InvalidConfig):
        TrainedState.from_dict({"components": [[1.0]]})

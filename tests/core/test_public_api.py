# tests/core/test_public_api.py
from __future__ import annotations

import latentia
import latentia.core as core
import latentia.reductions as reductions


def test_top_level_exports_exist():
    for name in latentia.__all__:
        assert hasattr(latentia, name), f"latentia.{name} missing"
    assert isinstance(latentia.__version__, str)


def test_core_and_reductions_exports_exist():
    for name in core.__all__:
        assert hasattr(core, name)
    for name in reductions.__all__:
        assert hasattr(reductions, name)


def test_top_level_names_are_the_same_objects():
    assert latentia.TrainedState is core.TrainedState
    assert latentia.create_estimator is core.create_estimator
    assert latentia.PCAReducer is reductions.PCAReducer


def test_estimators_satisfy_protocol():
    for cls in (
        latentia.PCAReducer,
        latentia.IncrementalPCAReducer,
        latentia.AutoencoderReducer,
        latentia.DenoisingAutoencoderReducer,
        latentia.QuantumDenoisingAutoencoderReducer,
    ):
        est = cls(2)
        assert isinstance(est, latentia.Estimator)
        assert est.get_trained_state() is None
        assert not est.is_fitted

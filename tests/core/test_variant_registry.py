# tests/core/test_variant_registry.py
from __future__ import annotations

import threading

import pytest

from latentia.core import (
    InvalidConfig,
    ReductionConfig,
    UnknownVariant,
    VariantSpec,
    clear_registry,
    create_estimator,
    get_variant_spec,
    list_registered_variants,
    register_alias,
    register_variant,
    reset_registry,
    unregister,
)
from latentia.reductions import PCAReducer


class _RecordingFactory:
    calls: list = []

    def __init__(self, config, **options):
        self.config = config
        self.options = options
        _RecordingFactory.calls.append(self)


def test_builtins_are_registered():
    names = list_registered_variants()
    assert names == sorted(
        [
            "autoencoder",
            "denoising_autoencoder",
            "incremental_pca",
            "pca",
            "quantum_denoising_autoencoder",
        ]
    )
    assert "qdae" in list_registered_variants(include_aliases=True)
    assert list_registered_variants(kind="linear") == ["incremental_pca", "pca"]
    assert list_registered_variants(kind="parameterized") == ["quantum_denoising_autoencoder"]


def test_register_and_get_spec_roundtrip():
    register_variant(VariantSpec(name="Dummy", factory=_RecordingFactory, kind="autoencoder"))
    got = get_variant_spec("dummy")
    assert got.name == "dummy"
    assert got.factory is _RecordingFactory
    assert got is get_variant_spec("  DUMMY ")

    with pytest.raises(UnknownVariant):
        get_variant_spec("nope")
    # UnknownVariant is both an InvalidConfig and a LookupError
    with pytest.raises(LookupError):
        get_variant_spec("nope")


def test_invalid_specs_are_rejected():
    with pytest.raises(InvalidConfig):
        register_variant(VariantSpec(name="x", factory=_RecordingFactory, kind="nonlinear"))  # type: ignore[arg-type]
    with pytest.raises(InvalidConfig):
        register_variant(VariantSpec(name="  ", factory=_RecordingFactory, kind="linear"))
    with pytest.raises(InvalidConfig):
        list_registered_variants(kind="quantum")


def test_alias_registration_and_listing():
    register_alias("principal", "linear_pca")
    spec_alias = get_variant_spec("principal")
    assert spec_alias.alias_of == "pca"
    assert spec_alias.name == "principal"
    assert spec_alias.factory is PCAReducer

    names_no_alias = list_registered_variants(include_aliases=False)
    names_with_alias = list_registered_variants(include_aliases=True)
    assert "principal" not in names_no_alias
    assert {"principal", "pca", "linear_pca"} <= set(names_with_alias)

    with pytest.raises(UnknownVariant):
        register_alias("broken", "missing")


def test_unregister_clear_and_reset():
    register_variant(VariantSpec(name="to_drop", factory=_RecordingFactory, kind="linear"))
    unregister("to_drop")
    with pytest.raises(UnknownVariant):
        get_variant_spec("to_drop")
    unregister("never_registered")

    clear_registry()
    assert list_registered_variants(True) == []

    reset_registry()
    assert "pca" in list_registered_variants()
    assert "ae" in list_registered_variants(include_aliases=True)


def test_reset_drops_user_registrations():
    register_variant(VariantSpec(name="custom", factory=_RecordingFactory, kind="linear"))
    reset_registry()
    assert "custom" not in list_registered_variants()


def test_create_estimator_forwards_config_and_options():
    _RecordingFactory.calls.clear()
    register_variant(VariantSpec(name="rec", factory=_RecordingFactory, kind="autoencoder"))
    est = create_estimator("REC", {"latent_dim": 4, "epochs": 3}, strict=False, debug=True)
    assert isinstance(est, _RecordingFactory)
    assert est.config == ReductionConfig(4, {"epochs": 3})
    assert est.options["strict"] is False
    assert est.options["debug"] is True


def test_create_estimator_builds_builtin_estimators():
    est = create_estimator("linear_pca", ReductionConfig(2, {"whiten": True}))
    assert isinstance(est, PCAReducer)
    assert est.whiten is True
    with pytest.raises(UnknownVariant):
        create_estimator("not_a_variant", {"latent_dim": 2})


def test_concurrent_registration_is_consistent():
    def worker(i: int) -> None:
        register_variant(VariantSpec(name=f"v{i}", factory=_RecordingFactory, kind="linear"))
        register_alias(f"a{i}", f"v{i}")

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(16)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    names = set(list_registered_variants(include_aliases=True))
    assert {f"v{i}" for i in range(16)} <= names
    assert {f"a{i}" for i in range(16)} <= names

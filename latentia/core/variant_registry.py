# core/variant_registry.py
from __future__ import annotations

import logging
from dataclasses import replace
from threading import RLock
from typing import Any, Mapping, Optional

from latentia.constants.tool_constants import VARIANT_KINDS
from latentia.logging import get_logger

from .errors import InvalidConfig, UnknownVariant
from .reduction_config import ReductionConfig
from .variant_spec import VariantSpec

logger = get_logger(__name__)
_LOCK = RLock()

# ----------------------------
# Registry storage
# ----------------------------

_REGISTRY: dict[str, VariantSpec] = {}
# Entries restored by reset_registry(), in registration order.
_BUILTINS: dict[str, VariantSpec] = {}


def _norm(name: str) -> str:
    return (name or "").strip().lower()


def register_variant(spec: VariantSpec, *, builtin: bool = False) -> None:
    """
    Register (or overwrite) a variant spec by name.

    Thread-safe and idempotent per `name`. ``builtin=True`` entries survive
    :func:`reset_registry`.
    """
    if spec.kind not in VARIANT_KINDS:
        raise InvalidConfig(f"Unknown variant kind '{spec.kind}'. Expected one of {VARIANT_KINDS}.")
    key = _norm(spec.name)
    if not key:
        raise InvalidConfig("Variant name must be a non-empty string.")
    spec = replace(spec, name=key)
    with _LOCK:
        _REGISTRY[key] = spec
        if builtin:
            _BUILTINS[key] = spec
        logger.debug("Registered variant '%s' (kind=%s)", key, spec.kind)


def register_alias(alias: str, canonical: str, *, builtin: bool = False) -> None:
    """
    Register an alias that resolves to an existing canonical variant.
    """
    key, target = _norm(alias), _norm(canonical)
    with _LOCK:
        if target not in _REGISTRY:
            raise UnknownVariant(f"Cannot alias unknown variant '{canonical}'")
        base = _REGISTRY[target]
        canonical_name = base.alias_of or base.name
        spec = replace(base, name=key, alias_of=canonical_name)
        _REGISTRY[key] = spec
        if builtin:
            _BUILTINS[key] = spec
        logger.debug("Registered alias '%s' -> '%s'", key, canonical_name)


def unregister(name: str) -> None:
    """Remove a variant or alias from the registry."""
    with _LOCK:
        if _REGISTRY.pop(_norm(name), None) is not None:
            logger.info("Unregistered variant '%s'", name)


def clear_registry() -> None:
    """Remove every entry, built-ins included. Intended for tests."""
    with _LOCK:
        _REGISTRY.clear()
        logger.debug("Registry cleared")


def reset_registry() -> None:
    """Drop user registrations and restore the built-in variants."""
    with _LOCK:
        _REGISTRY.clear()
        _REGISTRY.update(_BUILTINS)
        logger.debug("Registry reset to %d built-in entries", len(_BUILTINS))


def list_registered_variants(include_aliases: bool = False, kind: Optional[str] = None) -> list[str]:
    """
    List registered variant names.

    Parameters
    ----------
    include_aliases : bool, default=False
        If False, return only canonical names.
    kind : {"linear", "autoencoder", "parameterized"}, optional
        Restrict to one family.
    """
    if kind is not None and kind not in VARIANT_KINDS:
        raise InvalidConfig(f"kind must be one of {VARIANT_KINDS} or None; got {kind!r}.")
    with _LOCK:
        names = [
            name
            for name, spec in _REGISTRY.items()
            if (include_aliases or not spec.is_alias()) and (kind is None or spec.kind == kind)
        ]
    return sorted(names)


def get_variant_spec(name: str) -> VariantSpec:
    """
    Get the spec for a variant or alias (case-insensitive).

    Raises
    ------
    UnknownVariant
        If `name` is missing.
    """
    key = _norm(name)
    with _LOCK:
        if key not in _REGISTRY:
            raise UnknownVariant(f"Unknown variant '{name}'. Available: {sorted(_REGISTRY)}")
        return _REGISTRY[key]


def create_estimator(
    name: str,
    config: ReductionConfig | Mapping[str, Any],
    *,
    strict: bool = True,
    debug: bool = False,
    debug_mode: int = logging.INFO,
) -> Any:
    """
    Construct an estimator for `name` from a config (or a config mapping).

    Parameters
    ----------
    name : str
        Variant name or alias.
    config : ReductionConfig or Mapping
        Hyperparameters; a mapping must contain ``latent_dim``.
    strict : bool, default=True
        Reject variant params the estimator does not declare. If False,
        unknown params are dropped with a warning.
    debug, debug_mode :
        Forwarded to the estimator's child logger.

    Raises
    ------
    UnknownVariant
        If `name` is not registered.
    InvalidConfig
        If the config is malformed or (with ``strict``) has unknown params.
    """
    spec = get_variant_spec(name)
    cfg = ReductionConfig.from_mapping(config)
    logger.info("Creating estimator for variant '%s' (kind=%s, latent_dim=%d)", spec.name, spec.kind, cfg.latent_dim)
    return spec.factory(cfg, strict=strict, debug=debug, debug_mode=debug_mode)

# core/config.py
from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager
from dataclasses import replace
from pathlib import Path
from threading import RLock

from latentia.constants.config_constants import CachePaths
from latentia.constants.tool_configs import ToolConfig
from latentia.constants.tool_configs import get_config as _get_config
from latentia.constants.tool_configs import set_config as _set_config
from latentia.logging import get_logger

_LOG = get_logger(__name__)
_LOCK = RLock()


def get_config() -> ToolConfig:
    """
    Return the global ToolConfig managed by latentia.constants.tool_configs.
    """
    with _LOCK:
        return _get_config()


def set_seed(seed: int) -> None:
    """
    Set the default seed used by estimators that do not receive an explicit ``seed``.
    """
    with _LOCK:
        _set_config(replace(_get_config(), seed=int(seed)))
        _LOG.info("Default seed set to: %d", int(seed))


def set_cache_root(new_root: Path | str) -> None:
    """
    Override the cache root (log files live below it) while preserving the
    rest of the configuration.
    """
    root = Path(new_root).expanduser().resolve()
    with _LOCK:
        _set_config(replace(_get_config(), cache_paths=CachePaths(root)))
        _LOG.info("Cache root set to: %s", root)


@contextmanager
def temporary_seed(seed: int) -> Generator[None, None, None]:
    """
    Temporarily override the default seed (useful for tests or isolated runs).

    Example
    -------
    >>> with temporary_seed(7):
    ...     # estimators created here default to seed=7
    ...     pass
    """
    previous = get_config().seed
    set_seed(seed)
    try:
        yield
    finally:
        set_seed(previous)


__all__ = ["get_config", "set_seed", "set_cache_root", "temporary_seed", "ToolConfig", "CachePaths"]

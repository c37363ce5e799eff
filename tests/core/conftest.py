from __future__ import annotations

from collections.abc import Iterator

import pytest

from latentia.constants.tool_configs import get_config, set_config
from latentia.core.config import set_cache_root


@pytest.fixture(autouse=True)
def _isolate_config(monkeypatch, tmp_path) -> Iterator[None]:
    """Point the cache root at tmp_path and restore the global config afterwards."""
    previous = get_config()
    monkeypatch.setenv("LATENTIA_LOG_STDERR", "0")
    set_cache_root(tmp_path)

    yield

    set_config(previous)

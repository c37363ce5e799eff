# tool_configs.py
import os
import platform
from dataclasses import dataclass, field
from pathlib import Path

from .config_constants import CachePaths
from .tool_constants import _ENV_PREFIX, DEFAULT_SEED


def _default_cache_root() -> Path:
    """
    Determine the default cache root honoring LATENTIA_CACHE_ROOT if set
    and following OS-specific conventions otherwise.
    """
    system = platform.system().lower()
    if system == "darwin":
        base = Path.home() / "Library" / "Caches"
    elif system == "windows":
        base = Path(os.getenv("LOCALAPPDATA", Path.home() / "AppData" / "Local"))
    else:
        base = Path(os.getenv("XDG_CACHE_HOME", Path.home() / ".cache"))

    env = os.getenv(f"{_ENV_PREFIX}CACHE_ROOT")
    return Path(env) if env else base


def _default_device() -> str:
    """
    Default device for the torch-backed estimators.
    Priority:
      1) Respect LATENTIA_DEVICE if set (e.g., 'cpu', 'cuda').
      2) Use 'cuda' only if available.
      3) Fallback to 'cpu'.
    """
    env_device = os.getenv(f"{_ENV_PREFIX}DEVICE")
    if env_device:
        return env_device

    # torch is imported lazily so that reading constants stays cheap
    import torch

    return "cuda" if torch.cuda.is_available() else "cpu"


def _default_seed() -> int:
    return int(os.getenv(f"{_ENV_PREFIX}SEED", str(DEFAULT_SEED)))


@dataclass
class ToolConfig:
    """
    Global configuration container for latentia runtime.
    """

    cache_paths: CachePaths = field(default_factory=lambda: CachePaths(_default_cache_root()))
    debug: bool = field(default_factory=lambda: os.getenv(f"{_ENV_PREFIX}DEBUG", "").lower() in {"1", "true"})
    default_device: str = field(default_factory=_default_device)
    seed: int = field(default_factory=_default_seed)


# Global singleton for convenience (simple and testable)
_GLOBAL: ToolConfig | None = None


def get_config() -> ToolConfig:
    """
    Return the global ToolConfig, creating it on first use.
    Ensures cache directories exist.
    """
    global _GLOBAL
    if _GLOBAL is None:
        _GLOBAL = ToolConfig()
        _GLOBAL.cache_paths.ensure_all()
    return _GLOBAL


def set_config(cfg: ToolConfig) -> None:
    """
    Replace the global ToolConfig with a custom instance.
    Ensures cache directories exist.
    """
    global _GLOBAL
    _GLOBAL = cfg
    _GLOBAL.cache_paths.ensure_all()

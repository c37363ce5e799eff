# config_constants.py
import threading
from dataclasses import dataclass
from pathlib import Path

# Thread-safe creation of cache directories
_LOCK = threading.RLock()


@dataclass
class CachePaths:
    """
    Helper to manage the latentia cache layout and ensure directories exist.

    Only the ``logs`` subtree is written by the library itself.
    """

    cache_root: Path
    tool_name: str = "latentia"

    def base(self) -> Path:
        return self.cache_root / self.tool_name

    def logs(self) -> Path:
        return self.base() / "logs"

    def ensure_all(self) -> None:
        """
        Create the cache directories if they do not exist.
        """
        with _LOCK:
            for p in [self.base(), self.logs()]:
                p.mkdir(parents=True, exist_ok=True)

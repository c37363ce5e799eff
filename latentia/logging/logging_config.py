from __future__ import annotations

import json
import logging
import os
import time
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Iterable, Optional

from appdirs import user_log_dir

from latentia.constants.logging_constants import (
    LOG_DEFAULT_BACKUPS,
    LOG_DEFAULT_JSON,
    LOG_DEFAULT_LEVEL,
    LOG_DEFAULT_MAX_BYTES,
    LOG_DEFAULT_NAME,
    LOG_DEFAULT_STDERR,
    LOG_ENV_PREFIX,
    LOG_LEVEL_MAP,
    env_log_json,
    env_log_level,
    env_log_stderr,
)

# Roots configured by setup_logger; repeated calls must not stack handlers.
_CONFIGURED_ROOTS: set[str] = set()

# LogRecord attributes that are not user context.
_RESERVED_ATTRS = frozenset(
    {
        "args", "asctime", "created", "exc_info", "exc_text", "filename",
        "funcName", "levelname", "levelno", "lineno", "module", "msecs",
        "msg", "name", "pathname", "process", "processName", "relativeCreated",
        "stack_info", "thread", "threadName", "taskName",
    }
)

# Libraries that log chatter at INFO/DEBUG while an estimator trains.
_NOISY_LIBRARIES = ("matplotlib", "numba", "torch", "sklearn", "PIL")


# ---------- helpers ----------

def _env_int(name: str, default: int) -> int:
    raw = os.getenv(f"{LOG_ENV_PREFIX}{name}")
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(f"{LOG_ENV_PREFIX}{name}")
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _coerce_level(level: int | str | None) -> int:
    if level is None:
        return env_log_level()
    if isinstance(level, str):
        return LOG_LEVEL_MAP.get(level.upper(), LOG_DEFAULT_LEVEL)
    return int(level)


def _resolve_log_file(default_name: str = "latentia.log",
                      explicit_path: Optional[Path] = None) -> Optional[Path]:
    """
    Decide the log file path.

    Priority:
      1) explicit argument `explicit_path`
      2) env LATENTIA_LOG_FILE
      3) latentia.constants.tool_configs.get_config().cache_paths.logs()  (lazy import)
      4) appdirs user_log_dir()
      5) None (no file handler)
    """
    override = explicit_path if explicit_path is not None else os.getenv(f"{LOG_ENV_PREFIX}FILE")
    if override:
        p = Path(override).expanduser()
        p.parent.mkdir(parents=True, exist_ok=True)
        return p

    try:
        from latentia.constants.tool_configs import get_config  # local import avoids a cycle

        root = Path(get_config().cache_paths.logs())
        root.mkdir(parents=True, exist_ok=True)
        return root / default_name
    except OSError:
        pass

    try:
        base = Path(user_log_dir("latentia", "Latentia"))
        base.mkdir(parents=True, exist_ok=True)
        return base / default_name
    except OSError:
        return None


class _JsonFormatter(logging.Formatter):
    """
    One JSON object per record; context extras are kept when serializable.
    """

    def __init__(self, *, use_utc: bool = False) -> None:
        super().__init__()
        self._use_utc = use_utc

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:  # type: ignore[override]
        if self._use_utc:
            return time.strftime("%Y-%m-%dT%H:%M:%S", time.gmtime(record.created))
        return super().formatTime(record, datefmt=datefmt)

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload: dict[str, Any] = {
            "time": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        for k, v in record.__dict__.items():
            if k in _RESERVED_ATTRS:
                continue
            try:
                json.dumps({k: v})
                payload[k] = v
            except (TypeError, ValueError):
                payload[k] = str(v)

        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)  # type: ignore[arg-type]
        if record.stack_info:
            payload["stack"] = self.formatStack(record.stack_info)

        return json.dumps(payload, ensure_ascii=False)


def _formatter(fmt: str, datefmt: Optional[str], *, use_json: bool, use_utc: bool) -> logging.Formatter:
    if use_json:
        return _JsonFormatter(use_utc=use_utc)
    formatter = logging.Formatter(fmt=fmt, datefmt=datefmt)
    if use_utc:
        formatter.converter = time.gmtime
    return formatter


def _make_stream_handler(level: int, formatter: logging.Formatter) -> logging.Handler:
    h = logging.StreamHandler()
    h.setLevel(level)
    h.setFormatter(formatter)
    return h


def _make_file_handler(path: Path, level: int, formatter: logging.Formatter, *,
                       max_bytes: int, backups: int) -> logging.Handler:
    fh = RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backups, encoding="utf-8")
    fh.setLevel(level)
    fh.setFormatter(formatter)
    return fh


# ---------- public API ----------

def setup_logger(
    name: str = LOG_DEFAULT_NAME,
    level: int | str | None = None,
    *,
    with_console: bool | None = None,
    with_file: bool = True,
    file_path: Optional[Path] = None,
    fmt_console: str = "[%(levelname)s] %(name)s: %(message)s",
    fmt_file: str = "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    datefmt_console: Optional[str] = None,
    datefmt_file: Optional[str] = "%Y-%m-%d %H:%M:%S",
    use_json: Optional[bool] = None,
    use_utc: Optional[bool] = None,
    max_bytes: Optional[int] = None,
    backups: Optional[int] = None,
    propagate: bool = False,
    force_reconfigure: bool = False,
    extra_filters: Optional[Iterable[logging.Filter]] = None,
) -> logging.Logger:
    """
    Configure and return the package root logger.

    Idempotent per `name`: subsequent calls only update the level unless
    `force_reconfigure=True`, in which case handlers are rebuilt.

    Parameters
    ----------
    name : str
        Logger name (package root).
    level : int | str | None
        Logging level (int or textual). If None, read from LATENTIA_LOG_LEVEL.
    with_console : bool | None
        If None, read from LATENTIA_LOG_STDERR. If True, add a STDERR handler.
    with_file : bool
        Whether to add a rotating file handler.
    file_path : Optional[Path]
        Force a specific file path. Otherwise resolved by `_resolve_log_file`.
    use_json : Optional[bool]
        If None, read from LATENTIA_LOG_JSON. If True, use the JSON formatter.
    use_utc : Optional[bool]
        If None, read from LATENTIA_LOG_UTC. If True, timestamps in UTC.
    max_bytes, backups : Optional[int]
        Rotation policy; default from LATENTIA_LOG_MAX_BYTES / LATENTIA_LOG_BACKUPS.
    propagate : bool
        Whether the logger propagates to the root logger.
    force_reconfigure : bool
        Remove existing handlers and build them again.
    extra_filters : Optional[Iterable[logging.Filter]]
        Additional filters attached to the logger.

    Returns
    -------
    logging.Logger
    """
    lvl = _coerce_level(level)
    if with_console is None:
        with_console = env_log_stderr(LOG_DEFAULT_STDERR)
    if use_json is None:
        use_json = env_log_json(LOG_DEFAULT_JSON)
    if use_utc is None:
        use_utc = _env_bool("UTC", False)
    if max_bytes is None:
        max_bytes = _env_int("MAX_BYTES", LOG_DEFAULT_MAX_BYTES)
    if backups is None:
        backups = _env_int("BACKUPS", LOG_DEFAULT_BACKUPS)

    logger = logging.getLogger(name)
    logger.propagate = propagate
    logger.disabled = _env_bool("DISABLE", False)

    if name in _CONFIGURED_ROOTS:
        if not force_reconfigure:
            logger.setLevel(lvl)
            for h in logger.handlers:
                if not isinstance(h, RotatingFileHandler):
                    h.setLevel(lvl)
            return logger
        for h in list(logger.handlers):
            logger.removeHandler(h)
            h.close()
        _CONFIGURED_ROOTS.discard(name)

    logger.setLevel(lvl)

    if with_console:
        logger.addHandler(
            _make_stream_handler(
                lvl, _formatter(fmt_console, datefmt_console, use_json=bool(use_json), use_utc=bool(use_utc))
            )
        )

    if with_file:
        path = _resolve_log_file(explicit_path=file_path)
        if path is not None:
            # the file keeps everything the logger lets through
            logger.addHandler(
                _make_file_handler(
                    path,
                    logging.DEBUG,
                    _formatter(fmt_file, datefmt_file, use_json=bool(use_json), use_utc=bool(use_utc)),
                    max_bytes=int(max_bytes),
                    backups=int(backups),
                )
            )

    for flt in extra_filters or ():
        logger.addFilter(flt)

    _CONFIGURED_ROOTS.add(name)
    return logger


def get_logger(name: str = LOG_DEFAULT_NAME) -> logging.Logger:
    """
    Return a logger, configuring the package root with defaults on first use.

    Dotted names below the package root (``latentia.reductions.PCAReducer``)
    return a child logger that propagates to the configured root.
    """
    root = name.split(".", 1)[0]
    if root == LOG_DEFAULT_NAME:
        if LOG_DEFAULT_NAME not in _CONFIGURED_ROOTS:
            setup_logger(name=LOG_DEFAULT_NAME)
        return logging.getLogger(name)
    if name not in _CONFIGURED_ROOTS:
        setup_logger(name=name)
    return logging.getLogger(name)


class _ContextFilter(logging.Filter):
    """
    Static key-value context injector (component, variant, ...).
    """

    def __init__(self, **static_context: Any) -> None:
        super().__init__()
        self._ctx = static_context

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        for k, v in self._ctx.items():
            if not hasattr(record, k):
                setattr(record, k, v)
        return True


def add_context(logger: logging.Logger, **context: Any) -> None:
    """
    Attach static context (e.g., component='reductions', variant='pca') to a logger.

    Re-attaching the same keys replaces the previous context filter instead of
    stacking a new one.
    """
    if not context:
        return
    for flt in list(logger.filters):
        if isinstance(flt, _ContextFilter) and set(flt._ctx) == set(context):
            logger.removeFilter(flt)
    logger.addFilter(_ContextFilter(**context))


def set_global_level(level: int | str, name: str = LOG_DEFAULT_NAME) -> None:
    """
    Change the level of the package logger and all of its handlers.
    """
    lvl = _coerce_level(level)
    logger = get_logger(name)
    logger.setLevel(lvl)
    for h in logger.handlers:
        h.setLevel(lvl)


def silence_external(level: int = logging.WARNING) -> None:
    """
    Lower verbosity of third-party libraries used during fitting.
    """
    for lib in _NOISY_LIBRARIES:
        logging.getLogger(lib).setLevel(level)


def reset_logging(name: str = LOG_DEFAULT_NAME) -> None:
    """
    Remove all handlers for the given logger name and mark it as unconfigured.
    Useful for test teardown or dynamic reconfiguration.
    """
    logger = logging.getLogger(name)
    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()
    logger.disabled = False
    _CONFIGURED_ROOTS.discard(name)

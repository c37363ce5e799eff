from __future__ import annotations

"""
Tests for latentia.logging: idempotency, console/file behavior, JSON mode,
rotation, context injection, estimator child loggers and global controls.
"""

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import numpy as np

from latentia.logging import (
    add_context,
    get_logger,
    reset_logging,
    set_global_level,
    setup_logger,
    silence_external,
)
from latentia.logging.logging_config import _ContextFilter

PKG_LOGGER_NAME = "latentia"


def _find_console_handler(logger: logging.Logger) -> Optional[logging.Handler]:
    """Return the stderr/stdout handler, excluding file handlers (which subclass StreamHandler)."""
    for h in logger.handlers:
        if isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler):
            if getattr(h, "stream", None) in (sys.stdout, sys.stderr):
                return h
    return None


def _last_console_line(capsys) -> str:
    cap = capsys.readouterr()
    text = (cap.err or "") + (cap.out or "")
    lines = text.strip().splitlines()
    return lines[-1] if lines else ""


def test_setup_logger_idempotent(monkeypatch, tmp_path):
    log_path = tmp_path / "nested" / "idempotent.log"
    monkeypatch.setenv("LATENTIA_LOG_FILE", str(log_path))

    logger = setup_logger(name=PKG_LOGGER_NAME, level="INFO")
    n1 = len(logger.handlers)

    # Second call must NOT duplicate handlers, only update the level
    logger2 = setup_logger(name=PKG_LOGGER_NAME, level="DEBUG")
    assert logger is logger2
    assert len(logger2.handlers) == n1 == 1
    assert logger2.level == logging.DEBUG
    assert log_path.parent.exists()


def test_force_reconfigure_rebuilds_handlers(monkeypatch, tmp_path):
    monkeypatch.setenv("LATENTIA_LOG_FILE", str(tmp_path / "a.log"))
    logger = setup_logger(name=PKG_LOGGER_NAME, level="INFO")
    old = list(logger.handlers)

    logger = setup_logger(name=PKG_LOGGER_NAME, level="INFO", with_console=True, force_reconfigure=True)
    assert len(logger.handlers) == 2
    assert not set(old) & set(logger.handlers)


def test_env_level_is_used_when_level_is_none(monkeypatch, tmp_path, capsys):
    monkeypatch.setenv("LATENTIA_LOG_FILE", str(tmp_path / "level.log"))
    monkeypatch.setenv("LATENTIA_LOG_LEVEL", "ERROR")
    monkeypatch.setenv("LATENTIA_LOG_STDERR", "1")

    logger = setup_logger(name=PKG_LOGGER_NAME)
    assert logger.level == logging.ERROR
    assert _find_console_handler(logger) is not None

    logger.info("info-hidden")
    logger.error("error-visible")
    cap = capsys.readouterr()
    assert "error-visible" in cap.err
    assert "info-hidden" not in cap.err


def test_json_console_output(monkeypatch, tmp_path, capsys):
    monkeypatch.setenv("LATENTIA_LOG_FILE", str(tmp_path / "json.log"))
    monkeypatch.setenv("LATENTIA_LOG_JSON", "1")
    monkeypatch.setenv("LATENTIA_LOG_STDERR", "1")

    logger = setup_logger(name=PKG_LOGGER_NAME, level="INFO")
    logger.info("hello-json", extra={"run_id": "abc123", "shape": (3, 2)})
    payload = json.loads(_last_console_line(capsys))

    assert payload["message"] == "hello-json"
    assert payload["level"] == "INFO"
    assert payload["name"] == PKG_LOGGER_NAME
    assert payload["run_id"] == "abc123"
    assert payload["shape"] == [3, 2]


def test_file_handler_writes_and_rotates(monkeypatch, tmp_path):
    log_path = tmp_path / "rotate.log"
    monkeypatch.setenv("LATENTIA_LOG_FILE", str(log_path))
    monkeypatch.setenv("LATENTIA_LOG_MAX_BYTES", "512")
    monkeypatch.setenv("LATENTIA_LOG_BACKUPS", "2")

    logger = setup_logger(name=PKG_LOGGER_NAME, level="INFO")
    for i in range(200):
        logger.info("line-%04d %s", i, "x" * 80)

    assert log_path.exists()
    backups = sorted(p.name for p in log_path.parent.glob("rotate.log.*"))
    assert backups == ["rotate.log.1", "rotate.log.2"]


def test_add_context_injection_and_replacement(monkeypatch, tmp_path, capsys):
    monkeypatch.setenv("LATENTIA_LOG_FILE", str(tmp_path / "ctx.log"))
    monkeypatch.setenv("LATENTIA_LOG_JSON", "1")
    monkeypatch.setenv("LATENTIA_LOG_STDERR", "1")

    logger = setup_logger(name=PKG_LOGGER_NAME, level="INFO")
    add_context(logger, component="reductions", variant="pca")
    add_context(logger, component="reductions", variant="ipca")
    assert sum(isinstance(f, _ContextFilter) for f in logger.filters) == 1

    logger.info("ctx-msg", extra={"epoch": 1, "variant": "explicit"})
    payload = json.loads(_last_console_line(capsys))
    assert payload["message"] == "ctx-msg"
    assert payload["epoch"] == 1
    assert payload["component"] == "reductions"
    # explicit extras win over static context
    assert payload["variant"] == "explicit"


def test_reset_logging_removes_handlers(monkeypatch, tmp_path):
    monkeypatch.setenv("LATENTIA_LOG_FILE", str(tmp_path / "reset.log"))

    lg = setup_logger(name=PKG_LOGGER_NAME, level="INFO")
    assert len(lg.handlers) >= 1

    reset_logging(PKG_LOGGER_NAME)
    assert len(logging.getLogger(PKG_LOGGER_NAME).handlers) == 0

    lg3 = setup_logger(name=PKG_LOGGER_NAME, level="DEBUG")
    assert len(lg3.handlers) >= 1


def test_get_logger_configures_root_for_children(monkeypatch, tmp_path):
    log_path = tmp_path / "lazy.log"
    monkeypatch.setenv("LATENTIA_LOG_FILE", str(log_path))

    child = get_logger("latentia.reductions.training")
    root = logging.getLogger(PKG_LOGGER_NAME)
    assert child.name == "latentia.reductions.training"
    assert len(root.handlers) >= 1
    assert len(child.handlers) == 0

    child.setLevel(logging.INFO)
    child.info("from-child")
    for h in root.handlers:
        h.flush()
    assert "from-child" in log_path.read_text(encoding="utf-8")


def test_estimator_logs_to_its_child_logger(monkeypatch, tmp_path, caplog):
    from latentia.reductions import PCAReducer

    monkeypatch.setenv("LATENTIA_LOG_FILE", str(tmp_path / "est.log"))
    logger = setup_logger(name=PKG_LOGGER_NAME, level="DEBUG", propagate=True)
    assert logger.propagate

    caplog.set_level(logging.INFO)
    X = np.random.default_rng(0).normal(size=(10, 4))
    PCAReducer(2, debug=True, debug_mode=logging.DEBUG).fit(X)

    names = {r.name for r in caplog.records}
    assert "latentia.reductions.PCAReducer" in names
    fitted = [r for r in caplog.records if "fitted" in r.getMessage()]
    assert fitted and all(getattr(r, "variant", None) == "pca" for r in fitted)


def test_silence_external_changes_level():
    setup_logger(name=PKG_LOGGER_NAME, level="DEBUG")
    for lib in ("torch", "sklearn"):
        logging.getLogger(lib).setLevel(logging.DEBUG)

    silence_external()
    assert logging.getLogger("torch").level == logging.WARNING
    assert logging.getLogger("sklearn").level == logging.WARNING

    silence_external(logging.ERROR)
    assert logging.getLogger("torch").level == logging.ERROR


def test_global_disable(monkeypatch, tmp_path, capsys):
    log_path = tmp_path / "disable.log"
    monkeypatch.setenv("LATENTIA_LOG_FILE", str(log_path))
    monkeypatch.setenv("LATENTIA_LOG_DISABLE", "1")
    monkeypatch.setenv("LATENTIA_LOG_STDERR", "1")

    lg = setup_logger(name=PKG_LOGGER_NAME, level="DEBUG")
    assert lg.disabled
    lg.error("no-output")

    cap = capsys.readouterr()
    assert "no-output" not in cap.err + cap.out
    assert not Path(log_path).exists() or Path(log_path).stat().st_size == 0


def test_set_global_level_affects_pkg_logger_and_handlers(monkeypatch, tmp_path):
    monkeypatch.setenv("LATENTIA_LOG_FILE", str(tmp_path / "global.log"))
    lg = setup_logger(name=PKG_LOGGER_NAME, level="DEBUG", with_console=True)

    set_global_level("ERROR")
    assert lg.level == logging.ERROR
    assert all(h.level == logging.ERROR for h in lg.handlers)

"""Tests for the process-wide logging setup."""

import logging

from calc_chain_api.app.core.logging_config import setup_logging


def test_setup_logging_configures_root_once(tmp_path):
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    root.handlers = []
    try:
        setup_logging("debug", str(tmp_path / "app.log"))
        assert root.level == logging.DEBUG
        assert any(isinstance(h, logging.FileHandler) for h in root.handlers)
        assert logging.getLogger("uvicorn.access").propagate
        assert logging.getLogger("uvicorn.error").handlers == []

        handler_count = len(root.handlers)
        setup_logging("error")
        assert root.level == logging.DEBUG
        assert len(root.handlers) == handler_count
    finally:
        for handler in root.handlers:
            handler.close()
        root.handlers = saved_handlers
        root.setLevel(saved_level)

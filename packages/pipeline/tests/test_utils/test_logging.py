"""
tests/test_utils/test_logging.py — CLI logging configuration.
"""

from __future__ import annotations

import logging

import pytest
import structlog

from psgc_pipeline.utils.logging import NOISY_LOGGERS, configure_logging


@pytest.fixture(autouse=True)
def _restore_logging():
    levels = {name: logging.getLogger(name).level for name in NOISY_LOGGERS}
    yield
    structlog.reset_defaults()
    for name, level in levels.items():
        logging.getLogger(name).setLevel(level)


def _processor_types():
    return [type(p) for p in structlog.get_config()["processors"]]


class TestConfigureLogging:
    def test_http_client_loggers_held_at_warning(self):
        configure_logging("INFO", "json")
        for name in NOISY_LOGGERS:
            assert logging.getLogger(name).level == logging.WARNING

    def test_debug_lets_http_client_logs_through(self):
        configure_logging("DEBUG", "console")
        assert logging.getLogger("httpx").level == logging.DEBUG

    def test_json_renders_structured_tracebacks(self):
        configure_logging("INFO", "json")
        processors = structlog.get_config()["processors"]
        assert structlog.processors.dict_tracebacks in processors
        assert structlog.processors.JSONRenderer in _processor_types()

    def test_console_leaves_tracebacks_to_renderer(self):
        configure_logging("INFO", "console")
        assert _processor_types()[-1] is structlog.dev.ConsoleRenderer
        assert structlog.processors.dict_tracebacks not in structlog.get_config()["processors"]

"""
Tests for logging setup
"""

import logging

from remix.utils import NoiseFilter, setup_logging


def make_record(message: str) -> logging.LogRecord:
    return logging.LogRecord("uvicorn.access", logging.INFO, __file__, 1, message, None, None)


def test_noise_filter_drops_matching_messages():
    noise_filter = NoiseFilter(['"GET /health '])

    assert not noise_filter.filter(make_record('127.0.0.1:5000 - "GET /health HTTP/1.1" 200'))
    assert noise_filter.filter(make_record('127.0.0.1:5000 - "POST /remix/alternatives HTTP/1.1" 200'))


def test_setup_logging_quiets_http_clients():
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    try:
        setup_logging("debug")

        assert root.level == logging.DEBUG
        assert logging.getLogger("httpx").level == logging.WARNING
        assert all(any(isinstance(f, NoiseFilter) for f in h.filters) for h in root.handlers)
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)

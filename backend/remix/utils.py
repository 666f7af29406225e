"""
Utilities
Logging setup shared by the API server and scripts
"""

import logging

from config import LOG_LEVEL


class NoiseFilter(logging.Filter):
    """A filter to suppress common, noisy log messages from libraries."""

    def __init__(self, patterns_to_suppress):
        super().__init__()
        self.patterns = patterns_to_suppress

    def filter(self, record):
        message = record.getMessage()
        return not any(p in message for p in self.patterns)


def setup_logging(level: str = LOG_LEVEL):
    """Configures the logging for the application."""
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        force=True
    )

    # uvicorn access lines for health probes
    noise_filter = NoiseFilter(['"GET /health '])
    for handler in logging.getLogger().handlers:
        handler.addFilter(noise_filter)

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

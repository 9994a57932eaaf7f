import logging

import pytest

from src.utils import logging_config


@pytest.fixture(autouse=True)
def _reset_installed_log_handlers():
    """Remove root handlers left behind by setup_logging() (e.g. CLI main() calls)."""
    yield
    root = logging.getLogger()
    for handler in logging_config._installed_handlers:
        root.removeHandler(handler)
        handler.close()
    logging_config._installed_handlers.clear()

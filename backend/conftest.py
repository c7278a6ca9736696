"""Root conftest: test environment and a caplog-friendly structlog setup."""

from pathlib import Path

import pytest
import structlog
from dotenv import load_dotenv

from shared.logging import enum_values

load_dotenv(Path(__file__).resolve().parent.parent / ".env.tests")

# route structlog through stdlib logging without installing handlers, so
# caplog sees every event
structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        enum_values,
        structlog.processors.UnicodeDecoder(),
        structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
    ],
    logger_factory=structlog.stdlib.LoggerFactory(),
    wrapper_class=structlog.stdlib.BoundLogger,
    cache_logger_on_first_use=False,
)


@pytest.fixture(autouse=True)
def _clear_log_context():
    structlog.contextvars.clear_contextvars()
    yield
    structlog.contextvars.clear_contextvars()

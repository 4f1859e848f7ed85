from io import StringIO

import pytest

from fluentrest.client import create_rest_api
from fluentrest.config import RestClientSettings
from fluentrest.log_config import logger

BASE_URL = "https://api.example.com"


@pytest.fixture
def settings() -> RestClientSettings:
    """Fixture for RestClientSettings with a recognizable user agent."""
    return RestClientSettings(request_timeout=5.0, user_agent="fluentrest-tests/1.0")


@pytest.fixture
def api(settings):
    """Fixture for a client bound to the example API."""
    return create_rest_api(f"{BASE_URL}/", settings=settings)


@pytest.fixture
def log_capture():
    """Captures fluentrest log output at DEBUG level and above."""
    stream = StringIO()
    handler_id = logger.add(stream, level="DEBUG", format="{level} {message}")
    yield stream
    logger.remove(handler_id)

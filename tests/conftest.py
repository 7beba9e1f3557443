import logging
import sys

import pytest

from tests.helpers import BASE_URL
from watsonwork.core.config import settings

# Configure logging for tests
logging.basicConfig(
    level=logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)
logger.info("Test logging configured: level=DEBUG")


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch):
    """隔离环境变量/.env 中的凭证，避免影响测试"""
    monkeypatch.setattr(settings, "WATSONWORK_APP_ID", None)
    monkeypatch.setattr(settings, "WATSONWORK_APP_SECRET", None)
    monkeypatch.setattr(settings, "WATSONWORK_JWT_TOKEN", None)
    monkeypatch.setattr(settings, "WATSONWORK_BASE_URL", BASE_URL)


@pytest.fixture(autouse=True)
def log_test_start(request):
    """Log test start and end for each test."""
    logger.info("=" * 80)
    logger.info("Starting test: %s", request.node.name)
    yield
    logger.info("Completed test: %s", request.node.name)
    logger.info("=" * 80)

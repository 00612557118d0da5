"""
Shared fixtures for the travochat test suite.
"""

from unittest.mock import MagicMock

import pytest

from travochat.core.logger import StructuredLogger


@pytest.fixture
def logger():
    """Mock StructuredLogger for capturing log calls"""
    mock_logger = MagicMock(spec=StructuredLogger)
    mock_logger.info = MagicMock()
    mock_logger.warning = MagicMock()
    mock_logger.error = MagicMock()
    mock_logger.debug = MagicMock()
    return mock_logger

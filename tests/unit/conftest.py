"""
Unit test-specific fixtures and global patches to isolate from real backends.
These fixtures are ONLY imported for tests under tests/unit/.
"""
import pytest
from unittest.mock import Mock, patch


@pytest.fixture(autouse=True)
def unit_isolation_patches():
    """Autouse fixture so no unit test ever opens a Redis connection."""
    with patch('smartdecay.observability.events.redis.Redis') as mock_redis_cls:
        mock_redis_cls.return_value = Mock()
        yield {'redis_cls': mock_redis_cls}


@pytest.fixture
def mock_redis():
    client = Mock()
    client.xadd.return_value = "1-0"
    return client

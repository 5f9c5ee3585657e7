"""
pytest configuration for the AS5048A tests.

Provides a simulated sensor on a mock SPI handle and patches time.sleep so
inter-frame gaps are recorded instead of waited for.
"""

import os
import sys
import logging
from unittest.mock import patch
import pytest

# Make the flat modules in the repository root importable without installing
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from spi_mock import FakeAS5048


@pytest.fixture
def fake_spi():
    """A simulated AS5048A that answers pipelined exchanges."""
    return FakeAS5048()


@pytest.fixture
def mock_time_sleep():
    """
    Mock time.sleep to make tests run instantly.

    Usage:
        def test_something(mock_time_sleep):
            sensor.get_angle()
            assert mock_time_sleep.call_count == 1
    """
    with patch('time.sleep') as mock_sleep:
        yield mock_sleep


@pytest.fixture
def sensor(fake_spi, mock_time_sleep):
    """AS5048A driver wired to the simulated sensor, null zone 3."""
    from AS5048Reader import AS5048A, SensorConfig

    return AS5048A(SensorConfig(null_zone=3, log_level=logging.DEBUG), spi=fake_spi)

"""Common test fixtures for all test modules."""

import os
import sys
import pytest

# Add the parent directory to sys.path for imports
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import rastergate as rg


@pytest.fixture
def session():
    """A private session, closed after the test.

    Returns:
        RasterSession: Session with its own registry and strict context
    """
    raster_session = rg.RasterSession()
    yield raster_session
    raster_session.close_all()


@pytest.fixture
def ctx():
    """A fresh strict error context.

    Returns:
        ErrorContext: Context with no handler and the default threshold
    """
    return rg.ErrorContext()

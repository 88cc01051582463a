"""Fixtures for utilities tests."""

import os
import pytest


@pytest.fixture
def clean_environment(monkeypatch):
    """Remove every RASTERGATE_ variable from the environment.

    Returns:
        MonkeyPatch: The monkeypatch used, to set variables in the test
    """
    for key in list(os.environ):
        if key.startswith("RASTERGATE_"):
            monkeypatch.delenv(key)

    return monkeypatch


@pytest.fixture
def sample_options():
    """A list of creation options in caller order.

    Returns:
        list: "KEY=VALUE" strings
    """
    return ["COMPRESS=DEFLATE", "predictor=2", "BLOCKXSIZE=512"]

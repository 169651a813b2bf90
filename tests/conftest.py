"""Pytest configuration and fixtures."""

import logging

import pytest


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep every test away from the real config dir and log file."""
    monkeypatch.setenv("MODSYNCER_CONFIG_DIR", str(tmp_path / "config"))
    yield
    logger = logging.getLogger("modsyncer")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

"""Shared fixtures for the ollamactl tests."""

import logging

import pytest
import structlog


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo logging setup done by CLI invocations"""
    yield
    structlog.reset_defaults()
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Keep host settings and .env files of the machine out of the tests"""
    for name in ("OLLAMA_HOST", "OLLAMACTL_LOGS_DIR", "OLLAMACTL_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)

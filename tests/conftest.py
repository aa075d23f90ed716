"""Pytest configuration for test isolation.

Settings are read from the process environment, logging is configured once
per process, and the ledger engine is a process-wide singleton
(``ledger_db.client``). Any of these can leak between tests, so every test
starts with the notifier's environment variables removed and the package
logger unconfigured, and ends with the logger restored and the shared engine
disposed.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator

import pytest

import deposit_notifier.logging_setup as logging_setup
from deposit_notifier.config import _ENV_FIELDS
from ledger_db.client import reset_engine


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    for var in (*_ENV_FIELDS, "DEPOSIT_NOTIFIER_LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)
    yield
    reset_engine()


@pytest.fixture(autouse=True)
def _isolate_logging(monkeypatch: pytest.MonkeyPatch) -> Iterator[logging.Logger]:
    pkg_logger = logging.getLogger("deposit_notifier")
    saved = (list(pkg_logger.handlers), pkg_logger.level, pkg_logger.propagate)
    monkeypatch.setattr(logging_setup, "_CONFIGURED", False)
    pkg_logger.handlers = []
    pkg_logger.setLevel(logging.NOTSET)
    pkg_logger.propagate = True
    yield pkg_logger
    pkg_logger.handlers = saved[0]
    pkg_logger.setLevel(saved[1])
    pkg_logger.propagate = saved[2]

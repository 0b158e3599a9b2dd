from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path

import pytest

from actiongraph.stores.action import ActionStore


@pytest.fixture
def store(tmp_path: Path) -> ActionStore:
    return ActionStore(tmp_path / ".actiongraph")


@pytest.fixture(autouse=True)
def _isolated_state_dir(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("ACTIONGRAPH_STATE_DIR", raising=False)
    monkeypatch.delenv("ACTIONGRAPH_OUTPUT", raising=False)


@pytest.fixture(autouse=True)
def _restore_package_logger() -> Iterator[None]:
    logger = logging.getLogger("actiongraph")
    handlers = list(logger.handlers)
    propagate, level = logger.propagate, logger.level
    yield
    logger.handlers[:] = handlers
    logger.propagate = propagate
    logger.setLevel(level)

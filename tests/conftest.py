"""Shared test fixtures."""

from __future__ import annotations

import pytest

from risk_orchestrator.orchestrator.gateway import MockGateway
from risk_orchestrator.orchestrator.services import ChatOrchestrator
from risk_orchestrator.orchestrator.tools import default_registry

_ENV_VARS = (
    "RISK_ORCHESTRATOR_GATEWAY_ENDPOINT",
    "RISK_ORCHESTRATOR_GATEWAY_TIMEOUT_SECONDS",
    "RISK_ORCHESTRATOR_HALT_ON_FAILURE",
    "RISK_ORCHESTRATOR_FIRST_REQUEST_ID",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Isolate tests from RISK_ORCHESTRATOR_* variables set in the shell."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture()
def mock_orchestrator() -> ChatOrchestrator:
    return ChatOrchestrator(registry=default_registry(), gateway=MockGateway())

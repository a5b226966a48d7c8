"""Backend gateway strategies and endpoint-based selection."""

from __future__ import annotations

from risk_orchestrator.orchestrator.envelope import RpcRequest, RpcResponse
from risk_orchestrator.orchestrator.gateway.base import (
    DEFAULT_TIMEOUT_SECONDS,
    GatewayError,
    LlmGateway,
)
from risk_orchestrator.orchestrator.gateway.http_gateway import HttpGateway
from risk_orchestrator.orchestrator.gateway.mock_gateway import MOCK_RESPONSE_TEXT, MockGateway

__all__ = [
    "DEFAULT_TIMEOUT_SECONDS",
    "MOCK_RESPONSE_TEXT",
    "GatewayError",
    "HttpGateway",
    "LlmGateway",
    "MockGateway",
    "close_gateway",
    "select_gateway",
    "send",
]


def select_gateway(endpoint: str) -> LlmGateway:
    """Blank endpoint means no real backend: use the deterministic mock."""

    if not endpoint.strip():
        return MockGateway()
    return HttpGateway(endpoint.strip())


def close_gateway(gateway: LlmGateway) -> None:
    """Release the gateway's connections; gateways without any are left alone."""

    close = getattr(gateway, "close", None)
    if callable(close):
        close()


def send(
    endpoint: str,
    request: RpcRequest,
    *,
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
) -> RpcResponse:
    """Send one request through the gateway selected for ``endpoint``."""

    gateway = select_gateway(endpoint)
    try:
        return gateway.send(request, timeout_seconds=timeout_seconds)
    finally:
        close_gateway(gateway)

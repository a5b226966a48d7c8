"""Backend gateway interface."""

from __future__ import annotations

from typing import Protocol

from risk_orchestrator.orchestrator.envelope import RpcRequest, RpcResponse

DEFAULT_TIMEOUT_SECONDS = 30.0


class GatewayError(RuntimeError):
    """Backend call failed, with retryability hint for callers that wrap it."""

    def __init__(self, message: str, *, transient: bool) -> None:
        super().__init__(message)
        self.transient = transient


class LlmGateway(Protocol):
    """Protocol implemented by backend strategies."""

    def send(self, request: RpcRequest, *, timeout_seconds: float) -> RpcResponse:
        """Deliver one request envelope and return the matching response envelope."""

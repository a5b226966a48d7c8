"""Deterministic local gateway used when no backend endpoint is configured."""

from __future__ import annotations

from risk_orchestrator.orchestrator.envelope import RpcRequest, RpcResponse

MOCK_RESPONSE_TEXT = "This is a mock LLM response for testing."


class MockGateway:
    """Answer every request with the same result, echoing its id."""

    def send(
        self,
        request: RpcRequest,
        *,
        timeout_seconds: float = 0.0,  # noqa: ARG002
    ) -> RpcResponse:
        return RpcResponse(
            id=request.id,
            result={"text": MOCK_RESPONSE_TEXT, "tools_used": []},
        )

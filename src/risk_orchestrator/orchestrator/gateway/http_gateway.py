"""JSON-RPC over HTTP gateway for a real backend."""

from __future__ import annotations

import logging

import httpx

from risk_orchestrator.orchestrator.envelope import (
    EncodingError,
    RpcRequest,
    RpcResponse,
    decode_response,
    encode,
)
from risk_orchestrator.orchestrator.gateway.base import DEFAULT_TIMEOUT_SECONDS, GatewayError

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "risk-orchestrator/1.0"


class HttpGateway:
    """POST encoded envelopes to ``endpoint``; one attempt per call, no retries."""

    def __init__(
        self,
        endpoint: str,
        *,
        connect_timeout_seconds: float = 10.0,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.endpoint = endpoint
        self._connect_timeout = connect_timeout_seconds
        self._client = httpx.Client(
            headers={
                "User-Agent": user_agent,
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
            transport=transport or httpx.HTTPTransport(retries=0),
        )

    def send(
        self,
        request: RpcRequest,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> RpcResponse:
        timeout = httpx.Timeout(
            timeout_seconds,
            connect=min(self._connect_timeout, timeout_seconds),
        )
        try:
            response = self._client.post(self.endpoint, content=encode(request), timeout=timeout)
        except httpx.TimeoutException as error:
            logger.warning("Timeout calling backend %s", self.endpoint)
            raise GatewayError(
                f"Backend timed out after {timeout_seconds}s: {self.endpoint}",
                transient=True,
            ) from error
        except httpx.HTTPError as error:
            logger.warning("HTTP error calling backend %s: %s", self.endpoint, error)
            raise GatewayError(f"Backend unreachable: {error}", transient=True) from error

        if not response.is_success:
            raise GatewayError(
                f"Backend returned HTTP {response.status_code}",
                transient=response.status_code >= 500,
            )
        try:
            envelope = decode_response(response.content)
        except EncodingError as error:
            raise GatewayError(
                f"Backend returned an invalid envelope: {error}",
                transient=False,
            ) from error
        if envelope.id != request.id:
            raise GatewayError(
                f"Backend response id {envelope.id} does not match request id {request.id}",
                transient=False,
            )
        return envelope

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> HttpGateway:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

"""JSON-RPC 2.0 request/response envelopes exchanged with the backend."""

from __future__ import annotations

import json
from collections.abc import Sequence
from dataclasses import dataclass, replace
from typing import Any

from risk_orchestrator.orchestrator.messages import Message

JSONRPC_VERSION = "2.0"
LLM_MESSAGE_METHOD = "llm/message"


class EncodingError(ValueError):
    """Envelope could not be serialized or deserialized."""


@dataclass(frozen=True, slots=True)
class RpcError:
    """JSON-RPC error object produced locally."""

    code: int
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message}


@dataclass(frozen=True, slots=True)
class RpcRequest:
    """Outbound envelope; ``params`` carries ``{"messages": [...]}``."""

    method: str
    messages: tuple[Message, ...]
    id: int
    jsonrpc: str = JSONRPC_VERSION

    def to_dict(self) -> dict[str, Any]:
        return {
            "jsonrpc": self.jsonrpc,
            "method": self.method,
            "params": {"messages": [message.to_dict() for message in self.messages]},
            "id": self.id,
        }


@dataclass(frozen=True, slots=True)
class RpcResponse:
    """Inbound envelope. ``result`` and ``error`` are mutually exclusive."""

    id: int
    result: dict[str, Any] | None = None
    error: dict[str, Any] | None = None
    jsonrpc: str = JSONRPC_VERSION

    def __post_init__(self) -> None:
        if self.result is not None and self.error is not None:
            raise EncodingError("Response envelope cannot carry both result and error")

    @property
    def is_error(self) -> bool:
        return self.error is not None

    def with_result_field(self, key: str, value: Any) -> RpcResponse:
        """Return a copy whose ``result`` has ``key`` set; the original is untouched."""

        if self.error is not None:
            raise EncodingError("Cannot merge result fields into an error envelope")
        merged = dict(self.result or {})
        merged[key] = value
        return replace(self, result=merged)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"jsonrpc": self.jsonrpc}
        if self.result is not None:
            payload["result"] = self.result
        if self.error is not None:
            payload["error"] = self.error
        payload["id"] = self.id
        return payload


Envelope = RpcRequest | RpcResponse


def make_request(messages: Sequence[Message], request_id: int) -> RpcRequest:
    """Wrap messages into an ``llm/message`` request envelope."""

    return RpcRequest(method=LLM_MESSAGE_METHOD, messages=tuple(messages), id=request_id)


def encode(envelope: Envelope) -> bytes:
    """Serialize envelope to compact UTF-8 JSON; absent fields are omitted."""

    try:
        return json.dumps(
            envelope.to_dict(),
            ensure_ascii=False,
            separators=(",", ":"),
        ).encode("utf-8")
    except (TypeError, ValueError) as error:
        raise EncodingError(f"Envelope is not JSON-serializable: {error}") from error


def decode(data: bytes | str) -> Envelope:
    """Parse a request (has ``method``) or response envelope."""

    try:
        raw = json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError) as error:
        raise EncodingError(f"Envelope is not valid JSON: {error}") from error
    if not isinstance(raw, dict):
        raise EncodingError("Envelope must be a JSON object")
    if "method" in raw:
        return _parse_request(raw)
    return _parse_response(raw)


def decode_response(data: bytes | str) -> RpcResponse:
    envelope = decode(data)
    if not isinstance(envelope, RpcResponse):
        raise EncodingError("Expected a response envelope, got a request")
    return envelope


def _parse_request(raw: dict[str, Any]) -> RpcRequest:
    _check_version(raw)
    request_id = _parse_id(raw)
    method = raw.get("method")
    if not isinstance(method, str) or not method:
        raise EncodingError("Request method must be a non-empty string")
    params = raw.get("params")
    if not isinstance(params, dict):
        raise EncodingError("Request params must be an object")
    raw_messages = params.get("messages")
    if not isinstance(raw_messages, list):
        raise EncodingError("Request params.messages must be an array")
    try:
        messages = tuple(Message.from_dict(item) for item in raw_messages)
    except (TypeError, ValueError) as error:
        raise EncodingError(f"Invalid request message: {error}") from error
    return RpcRequest(method=method, messages=messages, id=request_id)


def _parse_response(raw: dict[str, Any]) -> RpcResponse:
    _check_version(raw)
    request_id = _parse_id(raw)
    result = raw.get("result")
    error = raw.get("error")
    if result is not None and not isinstance(result, dict):
        raise EncodingError("Response result must be an object when present")
    if error is not None and not isinstance(error, dict):
        raise EncodingError("Response error must be an object when present")
    return RpcResponse(id=request_id, result=result, error=error)


def _check_version(raw: dict[str, Any]) -> None:
    version = raw.get("jsonrpc")
    if version != JSONRPC_VERSION:
        raise EncodingError(f"Unsupported jsonrpc version: {version!r}")


def _parse_id(raw: dict[str, Any]) -> int:
    value = raw.get("id")
    if isinstance(value, bool) or not isinstance(value, int):
        raise EncodingError(f"Envelope id must be an integer, got {value!r}")
    return value

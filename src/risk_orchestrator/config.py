"""Runtime configuration for the orchestrator."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from urllib.parse import urlparse


@dataclass(slots=True)
class GatewaySettings:
    """Backend gateway settings. Empty endpoint selects the mock backend."""

    endpoint: str = ""
    timeout_seconds: float = 30.0
    first_request_id: int = 1


@dataclass(slots=True)
class ExecutorSettings:
    """Task tree execution settings."""

    halt_on_failure: bool = True


@dataclass(slots=True)
class Settings:
    """Application settings grouped by concern."""

    gateway: GatewaySettings = field(default_factory=GatewaySettings)
    executor: ExecutorSettings = field(default_factory=ExecutorSettings)

    @classmethod
    def from_env(cls, endpoint: str | None = None) -> Settings:
        """Load settings from environment; ``endpoint`` overrides the env value."""

        return cls(
            gateway=GatewaySettings(
                endpoint=(
                    endpoint
                    if endpoint is not None
                    else os.getenv("RISK_ORCHESTRATOR_GATEWAY_ENDPOINT", "")
                ).strip(),
                timeout_seconds=_env_float("RISK_ORCHESTRATOR_GATEWAY_TIMEOUT_SECONDS", 30.0),
                first_request_id=_env_int("RISK_ORCHESTRATOR_FIRST_REQUEST_ID", 1),
            ),
            executor=ExecutorSettings(
                halt_on_failure=_env_bool("RISK_ORCHESTRATOR_HALT_ON_FAILURE", default=True),
            ),
        )

    def validate(self) -> None:
        """Raise configuration error for out-of-range or malformed values."""

        if self.gateway.timeout_seconds <= 0:
            raise ValueError("RISK_ORCHESTRATOR_GATEWAY_TIMEOUT_SECONDS must be > 0.")
        if self.gateway.first_request_id < 0:
            raise ValueError("RISK_ORCHESTRATOR_FIRST_REQUEST_ID must be >= 0.")
        if self.gateway.endpoint:
            _validate_endpoint(self.gateway.endpoint)


def _validate_endpoint(value: str) -> None:
    parsed = urlparse(value)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ValueError(
            "Invalid gateway endpoint: "
            f"{value!r}. Expected an absolute URL with http:// or https:// scheme.",
        )


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as error:
        raise ValueError(f"Invalid number for {name}: {raw!r}") from error


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as error:
        raise ValueError(f"Invalid integer for {name}: {raw!r}") from error


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"Invalid boolean value for {name}: {value!r}")

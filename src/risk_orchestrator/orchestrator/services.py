"""Use-case services: chat orchestration and the demo task tree."""

from __future__ import annotations

import itertools
import json
import logging
from collections.abc import Iterator
from dataclasses import dataclass

from risk_orchestrator.config import Settings
from risk_orchestrator.orchestrator.envelope import RpcResponse, make_request
from risk_orchestrator.orchestrator.executor import TaskExecutor
from risk_orchestrator.orchestrator.gateway import (
    DEFAULT_TIMEOUT_SECONDS,
    GatewayError,
    LlmGateway,
    close_gateway,
    select_gateway,
)
from risk_orchestrator.orchestrator.messages import build_messages_with_tools
from risk_orchestrator.orchestrator.models import Run, TaskCommand, TaskType, new_id, new_run
from risk_orchestrator.orchestrator.tools import ToolRegistry, default_registry

logger = logging.getLogger(__name__)

TOOLS_DETECTED_KEY = "tools_detected"


class InvalidInputError(ValueError):
    """User text is missing or malformed; nothing was built or sent."""


@dataclass(slots=True)
class ChatResult:
    """Merged backend response plus the tools detected in the user text."""

    request_id: str
    envelope: RpcResponse
    tools_detected: list[str]


class ChatOrchestrator:
    """Detect tools, build messages, call the gateway and merge the result."""

    def __init__(
        self,
        *,
        registry: ToolRegistry,
        gateway: LlmGateway,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        first_request_id: int = 1,
    ) -> None:
        self.registry = registry
        self.gateway = gateway
        self.timeout_seconds = timeout_seconds
        self._request_ids: Iterator[int] = itertools.count(first_request_id)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        registry: ToolRegistry | None = None,
    ) -> ChatOrchestrator:
        settings.validate()
        return cls(
            registry=registry or default_registry(),
            gateway=select_gateway(settings.gateway.endpoint),
            timeout_seconds=settings.gateway.timeout_seconds,
            first_request_id=settings.gateway.first_request_id,
        )

    def close(self) -> None:
        close_gateway(self.gateway)

    def __enter__(self) -> ChatOrchestrator:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

    def orchestrate_chat(self, user_text: object) -> ChatResult:
        """Run the full chat pipeline for one user message.

        Gateway failures, including error envelopes from the backend, propagate
        as ``GatewayError``; no partial envelope is returned.
        """

        text = validate_user_text(user_text)
        request_id = new_id()
        tools = self.registry.determine_tools(text)
        messages = build_messages_with_tools(text, tools)
        request = make_request(messages, next(self._request_ids))
        logger.info(
            "Chat %s: rpc_id=%d tools=%s messages=%d",
            request_id,
            request.id,
            tools,
            len(messages),
        )

        response = self.gateway.send(request, timeout_seconds=self.timeout_seconds)
        if response.error is not None:
            raise GatewayError(
                f"Backend returned error: {json.dumps(response.error, ensure_ascii=False)}",
                transient=False,
            )
        return ChatResult(
            request_id=request_id,
            envelope=response.with_result_field(TOOLS_DETECTED_KEY, list(tools)),
            tools_detected=tools,
        )


def validate_user_text(user_text: object) -> str:
    if not isinstance(user_text, str):
        raise InvalidInputError("User text must be a string.")
    if not user_text.strip():
        raise InvalidInputError("User text is required.")
    return user_text


def build_run_with_output(run_input: str) -> Run:
    """Build the canonical analyze -> (enumerate, categorize) tree."""

    run = new_run(run_input)
    root = run.new_task(TaskType.LLM, "Analyze scenario", command=TaskCommand.ANALYZE)
    root.add_subtask(
        run.new_task(TaskType.LLM, "List all machinery", command=TaskCommand.ENUMERATE),
    )
    root.add_subtask(
        run.new_task(TaskType.TOOL, "Categorize machinery", command=TaskCommand.CATEGORIZE),
    )
    run.tasks.append(root)
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("Built run %s: %s", run.id, json.dumps(run.to_dict(), indent=2))
    return run


def build_and_run_demo(run_input: object, *, executor: TaskExecutor | None = None) -> Run:
    """Build the canonical run and execute it; raises on the first failed task."""

    text = validate_user_text(run_input)
    run = build_run_with_output(text)
    (executor or TaskExecutor()).execute_run(run)
    return run

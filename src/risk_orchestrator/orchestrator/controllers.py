"""Controllers for orchestrator CLI commands."""

from __future__ import annotations

import json
from dataclasses import dataclass

from risk_orchestrator.config import Settings
from risk_orchestrator.orchestrator.classifier import detect_input_type
from risk_orchestrator.orchestrator.executor import TaskExecutionError, TaskExecutor
from risk_orchestrator.orchestrator.gateway import close_gateway, select_gateway
from risk_orchestrator.orchestrator.messages import system_prompt_for
from risk_orchestrator.orchestrator.models import Run
from risk_orchestrator.orchestrator.services import (
    ChatOrchestrator,
    build_run_with_output,
    validate_user_text,
)
from risk_orchestrator.orchestrator.tools import ToolRegistry, default_registry


@dataclass(slots=True)
class ChatCommand:
    """CLI input for one chat round-trip."""

    text: str
    endpoint: str | None
    timeout_seconds: float | None


@dataclass(slots=True)
class DemoCommand:
    """CLI input for the demo task tree."""

    text: str
    as_json: bool
    halt_on_failure: bool | None = None
    use_gateway: bool = False


@dataclass(slots=True)
class DemoResult:
    """Demo report to render in CLI."""

    lines: list[str]
    success: bool


class OrchestratorCliController:
    """Coordinates chat, demo and inspection CLI operations."""

    def __init__(self, registry: ToolRegistry | None = None) -> None:
        self.registry = registry or default_registry()

    def chat(self, command: ChatCommand) -> list[str]:
        settings = Settings.from_env(endpoint=command.endpoint)
        if command.timeout_seconds is not None:
            settings.gateway.timeout_seconds = command.timeout_seconds
        with ChatOrchestrator.from_settings(settings, registry=self.registry) as orchestrator:
            result = orchestrator.orchestrate_chat(command.text)
        return [
            json.dumps(result.envelope.to_dict(), ensure_ascii=False, indent=2),
        ]

    def demo(self, command: DemoCommand) -> DemoResult:
        settings = Settings.from_env()
        settings.validate()
        halt_on_failure = (
            command.halt_on_failure
            if command.halt_on_failure is not None
            else settings.executor.halt_on_failure
        )
        text = validate_user_text(command.text)
        run = build_run_with_output(text)
        gateway = select_gateway(settings.gateway.endpoint) if command.use_gateway else None
        executor = TaskExecutor(
            gateway=gateway,
            timeout_seconds=settings.gateway.timeout_seconds,
            halt_on_failure=halt_on_failure,
        )
        try:
            summary = executor.execute_run(run)
        except TaskExecutionError as error:
            return DemoResult(
                lines=[*_render_run(run, as_json=command.as_json), str(error)],
                success=False,
            )
        finally:
            if gateway is not None:
                close_gateway(gateway)
        return DemoResult(
            lines=_render_run(run, as_json=command.as_json),
            success=summary.succeeded,
        )

    def tools(self, text: str) -> list[str]:
        detected = self.registry.determine_tools(text)
        if not detected:
            return ["No tools detected."]
        return [f"{name}: {self.registry.get(name).description}" for name in detected]

    def classify(self, text: str) -> list[str]:
        input_type = detect_input_type(text)
        return [
            f"input_type={input_type.value}",
            f"system_prompt={system_prompt_for(input_type)}",
        ]


def _render_run(run: Run, *, as_json: bool) -> list[str]:
    if as_json:
        return [json.dumps(run.to_dict(), ensure_ascii=False, indent=2)]

    lines = [f"Run {run.id}: input={run.input!r}"]
    for task in run.walk():
        line = f"- [{task.status.value}] {task.type.value} {task.input!r}"
        if task.output:
            line += f" -> {task.output!r}"
        if task.error:
            line += f" error={task.error!r}"
        lines.append(line)
    lines.append(f"Answer: {run.output.answer}")
    lines.append("Machinery:")
    lines.extend(f"  {item}" for item in run.output.machinery)
    return lines

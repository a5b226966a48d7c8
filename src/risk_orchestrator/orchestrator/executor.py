"""Depth-first execution of task trees against a shared run output."""

from __future__ import annotations

import itertools
import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field

from risk_orchestrator.orchestrator.envelope import make_request
from risk_orchestrator.orchestrator.gateway import DEFAULT_TIMEOUT_SECONDS, GatewayError, LlmGateway
from risk_orchestrator.orchestrator.messages import build_task_message
from risk_orchestrator.orchestrator.models import (
    Run,
    Task,
    TaskCommand,
    TaskStatus,
    TaskType,
)

logger = logging.getLogger(__name__)

STAND_IN_PREFIX = "Fake LLM response for: "
DEMO_MACHINERY: tuple[str, ...] = ("Excavator", "Crane", "Bulldozer")
MACHINERY_CATEGORY_SUFFIX = ": Heavy Equipment"
CATEGORIZED_OUTPUT = "Categorized machinery"


class TaskExecutionError(RuntimeError):
    """A task failed and halted the run."""

    def __init__(self, task: Task) -> None:
        super().__init__(f"Task {task.id} ({task.input!r}) failed: {task.error}")
        self.task = task


class _StepError(Exception):
    """Task-local failure recorded on the task rather than raised directly."""


@dataclass(frozen=True, slots=True)
class CommandHandler:
    """Result-extraction step bound to one command."""

    task_type: TaskType
    apply: Callable[[Task], None]


@dataclass(slots=True)
class ExecutionSummary:
    """Tasks in the order they were visited, plus those that failed."""

    executed: list[Task] = field(default_factory=list)
    failed: list[Task] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return not self.failed

    @property
    def execution_order(self) -> list[str]:
        return [task.input for task in self.executed]


def _merge_answer(task: Task) -> None:
    task.run_output.set_answer(task.output)


def _merge_machinery(task: Task) -> None:
    task.run_output.extend_machinery(DEMO_MACHINERY)


def _categorize_machinery(task: Task) -> None:
    task.run_output.transform_machinery(lambda item: item + MACHINERY_CATEGORY_SUFFIX)
    task.output = CATEGORIZED_OUTPUT


COMMAND_HANDLERS: dict[TaskCommand, CommandHandler] = {
    TaskCommand.ANALYZE: CommandHandler(task_type=TaskType.LLM, apply=_merge_answer),
    TaskCommand.ENUMERATE: CommandHandler(task_type=TaskType.LLM, apply=_merge_machinery),
    TaskCommand.CATEGORIZE: CommandHandler(task_type=TaskType.TOOL, apply=_categorize_machinery),
}


class TaskExecutor:
    """Run a task, then its subtasks in declared order, single-threaded.

    A parent's own step always completes before any child starts, so children
    observe every mutation the parent made to the run output.
    """

    def __init__(
        self,
        *,
        gateway: LlmGateway | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        halt_on_failure: bool = True,
        request_ids: Iterator[int] | None = None,
    ) -> None:
        self.gateway = gateway
        self.timeout_seconds = timeout_seconds
        self.halt_on_failure = halt_on_failure
        self._request_ids = request_ids if request_ids is not None else itertools.count(1)

    def execute_run(self, run: Run) -> ExecutionSummary:
        """Execute every root task of ``run`` in order."""

        summary = ExecutionSummary()
        for task in run.tasks:
            self.execute_task(task, summary)
        logger.debug(
            "Run %s finished: executed=%d failed=%d",
            run.id,
            len(summary.executed),
            len(summary.failed),
        )
        return summary

    def execute_task(
        self,
        task: Task,
        summary: ExecutionSummary | None = None,
    ) -> ExecutionSummary:
        """Execute ``task`` and its subtree depth-first, parent before children.

        Raises ``TaskExecutionError`` on the first failure when halting; the
        failed task's subtasks and any unvisited tasks stay ``pending``.
        """

        if summary is None:
            summary = ExecutionSummary()
        if task.status is not TaskStatus.PENDING:
            raise ValueError(f"Task {task.id} already {task.status.value}; tasks run once")

        self._run_step(task)
        summary.executed.append(task)
        if task.status is TaskStatus.FAILED:
            summary.failed.append(task)
            if self.halt_on_failure:
                raise TaskExecutionError(task)
            logger.warning("Skipping %d subtask(s) of failed task %s", len(task.subtasks), task.id)
            return summary

        for subtask in task.subtasks:
            self.execute_task(subtask, summary)
        return summary

    def _run_step(self, task: Task) -> None:
        task.status = TaskStatus.RUNNING
        logger.debug("Task %s running: type=%s input=%r", task.id, task.type.value, task.input)
        try:
            if task.type is TaskType.LLM:
                task.output = self._llm_output(task)
            handler = _resolve_handler(task)
            if handler is not None:
                handler.apply(task)
        except (_StepError, GatewayError) as error:
            task.status = TaskStatus.FAILED
            task.error = str(error)
            logger.warning("Task %s failed: %s", task.id, error)
            return
        except Exception as error:
            task.status = TaskStatus.FAILED
            task.error = f"{type(error).__name__}: {error}"
            logger.exception("Task %s crashed", task.id)
            raise
        task.status = TaskStatus.DONE
        logger.debug("Task %s done: output=%r", task.id, task.output)

    def _llm_output(self, task: Task) -> str:
        if self.gateway is None:
            return STAND_IN_PREFIX + task.input

        request = make_request([build_task_message(task)], next(self._request_ids))
        response = self.gateway.send(request, timeout_seconds=self.timeout_seconds)
        if response.error is not None:
            raise GatewayError(f"Backend returned error: {response.error}", transient=False)
        text = (response.result or {}).get("text")
        if not isinstance(text, str):
            raise GatewayError("Backend result has no text", transient=False)
        return text


def _resolve_handler(task: Task) -> CommandHandler | None:
    command = task.resolve_command()
    handler = COMMAND_HANDLERS.get(command) if command is not None else None
    if handler is not None and handler.task_type is not task.type:
        if task.command is not None:
            raise _StepError(
                f"Command {command.value!r} requires a {handler.task_type.value} task, "
                f"got {task.type.value}",
            )
        handler = None
    if handler is None and task.type is TaskType.TOOL:
        raise _StepError(f"No tool handler for input {task.input!r}")
    return handler

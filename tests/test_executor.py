from __future__ import annotations

import allure
import pytest

from risk_orchestrator.orchestrator.envelope import RpcRequest, RpcResponse
from risk_orchestrator.orchestrator.executor import (
    CATEGORIZED_OUTPUT,
    STAND_IN_PREFIX,
    TaskExecutionError,
    TaskExecutor,
)
from risk_orchestrator.orchestrator.gateway import MOCK_RESPONSE_TEXT, GatewayError, MockGateway
from risk_orchestrator.orchestrator.models import TaskCommand, TaskStatus, TaskType, new_run
from risk_orchestrator.orchestrator.services import build_run_with_output

pytestmark = [
    allure.epic("Task Tree"),
    allure.feature("Executor"),
]

DEMO_ITEMS = ["Excavator", "Crane", "Bulldozer"]
CATEGORIZED_ITEMS = [
    "Excavator: Heavy Equipment",
    "Crane: Heavy Equipment",
    "Bulldozer: Heavy Equipment",
]


class _RecordingGateway:
    def __init__(self, response: RpcResponse | None = None, error: Exception | None = None):
        self.requests: list[RpcRequest] = []
        self._response = response
        self._error = error

    def send(self, request: RpcRequest, *, timeout_seconds: float) -> RpcResponse:
        self.requests.append(request)
        if self._error is not None:
            raise self._error
        assert self._response is not None
        return RpcResponse(id=request.id, result=self._response.result, error=self._response.error)


def test_demo_run_executes_depth_first_in_declared_order() -> None:
    run = build_run_with_output("x")

    summary = TaskExecutor().execute_run(run)

    assert summary.execution_order == [
        "Analyze scenario",
        "List all machinery",
        "Categorize machinery",
    ]
    assert summary.succeeded
    assert all(task.status is TaskStatus.DONE for task in run.walk())


def test_demo_run_populates_shared_output() -> None:
    run = build_run_with_output("x")
    root = run.tasks[0]

    TaskExecutor().execute_task(root)

    assert run.output.answer == STAND_IN_PREFIX + "Analyze scenario"
    assert root.output == run.output.answer
    assert run.output.machinery == CATEGORIZED_ITEMS
    assert root.subtasks[1].output == CATEGORIZED_OUTPUT


def test_categorize_preserves_count_after_enumerate() -> None:
    run = build_run_with_output("x")
    root = run.tasks[0]
    enumerate_task, categorize_task = root.subtasks
    executor = TaskExecutor()

    executor._run_step(root)
    executor._run_step(enumerate_task)
    assert run.output.machinery == DEMO_ITEMS

    executor._run_step(categorize_task)
    assert len(run.output.machinery) == 3
    assert run.output.machinery == CATEGORIZED_ITEMS


def test_task_cannot_be_executed_twice() -> None:
    run = build_run_with_output("x")
    executor = TaskExecutor()
    executor.execute_run(run)

    with pytest.raises(ValueError, match="tasks run once"):
        executor.execute_task(run.tasks[0])


def test_unknown_tool_fails_and_halts_run() -> None:
    run = new_run()
    root = run.new_task(TaskType.TOOL, "Polish machinery")
    child = root.add_subtask(run.new_task(TaskType.LLM, "List all machinery"))
    sibling = run.new_task(TaskType.LLM, "Analyze scenario")
    run.tasks.extend([root, sibling])

    with pytest.raises(TaskExecutionError, match="No tool handler") as raised:
        TaskExecutor().execute_run(run)

    assert raised.value.task is root
    assert root.status is TaskStatus.FAILED
    assert root.error == "No tool handler for input 'Polish machinery'"
    assert child.status is TaskStatus.PENDING
    assert sibling.status is TaskStatus.PENDING
    assert run.output.machinery == []


def test_continue_on_failure_skips_children_but_runs_siblings() -> None:
    run = new_run()
    root = run.new_task(TaskType.TOOL, "Polish machinery")
    child = root.add_subtask(run.new_task(TaskType.LLM, "List all machinery"))
    sibling = run.new_task(TaskType.LLM, "Analyze scenario")
    run.tasks.extend([root, sibling])

    summary = TaskExecutor(halt_on_failure=False).execute_run(run)

    assert summary.failed == [root]
    assert not summary.succeeded
    assert child.status is TaskStatus.PENDING
    assert sibling.status is TaskStatus.DONE
    assert run.output.answer == STAND_IN_PREFIX + "Analyze scenario"


def test_explicit_command_on_wrong_task_type_fails() -> None:
    run = new_run()
    task = run.new_task(TaskType.LLM, "Group the fleet", command=TaskCommand.CATEGORIZE)
    run.tasks.append(task)

    with pytest.raises(TaskExecutionError, match="requires a Tool task"):
        TaskExecutor().execute_run(run)


def test_llm_task_without_command_only_sets_output() -> None:
    run = new_run()
    task = run.new_task(TaskType.LLM, "Describe weather risks")
    run.tasks.append(task)

    TaskExecutor().execute_run(run)

    assert task.status is TaskStatus.DONE
    assert task.output == STAND_IN_PREFIX + "Describe weather risks"
    assert run.output.answer == ""
    assert run.output.machinery == []


def test_command_is_keyed_by_identifier_not_wording() -> None:
    run = new_run()
    task = run.new_task(TaskType.LLM, "Please list the machines", command=TaskCommand.ENUMERATE)
    run.tasks.append(task)

    TaskExecutor().execute_run(run)

    assert run.output.machinery == DEMO_ITEMS


def test_llm_tasks_delegate_to_gateway() -> None:
    gateway = _RecordingGateway(response=RpcResponse(id=0, result={"text": "backend says hi"}))
    run = build_run_with_output("x")

    TaskExecutor(gateway=gateway, timeout_seconds=3.0).execute_run(run)

    assert [request.id for request in gateway.requests] == [1, 2]
    assert "User input: Analyze scenario" in gateway.requests[0].messages[0].content
    assert run.output.answer == "backend says hi"
    assert run.output.machinery == CATEGORIZED_ITEMS


def test_mock_gateway_output_becomes_answer() -> None:
    run = build_run_with_output("x")

    TaskExecutor(gateway=MockGateway()).execute_run(run)

    assert run.output.answer == MOCK_RESPONSE_TEXT


def test_gateway_failure_fails_llm_task() -> None:
    gateway = _RecordingGateway(error=GatewayError("Backend unreachable", transient=True))
    run = build_run_with_output("x")

    with pytest.raises(TaskExecutionError, match="Backend unreachable"):
        TaskExecutor(gateway=gateway).execute_run(run)

    assert run.tasks[0].status is TaskStatus.FAILED
    assert all(task.status is TaskStatus.PENDING for task in run.tasks[0].subtasks)


def test_gateway_error_envelope_fails_llm_task() -> None:
    gateway = _RecordingGateway(response=RpcResponse(id=0, error={"code": -1, "message": "x"}))
    run = build_run_with_output("x")

    with pytest.raises(TaskExecutionError, match="Backend returned error"):
        TaskExecutor(gateway=gateway).execute_run(run)


def test_unexpected_error_marks_task_failed_and_propagates() -> None:
    gateway = _RecordingGateway(error=RuntimeError("socket exploded"))
    run = build_run_with_output("x")
    root = run.tasks[0]

    with pytest.raises(RuntimeError, match="socket exploded"):
        TaskExecutor(gateway=gateway, halt_on_failure=False).execute_run(run)

    assert root.status is TaskStatus.FAILED
    assert root.error == "RuntimeError: socket exploded"
    assert all(task.status is TaskStatus.PENDING for task in root.subtasks)
    assert all(task.status is not TaskStatus.RUNNING for task in run.walk())

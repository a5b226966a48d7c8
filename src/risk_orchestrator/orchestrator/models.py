"""Domain models for runs, task trees and the shared run output."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


def utc_now() -> datetime:
    """Current UTC timestamp."""

    return datetime.now(tz=UTC)


class _MonotonicIdClock:
    """Nanosecond clock reads bumped to stay strictly increasing in this process."""

    def __init__(self, clock: Callable[[], int] = time.time_ns) -> None:
        self._clock = clock
        self._last = 0
        self._lock = threading.Lock()

    def next(self) -> int:
        with self._lock:
            value = max(self._clock(), self._last + 1)
            self._last = value
            return value


_ID_CLOCK = _MonotonicIdClock()


def new_run_id() -> str:
    return f"run-{_ID_CLOCK.next()}"


def new_task_id() -> str:
    return f"task-{_ID_CLOCK.next()}"


def new_id() -> str:
    return f"id-{_ID_CLOCK.next()}"


class TaskType(str, Enum):
    """How a task produces its result."""

    LLM = "LLM"
    TOOL = "Tool"


class TaskStatus(str, Enum):
    """Task lifecycle: pending -> running -> done | failed."""

    PENDING = "pending"
    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"


class TaskCommand(str, Enum):
    """Stable keys for merging task results into the run output."""

    ANALYZE = "analyze"
    ENUMERATE = "enumerate"
    CATEGORIZE = "categorize"


CANONICAL_PROMPTS: dict[str, TaskCommand] = {
    "Analyze scenario": TaskCommand.ANALYZE,
    "List all machinery": TaskCommand.ENUMERATE,
    "Categorize machinery": TaskCommand.CATEGORIZE,
}


@dataclass(slots=True)
class RunOutput:
    """Accumulator shared by reference across every task of one run.

    Mutate only through the methods below; they serialize writers so that
    sibling tasks can never interleave partial updates.
    """

    id: str
    answer: str = ""
    machinery: list[str] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def set_answer(self, answer: str) -> None:
        with self._lock:
            self.answer = answer

    def extend_machinery(self, items: list[str] | tuple[str, ...]) -> None:
        with self._lock:
            self.machinery.extend(items)

    def transform_machinery(self, transform: Callable[[str], str]) -> None:
        """Rewrite every item in place, keeping order and count."""

        with self._lock:
            self.machinery[:] = [transform(item) for item in self.machinery]

    def to_dict(self) -> dict[str, Any]:
        with self._lock:
            return {"id": self.id, "answer": self.answer, "machinery": list(self.machinery)}


@dataclass(slots=True, eq=False)
class Task:
    """One node of a run's task tree. Subtasks are owned, never shared."""

    run_id: str
    type: TaskType
    input: str
    run_output: RunOutput
    command: TaskCommand | None = None
    id: str = field(default_factory=new_task_id)
    output: str = ""
    status: TaskStatus = TaskStatus.PENDING
    error: str | None = None
    subtasks: list[Task] = field(default_factory=list)
    created_at: datetime = field(default_factory=utc_now)
    parent: Task | None = field(default=None, repr=False)

    def add_subtask(self, task: Task) -> Task:
        """Attach ``task`` as the last child; a task has at most one parent."""

        if task.run_output is not self.run_output:
            raise ValueError("Subtask must share the parent's run output")
        if task.parent is not None:
            raise ValueError(f"Task {task.id} already has parent {task.parent.id}")
        if any(node is self for node in task.walk()):
            raise ValueError(f"Task {task.id} is an ancestor of {self.id}; would create a cycle")
        task.parent = self
        self.subtasks.append(task)
        return task

    def resolve_command(self) -> TaskCommand | None:
        """Explicit command, else the one bound to a canonical prompt."""

        if self.command is not None:
            return self.command
        return CANONICAL_PROMPTS.get(self.input)

    def walk(self) -> Iterator[Task]:
        """Yield this task and its descendants, parent before children."""

        yield self
        for subtask in self.subtasks:
            yield from subtask.walk()

    def to_dict(self) -> dict[str, Any]:
        command = self.resolve_command()
        return {
            "id": self.id,
            "run_id": self.run_id,
            "type": self.type.value,
            "command": command.value if command is not None else None,
            "input": self.input,
            "output": self.output,
            "status": self.status.value,
            "error": self.error,
            "created_at": self.created_at.isoformat(),
            "subtasks": [subtask.to_dict() for subtask in self.subtasks],
        }


@dataclass(slots=True, eq=False)
class Run:
    """One orchestration request: root tasks plus their shared output."""

    id: str
    output: RunOutput
    input: str = ""
    tasks: list[Task] = field(default_factory=list)
    created_at: datetime = field(default_factory=utc_now)

    def new_task(
        self,
        task_type: TaskType,
        task_input: str,
        *,
        command: TaskCommand | None = None,
    ) -> Task:
        """Create a pending task bound to this run's output, not yet attached."""

        return Task(
            run_id=self.id,
            type=task_type,
            input=task_input,
            run_output=self.output,
            command=command,
        )

    def walk(self) -> Iterator[Task]:
        for task in self.tasks:
            yield from task.walk()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "input": self.input,
            "created_at": self.created_at.isoformat(),
            "output": self.output.to_dict(),
            "tasks": [task.to_dict() for task in self.tasks],
        }


def new_run(run_input: str = "") -> Run:
    """Allocate a run and its output under one generated id."""

    run_id = new_run_id()
    return Run(id=run_id, output=RunOutput(id=run_id), input=run_input)

"""Role-tagged message assembly for backend requests."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from risk_orchestrator.orchestrator.classifier import InputType, detect_input_type
from risk_orchestrator.orchestrator.models import Task

TOOL_ADVISORY_PREFIX = "Use the following tools for this request: "
TOOL_ADVISORY_SEPARATOR = ", "

TASK_SYSTEM_PROMPT = "You are a helpful risk assessment LLM. Analyze the input carefully."

SYSTEM_PROMPTS: dict[InputType, str] = {
    InputType.QUESTION: (
        "You are a helpful risk assessment LLM. Answer questions clearly and concisely."
    ),
    InputType.REQUEST: (
        "You are a proactive risk assessment LLM. "
        "Take action-oriented steps to address the request."
    ),
    InputType.OBSERVATION: (
        "You are a risk assessment LLM. "
        "Analyze the information and summarize any potential risks."
    ),
    InputType.UNKNOWN: "You are a helpful risk assessment LLM. Respond appropriately.",
}


class MessageRole(str, Enum):
    """Conversation roles understood by the backend."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


@dataclass(frozen=True, slots=True)
class Message:
    """One conversation entry; list order is the order the backend sees."""

    role: MessageRole
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role.value, "content": self.content}

    @classmethod
    def from_dict(cls, raw: Any) -> Message:
        """Validate and parse a wire message object."""

        if not isinstance(raw, dict):
            raise TypeError("message must be an object")
        role = raw.get("role")
        content = raw.get("content")
        if not isinstance(content, str):
            raise TypeError("message.content must be a string")
        try:
            parsed_role = MessageRole(role)
        except ValueError as error:
            raise ValueError(f"Unsupported message role: {role!r}") from error
        return cls(role=parsed_role, content=content)


def system_prompt_for(input_type: InputType) -> str:
    return SYSTEM_PROMPTS.get(input_type, SYSTEM_PROMPTS[InputType.UNKNOWN])


def build_messages(text: str) -> list[Message]:
    """Return ``[system prompt, user text]`` with the prompt picked by input type."""

    prompt = system_prompt_for(detect_input_type(text))
    return [
        Message(role=MessageRole.SYSTEM, content=prompt),
        Message(role=MessageRole.USER, content=text),
    ]


def build_messages_with_tools(text: str, tools: Sequence[str]) -> list[Message]:
    """Like ``build_messages`` but prepends a tool advisory when tools were detected."""

    messages = build_messages(text)
    if tools:
        messages.insert(0, Message(role=MessageRole.SYSTEM, content=render_tool_advisory(tools)))
    return messages


def render_tool_advisory(tools: Sequence[str]) -> str:
    return TOOL_ADVISORY_PREFIX + TOOL_ADVISORY_SEPARATOR.join(tools)


def build_task_message(task: Task) -> Message:
    """Single system message used when an LLM task is delegated to the gateway."""

    return Message(
        role=MessageRole.SYSTEM,
        content=f"{TASK_SYSTEM_PROMPT}\nUser input: {task.input}",
    )

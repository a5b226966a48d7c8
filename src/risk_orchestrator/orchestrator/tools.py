"""Static tool catalog and keyword-based tool detection."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Tool:
    """Named capability advertised to the backend when its keywords match."""

    name: str
    description: str
    keywords: tuple[str, ...]


DEFAULT_TOOLS: tuple[Tool, ...] = (
    Tool(
        name="analyze_image",
        description="Inspect an uploaded site image for visible hazards.",
        keywords=("analyze image", "image analysis"),
    ),
    Tool(
        name="categorize_machinery",
        description="Group detected machinery into equipment categories.",
        keywords=("categorize machinery", "machinery categorization"),
    ),
    Tool(
        name="summarize_report",
        description="Condense a risk report into a short summary.",
        keywords=("summary", "summarize report"),
    ),
)


@dataclass(frozen=True, slots=True)
class ToolRegistry:
    """Ordered, read-only tool catalog. Order is match priority."""

    tools: tuple[Tool, ...]

    def __post_init__(self) -> None:
        seen: set[str] = set()
        for tool in self.tools:
            if tool.name in seen:
                raise ValueError(f"Duplicate tool name in registry: {tool.name!r}")
            seen.add(tool.name)

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(tool.name for tool in self.tools)

    def get(self, name: str) -> Tool:
        """Return tool by name or raise ``KeyError``."""

        for tool in self.tools:
            if tool.name == name:
                return tool
        raise KeyError(name)

    def determine_tools(self, text: str) -> list[str]:
        """Return names of tools whose keywords occur in ``text``.

        Matching is a case-insensitive substring search. Each tool is selected
        at most once, on its first matching keyword, and the result follows
        registry order rather than the position of the match in ``text``.
        """

        haystack = text.lower()
        if not haystack:
            return []
        return [tool.name for tool in self.tools if _first_match(haystack, tool.keywords)]


def default_registry() -> ToolRegistry:
    """Build the registry of built-in tools."""

    return ToolRegistry(tools=DEFAULT_TOOLS)


def _first_match(haystack: str, keywords: tuple[str, ...]) -> str | None:
    for keyword in keywords:
        if keyword.lower() in haystack:
            return keyword
    return None

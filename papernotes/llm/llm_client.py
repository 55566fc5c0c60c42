from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class ToolCall:
    """One tool invocation emitted by a model; ``arguments`` is raw JSON text."""

    name: str
    arguments: str


class LLMClient(ABC):
    """Abstract interface for language model interactions."""

    @abstractmethod
    def prompt(self, section: str, key: str) -> str:
        """Return the prompt template stored under ``section.key``."""

    @abstractmethod
    def invoke_tools(
        self,
        model: str,
        system: str,
        user: str,
        tools: List[Dict[str, Any]],
        *,
        temperature: Optional[float] = None,
    ) -> List[ToolCall]:
        """Run a tool-constrained call and return zero or more tool invocations."""

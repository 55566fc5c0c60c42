from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import replicate
import yaml

from papernotes.core.exceptions import DomainError
from papernotes.core.settings import DEFAULT_PROMPTS_PATH, Settings, get_settings
from .llm_client import LLMClient, ToolCall


class LLMClientError(DomainError):
    """Raised when interaction with LLM fails."""


class ReplicateLLMClient(LLMClient):
    """LLM client powered by Replicate API."""

    def __init__(
        self,
        settings: Settings | None = None,
        prompts_path: str | Path | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.logger = logging.getLogger(__name__)

        # Fall back to defaults if a custom Settings object is used in tests
        self._log_payloads: bool = bool(getattr(self.settings, "llm_log_payloads", False))
        self._max_output_tokens: int = int(
            getattr(self.settings, "llm_max_output_tokens", 4096)
        )

        if prompts_path is None:
            prompts_path = getattr(self.settings, "prompts_path", None) or DEFAULT_PROMPTS_PATH
        self.prompts_path = Path(prompts_path)
        try:
            with self.prompts_path.open("r", encoding="utf-8") as fh:
                self.prompts: Dict[str, Dict[str, str]] = yaml.safe_load(fh) or {}
            self.logger.debug("Prompts loaded from: %s", str(self.prompts_path))
        except FileNotFoundError as exc:
            raise LLMClientError(
                f"Prompts file not found: {self.prompts_path}"
            ) from exc
        except yaml.YAMLError as exc:
            raise LLMClientError("Failed to parse prompts file") from exc

    def prompt(self, section: str, key: str) -> str:
        try:
            return self.prompts[section][key]
        except (KeyError, TypeError) as exc:
            raise LLMClientError(
                f"Prompt '{section}.{key}' not found in {self.prompts_path}"
            ) from exc

    def invoke_tools(
        self,
        model: str,
        system: str,
        user: str,
        tools: List[Dict[str, Any]],
        *,
        temperature: Optional[float] = None,
    ) -> List[ToolCall]:
        """Call a Replicate-hosted structured model with function tools.

        ``instructions`` carries the system prompt, ``input_item_list`` the
        user turn, and ``tools`` the function schemas in chat-completions form.
        """
        input_payload: Dict[str, Any] = {
            "instructions": system,
            "input_item_list": [
                {
                    "role": "user",
                    "content": [{"type": "input_text", "text": user}],
                }
            ],
            "tools": tools,
            "tool_choice": "required",
            "max_output_tokens": self._max_output_tokens,
        }
        if temperature is not None:
            input_payload["temperature"] = temperature

        lvl = logging.INFO if self._log_payloads else logging.DEBUG
        self.logger.log(
            lvl,
            "Replicate request | model=%s | input=%s",
            model,
            json.dumps(input_payload, ensure_ascii=False, default=str)[:4000],
        )
        try:
            out = replicate.run(model, input=input_payload)
        except Exception as exc:
            self.logger.exception("Replicate request failed: %s", exc)
            raise LLMClientError(f"Replicate request failed: {exc}") from exc
        self.logger.log(
            lvl,
            "Replicate raw response | model=%s | raw=%s",
            model,
            json.dumps(out, ensure_ascii=False, default=str)[:4000],
        )
        return self._tool_calls(out)

    def _tool_calls(self, out: Any) -> List[ToolCall]:
        """Normalize Replicate output into ``ToolCall`` items.

        Accepts ``{"tool_calls": [...]}`` in chat-completions shape
        (``{"function": {"name", "arguments"}}``) as well as Responses-style
        ``{"output": [{"type": "function_call", "name", "arguments"}]}``.
        Plain text output carries no tool calls.
        """
        if isinstance(out, dict):
            items = out.get("tool_calls")
            if items is None:
                items = [
                    item
                    for item in out.get("output") or []
                    if isinstance(item, dict) and item.get("type") == "function_call"
                ]
        elif isinstance(out, list) and all(isinstance(i, dict) for i in out):
            items = out
        else:
            return []

        calls: List[ToolCall] = []
        for item in items or []:
            if not isinstance(item, dict):
                continue
            fn = item.get("function") if isinstance(item.get("function"), dict) else item
            args = fn.get("arguments", "")
            if not isinstance(args, str):
                args = json.dumps(args, ensure_ascii=False)
            calls.append(ToolCall(name=str(fn.get("name", "")), arguments=args))
        return calls

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError

from papernotes.core.exceptions import MalformedResponseError
from papernotes.core.models import Note, Segment
from papernotes.core.settings import Settings, get_settings
from papernotes.llm import LLMClient, ToolCall

logger = logging.getLogger(__name__)

NOTES_TOOL_NAME = "formatNotes"

NOTES_TOOL_SCHEMA: Dict[str, Any] = {
    "type": "function",
    "function": {
        "name": NOTES_TOOL_NAME,
        "description": "Formats the notes response",
        "parameters": {
            "type": "object",
            "properties": {
                "notes": {
                    "type": "object",
                    "properties": {
                        "note": {"type": "string", "description": "The notes"},
                        "pageNumbers": {
                            "type": "array",
                            "items": {
                                "type": "number",
                                "description": "The page number(s) of the notes",
                            },
                        },
                    },
                },
            },
            "required": ["notes"],
        },
    },
}


def join_segments(segments: Sequence[Segment]) -> str:
    return "\n\n".join(s.text for s in segments)


def pack_segments(segments: Sequence[Segment], max_chars: int) -> List[List[Segment]]:
    """Group consecutive segments into windows of at most ``max_chars`` text.

    A single segment longer than the budget forms a window of its own.
    """
    windows: List[List[Segment]] = []
    current: List[Segment] = []
    size = 0
    for seg in segments:
        extra = len(seg.text) + (2 if current else 0)
        if current and size + extra > max_chars:
            windows.append(current)
            current, size = [], 0
            extra = len(seg.text)
        current.append(seg)
        size += extra
    if current:
        windows.append(current)
    return windows


def parse_notes_tool_calls(tool_calls: Sequence[ToolCall]) -> List[Note]:
    """Concatenate the notes of every tool call, in response order.

    Each call's arguments must be a JSON object with a ``notes`` key holding a
    note object or a list of them.
    """
    if not tool_calls:
        raise MalformedResponseError("No tool calls found")

    notes: List[Note] = []
    for idx, call in enumerate(tool_calls):
        try:
            args = json.loads(call.arguments)
        except (TypeError, ValueError) as exc:
            raise MalformedResponseError(
                f"Tool call {idx} arguments are not valid JSON"
            ) from exc
        if not isinstance(args, dict) or "notes" not in args:
            raise MalformedResponseError(f"Tool call {idx} has no 'notes' field")
        payload = args["notes"]
        items = payload if isinstance(payload, list) else [payload]
        try:
            notes.extend(Note.model_validate(item) for item in items)
        except ValidationError as exc:
            raise MalformedResponseError(
                f"Tool call {idx} notes do not match the note shape: {exc}"
            ) from exc
    return notes


class NoteGenerator:
    """Drive the tool-constrained note-taking call over a paper's segments."""

    def __init__(
        self,
        llm: LLMClient,
        settings: Settings | None = None,
        *,
        max_chars_per_call: Optional[int] = None,
    ) -> None:
        self.llm = llm
        self.settings = settings or get_settings()
        self.model = self.settings.notes_model
        self.temperature = float(getattr(self.settings, "notes_temperature", 0.0))
        if max_chars_per_call is None:
            max_chars_per_call = getattr(self.settings, "notes_max_chars_per_call", None)
        self.max_chars_per_call = max_chars_per_call

    def generate_notes(self, segments: Sequence[Segment]) -> List[Note]:
        if self.max_chars_per_call:
            windows = pack_segments(segments, self.max_chars_per_call)
        else:
            windows = [list(segments)]

        notes: List[Note] = []
        for window in windows:
            notes.extend(self._generate(join_segments(window)))
        logger.info(
            "notes_generated",
            extra={"notes": len(notes), "calls": len(windows), "segments": len(segments)},
        )
        return notes

    def _generate(self, paper: str) -> List[Note]:
        tool_calls = self.llm.invoke_tools(
            self.model,
            self.llm.prompt("notes", "system"),
            self.llm.prompt("notes", "user").format(paper=paper),
            [NOTES_TOOL_SCHEMA],
            temperature=self.temperature,
        )
        return parse_notes_tool_calls(tool_calls)


__all__ = [
    "NOTES_TOOL_NAME",
    "NOTES_TOOL_SCHEMA",
    "NoteGenerator",
    "join_segments",
    "pack_segments",
    "parse_notes_tool_calls",
]

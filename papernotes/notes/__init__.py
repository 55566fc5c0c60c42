"""Structured note generation from extracted paper text."""

from .generator import (
    NOTES_TOOL_SCHEMA,
    NoteGenerator,
    join_segments,
    pack_segments,
    parse_notes_tool_calls,
)

__all__ = [
    "NOTES_TOOL_SCHEMA",
    "NoteGenerator",
    "join_segments",
    "pack_segments",
    "parse_notes_tool_calls",
]

import json
from unittest.mock import MagicMock

import pytest

from papernotes.core.exceptions import MalformedResponseError
from papernotes.core.models import Note, Segment
from papernotes.llm import LLMClient, ToolCall
from papernotes.notes import (
    NOTES_TOOL_SCHEMA,
    NoteGenerator,
    pack_segments,
    parse_notes_tool_calls,
)


def note_call(payload) -> ToolCall:
    return ToolCall(name="formatNotes", arguments=json.dumps(payload))


def make_llm(tool_calls) -> MagicMock:
    llm = MagicMock(spec=LLMClient)
    llm.prompt.side_effect = lambda section, key: "SYSTEM" if key == "system" else "Paper: {paper}"
    llm.invoke_tools.return_value = tool_calls
    return llm


def test_two_tool_calls_give_two_notes_in_order(settings):
    llm = make_llm(
        [
            note_call({"notes": {"note": "Uses a transformer.", "pageNumbers": [1]}}),
            note_call({"notes": {"note": "Trained on WMT 2014.", "pageNumbers": [3, 4]}}),
        ]
    )
    generator = NoteGenerator(llm, settings)

    notes = generator.generate_notes(
        [Segment(text="first", page_number=1), Segment(text="second", page_number=2)]
    )

    assert notes == [
        Note(note="Uses a transformer.", page_numbers=[1]),
        Note(note="Trained on WMT 2014.", page_numbers=[3, 4]),
    ]
    model, system, user, tools = llm.invoke_tools.call_args.args
    assert model == settings.notes_model
    assert system == "SYSTEM"
    assert user == "Paper: first\n\nsecond"
    assert tools == [NOTES_TOOL_SCHEMA]
    assert llm.invoke_tools.call_args.kwargs["temperature"] == 0.0


def test_zero_tool_calls_is_malformed(settings):
    generator = NoteGenerator(make_llm([]), settings)
    with pytest.raises(MalformedResponseError):
        generator.generate_notes([Segment(text="text")])


def test_missing_page_numbers_gives_empty_list():
    notes = parse_notes_tool_calls([note_call({"notes": {"note": "A fact."}})])
    assert notes == [Note(note="A fact.", page_numbers=[])]


def test_list_of_notes_in_one_call():
    notes = parse_notes_tool_calls(
        [note_call({"notes": [{"note": "a", "pageNumbers": [1]}, {"note": "b", "pageNumbers": [2]}]})]
    )
    assert [n.note for n in notes] == ["a", "b"]


@pytest.mark.parametrize(
    "arguments",
    [
        json.dumps({"summary": "no notes key"}),
        json.dumps({"notes": {"pageNumbers": [1]}}),
        json.dumps({"notes": {"note": "", "pageNumbers": []}}),
        json.dumps({"notes": {"note": "   \n\t", "pageNumbers": [1]}}),
        json.dumps({"notes": {"note": "x", "pageNumbers": "one"}}),
        json.dumps(["not", "an", "object"]),
        "{not json",
    ],
)
def test_malformed_tool_arguments(arguments):
    with pytest.raises(MalformedResponseError):
        parse_notes_tool_calls([ToolCall(name="formatNotes", arguments=arguments)])


def test_one_bad_call_fails_the_whole_response():
    with pytest.raises(MalformedResponseError):
        parse_notes_tool_calls(
            [
                note_call({"notes": {"note": "good", "pageNumbers": [1]}}),
                note_call({"other": 1}),
            ]
        )


def test_windowed_generation_merges_in_order(settings):
    llm = make_llm([])
    llm.invoke_tools.side_effect = [
        [note_call({"notes": {"note": "from window 1"}})],
        [note_call({"notes": {"note": "from window 2"}})],
    ]
    generator = NoteGenerator(llm, settings, max_chars_per_call=8)

    notes = generator.generate_notes([Segment(text="aaaaa"), Segment(text="bbbbb")])

    assert [n.note for n in notes] == ["from window 1", "from window 2"]
    users = [call.args[2] for call in llm.invoke_tools.call_args_list]
    assert users == ["Paper: aaaaa", "Paper: bbbbb"]


def test_pack_segments_keeps_oversized_segment_alone():
    segs = [Segment(text="a" * 3), Segment(text="b" * 20), Segment(text="c" * 3), Segment(text="d")]
    windows = pack_segments(segs, 10)
    assert [[s.text[0] for s in w] for w in windows] == [["a"], ["b"], ["c", "d"]]

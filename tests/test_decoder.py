# tests/test_decoder.py
import json

import pytest

from learning_companion.decoder import (
    FlashcardPayload, QuestionPayload, Shape, decode, extract_array, repair_fields, strip_fences,
)
from learning_companion.errors import DecodeError


def test_decode_summary_plain():
    assert decode('["Point one", "Point two"]', Shape.SUMMARY) == ["Point one", "Point two"]


def test_decode_tagged_fence(questions_json):
    result = decode(f"```json\n{questions_json}\n```", Shape.QUESTIONS)
    assert [q.id for q in result] == ["q1", "q2", "q3"]
    assert result[0].correct_answer == 1
    assert result[2].options == ["Ribosome", "Golgi", "Mitochondria", "Lysosome"]


def test_decode_untagged_fence():
    assert decode('```\n["a", "b"]\n```', Shape.SUMMARY) == ["a", "b"]


def test_decode_discards_surrounding_prose(questions_json):
    raw = f"Here are your questions:\n```json\n{questions_json}\n```\nLet me know if you need more!"
    result = decode(raw, Shape.QUESTIONS)
    assert len(result) == 3
    assert result[1].topic == "cells"


def test_decode_ignores_brackets_in_trailing_prose():
    raw = '["Use [brackets] well", "Second"]\n\nSee reference [1] for details.'
    assert decode(raw, Shape.SUMMARY) == ["Use [brackets] well", "Second"]


def test_decode_unescaped_quote_in_flashcard():
    raw = '```json\n[{"topic":"cells","question":"What is a "cell"?","answer":"Basic unit."}]\n```'
    cards = decode(raw, Shape.FLASHCARDS)
    assert len(cards) == 1
    assert cards[0].question == 'What is a "cell"?'
    assert cards[0].topic == "cells"
    assert cards[0].answer == "Basic unit."


def test_decode_newline_in_field_becomes_space():
    raw = '[{"topic":"cells","question":"Line one\nline two","answer":"A\r\nB\tC"}]'
    cards = decode(raw, Shape.FLASHCARDS)
    assert cards[0].question == "Line one line two"
    assert cards[0].answer == "A B C"
    assert cards[0].topic == "cells"


def test_decode_keeps_already_escaped_quotes():
    raw = '[{"topic":"t","question":"Say \\"hi\\" twice","answer":"ok"}]'
    cards = decode(raw, Shape.FLASHCARDS)
    assert cards[0].question == 'Say "hi" twice'


def test_decode_unbalanced_quote_uses_last_bracket():
    raw = 'Sure: [{"topic":"t","question":"He said "hi","answer":"a"}] done'
    cards = decode(raw, Shape.FLASHCARDS)
    assert cards[0].question == 'He said "hi'
    assert cards[0].answer == "a"


def test_decode_repair_does_not_touch_other_objects():
    raw = ('[{"topic":"a","question":"Is "x" true?","answer":"yes"},'
           ' {"topic":"b","question":"plain","answer":"no"}]')
    cards = decode(raw, Shape.FLASHCARDS)
    assert [c.topic for c in cards] == ["a", "b"]
    assert cards[0].question == 'Is "x" true?'
    assert cards[1].question == "plain"
    assert cards[1].answer == "no"


def test_decode_ignores_extra_fields():
    raw = '[{"id":"fc1","topic":"t","question":"q","answer":"a","mastered":false}]'
    assert decode(raw, Shape.FLASHCARDS) == [FlashcardPayload(topic="t", question="q", answer="a")]


def test_decode_summary_newline_becomes_space():
    assert decode('["First point\nwraps", "Second"]', Shape.SUMMARY) == ["First point wraps", "Second"]


def test_decode_summary_unescaped_quote():
    assert decode('["The "cell" is basic", "Second"]', Shape.SUMMARY) == ['The "cell" is basic', "Second"]


def test_decode_unescaped_quote_in_option():
    raw = ('[{"id":"q1","question":"Pick one","options":["a", "the "b" one", "c", "d"],'
           '"correctAnswer":1,"topic":"t","explanation":"e"}]')
    result = decode(raw, Shape.QUESTIONS)
    assert result[0].options == ["a", 'the "b" one', "c", "d"]
    assert result[0].correct_answer == 1


def test_decode_skips_bracketed_prose_before_array():
    raw = 'Here are the key points [5 total]:\n["a", "b"]'
    assert decode(raw, Shape.SUMMARY) == ["a", "b"]


def test_decode_closing_bracket_quoted_inside_value():
    raw = '[{"topic":"t","question":"Which char "]" closes?","answer":"a"}]'
    cards = decode(raw, Shape.FLASHCARDS)
    assert cards[0].question == 'Which char "]" closes?'
    assert cards[0].answer == "a"


def test_decode_limit_skips_validation_of_extras():
    raw = '[{"topic":"t","question":"q","answer":"a"}, {"topic":"t"}]'
    assert decode(raw, Shape.FLASHCARDS, limit=1) == [FlashcardPayload(topic="t", question="q", answer="a")]


def test_decode_is_idempotent_on_own_output(questions_json):
    raw = f"Sure!\n```json\n{questions_json}\n```"
    first = decode(raw, Shape.QUESTIONS)
    again = decode(json.dumps([q.model_dump(by_alias=True) for q in first]), Shape.QUESTIONS)
    assert again == first


def test_repair_fields_leaves_valid_json_alone(questions_json):
    assert repair_fields(questions_json) == questions_json


def test_strip_fences_without_fence():
    assert strip_fences('["a"]') == '["a"]'


def test_extract_array_without_array():
    assert extract_array("no array here") == "no array here"


def test_question_payload_accepts_alias_and_name():
    p = QuestionPayload(id="q", question="?", options=["a", "b", "c", "d"], correct_answer=1,
                        topic="t", explanation="e")
    assert p.model_dump(by_alias=True)["correctAnswer"] == 1


# --- Failure cases ---


def test_decode_malformed_json():
    with pytest.raises(DecodeError) as exc:
        decode("not json at all", Shape.SUMMARY)
    assert exc.value.kind == DecodeError.MALFORMED
    assert exc.value.snippet == "not json at all"


def test_decode_malformed_snippet_is_bounded():
    with pytest.raises(DecodeError) as exc:
        decode("x" * 2000, Shape.SUMMARY)
    assert len(exc.value.snippet) == 500


def test_decode_truncated_array_is_malformed():
    with pytest.raises(DecodeError) as exc:
        decode('["one", "two"', Shape.SUMMARY)
    assert exc.value.kind == DecodeError.MALFORMED


def test_decode_object_instead_of_array_is_shape_error():
    with pytest.raises(DecodeError) as exc:
        decode('{"summary": "none"}', Shape.SUMMARY)
    assert exc.value.kind == DecodeError.SHAPE


def test_decode_summary_with_numbers_is_shape_error():
    with pytest.raises(DecodeError) as exc:
        decode("[1, 2, 3]", Shape.SUMMARY)
    assert exc.value.kind == DecodeError.SHAPE


def test_decode_question_missing_field_is_shape_error():
    raw = '[{"id":"q1","question":"?","correctAnswer":0,"topic":"t","explanation":"e"}]'
    with pytest.raises(DecodeError) as exc:
        decode(raw, Shape.QUESTIONS)
    assert exc.value.kind == DecodeError.SHAPE


def test_decode_question_answer_as_string_is_shape_error():
    raw = '[{"id":"q1","question":"?","options":["a","b","c","d"],"correctAnswer":"1","topic":"t","explanation":"e"}]'
    with pytest.raises(DecodeError) as exc:
        decode(raw, Shape.QUESTIONS)
    assert exc.value.kind == DecodeError.SHAPE


def test_decode_flashcard_missing_answer_is_shape_error():
    with pytest.raises(DecodeError) as exc:
        decode('[{"topic":"t","question":"q"}]', Shape.FLASHCARDS)
    assert exc.value.kind == DecodeError.SHAPE

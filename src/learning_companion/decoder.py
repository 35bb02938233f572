"""Turn free-form generative-model text into validated payloads.

Model output is usually near-valid JSON: wrapped in a markdown fence,
surrounded by a sentence of prose, or carrying a raw newline or an unescaped
double quote inside a natural-language string value. ``decode`` strips the
wrapping, repairs those specific defects inside string values, parses
once, and validates the result against one of three payload shapes.
"""
import json
import logging
import re
from enum import Enum
from typing import Optional

import pydantic
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from learning_companion.errors import DecodeError

logger = logging.getLogger(__name__)

REPAIRED_FIELDS = ("question", "answer", "topic", "explanation", "id")

_FENCE_OPEN_RE = re.compile(r"^```[\w+-]*[ \t]*\r?\n?")
_FENCE_CLOSE_RE = re.compile(r"\r?\n?```\s*$")
_WHITESPACE_RE = re.compile(r"\r\n|[\r\n\t]")
_ESCAPED_QUOTE_MARKER = "\x00ESCAPED_QUOTE\x00"

# A field value runs up to the quote that is followed by the next key, or by
# the end of the enclosing object/array and then more structure. A value that
# itself contains text shaped like `", "key":` or `"}, ` still ends early.
_FIELD_RE = re.compile(
    r'("(?:' + "|".join(REPAIRED_FIELDS) + r')"\s*:\s*")(.*?)"'
    r'(?=\s*(?:,\s*"[A-Za-z_][\w-]*"\s*:|[}\]]\s*(?:[,}\]]|$)))',
    re.DOTALL,
)
_OPTIONS_RE = re.compile(r'("options"\s*:\s*\[)(\s*".*?")(\s*\])(?=\s*[,}])', re.DOTALL)
_STRING_LIST_RE = re.compile(r'^(\[)(\s*".*")(\s*\])$', re.DOTALL)
# An element of a string list ends at the quote followed by the next element
# or the end of the list.
_ELEMENT_RE = re.compile(r'"(.*?)"(?=\s*(?:,\s*"|$))', re.DOTALL)
_ARRAY_START_RE = re.compile(r'\[\s*(?:["{\[\]\-\d]|true|false|null)')


class QuestionPayload(BaseModel):
    model_config = ConfigDict(strict=True, populate_by_name=True)

    id: str
    question: str
    options: list[str]
    correct_answer: int = Field(alias="correctAnswer")
    topic: str
    explanation: str


class FlashcardPayload(BaseModel):
    model_config = ConfigDict(strict=True)

    topic: str
    question: str
    answer: str


class Shape(Enum):
    SUMMARY = "summary"
    QUESTIONS = "questions"
    FLASHCARDS = "flashcards"


_ADAPTERS = {
    Shape.SUMMARY: TypeAdapter(list[pydantic.StrictStr]),
    Shape.QUESTIONS: TypeAdapter(list[QuestionPayload]),
    Shape.FLASHCARDS: TypeAdapter(list[FlashcardPayload]),
}


def strip_fences(text: str) -> str:
    """Remove an opening ``` fence (tagged or not) and its closing fence."""
    if not text.startswith("```"):
        return text
    text = _FENCE_OPEN_RE.sub("", text, count=1)
    text = _FENCE_CLOSE_RE.sub("", text, count=1)
    return text.strip()


def _balanced_end(text: str, start: int) -> int:
    """Index of the bracket closing the one at ``start``, or -1.

    Brackets inside JSON strings are ignored.
    """
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch == "[":
            depth += 1
        elif ch == "]":
            depth -= 1
            if depth == 0:
                return i
    return -1


def _spans_at(text: str, start: int) -> list[str]:
    """Candidate arrays opening at ``start``: balanced close first, then the last ``]``."""
    ends = dict.fromkeys([_balanced_end(text, start), text.rfind("]")])
    return [text[start:end + 1] for end in ends if end > start]


def _parses(candidate: str) -> bool:
    try:
        json.loads(repair_fields(candidate))
    except json.JSONDecodeError:
        return False
    return True


def extract_array(text: str) -> str:
    """Return the outermost ``[...]`` literal in ``text``, dropping any prose.

    Bracketed asides in the prose, like ``[5 total]``, are skipped in favour of
    the first span that parses as JSON once repaired. Unescaped quotes can throw
    the string tracking off; the last ``]`` in the text is used as the closing
    bracket in that case. Text without an array literal is returned unchanged.
    """
    first = None
    for m in _ARRAY_START_RE.finditer(text):
        for span in _spans_at(text, m.start()):
            if _parses(span):
                return span
            if first is None:
                first = span
    if first is not None:
        return first
    start = text.find("[")
    if start == -1:
        return text
    spans = _spans_at(text, start)
    return spans[0] if spans else text


def _clean_value(value: str) -> str:
    value = _WHITESPACE_RE.sub(" ", value)
    value = value.replace('\\"', _ESCAPED_QUOTE_MARKER)
    value = value.replace('"', '\\"')
    return value.replace(_ESCAPED_QUOTE_MARKER, '\\"')


def _repair_elements(text: str) -> str:
    return _ELEMENT_RE.sub(lambda m: '"' + _clean_value(m.group(1)) + '"', text)


def repair_fields(text: str) -> str:
    """Normalize raw whitespace and escape stray quotes inside string values.

    Covers the known object fields, the ``options`` list of a question and
    the elements of a bare list of strings.
    """
    text = _FIELD_RE.sub(lambda m: m.group(1) + _clean_value(m.group(2)) + '"', text)
    text = _OPTIONS_RE.sub(lambda m: m.group(1) + _repair_elements(m.group(2)) + m.group(3), text)
    return _STRING_LIST_RE.sub(lambda m: m.group(1) + _repair_elements(m.group(2)) + m.group(3), text)


def decode(raw_text: str, shape: Shape, limit: Optional[int] = None) -> list:
    """Decode generated text into a list matching ``shape``.

    Returns a list of strings for ``Shape.SUMMARY`` and a list of
    ``QuestionPayload`` / ``FlashcardPayload`` for the other shapes.
    With ``limit``, only the first ``limit`` elements are validated and
    returned. Raises ``DecodeError`` with ``kind`` set to ``"malformed"``
    or ``"shape"``.
    """
    text = extract_array(strip_fences(raw_text.strip()))
    try:
        data = json.loads(repair_fields(text))
    except json.JSONDecodeError as e:
        logger.warning("Failed to parse %s JSON: %s; text: %r", shape.value, e, text[:200])
        raise DecodeError(f"Malformed JSON in {shape.value} response: {e}", DecodeError.MALFORMED, text) from e

    if not isinstance(data, list):
        raise DecodeError(
            f"Expected a JSON array for {shape.value}, got {type(data).__name__}", DecodeError.SHAPE, text,
        )
    try:
        return _ADAPTERS[shape].validate_python(data[:limit])
    except pydantic.ValidationError as e:
        logger.warning("Wrong %s shape: %s", shape.value, e.errors()[0].get("msg", ""))
        raise DecodeError(
            f"Wrong shape for {shape.value}: {e.error_count()} problem(s), first at "
            f"{'.'.join(str(p) for p in e.errors()[0]['loc'])}",
            DecodeError.SHAPE,
            text,
        ) from e

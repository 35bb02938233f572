"""Assessment engine: answer recording, scoring and result presentation."""
import math
from typing import NamedTuple

from learning_companion.errors import AnswerLockedError, ValidationError
from learning_companion.models import OPTION_COUNT, Question, TestResult, now


class Score(NamedTuple):
    correct_count: int
    incorrect_question_ids: list[str]


def _by_id(questions: list[Question]) -> dict[str, Question]:
    return {q.id: q for q in questions}


def record_answer(questions: list[Question], answers: dict, question_id: str, option_index: int) -> bool:
    """Record the selected option for a question and return whether it is correct.

    An answer, once recorded, is locked: a second write for the same question
    raises ``AnswerLockedError`` even if it selects the same option.
    """
    question = _by_id(questions).get(question_id)
    if question is None:
        raise ValidationError(f"Unknown question id: {question_id!r}")
    if not 0 <= option_index < OPTION_COUNT:
        raise ValidationError(f"Option index {option_index} outside 0-{OPTION_COUNT - 1}")
    if question_id in answers:
        raise AnswerLockedError(f"Question {question_id!r} is already answered")
    answers[question_id] = option_index
    return option_index == question.correct_answer


def score(questions: list[Question], answers: dict) -> Score:
    """Count correct answers. Unanswered questions count as incorrect."""
    incorrect = [q.id for q in questions if answers.get(q.id) != q.correct_answer]
    return Score(len(questions) - len(incorrect), incorrect)


def is_complete(questions: list[Question], answers: dict) -> bool:
    return all(q.id in answers for q in questions)


def incorrect_topics(questions: list[Question], incorrect_ids) -> list[str]:
    """Topics of the incorrect questions, deduplicated in first-seen order."""
    wanted = set(incorrect_ids)
    topics = []
    for q in questions:
        if q.id in wanted and q.topic not in topics:
            topics.append(q.topic)
    return topics


def build_test_result(document_id: str, questions: list[Question], answers: dict) -> TestResult:
    result = score(questions, answers)
    return TestResult(
        document_id=document_id,
        score=result.correct_count,
        total_questions=len(questions),
        incorrect_questions=tuple(result.incorrect_question_ids),
        completed_at=now(),
    )


def percentage(correct: int, total: int) -> int:
    if total == 0:
        return 0
    return math.floor(correct / total * 100 + 0.5)


def result_message(pct: int) -> str:
    if pct == 100:
        return "Perfect Score!"
    elif pct >= 80:
        return "Excellent Work!"
    elif pct >= 60:
        return "Good Job!"
    return "Keep Going!"


def result_color(pct: int) -> str:
    if pct == 100:
        return "green"
    elif pct >= 80:
        return "cyan"
    elif pct >= 60:
        return "yellow"
    return "red"

"""Data classes for the learning-cycle domain model."""
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Optional

from learning_companion.errors import ValidationError

OPTION_COUNT = 4


def new_id() -> str:
    return uuid.uuid4().hex


def now() -> str:
    return datetime.now().isoformat()


@dataclass
class Document:
    id: str
    name: str
    content: str
    summary: list[str] = field(default_factory=list)
    uploaded_at: str = ""

    @classmethod
    def create(cls, name: str, content: str, summary: list[str]) -> "Document":
        """Build a freshly uploaded document with a new id and timestamp."""
        return cls(id=new_id(), name=name, content=content, summary=list(summary), uploaded_at=now())

    def without_content(self) -> "Document":
        return replace(self, content="", summary=list(self.summary))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "content": self.content,
            "summary": list(self.summary),
            "uploadedAt": self.uploaded_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Document":
        return cls(
            id=data["id"],
            name=data["name"],
            content=data.get("content", ""),
            summary=list(data.get("summary", [])),
            uploaded_at=data.get("uploadedAt", ""),
        )


@dataclass(frozen=True)
class Question:
    id: str
    question: str
    options: tuple[str, ...]
    correct_answer: int
    topic: str
    explanation: str = ""

    def __post_init__(self):
        if len(self.options) != OPTION_COUNT:
            raise ValidationError(
                f"Question {self.id!r} has {len(self.options)} options, expected {OPTION_COUNT}"
            )
        if not 0 <= self.correct_answer < OPTION_COUNT:
            raise ValidationError(
                f"Question {self.id!r} has correct answer index {self.correct_answer} outside 0-{OPTION_COUNT - 1}"
            )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "question": self.question,
            "options": list(self.options),
            "correctAnswer": self.correct_answer,
            "topic": self.topic,
            "explanation": self.explanation,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Question":
        return cls(
            id=data["id"],
            question=data["question"],
            options=tuple(data["options"]),
            correct_answer=data["correctAnswer"],
            topic=data["topic"],
            explanation=data.get("explanation", ""),
        )


@dataclass(frozen=True)
class TestResult:
    # Not a test case; keeps pytest from collecting it.
    __test__ = False

    document_id: str
    score: int
    total_questions: int
    incorrect_questions: tuple[str, ...] = ()
    completed_at: str = ""

    def to_dict(self) -> dict:
        return {
            "documentId": self.document_id,
            "score": self.score,
            "totalQuestions": self.total_questions,
            "incorrectQuestions": list(self.incorrect_questions),
            "completedAt": self.completed_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TestResult":
        return cls(
            document_id=data["documentId"],
            score=data["score"],
            total_questions=data["totalQuestions"],
            incorrect_questions=tuple(data.get("incorrectQuestions", [])),
            completed_at=data.get("completedAt", ""),
        )


@dataclass(frozen=True)
class Flashcard:
    id: str
    topic: str
    question: str
    answer: str
    mastered: bool = False

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "topic": self.topic,
            "question": self.question,
            "answer": self.answer,
            "mastered": self.mastered,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Flashcard":
        return cls(
            id=data["id"],
            topic=data["topic"],
            question=data["question"],
            answer=data["answer"],
            mastered=bool(data.get("mastered", False)),
        )


@dataclass(frozen=True)
class FlashcardRequest:
    """Distinct incorrect topics, in first-seen order, to request cards for."""
    topics: tuple[str, ...] = ()
    document_id: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.topics

"""Session state: the single aggregate of document, assessment and remediation."""
import logging
from typing import Optional

from learning_companion import assessment, remediation
from learning_companion.errors import SessionStateError, StaleResponseError, ValidationError
from learning_companion.models import Document, Flashcard, Question, TestResult

logger = logging.getLogger(__name__)


class Session:
    """Current document plus everything derived from it.

    Fields are only changed through the transition methods. Each transition
    validates first and assigns last, so a rejected call leaves the session as
    it was.

    ``generation`` increases whenever the document is replaced or the test is
    reset. Callers capture it before an external call and hand it back with
    the result; results for an older generation raise ``StaleResponseError``.
    """

    def __init__(self):
        self.document: Optional[Document] = None
        self.questions: list[Question] = []
        self.answers: dict[str, int] = {}
        self.test_result: Optional[TestResult] = None
        self.flashcards: list[Flashcard] = []
        self.generation = 0

    def _check_generation(self, generation: Optional[int]) -> None:
        if generation is not None and generation != self.generation:
            raise StaleResponseError(
                f"Result for generation {generation} discarded, session is at {self.generation}"
            )

    def _require_document(self) -> Document:
        if self.document is None:
            raise SessionStateError("No document loaded")
        return self.document

    def _clear_assessment(self) -> None:
        self.questions = []
        self.answers = {}
        self.test_result = None
        self.flashcards = []
        self.generation += 1

    # --- transitions ---

    def replace_document(self, document: Document, generation: Optional[int] = None) -> None:
        """Install a new document and drop all state derived from the old one."""
        self._check_generation(generation)
        self.document = document
        self._clear_assessment()
        logger.info("Document %s (%s) installed", document.id, document.name)

    def reset_test(self) -> None:
        """Clear questions, answers, result and flashcards; keep the document."""
        self._require_document()
        self._clear_assessment()

    def install_questions(self, questions: list[Question], generation: Optional[int] = None) -> None:
        self._check_generation(generation)
        self._require_document()
        if not questions:
            raise ValidationError("Question set is empty")
        ids = [q.id for q in questions]
        if len(set(ids)) != len(ids):
            raise ValidationError("Question ids are not unique")
        self.questions = list(questions)
        self.answers = {}
        self.test_result = None
        self.flashcards = []

    def record_answer(self, question_id: str, option_index: int) -> bool:
        return assessment.record_answer(self.questions, self.answers, question_id, option_index)

    def is_complete(self) -> bool:
        return bool(self.questions) and assessment.is_complete(self.questions, self.answers)

    def submit_test(self) -> TestResult:
        """Score the current answers. Unanswered questions count as incorrect."""
        document = self._require_document()
        if not self.questions:
            raise SessionStateError("No questions to submit")
        result = assessment.build_test_result(document.id, self.questions, self.answers)
        self.test_result = result
        self.flashcards = []
        logger.info("Test scored %d/%d", result.score, result.total_questions)
        return result

    def flashcard_request(self):
        if self.test_result is None:
            raise SessionStateError("Test has not been submitted")
        return remediation.build_flashcard_request(self.questions, self.test_result)

    def install_flashcards(self, flashcards: list[Flashcard], generation: Optional[int] = None) -> None:
        self._check_generation(generation)
        if self.test_result is None:
            raise SessionStateError("Test has not been submitted")
        self.flashcards = list(flashcards)

    def mark_mastered(self, card_id: str) -> None:
        self.flashcards = remediation.mark_mastered(self.flashcards, card_id)

    def remaining_flashcards(self) -> list[Flashcard]:
        return remediation.remaining(self.flashcards)

    # --- persistence projection ---

    def to_persisted(self) -> dict:
        """Everything except the document's raw content, which is blanked."""
        return {
            "document": self.document.without_content().to_dict() if self.document else None,
            "questions": [q.to_dict() for q in self.questions],
            "answers": dict(self.answers),
            "testResult": self.test_result.to_dict() if self.test_result else None,
            "flashcards": [card.to_dict() for card in self.flashcards],
        }

    @classmethod
    def from_persisted(cls, data: dict) -> "Session":
        session = cls()
        if data.get("document"):
            session.document = Document.from_dict(data["document"])
        session.questions = [Question.from_dict(q) for q in data.get("questions", [])]
        known = {q.id for q in session.questions}
        session.answers = {qid: idx for qid, idx in data.get("answers", {}).items() if qid in known}
        if data.get("testResult"):
            session.test_result = TestResult.from_dict(data["testResult"])
        session.flashcards = [Flashcard.from_dict(c) for c in data.get("flashcards", [])]
        return session

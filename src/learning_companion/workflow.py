"""Learning-cycle steps: upload, quiz preparation, submission and remediation.

Each step does its external work first and touches the session only once the
result is fully decoded, so a failed step leaves earlier progress in place.
"""
import logging

from learning_companion.errors import SessionStateError
from learning_companion.generation import Generator, generate_flashcards, generate_questions, summarize
from learning_companion.importer import import_file
from learning_companion.models import Document, Flashcard, Question, TestResult
from learning_companion.session import Session

logger = logging.getLogger(__name__)


def upload_document(session: Session, file_path: str, generate: Generator) -> Document:
    """Extract and summarize a file, then make it the current document."""
    imported = import_file(file_path)
    generation = session.generation
    summary = summarize(imported["content"], generate)
    document = Document.create(imported["filename"], imported["content"], summary)
    session.replace_document(document, generation)
    return document


def prepare_quiz(session: Session, generate: Generator) -> list[Question]:
    """Questions for the current document, generating them if there are none yet."""
    if session.document is None:
        raise SessionStateError("Upload a document first")
    if session.questions:
        return session.questions
    generation = session.generation
    questions = generate_questions(session.document.summary, generate)
    session.install_questions(questions, generation)
    return session.questions


def submit_test(session: Session) -> TestResult:
    if not session.is_complete():
        logger.info("Submitting with %d unanswered question(s)",
                    len(session.questions) - len(session.answers))
    return session.submit_test()


def prepare_flashcards(session: Session, generate: Generator) -> list[Flashcard]:
    """Flashcards for the missed topics, generated once per test result."""
    request = session.flashcard_request()
    if session.flashcards:
        return session.flashcards
    generation = session.generation
    cards = generate_flashcards(request, generate)
    session.install_flashcards(cards, generation)
    return session.flashcards


def retake(session: Session, generate: Generator) -> list[Question]:
    """Start over with a fresh question set from the stored summary."""
    session.reset_test()
    return prepare_quiz(session, generate)

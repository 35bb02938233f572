"""Remediation: flashcard requests for missed topics and mastery tracking."""
import logging
from dataclasses import replace

from learning_companion.assessment import incorrect_topics
from learning_companion.errors import ValidationError
from learning_companion.models import Flashcard, FlashcardRequest, Question, TestResult, new_id

logger = logging.getLogger(__name__)


def _topic_key(topic: str) -> str:
    return " ".join(topic.split()).casefold()


def build_flashcard_request(questions: list[Question], test_result: TestResult) -> FlashcardRequest:
    """One topic per distinct incorrect topic, not one per incorrect question."""
    topics = incorrect_topics(questions, test_result.incorrect_questions)
    return FlashcardRequest(topics=tuple(topics), document_id=test_result.document_id)


def materialize(decoded_cards, topics=None) -> list[Flashcard]:
    """Attach a fresh id and ``mastered=False`` to each decoded card.

    When ``topics`` is given, only the first card for each requested topic is
    kept and its topic is set to the requested spelling.
    """
    if topics is None:
        return [
            Flashcard(id=new_id(), topic=c.topic, question=c.question, answer=c.answer)
            for c in decoded_cards
        ]

    requested = {_topic_key(t): t for t in topics}
    seen = set()
    cards = []
    for c in decoded_cards:
        key = _topic_key(c.topic)
        if key not in requested:
            logger.warning("Dropping flashcard for unrequested topic %r", c.topic)
            continue
        if key in seen:
            logger.warning("Dropping duplicate flashcard for topic %r", c.topic)
            continue
        seen.add(key)
        cards.append(Flashcard(id=new_id(), topic=requested[key], question=c.question, answer=c.answer))
    return cards


def mark_mastered(flashcards: list[Flashcard], card_id: str) -> list[Flashcard]:
    """Return the set with ``card_id`` mastered. Marking twice changes nothing."""
    if not any(card.id == card_id for card in flashcards):
        raise ValidationError(f"Unknown flashcard id: {card_id!r}")
    return [
        replace(card, mastered=True) if card.id == card_id and not card.mastered else card
        for card in flashcards
    ]


def remaining(flashcards: list[Flashcard]) -> list[Flashcard]:
    return [card for card in flashcards if not card.mastered]


def is_cycle_complete(flashcards: list[Flashcard]) -> bool:
    return not remaining(flashcards)

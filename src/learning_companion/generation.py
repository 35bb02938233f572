"""Prompt templates and the three generation contracts.

A generator is any callable taking a prompt string, plus an optional
``max_tokens`` budget keyword, and returning raw text.
The core never retries: a failed call raises ``GenerationError`` and the
caller decides whether to ask again.
"""
import logging
from typing import Callable, Optional

import anthropic

from learning_companion.config import Config
from learning_companion.decoder import Shape, decode
from learning_companion.errors import GenerationError, ValidationError
from learning_companion.models import Flashcard, FlashcardRequest, Question
from learning_companion.remediation import materialize

logger = logging.getLogger(__name__)

Generator = Callable[..., str]

QUESTION_COUNT = 10

# Output token budgets per step.
SUMMARY_MAX_TOKENS = 2000
QUESTIONS_MAX_TOKENS = 3000
FLASHCARDS_MAX_TOKENS = 800

SUMMARY_PROMPT = """Analyze the following document and extract 5-10 key takeaways. \
Present them as a JSON array of strings, where each string is a clear, concise main point \
from the document. Format your response as valid JSON only, with no additional text.

Document:
{content}

Return format: ["key point 1", "key point 2", ...]"""

QUESTIONS_PROMPT = """Based on the following key takeaways from a document, generate exactly \
{count} multiple choice questions that test understanding (not just memorization). \
Each question should have 4 options with only one correct answer.

Key Takeaways:
{takeaways}

Return the questions as a JSON array with this exact structure:
[
  {{
    "id": "q1",
    "question": "question text",
    "options": ["option A", "option B", "option C", "option D"],
    "correctAnswer": 0,
    "topic": "which key takeaway this relates to",
    "explanation": "why the correct answer is correct"
  }}
]

Generate exactly {count} questions. Return only valid JSON with no additional text."""

FLASHCARDS_PROMPT = """Create ONE simple flashcard for each topic.

Topics: {topics}

Return ONLY valid JSON array:
[
  {{
    "id": "fc1",
    "topic": "topic name",
    "question": "simple question",
    "answer": "simple answer in 1 sentence, 20 words max",
    "mastered": false
  }}
]

CRITICAL RULES:
- Exactly 1 flashcard per topic
- Answers must be under 20 words
- Use ONLY simple words, NO apostrophes, NO quotes
- NO special characters or punctuation except periods
- Return ONLY the JSON array, nothing else"""


class AnthropicGenerator:
    """Generator backed by the Anthropic Messages API."""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None, max_tokens: Optional[int] = None):
        self.api_key = api_key or Config.ANTHROPIC_API_KEY
        self.model = model or Config.MODEL_NAME
        self.max_tokens = max_tokens or Config.MAX_TOKENS
        self._client = None

    def _get_client(self) -> anthropic.Anthropic:
        if not self.api_key:
            raise GenerationError("ANTHROPIC_API_KEY is not configured")
        if self._client is None:
            # No automatic retries.
            self._client = anthropic.Anthropic(api_key=self.api_key, max_retries=0)
        return self._client

    def __call__(self, prompt: str, max_tokens: Optional[int] = None) -> str:
        client = self._get_client()
        try:
            message = client.messages.create(
                model=self.model,
                max_tokens=min(max_tokens or self.max_tokens, self.max_tokens),
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.APIError as e:
            logger.error("Generation call failed: %s", e)
            raise GenerationError(f"Generation call failed: {e}") from e

        if not message.content or message.content[0].type != "text":
            raise GenerationError("Unexpected response type")
        return message.content[0].text


def _call(generate: Generator, prompt: str, kind: str, max_tokens: int) -> str:
    logger.info("Requesting %s (%d prompt chars)", kind, len(prompt))
    text = generate(prompt, max_tokens=max_tokens)
    if not isinstance(text, str):
        raise GenerationError(f"{kind} call returned {type(text).__name__}, expected text")
    logger.info("Received %s response (%d chars)", kind, len(text))
    return text


def summarize(content: str, generate: Generator, max_chars: Optional[int] = None) -> list[str]:
    """Key takeaways for a document, in the order the model ranked them."""
    if not content or not content.strip():
        raise ValidationError("Document content is required")
    limited = content[:max_chars or Config.MAX_DOCUMENT_CHARS]
    prompt = SUMMARY_PROMPT.format(content=limited)
    points = decode(_call(generate, prompt, "summary", SUMMARY_MAX_TOKENS), Shape.SUMMARY)
    if not points:
        raise ValidationError("Summary contains no key points")
    return points


def generate_questions(summary: list[str], generate: Generator) -> list[Question]:
    """Multiple-choice questions from summary points.

    Over-production is truncated to ``QUESTION_COUNT``; fewer questions are
    accepted as they are.
    """
    if not summary:
        raise ValidationError("Summary is required to generate questions")
    takeaways = "\n".join(f"{i}. {point}" for i, point in enumerate(summary, 1))
    prompt = QUESTIONS_PROMPT.format(count=QUESTION_COUNT, takeaways=takeaways)
    text = _call(generate, prompt, "questions", QUESTIONS_MAX_TOKENS)
    payloads = decode(text, Shape.QUESTIONS, limit=QUESTION_COUNT)
    if not payloads:
        raise ValidationError("No questions were generated")
    return [
        Question(
            id=p.id,
            question=p.question,
            options=tuple(p.options),
            correct_answer=p.correct_answer,
            topic=p.topic,
            explanation=p.explanation,
        )
        for p in payloads
    ]


def generate_flashcards(request: FlashcardRequest, generate: Generator) -> list[Flashcard]:
    """One flashcard per requested topic. An empty request makes no call."""
    if request.is_empty:
        return []
    topics = ", ".join(f"{i}. {topic}" for i, topic in enumerate(request.topics, 1))
    prompt = FLASHCARDS_PROMPT.format(topics=topics)
    decoded = decode(_call(generate, prompt, "flashcards", FLASHCARDS_MAX_TOKENS), Shape.FLASHCARDS)
    return materialize(decoded, request.topics)

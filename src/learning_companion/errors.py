"""Exception taxonomy for the learning cycle."""

SNIPPET_LENGTH = 500


class LearningCompanionError(Exception):
    """Base class for every failure raised by the core."""


class ExtractionError(LearningCompanionError):
    """The uploaded file is unsupported, corrupt or empty."""


class GenerationError(LearningCompanionError):
    """The generative call failed or returned something other than text."""


class DecodeError(LearningCompanionError):
    """Generated text could not be turned into the expected structure.

    ``kind`` is ``"malformed"`` when the text is not parseable JSON and
    ``"shape"`` when it parsed but does not match the expected payload.
    """

    MALFORMED = "malformed"
    SHAPE = "shape"

    def __init__(self, message: str, kind: str, snippet: str = ""):
        super().__init__(message)
        self.kind = kind
        self.snippet = snippet[:SNIPPET_LENGTH]


class ValidationError(LearningCompanionError):
    """Decoded or submitted data violates a data-model invariant."""


class AnswerLockedError(ValidationError):
    """An answer was already recorded for this question."""


class SessionStateError(LearningCompanionError):
    """A transition was requested that the current session cannot take."""


class StaleResponseError(LearningCompanionError):
    """A generation result arrived for a session generation that has moved on."""

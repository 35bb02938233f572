import json

import pytest

from learning_companion.models import Document, Question


class FakeGenerator:
    """Stands in for the generative call: returns canned responses in order."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.prompts = []
        self.budgets = []

    def __call__(self, prompt, max_tokens=None):
        self.prompts.append(prompt)
        self.budgets.append(max_tokens)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_state.db")
    return db_path


@pytest.fixture
def make_generator():
    return FakeGenerator


@pytest.fixture
def questions():
    """Three questions with correct answers [1, 0, 2]; q1 and q2 share a topic."""
    return [
        Question(id="q1", question="What is a cell?", options=("Atom", "Basic unit of life", "Organ", "Tissue"),
                 correct_answer=1, topic="cells", explanation="Cells are the basic unit of life."),
        Question(id="q2", question="Where is DNA stored?", options=("Nucleus", "Membrane", "Wall", "Vacuole"),
                 correct_answer=0, topic="cells", explanation="DNA lives in the nucleus."),
        Question(id="q3", question="What makes ATP?", options=("Ribosome", "Golgi", "Mitochondria", "Lysosome"),
                 correct_answer=2, topic="energy", explanation="Mitochondria produce ATP."),
    ]


@pytest.fixture
def questions_json(questions):
    return json.dumps([q.to_dict() for q in questions])


@pytest.fixture
def document():
    return Document.create("biology.txt", "Cells are the basic unit of life.", ["Cells are units", "ATP is energy"])

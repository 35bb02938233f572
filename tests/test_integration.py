# tests/test_integration.py
"""End-to-end test of the learning cycle."""
import json

from learning_companion import workflow
from learning_companion.db import init_db, load_session, save_session
from learning_companion.remediation import is_cycle_complete
from learning_companion.session import Session


def test_full_learning_cycle(tmp_db, tmp_path, questions, make_generator):
    init_db(tmp_db)
    f = tmp_path / "biology.txt"
    f.write_text("Cells are the basic unit of life. Mitochondria make ATP.")

    # The model wraps its output in fences and prose, and forgets to escape quotes.
    generate = make_generator(
        'Here are the key takeaways:\n```json\n["Cells are units", "ATP is energy"]\n```',
        "```json\n" + json.dumps([q.to_dict() for q in questions]) + "\n```",
        '```json\n[{"id":"fc1","topic":"cells","question":"What is a "cell"?",'
        '"answer":"The basic\nunit of life.","mastered":false}]\n```',
    )

    session = Session()
    workflow.upload_document(session, str(f), generate)
    assert session.document.summary == ["Cells are units", "ATP is energy"]

    workflow.prepare_quiz(session, generate)
    for qid, idx in {"q1": 1, "q2": 1, "q3": 2}.items():
        session.record_answer(qid, idx)
    assert session.is_complete()
    result = workflow.submit_test(session)
    assert result.score == 2
    assert result.score + len(result.incorrect_questions) == result.total_questions

    cards = workflow.prepare_flashcards(session, generate)
    assert len(cards) == 1
    assert cards[0].question == 'What is a "cell"?'
    assert cards[0].answer == "The basic unit of life."
    save_session(tmp_db, session)

    # Reload: progress survives, document text does not.
    restored = load_session(tmp_db)
    assert restored.document.content == ""
    assert restored.test_result == result
    restored.mark_mastered(restored.flashcards[0].id)
    assert is_cycle_complete(restored.flashcards)
    save_session(tmp_db, restored)
    assert load_session(tmp_db).flashcards[0].mastered is True

    # Retake reuses the stored summary.
    retake_generate = make_generator(json.dumps([q.to_dict() for q in questions]))
    workflow.retake(restored, retake_generate)
    assert "1. Cells are units" in retake_generate.prompts[0]
    assert restored.test_result is None
    assert restored.flashcards == []

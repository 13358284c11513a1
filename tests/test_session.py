from __future__ import annotations

import pytest

from persona_core.question_bank import load_bank, questions_from_texts, quiz_from_dict
from persona_core.session import InvalidAnswer, QuizSession, SessionComplete


def _quiz(**overrides):
    raw = {
        "id": "t",
        "title": "Test",
        "choiceMode": "2-choice",
        "formula": {"normalization": {"enabled": False}, "aggregation": "weighted"},
        "groups": [{"id": "fears", "name": "Fears", "weight": 2}],
        "questions": [
            {"id": "a", "text": "A", "category": "thinking-feeling", "groupId": "fears",
             "options": [{"id": "a-l", "direction": "left"},
                         {"id": "a-r", "direction": "right", "skipTo": "c"}]},
            {"id": "b", "text": "B", "category": "general",
             "options": [{"id": "b-l", "direction": "left"}, {"id": "b-r", "direction": "right"}]},
            {"id": "c", "text": "C", "category": "general",
             "options": [{"id": "c-l", "direction": "left",
                          "weights": {"sensing": 4}}, {"id": "c-r", "direction": "right"}]},
        ],
    }
    raw.update(overrides)
    return quiz_from_dict(raw)


def test_default_bank_loads():
    quiz = load_bank()
    assert quiz.title == "Communication Style Assessment"
    assert len(quiz.questions) == 5
    assert quiz.choice_mode == "3-choice"
    assert quiz.formula.weight_domain == "signed"


def test_all_agree_run_on_default_bank():
    session = QuizSession()
    for _ in range(5):
        session.answer("right")
    assert session.done
    result = session.finalize()
    by = {s.bucket_id: s for s in result.scores}
    assert by["feeling"].raw_score == 5 and by["intuition"].raw_score == 5
    assert by["thinking"].raw_score == -2 and by["sensing"].raw_score == -2
    assert [s.bucket_id for s in result.scores] == ["feeling", "intuition", "thinking", "sensing"]
    assert result.top_buckets == ["feeling", "intuition"]
    assert result.meta["incomplete"] is False


def test_running_scores_after_first_swipe():
    session = QuizSession()
    assert session.alignment_phrase() == "Consider how you typically make decisions..."
    scores = session.answer("left")
    assert scores[0].bucket_id == "thinking" and scores[0].normalized_score == 2
    assert session.progress() == pytest.approx(20.0)


def test_neutral_rejected_in_two_choice_mode():
    session = QuizSession(_quiz())
    with pytest.raises(InvalidAnswer):
        session.answer("up")
    with pytest.raises(InvalidAnswer):
        session.answer("diagonal")
    assert session.answers == []


def test_group_weight_and_branching():
    session = QuizSession(_quiz())
    session.answer("right")
    # right on "a" jumps straight to "c"
    assert session.current_question().id == "c"
    scores = {s.bucket_id: s.raw_score for s in session.answer("left")}
    assert scores["feeling"] == 4  # 2 x group weight 2
    assert scores["thinking"] == -2
    assert scores["sensing"] == 4
    assert session.done
    with pytest.raises(SessionComplete):
        session.answer("left")


def test_skip_records_zero_contribution():
    session = QuizSession(_quiz())
    session.answer("skip")
    assert session.answers[0].option_id == "skipped"
    assert all(s.raw_score == 0 for s in session.scores())


def test_unfinished_session_is_marked_incomplete():
    session = QuizSession(_quiz())
    session.answer("left")
    result = session.finalize()
    assert result.meta == {"answered": 1, "total_questions": 3, "incomplete": True}


def test_generated_questions_use_general_contributions():
    qs = questions_from_texts(["  I like plans  ", "I trust hunches"])
    assert [q.id for q in qs] == ["generated-0", "generated-1"]
    assert qs[0].text == "I like plans"
    right = qs[0].option_for("right")
    assert right.weights.feeling == 1 and right.weights.intuition == 1

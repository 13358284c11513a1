# persona_core/session.py
from __future__ import annotations
from datetime import datetime, timezone
from typing import Dict, List, Optional
import logging

from .types import AnsweredQuestion, BucketWeights, Question, Quiz, QuizResult, ScoringResult
from .question_bank import load_bank
from .scoring import calculate_scores, top_buckets

log = logging.getLogger(__name__)

DIRECTIONS = ("left", "right", "up", "skip")


class InvalidAnswer(ValueError):
    pass


class SessionComplete(RuntimeError):
    pass


class QuizSession:
    """One user's pass through a quiz: swipe in, running bucket scores out."""

    def __init__(self, quiz: Optional[Quiz] = None):
        self.quiz: Quiz = quiz if quiz is not None else load_bank()
        self.answers: List[AnsweredQuestion] = []
        self._index = 0
        self._scores: List[ScoringResult] = calculate_scores([], self.quiz.formula)
        self._pos: Dict[str, int] = {q.id: i for i, q in enumerate(self.quiz.questions)}
        self.completed_at: Optional[str] = None

    @property
    def done(self) -> bool:
        return self._index >= len(self.quiz.questions)

    def current_question(self) -> Optional[Question]:
        if self.done:
            return None
        return self.quiz.questions[self._index]

    def progress(self) -> float:
        total = len(self.quiz.questions)
        if total == 0:
            return 100.0
        return min(self._index, total) / total * 100.0

    def alignment_phrase(self) -> Optional[str]:
        q = self.current_question()
        if q is None:
            return None
        return self.quiz.alignment_phrases.get(q.category)

    def answer(self, direction: str) -> List[ScoringResult]:
        q = self.current_question()
        if q is None:
            raise SessionComplete("quiz already complete")
        if direction not in DIRECTIONS:
            raise InvalidAnswer(f"unknown direction '{direction}'")
        if direction == "up" and self.quiz.choice_mode != "3-choice":
            raise InvalidAnswer("neutral answers are disabled for this quiz")

        opt = q.option_for(direction) if direction != "skip" else None
        if opt is None and direction != "skip":
            raise InvalidAnswer(f"question {q.id} has no '{direction}' option")

        self.answers.append(AnsweredQuestion(
            question_id=q.id,
            option_id=opt.id if opt else "skipped",
            weights=opt.weights if opt else BucketWeights(),
            group_weight=self.quiz.group_weight(q.group_id),
            direction=direction,
        ))
        self._scores = calculate_scores(self.answers, self.quiz.formula)
        self._advance(opt.skip_to if opt else None)
        return self._scores

    def _advance(self, skip_to: Optional[str]) -> None:
        target = self._pos.get(skip_to) if skip_to else None
        if target is not None and target > self._index:
            log.debug("branching from %s to %s", self.quiz.questions[self._index].id, skip_to)
            self._index = target
        else:
            self._index += 1
        if self.done and self.completed_at is None:
            self.completed_at = datetime.now(timezone.utc).isoformat()

    def scores(self) -> List[ScoringResult]:
        return list(self._scores)

    def finalize(self) -> QuizResult:
        return QuizResult(
            quiz_id=self.quiz.id,
            formula_id=self.quiz.formula.id,
            answers=list(self.answers),
            scores=list(self._scores),
            top_buckets=top_buckets(self._scores),
            blur_non_top=self.quiz.formula.blur_non_top,
            completed_at=self.completed_at or datetime.now(timezone.utc).isoformat(),
            meta={
                "answered": len(self.answers),
                "total_questions": len(self.quiz.questions),
                "incomplete": not self.done,
            },
        )

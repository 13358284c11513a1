from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Mapping, Optional, TYPE_CHECKING
import math

if TYPE_CHECKING:
    from .formula import ScoringFormula

ChoiceMode = Literal["2-choice", "3-choice"]


def _num(v: Any) -> float:
    try:
        f = float(v)
    except (TypeError, ValueError):
        return 0.0
    return f if math.isfinite(f) else 0.0


@dataclass(frozen=True)
class BucketWeights:
    feeling: float = 0.0
    sensing: float = 0.0
    intuition: float = 0.0
    thinking: float = 0.0

    @classmethod
    def from_mapping(cls, raw: Optional[Mapping[str, Any]]) -> "BucketWeights":
        """Missing or non-numeric entries count as zero; unknown keys are ignored."""
        if isinstance(raw, BucketWeights):
            return raw
        if not isinstance(raw, Mapping):
            raw = {}
        return cls(
            feeling=_num(raw.get("feeling", 0.0)),
            sensing=_num(raw.get("sensing", 0.0)),
            intuition=_num(raw.get("intuition", 0.0)),
            thinking=_num(raw.get("thinking", 0.0)),
        )

    def get(self, bucket_id: str) -> float:
        return self.to_dict().get(bucket_id, 0.0)

    def total(self) -> float:
        return self.feeling + self.sensing + self.intuition + self.thinking

    def to_dict(self) -> Dict[str, float]:
        return {"feeling": self.feeling, "sensing": self.sensing,
                "intuition": self.intuition, "thinking": self.thinking}


@dataclass(frozen=True)
class AnsweredQuestion:
    question_id: str
    option_id: str
    weights: BucketWeights
    group_weight: Optional[float] = None
    direction: Optional[str] = None

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "AnsweredQuestion":
        gw = d.get("groupWeight", d.get("group_weight"))
        return cls(
            question_id=str(d.get("questionId", d.get("question_id", ""))),
            option_id=str(d.get("answerId", d.get("optionId", d.get("option_id", "")))),
            weights=BucketWeights.from_mapping(
                d.get("bucketWeights", d.get("contributionMap", d.get("weights")))
            ),
            group_weight=None if gw is None else _num(gw),
            direction=d.get("direction"),
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "questionId": self.question_id,
            "optionId": self.option_id,
            "bucketWeights": self.weights.to_dict(),
        }
        if self.group_weight is not None:
            out["groupWeight"] = self.group_weight
        if self.direction:
            out["direction"] = self.direction
        return out


@dataclass(frozen=True)
class ScoringResult:
    bucket_id: str
    bucket_name: str
    raw_score: float
    normalized_score: float
    rank: int
    is_top_k: bool
    color: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bucketId": self.bucket_id,
            "bucketName": self.bucket_name,
            "rawScore": self.raw_score,
            "normalizedScore": self.normalized_score,
            "rank": self.rank,
            "isTopK": self.is_top_k,
            "color": self.color,
        }


@dataclass
class AnswerOption:
    id: str
    label: str
    direction: str
    weights: BucketWeights = field(default_factory=BucketWeights)
    skip_to: Optional[str] = None


@dataclass
class Question:
    id: str
    text: str
    options: List[AnswerOption]
    category: str = "general"
    group_id: Optional[str] = None

    def option_for(self, direction: str) -> Optional[AnswerOption]:
        return next((o for o in self.options if o.direction == direction), None)


@dataclass
class QuestionGroup:
    id: str
    name: str
    weight: float = 1.0
    description: str = ""


@dataclass
class Quiz:
    id: str
    title: str
    questions: List[Question]
    formula: "ScoringFormula"
    choice_mode: ChoiceMode = "3-choice"
    alignment_phrases: Dict[str, str] = field(default_factory=dict)
    groups: List[QuestionGroup] = field(default_factory=list)

    def group_weight(self, group_id: Optional[str]) -> Optional[float]:
        if not group_id:
            return None
        g = next((g for g in self.groups if g.id == group_id), None)
        return g.weight if g else None


@dataclass
class QuizResult:
    quiz_id: str
    formula_id: str
    answers: List[AnsweredQuestion]
    scores: List[ScoringResult]
    top_buckets: List[str]
    blur_non_top: bool
    completed_at: str
    meta: Dict[str, Any] = field(default_factory=dict)

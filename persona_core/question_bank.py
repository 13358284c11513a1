
from __future__ import annotations
import json, importlib.resources as ir
from typing import Any, Dict, List, Mapping, Sequence
from .types import AnswerOption, BucketWeights, Question, QuestionGroup, Quiz
from .formula import formula_from_dict, formula_to_dict
from .weights import contribution_map

SWIPE_LABELS = {"left": "Disagree", "right": "Agree", "up": "Neutral"}


def _option(raw: Mapping[str, Any], category: str) -> AnswerOption:
    direction = str(raw.get("direction") or raw.get("swipeMapping") or "")
    w = raw.get("weights", raw.get("bucketWeights"))
    weights = BucketWeights.from_mapping(w) if w is not None else contribution_map(direction, category)
    return AnswerOption(
        id=str(raw["id"]),
        label=str(raw.get("label") or SWIPE_LABELS.get(direction, direction)),
        direction=direction,
        weights=weights,
        skip_to=raw.get("skipTo", raw.get("skip_to")),
    )


def quiz_from_dict(raw: Mapping[str, Any]) -> Quiz:
    questions: List[Question] = []
    for q in raw.get("questions") or []:
        category = str(q.get("category") or (q.get("meta") or {}).get("category") or "general")
        questions.append(Question(
            id=str(q["id"]),
            text=str(q.get("text", "")),
            options=[_option(o, category) for o in q.get("options") or q.get("answerOptions") or []],
            category=category,
            group_id=q.get("groupId", q.get("group_id")),
        ))
    groups = [
        QuestionGroup(id=str(g["id"]), name=str(g.get("name", g["id"])),
                      weight=float(g.get("weight", 1.0)), description=str(g.get("description", "")))
        for g in raw.get("groups") or []
    ]
    return Quiz(
        id=str(raw.get("id") or "quiz"),
        title=str(raw.get("title") or raw.get("name") or ""),
        questions=questions,
        formula=formula_from_dict(raw.get("formula") or {}),
        choice_mode=raw.get("choiceMode", raw.get("choice_mode", "3-choice")),
        alignment_phrases=dict(raw.get("alignmentPhraseRules") or raw.get("alignment_phrases") or {}),
        groups=groups,
    )


def quiz_to_dict(quiz: Quiz) -> Dict[str, Any]:
    return {
        "id": quiz.id,
        "title": quiz.title,
        "choiceMode": quiz.choice_mode,
        "alignmentPhraseRules": dict(quiz.alignment_phrases),
        "formula": formula_to_dict(quiz.formula),
        "groups": [{"id": g.id, "name": g.name, "weight": g.weight, "description": g.description}
                   for g in quiz.groups],
        "questions": [
            {
                "id": q.id,
                "text": q.text,
                "category": q.category,
                "groupId": q.group_id,
                "options": [
                    {"id": o.id, "label": o.label, "direction": o.direction,
                     "weights": o.weights.to_dict(), "skipTo": o.skip_to}
                    for o in q.options
                ],
            }
            for q in quiz.questions
        ],
    }


def load_bank() -> Quiz:
    data = ir.files(__package__).joinpath("data/bank.json").read_text(encoding="utf-8")
    return quiz_from_dict(json.loads(data))


def questions_from_texts(texts: Sequence[str], prefix: str = "generated") -> List[Question]:
    """Wrap generated question text as general-category swipe questions."""
    out: List[Question] = []
    for i, text in enumerate(texts):
        opts = [
            AnswerOption(id=f"gen-{i}-{d}", label=SWIPE_LABELS[d], direction=d,
                         weights=contribution_map(d, "general"))
            for d in ("left", "right", "up")
        ]
        out.append(Question(id=f"{prefix}-{i}", text=text.strip(), options=opts, category="general"))
    return out

"""Bucket scoring: aggregate answer weights, normalize, rank, highlight, break ties.

``calculate_scores`` is a pure function of its inputs. It never raises for
structurally valid answers, including an invalid formula. Formula problems are
reported by ``formula.validate_formula`` and enforced by callers that save or
publish a formula.

Pipeline order matters: top-K marks are assigned from the pre-tie-break order
and are carried through the tie-break reorder untouched, so a bucket promoted
by tie-break can hold a top rank without ``is_top_k``.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Sequence, Union

from .buckets import BUCKET_IDS, catalogue_index, is_bucket, lookup
from .config import TIE_ROUND_DECIMALS
from .formula import Normalization, ScoringFormula, TopKHighlight
from .types import AnsweredQuestion, BucketWeights, ScoringResult

log = logging.getLogger(__name__)

AnswerLike = Union[AnsweredQuestion, Mapping[str, object]]


@dataclass
class _Row:
    bucket_id: str
    raw: float
    score: float
    is_top_k: bool = False


def _coerce(answers: Iterable[AnswerLike]) -> List[AnsweredQuestion]:
    out: List[AnsweredQuestion] = []
    for a in answers or []:
        out.append(a if isinstance(a, AnsweredQuestion) else AnsweredQuestion.from_dict(a))
    return out


def aggregate(answers: Sequence[AnsweredQuestion], aggregation: str) -> Dict[str, float]:
    totals = {b: 0.0 for b in BUCKET_IDS}
    if aggregation not in ("sum", "weighted", "average"):
        log.warning("unknown aggregation %r; summing", aggregation)
        aggregation = "sum"
    for ans in answers:
        # average ignores group weighting
        mult = 1.0 if aggregation == "average" else float(ans.group_weight or 1.0)
        w = ans.weights
        totals["feeling"] += w.feeling * mult
        totals["sensing"] += w.sensing * mult
        totals["intuition"] += w.intuition * mult
        totals["thinking"] += w.thinking * mult
    if aggregation == "average" and answers:
        n = len(answers)
        totals = {b: v / n for b, v in totals.items()}
    return totals


def _normalize_linear(totals: Dict[str, float], lo: float, hi: float) -> Dict[str, float]:
    raw_min = min(totals.values())
    raw_max = max(totals.values())
    if raw_max == raw_min:
        mid = (lo + hi) / 2.0
        return {b: mid for b in totals}
    span = raw_max - raw_min
    return {b: lo + (v - raw_min) / span * (hi - lo) for b, v in totals.items()}


def _normalize_percentile(totals: Dict[str, float], lo: float, hi: float) -> Dict[str, float]:
    values = sorted(totals.values())
    if values[0] == values[-1]:
        mid = (lo + hi) / 2.0
        return {b: mid for b in totals}
    last = len(values) - 1
    # tied values share the lowest position
    return {b: lo + values.index(v) / last * (hi - lo) for b, v in totals.items()}


def normalize(totals: Dict[str, float], normalization: Normalization) -> Dict[str, float]:
    if not normalization.enabled:
        return dict(totals)
    lo, hi = float(normalization.scale[0]), float(normalization.scale[1])
    if normalization.method == "percentile":
        return _normalize_percentile(totals, lo, hi)
    return _normalize_linear(totals, lo, hi)


def _rank_and_highlight(raw: Dict[str, float], scores: Dict[str, float],
                        top_k: TopKHighlight) -> List[_Row]:
    rows = [_Row(b, raw[b], scores[b]) for b in BUCKET_IDS]
    rows.sort(key=lambda r: r.score, reverse=True)
    if top_k.method == "threshold":
        if top_k.threshold is not None:
            for r in rows:
                r.is_top_k = r.score >= top_k.threshold
    elif top_k.method == "fixed_top_n":
        for r in rows[:max(0, int(top_k.n))]:
            r.is_top_k = True
    return rows


def _break_ties(rows: List[_Row], priority: Sequence[str]) -> List[_Row]:
    order: Dict[str, int] = {}
    for i, b in enumerate(priority or ()):
        if is_bucket(b):
            order.setdefault(b, i)
    missing = len(priority or ()) + 1

    groups: Dict[float, List[_Row]] = {}
    for r in rows:
        groups.setdefault(round(r.score, TIE_ROUND_DECIMALS), []).append(r)

    out: List[_Row] = []
    for key in sorted(groups, reverse=True):
        tied = groups[key]
        if len(tied) > 1:
            tied = sorted(tied, key=lambda r: order.get(r.bucket_id, missing))
        out.extend(tied)
    return out


def calculate_scores(answers: Iterable[AnswerLike], formula: ScoringFormula) -> List[ScoringResult]:
    answered = _coerce(answers)
    raw = aggregate(answered, formula.aggregation)
    scores = normalize(raw, formula.normalization)
    if not answered:
        log.debug("scoring with no answers; totals are zero")
    elif len(set(raw.values())) == 1:
        log.debug("all bucket totals equal (%s)", next(iter(raw.values())))

    rows = _rank_and_highlight(raw, scores, formula.top_k)
    rows = _break_ties(rows, formula.tie_break_priority)

    results: List[ScoringResult] = []
    for rank, r in enumerate(rows, start=1):
        b = lookup(r.bucket_id)
        results.append(ScoringResult(
            bucket_id=b.id,
            bucket_name=b.name,
            raw_score=r.raw,
            normalized_score=r.score,
            rank=rank,
            is_top_k=r.is_top_k,
            color=b.color,
        ))
    return results


def preview_scoring(test_weights: Iterable[Union[BucketWeights, Mapping[str, object]]],
                    formula: ScoringFormula) -> List[ScoringResult]:
    """Score bare weight sets as if each were one answered question (admin preview)."""
    answers = [
        AnsweredQuestion(
            question_id=f"test-q{i}",
            option_id=f"test-a{i}",
            weights=BucketWeights.from_mapping(w),
        )
        for i, w in enumerate(test_weights)
    ]
    return calculate_scores(answers, formula)


def top_buckets(results: Iterable[ScoringResult]) -> List[str]:
    return [r.bucket_id for r in results if r.is_top_k]


def scores_by_bucket(results: Iterable[ScoringResult]) -> Dict[str, float]:
    """Bucket id -> displayed score, in catalogue order."""
    by_id = {r.bucket_id: r.normalized_score for r in results}
    return {b: by_id[b] for b in sorted(by_id, key=catalogue_index)}

# persona_core/heuristics.py
from __future__ import annotations
from typing import Dict, List, Mapping, Sequence

from .buckets import is_bucket, lookup
from .config import INSIGHT_FALLBACK, INSIGHT_TREND_WINDOW

_STRENGTH = {
    "feeling": "you read the emotional temperature of a conversation well",
    "sensing": "you ground discussions in concrete, practical detail",
    "intuition": "you spot patterns and possibilities others miss",
    "thinking": "you bring clear, logical structure to decisions",
}
_GROWTH = {
    "feeling": "naming the facts behind a feeling can make your point land faster",
    "sensing": "leaving room for a bigger-picture \"what if\" can open new options",
    "intuition": "anchoring ideas in one concrete example helps others follow",
    "thinking": "acknowledging how a decision affects people builds buy-in",
}


def metric_trends(history: Sequence[Mapping[str, object]],
                  window: int = INSIGHT_TREND_WINDOW) -> Dict[str, float]:
    """Mean of the last ``window`` values per metric, in first-seen order."""
    series: Dict[str, List[float]] = {}
    for row in history:
        name = str(row.get("metric", ""))
        try:
            val = float(row.get("value"))  # type: ignore[arg-type]
        except (TypeError, ValueError):
            continue
        if name:
            series.setdefault(name, []).append(val)
    out: Dict[str, float] = {}
    for name, vals in series.items():
        recent = vals[-window:]
        out[name] = sum(recent) / len(recent)
    return out


def heuristic_insight(trends: Mapping[str, float]) -> str:
    ranked = sorted(((k, v) for k, v in trends.items() if is_bucket(k)), key=lambda kv: kv[1], reverse=True)
    if not ranked:
        return INSIGHT_FALLBACK
    top = ranked[0][0]
    name = lookup(top).name
    return (f"Your {name} side stands out: {_STRENGTH[top]}. "
            f"As a next step, {_GROWTH[top]}.")


def echo_candidates(raw_input: str, n: int) -> List[str]:
    return [raw_input] * n

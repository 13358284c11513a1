"""Per-answer bucket weights: authoring validation and swipe contribution maps.

Two weight domains are in use:

* ``capped``: authored quiz content. Every entry is non-negative and the
  four entries together stay at or below ``WEIGHT_CAP``.
* ``signed``: swipe contribution maps, where an answer can pull a bucket
  down (e.g. "thinking +2, feeling -1").

Validation here only guards authoring. The scoring engine accepts whatever
weights it is handed and never clamps.
"""
from __future__ import annotations

import math
from typing import Dict, List, Literal, Tuple

from .config import NORMALIZE_ROUND_DECIMALS, WEIGHT_CAP
from .types import BucketWeights

WeightDomain = Literal["capped", "signed"]
WEIGHT_DOMAINS: Tuple[str, ...] = ("capped", "signed")


def validate_weights(weights: BucketWeights, cap: float = WEIGHT_CAP) -> bool:
    vals = (weights.feeling, weights.sensing, weights.intuition, weights.thinking)
    if any(v < 0 for v in vals):
        return False
    return sum(vals) <= cap


def _round_half_up(x: float, nd: int) -> float:
    scale = 10 ** nd
    return math.floor(x * scale + 0.5) / scale


def normalize_weights(weights: BucketWeights, cap: float = WEIGHT_CAP) -> BucketWeights:
    """Rescale so the four entries sum to ``cap``, keeping their ratios.

    Entries are rounded half up to one decimal like the weight editor shows
    them (0.25 -> 0.3), so the sum can land a rounding step away from the cap
    (1/1/1 -> 3.3 each).
    A zero total is returned as-is.
    """
    total = weights.total()
    if total == 0:
        return weights
    factor = cap / total
    nd = NORMALIZE_ROUND_DECIMALS
    return BucketWeights(
        feeling=_round_half_up(weights.feeling * factor, nd),
        sensing=_round_half_up(weights.sensing * factor, nd),
        intuition=_round_half_up(weights.intuition * factor, nd),
        thinking=_round_half_up(weights.thinking * factor, nd),
    )


def weight_errors(weights: BucketWeights, domain: str = "capped",
                  cap: float = WEIGHT_CAP) -> List[str]:
    if domain == "signed":
        return []
    if domain != "capped":
        return [f"Unknown weight domain '{domain}'"]
    errors: List[str] = []
    for bucket_id, v in weights.to_dict().items():
        if v < 0:
            errors.append(f"{bucket_id.capitalize()} weight must not be negative")
        elif v > cap:
            errors.append(f"{bucket_id.capitalize()} weight must be at most {cap:g}")
    total = weights.total()
    if total > cap:
        errors.append(f"Total weight {total:.1f} exceeds the cap of {cap:g}")
    return errors


# direction -> contributions, per question category
_CONTRIBUTIONS: Dict[str, Dict[str, Dict[str, float]]] = {
    "thinking-feeling": {
        "left": {"thinking": 2.0, "feeling": -1.0},
        "right": {"feeling": 2.0, "thinking": -1.0},
        "up": {"thinking": 0.5, "feeling": 0.5},
    },
    "sensing-intuition": {
        "left": {"sensing": 2.0, "intuition": -1.0},
        "right": {"intuition": 2.0, "sensing": -1.0},
        "up": {"sensing": 0.5, "intuition": 0.5},
    },
    "general": {
        "left": {"thinking": 1.0, "sensing": 1.0},
        "right": {"feeling": 1.0, "intuition": 1.0},
        "up": {"thinking": 0.5, "feeling": 0.5, "sensing": 0.5, "intuition": 0.5},
    },
}


def contribution_map(direction: str, question_type: str = "general") -> BucketWeights:
    table = _CONTRIBUTIONS.get(question_type, _CONTRIBUTIONS["general"])
    return BucketWeights.from_mapping(table.get(direction))

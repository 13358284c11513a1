# persona_core/buckets.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List, Literal, Tuple

BucketId = Literal["feeling", "sensing", "intuition", "thinking"]

# catalogue order; used for default tie ordering when no priority is configured
BUCKET_IDS: Tuple[str, ...] = ("feeling", "sensing", "intuition", "thinking")


class BucketNotFound(KeyError):
    pass


@dataclass(frozen=True)
class Bucket:
    id: str
    name: str
    color: str
    description: str


_CATALOGUE: Dict[str, Bucket] = {
    "feeling": Bucket("feeling", "Feeling", "#EF4444",
                      "Emotional resonance, empathy, values-based decisions"),
    "sensing": Bucket("sensing", "Sensing", "#10B981",
                      "Concrete details, facts, practical focus"),
    "intuition": Bucket("intuition", "Intuition", "#8B5CF6",
                        "Abstract patterns, big picture, possibilities"),
    "thinking": Bucket("thinking", "Thinking", "#3B82F6",
                       "Logic, structure, analytical reasoning"),
}

_DISPLAY_ORDER: Tuple[str, ...] = ("thinking", "feeling", "sensing", "intuition")


def lookup(bucket_id: str) -> Bucket:
    try:
        return _CATALOGUE[bucket_id]
    except (KeyError, TypeError):
        raise BucketNotFound(bucket_id) from None


def all_buckets() -> List[Bucket]:
    return [_CATALOGUE[b] for b in BUCKET_IDS]


def default_buckets() -> List[Bucket]:
    """Buckets in the order the results screens list them."""
    return [_CATALOGUE[b] for b in _DISPLAY_ORDER]


def catalogue_index(bucket_id: str) -> int:
    try:
        return BUCKET_IDS.index(bucket_id)
    except ValueError:
        return len(BUCKET_IDS)


def is_bucket(bucket_id: object) -> bool:
    return isinstance(bucket_id, str) and bucket_id in _CATALOGUE

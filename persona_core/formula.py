from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .buckets import BUCKET_IDS, is_bucket
from .config import DEFAULT_SCALE, DEFAULT_TOP_N
from .weights import WEIGHT_DOMAINS

AGGREGATIONS: Tuple[str, ...] = ("sum", "average", "weighted")
NORMALIZATION_METHODS: Tuple[str, ...] = ("linear", "percentile")
TOP_K_METHODS: Tuple[str, ...] = ("fixed_top_n", "threshold")

_FIXED_TOP_RX = re.compile(r"^fixed[_-]top[_-](\d+)$", re.I)


class ConfigurationError(ValueError):
    """A scoring formula failed validation in a save/publish flow."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "invalid scoring formula")


@dataclass(frozen=True)
class Normalization:
    enabled: bool = True
    scale: Tuple[float, float] = DEFAULT_SCALE
    method: str = "linear"


@dataclass(frozen=True)
class TopKHighlight:
    method: str = "fixed_top_n"
    n: int = DEFAULT_TOP_N
    threshold: Optional[float] = None


@dataclass(frozen=True)
class ScoringFormula:
    id: str = "default"
    aggregation: str = "sum"
    normalization: Normalization = field(default_factory=Normalization)
    top_k: TopKHighlight = field(default_factory=TopKHighlight)
    blur_non_top: bool = True
    tie_break_priority: Tuple[str, ...] = ("feeling", "intuition", "thinking", "sensing")
    weight_domain: str = "capped"

    def with_changes(self, **changes: Any) -> "ScoringFormula":
        return replace(self, **changes)


def default_formula() -> ScoringFormula:
    return ScoringFormula()


def validate_formula(formula: ScoringFormula) -> List[str]:
    errors: List[str] = []

    if formula.aggregation not in AGGREGATIONS:
        errors.append(f"Unknown aggregation '{formula.aggregation}'")

    norm = formula.normalization
    if norm.method not in NORMALIZATION_METHODS:
        errors.append(f"Unknown normalization method '{norm.method}'")
    if norm.enabled:
        lo, hi = norm.scale
        if lo >= hi:
            errors.append("Normalization scale minimum must be less than maximum")

    top = formula.top_k
    if top.method == "threshold":
        if top.threshold is None:
            errors.append("Threshold method requires a threshold value")
    elif top.method == "fixed_top_n":
        if top.n < 1:
            errors.append("Fixed top-N highlight needs N of at least 1")
    else:
        errors.append(f"Unknown top-K method '{top.method}'")

    priority = list(formula.tie_break_priority)
    if len(priority) != len(BUCKET_IDS):
        errors.append("Tie-breaking priority must include all 4 buckets")
    known = [p for p in priority if is_bucket(p)]
    if len(set(known)) != len(known):
        errors.append("Tie-breaking priority must not have duplicate buckets")
    unknown = [p for p in priority if not is_bucket(p)]
    if unknown:
        errors.append(f"Tie-breaking priority has unknown buckets: {', '.join(map(str, unknown))}")

    if formula.weight_domain not in WEIGHT_DOMAINS:
        errors.append(f"Unknown weight domain '{formula.weight_domain}'")

    return errors


def ensure_valid(formula: ScoringFormula) -> ScoringFormula:
    errors = validate_formula(formula)
    if errors:
        raise ConfigurationError(errors)
    return formula


# ---- wire format (camelCase, as stored by the admin dashboard) ----

def _parse_top_k(raw: Any) -> TopKHighlight:
    if isinstance(raw, int) and not isinstance(raw, bool):
        return TopKHighlight(method="fixed_top_n", n=raw)
    if not isinstance(raw, Mapping):
        return TopKHighlight()
    method = str(raw.get("method") or "fixed_top_n")
    threshold = raw.get("threshold")
    threshold = None if threshold is None else float(threshold)
    m = _FIXED_TOP_RX.match(method)
    if m:
        return TopKHighlight(method="fixed_top_n", n=int(m.group(1)), threshold=threshold)
    return TopKHighlight(method=method, n=int(raw.get("n", DEFAULT_TOP_N)), threshold=threshold)


def _flag(v: Any, default: bool) -> bool:
    if v is None:
        return default
    if isinstance(v, str):
        return v.strip().lower() in {"1", "true", "yes", "on"}
    return bool(v)


def _parse_normalization(raw: Any) -> Normalization:
    if not isinstance(raw, Mapping):
        return Normalization(enabled=_flag(raw, True))
    scale = raw.get("scale")
    if isinstance(scale, (list, tuple)) and len(scale) >= 2:
        lo, hi = float(scale[0]), float(scale[1])
    else:
        lo = float(raw.get("min", DEFAULT_SCALE[0]))
        hi = float(raw.get("max", DEFAULT_SCALE[1]))
    return Normalization(
        enabled=_flag(raw.get("enabled"), True),
        scale=(lo, hi),
        method=str(raw.get("method") or raw.get("type") or "linear"),
    )


def formula_from_dict(raw: Mapping[str, Any]) -> ScoringFormula:
    """Build a formula from either the dashboard's camelCase shape or snake_case."""
    base = default_formula()
    tie = raw.get("tieBreaking")
    if isinstance(tie, Mapping):
        priority = tie.get("priority")
    else:
        priority = raw.get("tie_break_priority", raw.get("priority"))
    if isinstance(priority, str):
        priority = [priority]
    top_raw = raw.get("topKHighlight", raw.get("top_k"))
    norm_raw = raw.get("normalization")
    return ScoringFormula(
        id=str(raw.get("id") or base.id),
        aggregation=str(raw.get("aggregation") or base.aggregation),
        normalization=_parse_normalization(norm_raw) if norm_raw is not None else base.normalization,
        top_k=_parse_top_k(top_raw) if top_raw is not None else base.top_k,
        blur_non_top=_flag(raw.get("blurNonTop", raw.get("blur_non_top")), base.blur_non_top),
        tie_break_priority=tuple(priority) if priority is not None else base.tie_break_priority,
        weight_domain=str(raw.get("weightDomain", raw.get("weight_domain", base.weight_domain))),
    )


def formula_to_dict(formula: ScoringFormula) -> Dict[str, Any]:
    top: Dict[str, Any] = {"method": formula.top_k.method}
    if formula.top_k.method == "fixed_top_n":
        top["n"] = formula.top_k.n
    if formula.top_k.threshold is not None:
        top["threshold"] = formula.top_k.threshold
    return {
        "id": formula.id,
        "aggregation": formula.aggregation,
        "normalization": {
            "enabled": formula.normalization.enabled,
            "scale": list(formula.normalization.scale),
            "method": formula.normalization.method,
        },
        "topKHighlight": top,
        "blurNonTop": formula.blur_non_top,
        "tieBreaking": {"priority": list(formula.tie_break_priority)},
        "weightDomain": formula.weight_domain,
    }

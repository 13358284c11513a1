from __future__ import annotations

import importlib
import sys

import pytest

from persona_core.formula import Normalization, ScoringFormula, TopKHighlight
from persona_core.types import AnsweredQuestion, BucketWeights


def build_answers(
    weights: list[dict[str, float]],
    *,
    group_weights: list[float | None] | None = None,
) -> list[AnsweredQuestion]:
    """One answered question per weight dict, ids q0..qN."""

    gws = group_weights or [None] * len(weights)
    return [
        AnsweredQuestion(
            question_id=f"q{i}",
            option_id=f"q{i}-opt",
            weights=BucketWeights.from_mapping(w),
            group_weight=gw,
        )
        for i, (w, gw) in enumerate(zip(weights, gws))
    ]


def raw_formula(**changes) -> ScoringFormula:
    """Default formula with normalization off, so scores equal raw totals."""

    base = ScoringFormula(
        normalization=Normalization(enabled=False),
        top_k=TopKHighlight(method="fixed_top_n", n=2),
    )
    return base.with_changes(**changes) if changes else base


def reload_api(tmp_path, monkeypatch):
    monkeypatch.setenv("DATA_DIR", str(tmp_path))
    monkeypatch.delenv("USE_LLM", raising=False)
    monkeypatch.delenv("LLM_BACKEND", raising=False)
    for name in ("api.storage", "api.app"):
        if name in sys.modules:
            importlib.reload(sys.modules[name])
        else:
            importlib.import_module(name)
    return sys.modules["api.storage"], sys.modules["api.app"]


@pytest.fixture
def no_llm(monkeypatch):
    monkeypatch.delenv("USE_LLM", raising=False)
    monkeypatch.delenv("LLM_BACKEND", raising=False)

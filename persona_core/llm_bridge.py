"""Text generation for quiz questions, message rewrites and insights.

Every public call degrades instead of raising: no backend, an API error or an
empty completion all fall back to a fixed answer, so quiz flows and scoring
keep working without an LLM.
"""
from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

from . import config as cfg_defaults
from .heuristics import echo_candidates, heuristic_insight, metric_trends
from .llm_cfg import client as llm_client, settings as llm_settings

log = logging.getLogger(__name__)


@dataclass
class QuestionGenerationContext:
    situation_context: str = ""
    goal: str = ""
    tone_preference: str = ""
    other_person_role: str = ""
    existing_questions: List[str] = field(default_factory=list)


@dataclass
class WimtsContext:
    raw_input: str
    situation_context: str = ""
    personality_metrics: Optional[Dict[str, float]] = None


def backend_in_use() -> Optional[str]:
    return cfg_defaults.get_backend(cfg_defaults.load_config())


def _chat(prompt: str, temperature: float) -> str:
    backend = backend_in_use()
    if backend is None:
        raise RuntimeError("no LLM backend enabled")
    s = llm_settings(backend)
    resp = llm_client(s).chat.completions.create(
        model=s.model,
        messages=[{"role": "user", "content": prompt}],
        temperature=temperature,
    )
    return (resp.choices[0].message.content if resp.choices else "") or ""


def _log_call(kind: str, prompt: str, output: Any, error: Optional[str], t0: float) -> None:
    if not cfg_defaults.LLM_LOG_ENABLED:
        return
    entry = {
        "ts": round(time.time(), 3),
        "kind": kind,
        "prompt": prompt[:800],
        "output": output,
        "error": error,
        "rt_ms": int((time.time() - t0) * 1000),
    }
    try:
        with open(cfg_defaults.LLM_LOG_PATH, "a", encoding="utf-8") as f:
            f.write(json.dumps(entry, ensure_ascii=False) + "\n")
    except OSError as e:
        log.warning("could not write LLM log: %s", e)


def _lines(text: str) -> List[str]:
    return [ln.strip() for ln in text.split("\n") if ln.strip()]


def _generate(kind: str, prompt: str, temperature: float) -> Optional[str]:
    t0 = time.time()
    try:
        out = _chat(prompt, temperature)
    except Exception as e:  # any client/transport failure falls back
        log.warning("%s generation failed: %s", kind, e)
        _log_call(kind, prompt, None, str(e), t0)
        return None
    _log_call(kind, prompt, out, None, t0)
    return out


def question_prompt(ctx: QuestionGenerationContext, count: int) -> str:
    avoid = ""
    if ctx.existing_questions:
        avoid = f"Avoid duplicating these existing questions: {', '.join(ctx.existing_questions)}"
    return f"""Generate {count} personality assessment questions based on the following context:

Situation: {ctx.situation_context or 'General personality assessment'}
Goal: {ctx.goal or 'Understanding personality traits'}
Tone: {ctx.tone_preference or 'Professional and engaging'}
Other Person Role: {ctx.other_person_role or 'N/A'}

The questions should be designed for a swipe-card interface where users can answer with:
- Left swipe (disagree/no)
- Right swipe (agree/yes)
- Up swipe (neutral/sometimes) - optional

Make the questions engaging, clear, and suitable for measuring personality traits like Thinking, Feeling, Sensing, and Intuition.

{avoid}

Return only the questions, one per line."""


def generate_quiz_questions(ctx: QuestionGenerationContext,
                            count: int = cfg_defaults.DEFAULT_QUESTION_COUNT) -> List[str]:
    """Generated question lines; empty on any failure so callers use the default bank."""
    out = _generate("questions", question_prompt(ctx, count), cfg_defaults.TEMP_QUESTIONS)
    if not out:
        return []
    return _lines(out)[:count]


def wimts_prompt(ctx: WimtsContext) -> str:
    metrics = ""
    if ctx.personality_metrics:
        top = sorted(ctx.personality_metrics.items(), key=lambda kv: kv[1], reverse=True)[:2]
        metrics = "User's personality leans toward: " + ", ".join(f"{k} ({v:.1f})" for k, v in top)
    return f"""Help rephrase this message to be more effective:

Original message: "{ctx.raw_input}"
Situation context: {ctx.situation_context or 'General communication'}
{metrics}

Generate 3 different ways to say this that are:
1. More clear and direct
2. More diplomatic and considerate
3. More engaging and personable

Consider the user's personality traits when crafting these alternatives. Each option should maintain the original intent while improving the communication style.

Return only the 3 alternatives, one per line, without numbering or labels."""


def generate_wimts_candidates(ctx: WimtsContext) -> List[str]:
    n = cfg_defaults.WIMTS_CANDIDATES
    out = _generate("wimts", wimts_prompt(ctx), cfg_defaults.TEMP_WIMTS)
    lines = _lines(out or "")[:n]
    return lines or echo_candidates(ctx.raw_input, n)


def insight_prompt(trends: Mapping[str, float],
                   recent_wimts: Sequence[Mapping[str, Any]] = ()) -> str:
    trend_txt = ", ".join(f"{k}: {v:.1f} (recent trend)" for k, v in trends.items())
    wimts = ""
    if recent_wimts:
        ctxs = [str(e.get("situationContext") or e.get("situation_context") or "general")
                for e in list(recent_wimts)[:3]]
        wimts = f"Recent communication patterns: {', '.join(ctxs)}"
    return f"""Generate a personalized insight based on this personality data:

Personality metrics: {trend_txt}
{wimts}

Create a brief, encouraging insight (2-3 sentences) that:
1. Highlights a key strength or pattern
2. Offers a gentle suggestion for growth or awareness
3. Is positive and actionable

The insight should feel personal and valuable to the user."""


def generate_personality_insight(history: Sequence[Mapping[str, Any]],
                                 recent_wimts: Sequence[Mapping[str, Any]] = ()) -> str:
    trends = metric_trends(history)
    out = _generate("insight", insight_prompt(trends, recent_wimts), cfg_defaults.TEMP_INSIGHT)
    if out and out.strip():
        return out.strip()
    return heuristic_insight(trends)

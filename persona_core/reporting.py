# persona_core/reporting.py
from __future__ import annotations
import html
from typing import Any, Dict, List

from .types import QuizResult

# -------- utils: make any object JSON-safe ----------
def _to_basic(x: Any) -> Any:
    if x is None or isinstance(x, (bool, int, float, str)):
        return x
    if isinstance(x, dict):
        return {str(k): _to_basic(v) for k, v in x.items()}
    if isinstance(x, (list, tuple, set)):
        return [_to_basic(v) for v in x]
    if hasattr(x, "to_dict"):
        return _to_basic(x.to_dict())
    if hasattr(x, "__dict__"):
        return _to_basic(vars(x))
    return str(x)


def results_to_payload(result: QuizResult) -> Dict[str, Any]:
    return {
        "quizId": result.quiz_id,
        "formulaId": result.formula_id,
        "answers": [a.to_dict() for a in result.answers],
        "scores": [s.to_dict() for s in result.scores],
        "topBuckets": list(result.top_buckets),
        "blurNonTop": result.blur_non_top,
        "completedAt": result.completed_at,
        "meta": _to_basic(result.meta),
    }


# -------- minimal HTML rendering ----------
def _row(s: Dict[str, Any], blur: bool) -> str:
    score = float(s.get("normalizedScore") or 0.0)
    width = max(0.0, min(100.0, score))
    cls = "bucket top" if s.get("isTopK") else ("bucket blurred" if blur else "bucket")
    name = html.escape(str(s.get("bucketName", s.get("bucketId", ""))))
    color = html.escape(str(s.get("color") or "#6B7280"))
    return (f"<div class='{cls}'><span class='rank'>#{s.get('rank', '')}</span> "
            f"<b>{name}</b> <span class='score'>{score:.1f}</span>"
            f"<div class='bar'><div style='width:{width:.1f}%;background:{color}'></div></div></div>")


def render_results_html(payload: Dict[str, Any], title: str = "Your Personality Profile") -> str:
    scores: List[Dict[str, Any]] = sorted(payload.get("scores") or [], key=lambda s: s.get("rank", 0))
    blur = bool(payload.get("blurNonTop"))
    rows = "\n".join(_row(s, blur) for s in scores)
    top = ", ".join(html.escape(str(s.get("bucketName"))) for s in scores if s.get("isTopK"))
    return f"""<!doctype html>
<html lang="en">
<head>
<meta charset="utf-8"/>
<title>{html.escape(title)}</title>
<style>
 body{{font-family:system-ui,-apple-system,Segoe UI,Roboto,Ubuntu,'Helvetica Neue',Arial}}
 .wrap{{max-width:640px;margin:40px auto;padding:0 16px}}
 .bucket{{margin:12px 0}}
 .blurred{{filter:blur(2px);opacity:.6}}
 .bar{{background:#E5E7EB;height:8px;border-radius:4px}}
 .bar div{{height:8px;border-radius:4px}}
</style>
</head>
<body>
<div class="wrap">
  <h1>{html.escape(title)}</h1>
  <p class="top"><b>Top traits:</b> {top or "-"}</p>
  {rows}
</div>
</body>
</html>"""

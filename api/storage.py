"""JSON-file persistence for quizzes, scoring formulas, results and user history.

Each record kind lives in its own JSON document under ``DATA_DIR`` and is
addressed by id. Writes go through a temp file and an atomic rename while
holding a process-wide lock.
"""

from __future__ import annotations

import json
import os
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional


DATA_ROOT = Path(os.getenv("DATA_DIR", "data")).resolve()
RESULTS_DIR = DATA_ROOT / "results"
RESULT_INDEX_PATH = DATA_ROOT / "results_index.json"
QUIZZES_PATH = DATA_ROOT / "quizzes.json"
FORMULAS_PATH = DATA_ROOT / "formulas.json"
SETTINGS_PATH = DATA_ROOT / "settings.json"
BUCKETS_PATH = DATA_ROOT / "buckets.json"
METRICS_PATH = DATA_ROOT / "metrics_history.json"
WIMTS_PATH = DATA_ROOT / "wimts_entries.json"

_LOCK = threading.Lock()


def _ensure_dirs() -> None:
    RESULTS_DIR.mkdir(parents=True, exist_ok=True)


def _read_json(path: Path, default: Any) -> Any:
    if not path.exists():
        return default
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return default


def _write_json(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
    tmp.replace(path)


def _upsert(path: Path, key: str, value: Any) -> None:
    with _LOCK:
        doc: Dict[str, Any] = _read_json(path, {})
        doc[key] = value
        _write_json(path, doc)


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---- quizzes / formulas ----

def save_quiz(quiz_id: str, quiz: Dict[str, Any]) -> None:
    _upsert(QUIZZES_PATH, quiz_id, quiz)


def load_quiz(quiz_id: str) -> Optional[Dict[str, Any]]:
    return _read_json(QUIZZES_PATH, {}).get(quiz_id)


def list_quizzes() -> List[Dict[str, Any]]:
    doc: Dict[str, Dict[str, Any]] = _read_json(QUIZZES_PATH, {})
    return [{"id": qid, "title": q.get("title", "")} for qid, q in sorted(doc.items())]


def save_formula(formula_id: str, formula: Dict[str, Any]) -> None:
    _upsert(FORMULAS_PATH, formula_id, formula)


def load_formula(formula_id: str) -> Optional[Dict[str, Any]]:
    return _read_json(FORMULAS_PATH, {}).get(formula_id)


# ---- results ----

def save_result(result_id: str, result: Dict[str, Any], metadata: Dict[str, Any]) -> None:
    """Persist the result JSON and its index metadata."""

    _ensure_dirs()
    with _LOCK:
        index: Dict[str, Dict[str, Any]] = _read_json(RESULT_INDEX_PATH, {})
        index[result_id] = metadata
        _write_json(RESULT_INDEX_PATH, index)

    _write_json(RESULTS_DIR / f"{result_id}.json", result)


def load_result(result_id: str) -> Optional[Dict[str, Any]]:
    return _read_json(RESULTS_DIR / f"{result_id}.json", None)


def delete_result(result_id: str) -> bool:
    removed = False
    with _LOCK:
        index: Dict[str, Dict[str, Any]] = _read_json(RESULT_INDEX_PATH, {})
        if result_id in index:
            index.pop(result_id, None)
            _write_json(RESULT_INDEX_PATH, index)
            removed = True
    path = RESULTS_DIR / f"{result_id}.json"
    if path.exists():
        path.unlink()
    return removed


def list_results_for_user(user_id: str) -> List[Dict[str, Any]]:
    index: Dict[str, Dict[str, Any]] = _read_json(RESULT_INDEX_PATH, {})
    out: List[Dict[str, Any]] = []
    for rid, meta in index.items():
        if meta.get("userId") == user_id:
            item = {"id": rid}
            item.update({k: v for k, v in meta.items() if k != "id"})
            out.append(item)
    out.sort(key=lambda r: r.get("createdAt", ""), reverse=True)
    return out


# ---- settings / buckets (seeded by tools/seed.py) ----

def upsert_setting(key: str, value: Any, overwrite: bool = False) -> bool:
    """Create the setting if absent; returns True when something was written."""
    with _LOCK:
        doc: Dict[str, Any] = _read_json(SETTINGS_PATH, {})
        if key in doc and not overwrite:
            return False
        doc[key] = value
        _write_json(SETTINGS_PATH, doc)
    return True


def get_setting(key: str, default: Any = None) -> Any:
    return _read_json(SETTINGS_PATH, {}).get(key, default)


def upsert_bucket(name: str, record: Dict[str, Any]) -> bool:
    with _LOCK:
        doc: Dict[str, Any] = _read_json(BUCKETS_PATH, {})
        if name in doc:
            return False
        doc[name] = record
        _write_json(BUCKETS_PATH, doc)
    return True


def list_stored_buckets() -> Dict[str, Dict[str, Any]]:
    return _read_json(BUCKETS_PATH, {})


# ---- per-user history ----

def _append(path: Path, user_id: str, rows: List[Dict[str, Any]]) -> None:
    with _LOCK:
        doc: Dict[str, List[Dict[str, Any]]] = _read_json(path, {})
        doc.setdefault(user_id, []).extend(rows)
        _write_json(path, doc)


def append_metrics(user_id: str, metrics: Dict[str, float], at: Optional[str] = None) -> None:
    ts = at or utcnow_iso()
    _append(METRICS_PATH, user_id, [{"metric": k, "value": float(v), "date": ts} for k, v in metrics.items()])


def metrics_history(user_id: str) -> List[Dict[str, Any]]:
    return list(_read_json(METRICS_PATH, {}).get(user_id, []))


def append_wimts(user_id: str, entry: Dict[str, Any]) -> None:
    _append(WIMTS_PATH, user_id, [dict(entry, createdAt=entry.get("createdAt") or utcnow_iso())])


def recent_wimts(user_id: str, limit: int = 3) -> List[Dict[str, Any]]:
    rows = _read_json(WIMTS_PATH, {}).get(user_id, [])
    return list(reversed(rows))[:limit]

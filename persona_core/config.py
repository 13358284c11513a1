from __future__ import annotations
import os, json, pathlib


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw.strip())
    except ValueError:
        return default


# authored answer weights: each entry >= 0, combined <= cap
WEIGHT_CAP: float = 10.0
NORMALIZE_ROUND_DECIMALS: int = 1

# ties compared at this granularity to absorb float noise
TIE_ROUND_DECIMALS: int = 3

DEFAULT_SCALE: tuple[float, float] = (0.0, 100.0)
DEFAULT_TOP_N: int = 2

DEFAULT_QUESTION_COUNT: int = 5
MAX_QUESTION_COUNT: int = 20
WIMTS_CANDIDATES: int = 3
INSIGHT_TREND_WINDOW: int = 5
INSIGHT_FALLBACK: str = "Your personality journey is unique and valuable."

TEMP_QUESTIONS: float = 0.7
TEMP_WIMTS: float = 0.8
TEMP_INSIGHT: float = 0.7
DEFAULT_MODEL: str = "gpt-4"

MONTHLY_QUIZ_LIMIT_GENERAL: int = 10
MONTHLY_QUIZ_LIMIT_PERSONALIZED: int = 50

LLM_LOG_ENABLED: bool = False
LLM_LOG_PATH: str = "llm_gen_log.jsonl"

# // env overrides for staging/ops; defaults remain conservative.
WEIGHT_CAP = _env_float("WEIGHT_CAP", WEIGHT_CAP)
TIE_ROUND_DECIMALS = _env_int("TIE_ROUND_DECIMALS", TIE_ROUND_DECIMALS)
DEFAULT_QUESTION_COUNT = _env_int("DEFAULT_QUESTION_COUNT", DEFAULT_QUESTION_COUNT)
MONTHLY_QUIZ_LIMIT_GENERAL = _env_int("MONTHLY_QUIZ_LIMIT_GENERAL", MONTHLY_QUIZ_LIMIT_GENERAL)
MONTHLY_QUIZ_LIMIT_PERSONALIZED = _env_int("MONTHLY_QUIZ_LIMIT_PERSONALIZED", MONTHLY_QUIZ_LIMIT_PERSONALIZED)
LLM_LOG_ENABLED = _env_bool("LLM_LOG_ENABLED", LLM_LOG_ENABLED)
LLM_LOG_PATH = os.getenv("LLM_LOG_PATH", LLM_LOG_PATH)

def _env_true(name: str) -> bool:
    return os.environ.get(name, "").lower() in ("1","true","yes","on")
def load_config() -> dict:
    cfg = {}
    p = pathlib.Path("config.json")
    if p.exists():
        try: cfg = json.loads(p.read_text(encoding="utf-8"))
        except (OSError, ValueError): cfg = {}
    e = os.environ
    if e.get("USE_LLM"): cfg["USE_LLM"] = _env_true("USE_LLM")
    if e.get("LLM_BACKEND"): cfg["LLM_BACKEND"] = e.get("LLM_BACKEND")
    for k in ("OPENAI_API_KEY","OPENAI_MODEL","AZURE_OPENAI_ENDPOINT","AZURE_OPENAI_API_VERSION","AZURE_OPENAI_DEPLOYMENT"):
        if e.get(k): cfg[k] = e.get(k)
    return cfg
def get_backend(cfg: dict) -> str|None:
    if not cfg.get("USE_LLM"): return None
    b = (cfg.get("LLM_BACKEND") or "").lower().strip()
    return b if b in ("openai","azure") else None

# persona_core/llm_cfg.py
from __future__ import annotations
import os, json, pathlib
from dataclasses import dataclass
from openai import AzureOpenAI, OpenAI

from .config import DEFAULT_MODEL

@dataclass(frozen=True)
class LLMSettings:
    backend: str
    api_key: str
    model: str
    endpoint: str = ""
    api_version: str = ""

_REQUIRED = {
    "openai": ("api_key", "model"),
    "azure": ("endpoint", "api_key", "api_version", "model"),
}

def _from_env(backend: str) -> dict[str, str]:
    if backend == "azure":
        return {
            "endpoint":   os.getenv("AZURE_OPENAI_ENDPOINT", ""),
            "api_key":    os.getenv("AZURE_OPENAI_API_KEY", ""),
            "api_version":os.getenv("AZURE_OPENAI_API_VERSION", ""),
            "model":      os.getenv("AZURE_OPENAI_DEPLOYMENT", ""),
        }
    return {
        "api_key": os.getenv("OPENAI_API_KEY", ""),
        "model":   os.getenv("OPENAI_MODEL", DEFAULT_MODEL),
    }

def _from_json(backend: str, path: str = ".llm_config.json") -> dict[str, str]:
    p = pathlib.Path(path)
    if not p.exists(): return {}
    try:
        j = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return {}
    section = j.get(backend) if isinstance(j.get(backend), dict) else j
    return {k: str(section.get(k, "")) for k in ("endpoint", "api_key", "api_version", "model")}

def settings(backend: str) -> LLMSettings:
    if backend not in _REQUIRED:
        raise RuntimeError(f"Unknown LLM backend '{backend}'")
    cfg = _from_env(backend)
    need = _REQUIRED[backend]
    if not all(cfg.get(k) for k in need):
        for k, v in _from_json(backend).items():
            if not cfg.get(k) and v: cfg[k] = v
    missing = [k for k in need if not cfg.get(k)]
    if missing:
        raise RuntimeError(f"{backend} LLM not configured. Missing: {', '.join(missing)}")
    return LLMSettings(
        backend=backend,
        api_key=cfg["api_key"],
        model=cfg["model"],
        endpoint=cfg.get("endpoint", ""),
        api_version=cfg.get("api_version", ""),
    )

def client(s: LLMSettings) -> OpenAI:
    if s.backend == "azure":
        return AzureOpenAI(
            azure_endpoint=s.endpoint,
            api_key=s.api_key,
            api_version=s.api_version,
        )
    return OpenAI(api_key=s.api_key)

def is_configured(backend: str | None) -> bool:
    if not backend:
        return False
    try:
        settings(backend)
    except RuntimeError:
        return False
    return True

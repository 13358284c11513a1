# tools/seed.py
from __future__ import annotations
import argparse, logging, os

from persona_core.buckets import default_buckets
from persona_core.config import MONTHLY_QUIZ_LIMIT_GENERAL, MONTHLY_QUIZ_LIMIT_PERSONALIZED, DEFAULT_MODEL

log = logging.getLogger("seed")

DEFAULT_SETTINGS = {
    "monthly_quiz_limit": {"general": MONTHLY_QUIZ_LIMIT_GENERAL, "personalized": MONTHLY_QUIZ_LIMIT_PERSONALIZED},
    "ai_models": {
        "question_generation": DEFAULT_MODEL,
        "wimts_suggestions": DEFAULT_MODEL,
        "insights": DEFAULT_MODEL,
    },
}


def seed(storage) -> dict[str, int]:
    buckets = 0
    for b in default_buckets():
        buckets += storage.upsert_bucket(b.name, {
            "id": b.id,
            "name": b.name,
            "description": b.description,
            "color": b.color,
            "isPrimaryMetric": True,
            "visibilityRules": {},
        })
    settings = 0
    for key, value in DEFAULT_SETTINGS.items():
        settings += storage.upsert_setting(key, value)
    return {"buckets": buckets, "settings": settings}


def main():
    ap = argparse.ArgumentParser(description="Seed default buckets and settings")
    ap.add_argument("--data-dir", default=None, help="Overrides DATA_DIR")
    args = ap.parse_args()
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")
    if args.data_dir:
        os.environ["DATA_DIR"] = args.data_dir
    from api import storage  # DATA_DIR is read at import

    log.info("Starting seed into %s", storage.DATA_ROOT)
    counts = seed(storage)
    log.info("Created personality buckets: %d", counts["buckets"])
    log.info("Created default settings: %d", counts["settings"])
    log.info("Seed completed")

if __name__ == "__main__":
    main()

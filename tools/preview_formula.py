from __future__ import annotations
import argparse, json, sys
from persona_core.formula import default_formula, formula_from_dict, validate_formula
from persona_core.scoring import preview_scoring

# sample answers used by the admin "test formula" button
SAMPLE_WEIGHTS = [
    {"feeling": 7, "sensing": 1, "intuition": 2, "thinking": 0},
    {"feeling": 2, "sensing": 6, "intuition": 1, "thinking": 1},
    {"feeling": 3, "sensing": 2, "intuition": 4, "thinking": 1},
]

def main():
    ap = argparse.ArgumentParser(description="Score sample answers against a scoring formula")
    ap.add_argument("--formula", help="Path to a formula JSON file (defaults to the built-in formula)")
    ap.add_argument("--weights", help="Path to a JSON list of bucket weight objects")
    args = ap.parse_args()

    if args.formula:
        with open(args.formula, "r", encoding="utf-8") as f:
            formula = formula_from_dict(json.load(f))
    else:
        formula = default_formula()
    weights = SAMPLE_WEIGHTS
    if args.weights:
        with open(args.weights, "r", encoding="utf-8") as f:
            weights = json.load(f)

    errors = validate_formula(formula)
    if errors:
        print("Formula has problems:", file=sys.stderr)
        for e in errors: print(f"  - {e}", file=sys.stderr)

    print(f"{'rank':>4}  {'bucket':<10} {'raw':>8} {'score':>8}  top")
    for r in preview_scoring(weights, formula):
        print(f"{r.rank:>4}  {r.bucket_name:<10} {r.raw_score:>8.2f} {r.normalized_score:>8.2f}  {'*' if r.is_top_k else ''}")
    return 1 if errors else 0

if __name__ == "__main__":
    sys.exit(main())

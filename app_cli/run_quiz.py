
from __future__ import annotations
import os, datetime
from persona_core.session import QuizSession, InvalidAnswer
from persona_core.reporting import results_to_payload, render_results_html
KEYS = {"a": "left", "d": "right", "w": "up", "s": "skip"}
def ask(prompt: str) -> str:
    while True:
        v = input(prompt).strip().lower()
        if v in KEYS: return KEYS[v]
        print("Use a (disagree), d (agree), w (neutral) or s (skip).")
def main():
    session = QuizSession()
    print(session.quiz.title)
    while True:
        q = session.current_question()
        if q is None: break
        hint = session.alignment_phrase()
        if hint: print(f"  ({hint})")
        print(f"[{session.progress():.0f}%] {q.text}")
        try: scores = session.answer(ask("a/d/w/s > "))
        except InvalidAnswer as e: print(e); continue
        print("  " + "  ".join(f"{s.bucket_name}={s.normalized_score:.1f}{'*' if s.is_top_k else ''}" for s in scores))
    payload = results_to_payload(session.finalize()); os.makedirs("reports", exist_ok=True)
    ts = datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
    path = os.path.join("reports", f"quiz_{ts}.html")
    with open(path, "w", encoding="utf-8") as f: f.write(render_results_html(payload))
    print(f"Top traits: {', '.join(payload['topBuckets'])}. Report saved to: {path}")
if __name__ == "__main__": main()

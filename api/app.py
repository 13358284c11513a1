from __future__ import annotations
from fastapi import FastAPI, HTTPException, Body, Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field
import logging, os, uuid, typing as t

from persona_core.buckets import default_buckets
from persona_core.config import MAX_QUESTION_COUNT, DEFAULT_QUESTION_COUNT, load_config, get_backend
from persona_core.formula import (
    ConfigurationError,
    ScoringFormula,
    default_formula,
    ensure_valid,
    formula_from_dict,
    formula_to_dict,
    validate_formula,
)
from persona_core.llm_bridge import (
    QuestionGenerationContext,
    WimtsContext,
    generate_personality_insight,
    generate_quiz_questions,
    generate_wimts_candidates,
)
from persona_core.llm_cfg import is_configured
from persona_core.question_bank import load_bank, questions_from_texts, quiz_from_dict, quiz_to_dict
from persona_core.reporting import render_results_html, results_to_payload
from persona_core.scoring import calculate_scores, preview_scoring, scores_by_bucket
from persona_core.session import InvalidAnswer, QuizSession, SessionComplete
from persona_core.types import BucketWeights, Question, Quiz
from persona_core.weights import normalize_weights, validate_weights, weight_errors
from .storage import (
    append_metrics,
    append_wimts,
    delete_result,
    list_quizzes,
    list_results_for_user,
    load_formula,
    load_quiz,
    load_result,
    metrics_history,
    recent_wimts,
    save_formula,
    save_quiz,
    save_result,
    utcnow_iso,
)

log = logging.getLogger(__name__)

SESS: dict[str, QuizSession] = {}
SESSION_INFO: dict[str, dict[str, t.Any]] = {}

app = FastAPI(title="Persona Swipe API")

ALLOWED_ORIGINS = [o for o in os.getenv("ALLOWED_ORIGINS", "http://localhost:3000").split(",") if o]

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=False,
)

# ---- Schemas ----
class FormulaReq(BaseModel):
    formula: dict[str, t.Any] | None = None

class CalculateReq(FormulaReq):
    answers: list[dict[str, t.Any]] = Field(default_factory=list)

class PreviewReq(FormulaReq):
    weights: list[dict[str, t.Any]] = Field(default_factory=list)

class WeightsReq(BaseModel):
    weights: dict[str, t.Any]
    domain: str = "capped"

class StartReq(BaseModel):
    user_id: str | None = None
    quiz_id: str | None = None
    formula_id: str | None = None
    situation_context: str = ""
    goal: str = ""
    tone_preference: str = ""
    other_person_role: str = ""
    question_count: int = DEFAULT_QUESTION_COUNT

class AnswerReq(BaseModel):
    direction: str

class WimtsReq(BaseModel):
    raw_input: str
    situation_context: str = ""
    personality_metrics: dict[str, float] | None = None
    user_id: str | None = None

class InsightReq(BaseModel):
    user_id: str | None = None
    metrics: dict[str, float] | None = None

# ---- Helpers ----
def _formula(raw: dict[str, t.Any] | None) -> ScoringFormula:
    if raw is None:
        return default_formula()
    try:
        return formula_from_dict(raw)
    except (TypeError, ValueError) as e:
        raise HTTPException(422, f"malformed formula: {e}")


def _serialize_question(q: Question | None, sess: QuizSession) -> dict[str, t.Any] | None:
    if q is None: return None
    return {
        "id": q.id,
        "text": q.text,
        "category": q.category,
        "options": [{"id": o.id, "label": o.label, "direction": o.direction} for o in q.options],
        "alignmentPhrase": sess.alignment_phrase(),
        "progress": sess.progress(),
    }


def _session(sid: str) -> QuizSession:
    sess = SESS.get(sid)
    if not sess: raise HTTPException(404, "session not found")
    return sess


def _build_quiz(req: StartReq) -> tuple[Quiz, str]:
    if req.quiz_id:
        raw = load_quiz(req.quiz_id)
        if raw is None:
            raise HTTPException(404, "quiz not found")
        quiz, source = quiz_from_dict(raw), "stored"
    else:
        quiz, source = load_bank(), "default"
        ctx = QuestionGenerationContext(
            situation_context=req.situation_context,
            goal=req.goal,
            tone_preference=req.tone_preference,
            other_person_role=req.other_person_role,
        )
        if any((ctx.situation_context, ctx.goal, ctx.tone_preference, ctx.other_person_role)):
            count = max(1, min(req.question_count, MAX_QUESTION_COUNT))
            texts = generate_quiz_questions(ctx, count)
            if texts:
                quiz = Quiz(
                    id=f"generated-{uuid.uuid4().hex[:8]}",
                    title="Personalized Assessment",
                    questions=questions_from_texts(texts),
                    formula=quiz.formula,
                    choice_mode=quiz.choice_mode,
                )
                source = "generated"
            else:
                log.info("question generation returned nothing; using default bank")
    if req.formula_id:
        raw_f = load_formula(req.formula_id)
        if raw_f is None:
            raise HTTPException(404, "formula not found")
        quiz.formula = formula_from_dict(raw_f)
    return quiz, source

# ---- Health ----
@app.get("/")
def root():
    return {"status": "ok", "service": "persona-swipe-api"}

@app.get("/health")
def health():
    backend = get_backend(load_config())
    return {"llm_backend": backend or "none", "llm_configured": is_configured(backend)}

# ---- Buckets / formulas ----
@app.get("/buckets")
def buckets():
    return {"buckets": [b.__dict__ for b in default_buckets()]}

@app.get("/formula/default")
def formula_default():
    return formula_to_dict(default_formula())

@app.post("/formula/validate")
def formula_validate(raw: dict[str, t.Any] = Body(...)):
    errors = validate_formula(_formula(raw))
    return {"valid": not errors, "errors": errors}

@app.put("/formulas/{formula_id}")
def put_formula(formula_id: str, raw: dict[str, t.Any] = Body(...)):
    formula = _formula(dict(raw, id=formula_id))
    try:
        ensure_valid(formula)
    except ConfigurationError as e:
        raise HTTPException(422, {"errors": e.errors})
    payload = formula_to_dict(formula)
    save_formula(formula_id, payload)
    return payload

@app.get("/formulas/{formula_id}")
def get_formula(formula_id: str):
    raw = load_formula(formula_id)
    if raw is None: raise HTTPException(404, "formula not found")
    return raw

# ---- Stored quizzes ----
def _quiz_errors(quiz: Quiz) -> list[str]:
    errors = list(validate_formula(quiz.formula))
    if not quiz.questions:
        errors.append("Quiz must have at least one question")
    if quiz.formula.weight_domain != "capped":
        return errors
    for q in quiz.questions:
        for o in q.options:
            errors += [f"{q.id}/{o.id}: {e}" for e in weight_errors(o.weights)]
    return errors

@app.get("/quizzes")
def get_quizzes():
    return {"quizzes": list_quizzes()}

@app.get("/quizzes/{quiz_id}")
def get_quiz(quiz_id: str):
    raw = load_quiz(quiz_id)
    if raw is None: raise HTTPException(404, "quiz not found")
    return raw

@app.put("/quizzes/{quiz_id}")
def put_quiz(quiz_id: str, raw: dict[str, t.Any] = Body(...)):
    try:
        quiz = quiz_from_dict(dict(raw, id=quiz_id))
    except (KeyError, TypeError, ValueError) as e:
        raise HTTPException(422, f"malformed quiz: {e}")
    errors = _quiz_errors(quiz)
    if errors:
        raise HTTPException(422, {"errors": errors})
    payload = quiz_to_dict(quiz)
    save_quiz(quiz_id, payload)
    return payload

# ---- Scoring ----
@app.post("/scoring/calculate")
def scoring_calculate(req: CalculateReq):
    results = calculate_scores(req.answers, _formula(req.formula))
    return {"scores": [r.to_dict() for r in results]}

@app.post("/scoring/preview")
def scoring_preview(req: PreviewReq):
    results = preview_scoring(req.weights, _formula(req.formula))
    return {"scores": [r.to_dict() for r in results]}

@app.post("/weights/validate")
def weights_validate(req: WeightsReq):
    w = BucketWeights.from_mapping(req.weights)
    errors = weight_errors(w, req.domain)
    valid = validate_weights(w) if req.domain == "capped" else not errors
    return {"valid": valid, "errors": errors, "total": w.total()}

@app.post("/weights/normalize")
def weights_normalize(req: WeightsReq):
    return {"weights": normalize_weights(BucketWeights.from_mapping(req.weights)).to_dict()}

# ---- Quiz sessions ----
@app.post("/quiz/start")
def quiz_start(req: StartReq):
    quiz, source = _build_quiz(req)
    sid = str(uuid.uuid4())
    sess = QuizSession(quiz)
    SESS[sid] = sess
    SESSION_INFO[sid] = {"user_id": req.user_id, "started_at": utcnow_iso(), "source": source}
    return {
        "session_id": sid,
        "source": source,
        "quiz": {"id": quiz.id, "title": quiz.title, "choiceMode": quiz.choice_mode,
                 "totalQuestions": len(quiz.questions)},
        "question": _serialize_question(sess.current_question(), sess),
    }

@app.post("/quiz/{sid}/answer")
def quiz_answer(sid: str, req: AnswerReq):
    sess = _session(sid)
    try:
        scores = sess.answer(req.direction)
    except SessionComplete as e:
        raise HTTPException(409, str(e))
    except InvalidAnswer as e:
        raise HTTPException(400, str(e))
    return {
        "done": sess.done,
        "scores": [s.to_dict() for s in scores],
        "question": _serialize_question(sess.current_question(), sess),
    }

@app.get("/quiz/{sid}/scores")
def quiz_scores(sid: str):
    sess = _session(sid)
    return {"done": sess.done, "scores": [s.to_dict() for s in sess.scores()]}

@app.post("/quiz/{sid}/finish")
def quiz_finish(sid: str):
    sess = _session(sid)
    info = SESSION_INFO.get(sid, {})
    result = sess.finalize()
    rid = str(uuid.uuid4())
    created = utcnow_iso()
    payload = results_to_payload(result)
    payload.update({"id": rid, "createdAt": created, "sessionId": sid, "source": info.get("source")})
    if info.get("user_id"):
        payload["userId"] = info["user_id"]
    save_result(rid, payload, {
        "sessionId": sid,
        "userId": info.get("user_id"),
        "createdAt": created,
        "quizId": result.quiz_id,
        "topBuckets": result.top_buckets,
    })
    if info.get("user_id") and result.answers:
        append_metrics(info["user_id"], scores_by_bucket(result.scores), at=created)
    SESS.pop(sid, None)
    SESSION_INFO.pop(sid, None)
    return payload

# ---- Results ----
@app.get("/results/{result_id}")
def get_result(result_id: str):
    res = load_result(result_id)
    if not res: raise HTTPException(404, "result not found")
    return res

@app.get("/results/{result_id}/html")
def get_result_html(result_id: str):
    res = load_result(result_id)
    if not res: raise HTTPException(404, "result not found")
    return Response(content=render_results_html(res), media_type="text/html")

@app.delete("/results/{result_id}")
def delete_result_endpoint(result_id: str):
    if not delete_result(result_id):
        raise HTTPException(404, "result not found")
    return {"ok": True}

@app.get("/users/{user_id}/results")
def list_results(user_id: str):
    return {"results": list_results_for_user(user_id)}

# ---- AI text ----
def _latest_metrics(user_id: str) -> dict[str, float]:
    latest: dict[str, float] = {}
    for row in metrics_history(user_id):
        latest[str(row.get("metric"))] = float(row.get("value", 0.0))
    return latest

@app.post("/wimts")
def wimts(req: WimtsReq):
    if not req.raw_input.strip():
        raise HTTPException(400, "raw_input is empty")
    metrics = req.personality_metrics
    if metrics is None and req.user_id:
        metrics = _latest_metrics(req.user_id) or None
    candidates = generate_wimts_candidates(WimtsContext(
        raw_input=req.raw_input,
        situation_context=req.situation_context,
        personality_metrics=metrics,
    ))
    if req.user_id:
        append_wimts(req.user_id, {
            "rawInput": req.raw_input,
            "situationContext": req.situation_context,
            "candidates": candidates,
        })
    return {"candidates": candidates}

@app.post("/insights")
def insights(req: InsightReq):
    history: list[dict[str, t.Any]] = []
    recent: list[dict[str, t.Any]] = []
    if req.user_id:
        history = metrics_history(req.user_id)
        recent = recent_wimts(req.user_id)
    if req.metrics:
        now = utcnow_iso()
        history = history + [{"metric": k, "value": v, "date": now} for k, v in req.metrics.items()]
    return {"insight": generate_personality_insight(history, recent)}

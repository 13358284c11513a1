from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from tests.conftest import reload_api


@pytest.fixture
def api(tmp_path, monkeypatch):
    storage, app_module = reload_api(tmp_path, monkeypatch)
    return storage, app_module, TestClient(app_module.app)


def test_health_and_buckets(api):
    _storage, _app, client = api
    assert client.get("/").json()["status"] == "ok"
    assert client.get("/health").json() == {"llm_backend": "none", "llm_configured": False}
    buckets = client.get("/buckets").json()["buckets"]
    assert [b["id"] for b in buckets] == ["thinking", "feeling", "sensing", "intuition"]


def test_formula_validation_and_storage(api):
    _storage, _app, client = api
    default = client.get("/formula/default").json()
    assert default["tieBreaking"]["priority"] == ["feeling", "intuition", "thinking", "sensing"]
    assert client.post("/formula/validate", json=default).json() == {"valid": True, "errors": []}

    bad = dict(default, tieBreaking={"priority": ["feeling", "feeling"]})
    body = client.post("/formula/validate", json=bad).json()
    assert body["valid"] is False and len(body["errors"]) == 2

    resp = client.put("/formulas/team", json=bad)
    assert resp.status_code == 422
    assert client.get("/formulas/team").status_code == 404

    resp = client.put("/formulas/team", json=dict(default, aggregation="average"))
    assert resp.status_code == 200
    stored = client.get("/formulas/team").json()
    assert stored["id"] == "team" and stored["aggregation"] == "average"


def test_malformed_formula_is_rejected(api):
    _storage, _app, client = api
    resp = client.post("/formula/validate", json={"topKHighlight": {"method": "threshold", "threshold": "high"}})
    assert resp.status_code == 422


def test_scoring_endpoints(api):
    _storage, _app, client = api
    answers = [
        {"questionId": "q1", "answerId": "a", "bucketWeights": {"thinking": 2}},
        {"questionId": "q2", "answerId": "b", "bucketWeights": {"thinking": 3, "feeling": 1}},
        {"questionId": "q3", "answerId": "c", "bucketWeights": {}},
    ]
    scores = client.post("/scoring/calculate", json={"answers": answers}).json()["scores"]
    raw = {s["bucketId"]: s["rawScore"] for s in scores}
    assert raw == {"thinking": 5, "feeling": 1, "sensing": 0, "intuition": 0}
    assert scores[0]["bucketId"] == "thinking" and scores[0]["isTopK"] is True

    formula = {"normalization": {"enabled": False}, "topKHighlight": {"method": "threshold", "threshold": 70}}
    weights = [{"thinking": 80, "feeling": 70, "sensing": 60, "intuition": 50}]
    scores = client.post("/scoring/preview", json={"weights": weights, "formula": formula}).json()["scores"]
    assert [s["bucketId"] for s in scores if s["isTopK"]] == ["thinking", "feeling"]


def test_weight_endpoints(api):
    _storage, _app, client = api
    resp = client.post("/weights/validate", json={"weights": {"feeling": 6, "sensing": 5}}).json()
    assert resp["valid"] is False and resp["total"] == 11
    resp = client.post("/weights/validate", json={"weights": {"feeling": 2, "thinking": -1}, "domain": "signed"}).json()
    assert resp["valid"] is True
    resp = client.post("/weights/normalize", json={"weights": {"feeling": 2, "sensing": 2}}).json()
    assert resp["weights"] == {"feeling": 5.0, "sensing": 5.0, "intuition": 0.0, "thinking": 0.0}


def test_quiz_flow_persists_result(api):
    storage, _app, client = api
    start = client.post("/quiz/start", json={"user_id": "u1"}).json()
    assert start["source"] == "default"
    assert start["quiz"]["totalQuestions"] == 5
    sid = start["session_id"]
    assert start["question"]["id"] == "q1"
    assert [o["direction"] for o in start["question"]["options"]] == ["left", "right", "up"]

    assert client.post(f"/quiz/{sid}/answer", json={"direction": "north"}).status_code == 400
    for i in range(5):
        body = client.post(f"/quiz/{sid}/answer", json={"direction": "right"}).json()
        assert body["done"] is (i == 4)
    assert body["question"] is None
    assert client.post(f"/quiz/{sid}/answer", json={"direction": "right"}).status_code == 409

    result = client.post(f"/quiz/{sid}/finish").json()
    assert result["topBuckets"] == ["feeling", "intuition"]
    assert result["userId"] == "u1"
    rid = result["id"]

    assert client.get(f"/results/{rid}").json()["topBuckets"] == ["feeling", "intuition"]
    page = client.get(f"/results/{rid}/html")
    assert page.status_code == 200 and "Top traits:</b> Feeling, Intuition" in page.text
    listed = client.get("/users/u1/results").json()["results"]
    assert [r["id"] for r in listed] == [rid]
    assert {row["metric"] for row in storage.metrics_history("u1")} == {"feeling", "sensing", "intuition", "thinking"}

    assert client.post(f"/quiz/{sid}/answer", json={"direction": "left"}).status_code == 404
    assert client.delete(f"/results/{rid}").json() == {"ok": True}
    assert client.get(f"/results/{rid}").status_code == 404
    assert client.delete(f"/results/{rid}").status_code == 404


def test_quiz_start_uses_generated_questions(api, monkeypatch):
    _storage, app_module, client = api
    monkeypatch.setattr(app_module, "generate_quiz_questions", lambda ctx, count: ["Do you plan ahead?", "Do you trust gut feel?"])
    start = client.post("/quiz/start", json={"goal": "understand my style", "question_count": 2}).json()
    assert start["source"] == "generated"
    assert start["quiz"]["totalQuestions"] == 2
    assert start["question"]["text"] == "Do you plan ahead?"


def test_quiz_start_falls_back_when_generation_fails(api, monkeypatch):
    _storage, app_module, client = api
    monkeypatch.setattr(app_module, "generate_quiz_questions", lambda ctx, count: [])
    start = client.post("/quiz/start", json={"situation_context": "work"}).json()
    assert start["source"] == "default"
    assert start["quiz"]["totalQuestions"] == 5


def test_quiz_start_with_stored_quiz_and_formula(api):
    storage, _app, client = api
    storage.save_quiz("mini", {
        "id": "mini", "title": "Mini", "choiceMode": "2-choice",
        "questions": [{"id": "m1", "text": "Rules matter", "category": "general",
                       "options": [{"id": "m1-l", "direction": "left"}, {"id": "m1-r", "direction": "right"}]}],
    })
    client.put("/formulas/thr", json={"topKHighlight": {"method": "threshold", "threshold": 100}})
    start = client.post("/quiz/start", json={"quiz_id": "mini", "formula_id": "thr"}).json()
    assert start["source"] == "stored" and start["quiz"]["choiceMode"] == "2-choice"
    sid = start["session_id"]
    assert client.post(f"/quiz/{sid}/answer", json={"direction": "up"}).status_code == 400
    body = client.post(f"/quiz/{sid}/answer", json={"direction": "left"}).json()
    assert body["done"] is True
    assert [s["bucketId"] for s in body["scores"] if s["isTopK"]] == ["thinking", "sensing"]
    assert client.post("/quiz/start", json={"quiz_id": "nope"}).status_code == 404


def test_wimts_and_insights_without_llm(api):
    storage, _app, client = api
    resp = client.post("/wimts", json={"raw_input": "Please stop", "user_id": "u2"}).json()
    assert resp["candidates"] == ["Please stop"] * 3
    assert storage.recent_wimts("u2")[0]["rawInput"] == "Please stop"
    assert client.post("/wimts", json={"raw_input": "   "}).status_code == 400

    storage.append_metrics("u2", {"feeling": 20.0, "thinking": 75.0})
    insight = client.post("/insights", json={"user_id": "u2"}).json()["insight"]
    assert insight.startswith("Your Thinking side stands out")
    assert client.post("/insights", json={}).json()["insight"] == "Your personality journey is unique and valuable."


def test_seed_is_idempotent(api):
    from tools.seed import seed

    storage, _app, _client = api
    assert seed(storage) == {"buckets": 4, "settings": 2}
    storage.upsert_setting("monthly_quiz_limit", {"general": 99}, overwrite=True)
    assert seed(storage) == {"buckets": 0, "settings": 0}
    assert storage.get_setting("monthly_quiz_limit") == {"general": 99}
    assert storage.get_setting("ai_models")["insights"] == "gpt-4"
    assert set(storage.list_stored_buckets()) == {"Thinking", "Feeling", "Sensing", "Intuition"}


def test_quiz_authoring_blocks_invalid_weights(api):
    _storage, _app, client = api
    quiz = {
        "title": "Team",
        "formula": {"weightDomain": "capped"},
        "questions": [{"id": "t1", "text": "I follow the plan", "options": [
            {"id": "t1-l", "direction": "left", "weights": {"feeling": 6, "sensing": 5}},
            {"id": "t1-r", "direction": "right", "weights": {"thinking": 4}},
        ]}],
    }
    resp = client.put("/quizzes/team", json=quiz)
    assert resp.status_code == 422
    assert resp.json()["detail"]["errors"] == ["t1/t1-l: Total weight 11.0 exceeds the cap of 10"]
    assert client.get("/quizzes/team").status_code == 404

    quiz["questions"][0]["options"][0]["weights"] = {"feeling": 6}
    assert client.put("/quizzes/team", json=quiz).status_code == 200
    assert client.get("/quizzes").json()["quizzes"] == [{"id": "team", "title": "Team"}]
    stored = client.get("/quizzes/team").json()
    assert stored["id"] == "team" and stored["formula"]["weightDomain"] == "capped"

    start = client.post("/quiz/start", json={"quiz_id": "team"}).json()
    assert start["source"] == "stored" and start["question"]["id"] == "t1"


def test_signed_quiz_accepts_negative_weights(api):
    _storage, _app, client = api
    bank = client.put("/quizzes/swipe", json={
        "title": "Swipe",
        "formula": {"weightDomain": "signed"},
        "questions": [{"id": "s1", "text": "Logic first", "category": "thinking-feeling",
                       "options": [{"id": "s1-l", "direction": "left"}, {"id": "s1-r", "direction": "right"}]}],
    })
    assert bank.status_code == 200
    weights = bank.json()["questions"][0]["options"][0]["weights"]
    assert weights["thinking"] == 2.0 and weights["feeling"] == -1.0
    assert client.put("/quizzes/empty", json={"title": "Empty"}).json()["detail"]["errors"] == [
        "Quiz must have at least one question"]


def test_non_bucket_priority_entries_do_not_break_endpoints(api):
    _storage, _app, client = api
    formula = {"tieBreaking": {"priority": [["feeling"], "sensing", "intuition", {"id": "thinking"}]}}
    resp = client.post("/scoring/calculate", json={"answers": [], "formula": formula})
    assert resp.status_code == 200
    assert [s["bucketId"] for s in resp.json()["scores"]] == ["sensing", "intuition", "feeling", "thinking"]

    body = client.post("/formula/validate", json=formula).json()
    assert body["valid"] is False
    assert len(body["errors"]) == 1 and body["errors"][0].startswith("Tie-breaking priority has unknown buckets")
    assert client.put("/formulas/odd", json=formula).status_code == 422

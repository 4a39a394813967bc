"""End-to-end interview flow over HTTP."""
from __future__ import annotations

from interview_session import QUESTIONS_KEY


def _auth(user: str = "u1") -> dict:
    return {"Authorization": f"Bearer token-{user}"}


def _create(client, user="u1", **overrides) -> str:
    payload = {"category": "HR", "difficulty": "Easy", "question_count": 3}
    payload.update(overrides)
    response = client.post("/api/interviews", json=payload, headers=_auth(user))
    assert response.status_code == 201, response.text
    return response.json()["interview_id"]


def test_health_needs_no_auth(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_openapi_documents_error_body(client):
    schema = client.get("/openapi.json").json()
    assert set(schema["components"]["schemas"]["ErrorResp"]["properties"]) == {"kind", "detail"}
    responses = schema["paths"]["/api/interviews"]["post"]["responses"]
    assert responses["409"]["content"]["application/json"]["schema"]["$ref"].endswith("/ErrorResp")


def test_oversized_question_count_is_400(client):
    response = client.post(
        "/api/interviews",
        json={"category": "HR", "difficulty": "Easy", "question_count": 100000},
        headers=_auth(),
    )
    assert response.status_code == 400
    assert response.json()["kind"] == "invalid_argument"
    assert client.get("/api/interviews", headers=_auth()).json() == []


def test_missing_token_is_401(client):
    response = client.get("/api/interviews")
    assert response.status_code == 401
    assert response.json()["kind"] == "unauthenticated"


def test_expired_token_is_401_and_bad_token_is_403(client):
    expired = client.get("/api/interviews", headers={"Authorization": "Bearer expired"})
    assert expired.status_code == 401
    bad = client.get("/api/interviews", headers={"Authorization": "Bearer garbage"})
    assert bad.status_code == 403
    assert bad.json()["kind"] == "unauthorized"


def test_full_interview_flow(client, generator):
    interview_id = _create(client)

    opened = client.get(f"/api/interviews/{interview_id}", headers=_auth())
    assert opened.status_code == 200
    sheet = opened.json()
    assert sheet["total_questions"] == 3
    assert sheet["duration_minutes"] == 9
    assert sheet["status"] == "active"
    assert sheet["category"] == "HR"

    generator.scores = [90, 40, 71]
    for question in sheet["questions"]:
        answered = client.post(
            f"/api/interviews/{interview_id}/answers",
            json={"question_id": question["id"], "question_text": question["text"], "answer": "My answer"},
            headers=_auth(),
        )
        assert answered.status_code == 200, answered.text
        body = answered.json()
        assert 0 <= body["score"] <= 100
        assert 2 <= len(body["key_points"]) <= 3

    completed = client.post(f"/api/interviews/{interview_id}/complete", json={"elapsed_seconds": 400}, headers=_auth())
    assert completed.status_code == 200
    assert completed.json()["overall_score"] == 67
    assert completed.json()["status"] == "completed"
    assert completed.json()["duration"] == "6 minutes 40 seconds"

    results = client.get(f"/api/interviews/{interview_id}/results", headers=_auth())
    assert results.status_code == 200
    result = results.json()
    assert result["overall_score"] == 67
    assert len(result["questions"]) == 3
    assert result["questions"][1]["score"] == 40
    assert result["strengths"]
    assert result["improvements"]

    report = client.get(f"/api/interviews/{interview_id}/report.pdf", headers=_auth())
    assert report.status_code == 200
    assert report.headers["content-type"] == "application/pdf"
    assert "attachment" in report.headers["content-disposition"]
    assert report.content.startswith(b"%PDF")

    listing = client.get("/api/interviews", headers=_auth()).json()
    assert listing[0]["id"] == interview_id
    assert listing[0]["score"] == 67

    recommendations = client.get("/api/recommendations", headers=_auth()).json()
    assert [item["category"] for item in recommendations] == ["HR"]
    assert generator.count(QUESTIONS_KEY) == 1


def test_other_user_is_forbidden(client):
    interview_id = _create(client)
    response = client.get(f"/api/interviews/{interview_id}", headers=_auth("u2"))
    assert response.status_code == 403
    assert response.json()["kind"] == "forbidden"


def test_unknown_interview_is_404(client):
    response = client.post("/api/interviews/nope/cancel", headers=_auth())
    assert response.status_code == 404
    assert response.json() == {"kind": "not_found", "detail": "Interview session not found."}


def test_invalid_create_payloads_are_400(client):
    bad_category = client.post(
        "/api/interviews",
        json={"category": "Cooking", "difficulty": "Easy", "question_count": 3},
        headers=_auth(),
    )
    assert bad_category.status_code == 400
    assert bad_category.json()["kind"] == "invalid_argument"

    zero = client.post(
        "/api/interviews",
        json={"category": "HR", "difficulty": "Easy", "question_count": 0},
        headers=_auth(),
    )
    assert zero.status_code == 400

    missing = client.post("/api/interviews", json={"category": "HR"}, headers=_auth())
    assert missing.status_code == 400
    assert missing.json()["kind"] == "invalid_argument"
    assert "difficulty" in missing.json()["detail"]


def test_cancel_then_complete_is_409(client):
    interview_id = _create(client)
    cancelled = client.post(f"/api/interviews/{interview_id}/cancel", headers=_auth())
    assert cancelled.status_code == 200
    again = client.post(f"/api/interviews/{interview_id}/complete", json={"elapsed_seconds": 5}, headers=_auth())
    assert again.status_code == 409
    assert again.json()["kind"] == "invalid_state"


def test_generation_failure_is_502(client, generator):
    interview_id = _create(client)
    generator.fail_questions = True
    response = client.get(f"/api/interviews/{interview_id}", headers=_auth())
    assert response.status_code == 502
    assert response.json()["kind"] == "upstream_error"


def test_results_before_completion_is_409(client):
    interview_id = _create(client)
    response = client.get(f"/api/interviews/{interview_id}/results", headers=_auth())
    assert response.status_code == 409

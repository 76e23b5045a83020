"""Integration tests for the HTTP API using FastAPI's TestClient."""

import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.models.response import SurveyResponse
from app.models.database import get_db
from app.routes.dependencies import get_clock, get_question_set


@pytest.fixture
def client(db_session, clock, question_set):
    """TestClient sharing the test session, clock and question set."""
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_question_set] = lambda: question_set

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def submission():
    return {
        "gender": "Female",
        "ageGroup": "30s",
        "understanding": 4,
        "satisfaction": 5,
        "freeComment": "Clear examples",
        "responseTime": 95,
    }


class TestServiceEndpoints:
    """Tests for root and health endpoints."""

    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["status"] == "operational"

    def test_health_before_any_cycle(self, client):
        body = client.get("/health").json()

        assert body["status"] == "healthy"
        assert body["last_cycle_started_at"] is None

    def test_health_after_cycle(self, client):
        client.post("/api/closure/run")

        body = client.get("/health").json()

        assert body["last_cycle_started_at"] is not None
        assert body["last_cycle_finished_at"] is not None


class TestClosureEndpoints:
    """Tests for the closure and analysis endpoints."""

    def test_run_cycle(self, client, make_lecture, add_responses, sample_answers):
        lecture = make_lecture()
        add_responses(lecture, sample_answers)

        response = client.post("/api/closure/run")

        assert response.status_code == 200
        body = response.json()
        assert body["closedCount"] == 1
        assert body["analyzedCount"] == 1
        assert body["error"] is None
        assert body["skipped"] is False

    def test_close_lecture(self, client, make_lecture):
        lecture = make_lecture(survey_close_time="18:00")

        response = client.post(
            f"/api/lectures/{lecture.id}/close",
            json={"triggerAnalysis": True, "userId": "lecturer-1"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["analysis"]["success"] is True
        assert body["analysis"]["resultsCount"]["summary"] == 2

    def test_close_without_body(self, client, make_lecture):
        lecture = make_lecture(survey_close_time="18:00")

        response = client.post(f"/api/lectures/{lecture.id}/close")

        assert response.status_code == 200
        assert response.json()["analysis"] is None

    def test_close_after_deadline_conflict(self, client, make_lecture):
        lecture = make_lecture()

        response = client.post(f"/api/lectures/{lecture.id}/close")

        assert response.status_code == 409

    def test_close_missing_lecture(self, client):
        assert client.post("/api/lectures/999/close").status_code == 404

    def test_analysis(self, client, make_lecture, add_responses, sample_answers):
        lecture = make_lecture(survey_status="closed")
        add_responses(lecture, sample_answers)

        response = client.post(f"/api/lectures/{lecture.id}/analysis", json={"triggeredBy": "admin"})

        assert response.status_code == 200
        body = response.json()
        assert body["totalResponses"] == 3
        assert body["resultsCount"] == {"simple": 21, "cross": 110, "summary": 10}
        assert body["resultSetId"] is not None

    def test_analysis_of_active_lecture(self, client, make_lecture):
        lecture = make_lecture()

        assert client.post(f"/api/lectures/{lecture.id}/analysis").status_code == 409

    def test_analysis_missing_lecture(self, client):
        assert client.post("/api/lectures/999/analysis").status_code == 404


class TestResultEndpoints:
    """Tests for reading stored results."""

    def test_latest_results(self, client, make_lecture, add_responses, sample_answers):
        lecture = make_lecture(survey_status="closed")
        add_responses(lecture, sample_answers)
        client.post(f"/api/lectures/{lecture.id}/analysis")

        response = client.get(f"/api/lectures/{lecture.id}/results/latest")

        assert response.status_code == 200
        body = response.json()
        assert body["lectureId"] == lecture.id
        assert body["totalResponses"] == 3
        assert len(body["facts"]) == 141
        male = next(
            f for f in body["facts"]
            if f["statType"] == "simple" and f["dim1Code"] == "gender" and f["dim1Option"] == "male"
        )
        assert male["pct"] == 66.67

    def test_no_results_yet(self, client, make_lecture):
        lecture = make_lecture()

        assert client.get(f"/api/lectures/{lecture.id}/results/latest").status_code == 404
        assert client.get(f"/api/lectures/{lecture.id}/results/latest/highlights").status_code == 404

    def test_latest_highlights(self, client, make_lecture, add_responses, sample_answers):
        lecture = make_lecture(survey_status="closed")
        add_responses(lecture, sample_answers)
        client.post(f"/api/lectures/{lecture.id}/analysis")

        response = client.get(f"/api/lectures/{lecture.id}/results/latest/highlights")

        assert response.status_code == 200
        body = response.json()
        assert body["lectureId"] == lecture.id
        assert len(body["distributions"]) == 4
        assert len(body["crosses"]) == 4
        assert len(body["comparisons"]) == 4

        gender = body["distributions"][0]
        assert gender["dimensionCode"] == "gender"
        assert [o["optionCode"] for o in gender["topOptions"]] == ["male", "female"]

        cross = body["crosses"][0]
        assert (cross["dim1Code"], cross["dim2Code"]) == ("understanding", "gender")
        assert cross["stats"] == {
            "totalCells": 20,
            "nonZeroCells": 3,
            "maxCount": 1,
            "avgCount": 0.15,
            "totalResponses": 3,
        }

        comparison = body["comparisons"][0]
        assert (comparison["groupCode"], comparison["targetCode"]) == ("gender", "understanding")
        assert comparison["bestGroup"]["groupOption"] == "male"
        assert comparison["worstGroup"]["groupOption"] == "female"
        assert comparison["averageScore"] == 3.75
        assert comparison["scoreRange"] == 1.5

    def test_highlights_query_parameters(self, client, make_lecture, add_responses, sample_answers):
        lecture = make_lecture(survey_status="closed")
        add_responses(lecture, sample_answers)
        client.post(f"/api/lectures/{lecture.id}/analysis")

        response = client.get(
            f"/api/lectures/{lecture.id}/results/latest/highlights",
            params={"top": 1, "thresholdPct": 50},
        )

        gender = response.json()["distributions"][0]
        assert [o["optionCode"] for o in gender["topOptions"]] == ["male"]
        assert [o["optionCode"] for o in gender["optionsAboveThreshold"]] == ["male"]


class TestResponseEndpoints:
    """Tests for availability and submission."""

    def test_available(self, client, make_lecture):
        lecture = make_lecture(survey_close_time="18:00")

        body = client.get(f"/api/lectures/{lecture.id}/availability").json()

        assert body["available"] is True
        assert body["lecture"]["title"] == "Intro to Statistics"

    @pytest.mark.parametrize("overrides,reason", [
        ({}, "survey_expired"),
        ({"survey_status": "closed"}, "survey_not_active"),
        ({"survey_close_time": "late"}, "invalid_deadline"),
    ])
    def test_unavailable(self, client, make_lecture, overrides, reason):
        lecture = make_lecture(**overrides)

        body = client.get(f"/api/lectures/{lecture.id}/availability").json()

        assert body == {"available": False, "reason": reason}

    def test_unavailable_missing_lecture(self, client):
        body = client.get("/api/lectures/999/availability").json()

        assert body["reason"] == "lecture_not_found"

    def test_submit(self, client, make_lecture, submission):
        lecture = make_lecture(survey_close_time="18:00")

        response = client.post(f"/api/lectures/{lecture.id}/responses", json=submission)

        assert response.status_code == 201
        assert response.json()["success"] is True
        count = client.get(f"/api/lectures/{lecture.id}/responses/count").json()
        assert count == {"lectureId": lecture.id, "count": 1}

    def test_submit_stores_canonical_option(self, client, db_session, make_lecture, submission):
        lecture = make_lecture(survey_close_time="18:00")
        response_id = client.post(
            f"/api/lectures/{lecture.id}/responses", json=submission
        ).json()["responseId"]

        stored = db_session.get(SurveyResponse, response_id)
        assert stored.gender == "female"
        assert stored.client_hash is not None

    def test_duplicate_client(self, client, make_lecture, submission):
        lecture = make_lecture(survey_close_time="18:00")
        client.post(f"/api/lectures/{lecture.id}/responses", json=submission)

        response = client.post(f"/api/lectures/{lecture.id}/responses", json=submission)

        assert response.status_code == 409
        assert response.json()["detail"]["error"] == "duplicate_response"

    def test_submit_after_deadline(self, client, make_lecture, submission):
        lecture = make_lecture()

        response = client.post(f"/api/lectures/{lecture.id}/responses", json=submission)

        assert response.status_code == 409

    def test_submit_unknown_option(self, client, make_lecture, submission):
        lecture = make_lecture(survey_close_time="18:00")
        submission["ageGroup"] = "80s"

        response = client.post(f"/api/lectures/{lecture.id}/responses", json=submission)

        assert response.status_code == 422
        assert response.json()["detail"]["error"] == "invalid_answer"

    def test_submit_rating_out_of_range(self, client, make_lecture, submission):
        lecture = make_lecture(survey_close_time="18:00")
        submission["understanding"] = 6

        assert client.post(f"/api/lectures/{lecture.id}/responses", json=submission).status_code == 422

    def test_submit_missing_lecture(self, client, submission):
        assert client.post("/api/lectures/999/responses", json=submission).status_code == 404

    def test_count_missing_lecture(self, client):
        assert client.get("/api/lectures/999/responses/count").status_code == 404

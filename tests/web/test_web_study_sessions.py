"""Tests for study session endpoints."""

import pytest


def _create(client, duration=25, user_id="user1"):
    response = client.post("/api/study-sessions", json={"userId": user_id, "duration": duration})
    assert response.status_code == 200
    return response.json()["data"]


class TestStudySessionEndpoints:
    """Tests for /api/study-sessions."""

    def test_create_and_list(self, client):
        session = _create(client)

        body = client.get("/api/study-sessions", params={"userId": "user1"}).json()
        assert [s["id"] for s in body["data"]] == [session["id"]]
        assert session["duration"] == 25

    def test_zero_duration_is_400(self, client):
        response = client.post("/api/study-sessions", json={"userId": "user1", "duration": 0})
        assert response.status_code == 400

    def test_get_by_id(self, client):
        session = _create(client)
        body = client.get(f"/api/study-sessions/{session['id']}").json()
        assert body["data"]["userId"] == "user1"

    def test_deleted_session_is_gone(self, client):
        session = _create(client)

        response = client.delete("/api/study-sessions", params={"sessionId": session["id"]})
        assert response.status_code == 200
        assert client.get(f"/api/study-sessions/{session['id']}").status_code == 404

    def test_paging(self, client):
        for duration in (10, 20, 30):
            _create(client, duration)

        body = client.get(
            "/api/study-sessions", params={"userId": "user1", "limit": 2, "offset": 0}
        ).json()
        assert len(body["data"]) == 2

    def test_stats(self, client):
        _create(client, 20)
        _create(client, 40)

        data = client.get("/api/study-sessions/stats", params={"userId": "user1"}).json()["data"]
        assert data["todayMinutes"] == 60
        assert data["totalSessions"] == 2
        assert data["averageSessionLength"] == 30
        assert data["currentStreak"] == 1

    @pytest.mark.parametrize("duration", ["NaN", "Infinity", "-5"])
    def test_non_finite_or_negative_duration_is_400(self, client, duration):
        response = client.post(
            "/api/study-sessions",
            content='{"userId": "user1", "duration": %s}' % duration,
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert client.get("/api/study-sessions", params={"userId": "user1"}).json()["data"] == []

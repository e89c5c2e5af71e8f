from unittest.mock import MagicMock

from shield.dates import day_id_for, utcnow
from shield.routers.auth import get_checkin_store
from shield.main import app
from shield.services.checkin_store import CheckInStore
from shield.services.storage import LocalStorageError

MODERATE = {
    "level": "moderate",
    "symptoms": ["headache", "poorSleep"],
    "drankLastNight": True,
    "drinkingToday": False,
}


def _today() -> str:
    return day_id_for(utcnow(), "UTC")


class TestInfo:
    def test_health(self, client) -> None:
        assert client.get("/health").json() == {"status": "healthy"}

    def test_root(self, client) -> None:
        assert client.get("/").json()["name"] == "Hangover Shield"


class TestAuth:
    def test_register_login_me(self, client) -> None:
        registered = client.post(
            "/api/v1/auth/register",
            json={"email": "kim@hangovershield.co", "password": "pw-123456", "name": "Kim", "timezone": "Europe/Paris"},
        )
        assert registered.status_code == 200

        login = client.post("/api/v1/auth/login", data={"username": "kim@hangovershield.co", "password": "pw-123456"})
        assert login.status_code == 200
        token = login.json()["access_token"]

        me = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"}).json()
        assert me["email"] == "kim@hangovershield.co"
        assert me["timezone"] == "Europe/Paris"
        assert me["subscriptionActive"] is False

    def test_duplicate_email(self, client, auth_headers) -> None:
        response = client.post(
            "/api/v1/auth/register",
            json={"email": "alex@hangovershield.co", "password": "other", "name": "Alex"},
        )
        assert response.status_code == 409

    def test_bad_password(self, client, auth_headers) -> None:
        response = client.post("/api/v1/auth/login", data={"username": "alex@hangovershield.co", "password": "nope"})
        assert response.status_code == 401


class TestTodayCheckIn:
    def test_no_plan_yet(self, client, auth_headers) -> None:
        response = client.get("/api/v1/checkins/today", headers=auth_headers)

        assert response.status_code == 404
        assert response.json()["detail"] == "No plan found"

    def test_create_then_reuse(self, client, auth_headers) -> None:
        created = client.post("/api/v1/checkins/today", json=MODERATE, headers=auth_headers)
        assert created.status_code == 200
        body = created.json()

        assert body["persisted"] is True
        assert body["checkin"]["id"] == _today()
        assert body["checkin"]["generatedPlan"]["hydrationGoalLiters"] == 1.5
        assert body["progress"]["totalCount"] == 6
        assert body["progress"]["nextIncompleteStepId"] == "morning-1"

        again = client.post(
            "/api/v1/checkins/today",
            json={"level": "severe", "symptoms": [], "drinkingToday": True},
            headers=auth_headers,
        ).json()
        assert again["checkin"]["generatedPlan"] == body["checkin"]["generatedPlan"]

        fetched = client.get("/api/v1/checkins/today", headers=auth_headers).json()
        assert fetched["checkin"]["level"] == "moderate"

    def test_invalid_input(self, client, auth_headers) -> None:
        bad_level = client.post("/api/v1/checkins/today", json={"level": "wrecked"}, headers=auth_headers)
        mixed = client.post(
            "/api/v1/checkins/today",
            json={"level": "mild", "symptoms": ["noSymptoms", "headache"]},
            headers=auth_headers,
        )
        assert bad_level.status_code == 422
        assert mixed.status_code == 422

    def test_steps_completion_and_flags(self, client, auth_headers) -> None:
        client.post("/api/v1/checkins/today", json=MODERATE, headers=auth_headers)
        day = _today()

        ticked = client.put(
            f"/api/v1/checkins/{day}/steps/morning-1", json={"completed": True}, headers=auth_headers
        ).json()
        assert ticked["progress"]["completedCount"] == 1
        assert ticked["steps"][0]["completed"] is True
        assert ticked["checkin"]["generatedPlan"]["steps"][0]["completed"] is False

        unknown = client.put(f"/api/v1/checkins/{day}/steps/nope", json={"completed": True}, headers=auth_headers)
        assert unknown.status_code == 422

        bad_day = client.put("/api/v1/checkins/yesterday/steps/morning-1", json={"completed": True}, headers=auth_headers)
        assert bad_day.status_code == 422

        missing = client.put("/api/v1/checkins/2001-01-01/steps/morning-1", json={"completed": True}, headers=auth_headers)
        assert missing.status_code == 404

        completed = client.post(f"/api/v1/checkins/{day}/complete", headers=auth_headers).json()
        assert completed["progress"]["planCompleted"] is True
        assert completed["checkin"]["stepsCompleted"] == 1

        first = client.post(f"/api/v1/checkins/{day}/flags/plan_intro", headers=auth_headers).json()
        second = client.post(f"/api/v1/checkins/{day}/flags/plan_intro", headers=auth_headers).json()
        assert first == {"flag": "plan_intro", "firstTime": True}
        assert second["firstTime"] is False

    def test_untick_is_kept_on_reload(self, client, auth_headers) -> None:
        client.post("/api/v1/checkins/today", json=MODERATE, headers=auth_headers)
        day = _today()
        step_url = f"/api/v1/checkins/{day}/steps/morning-1"

        client.put(step_url, json={"completed": True}, headers=auth_headers)
        unticked = client.put(step_url, json={"completed": False}, headers=auth_headers).json()
        assert unticked["checkin"]["stepsState"] == {"morning-1": False}

        reloaded = client.get("/api/v1/checkins/today", headers=auth_headers).json()
        assert reloaded["checkin"]["stepsState"] == {"morning-1": False}
        assert reloaded["steps"][0]["completed"] is False
        assert reloaded["progress"]["completedCount"] == 0

        (document,) = client.checkin_store.remote.documents.values()
        assert document["stepsState"] == {"morning-1": False}

    def test_water_log(self, client, auth_headers) -> None:
        day = _today()
        water_url = f"/api/v1/checkins/{day}/water"
        assert client.get(water_url, headers=auth_headers).status_code == 404

        client.post("/api/v1/checkins/today", json=MODERATE, headers=auth_headers)
        empty = client.get(water_url, headers=auth_headers).json()
        assert empty["goalMl"] == 1500
        assert empty["totalMl"] == 0
        assert empty["milestone"] == "Start with a small sip."

        client.post(water_url, json={"amountMl": 500}, headers=auth_headers)
        logged = client.post(water_url, json={"amountMl": 250, "note": "tea"}, headers=auth_headers).json()
        assert logged["totalMl"] == 750
        assert logged["remainingMl"] == 750
        assert logged["percent"] == 50
        assert logged["milestone"] == "Your system is starting to settle."
        assert [e["amountMl"] for e in logged["entries"]] == [500, 250]

        assert client.post(water_url, json={"amountMl": 0}, headers=auth_headers).status_code == 422
        assert client.get("/api/v1/checkins/today", headers=auth_headers).json()["checkin"]["waterEntries"][1]["note"] == "tea"

    def test_history_and_stats(self, client, auth_headers) -> None:
        client.post("/api/v1/checkins/today", json=MODERATE, headers=auth_headers)

        history = client.get("/api/v1/checkins/", headers=auth_headers).json()
        stats = client.get("/api/v1/checkins/stats", headers=auth_headers).json()

        assert [item["id"] for item in history] == [_today()]
        assert history[0]["totalCount"] == 6
        assert stats["currentStreak"] == 1
        assert stats["lastCheckInDate"] == _today()

    def test_unsaved_plan_when_local_storage_fails(self, client, auth_headers) -> None:
        local = MagicMock()
        local.get.side_effect = LocalStorageError("disk full")
        app.dependency_overrides[get_checkin_store] = lambda: CheckInStore(local)

        response = client.post("/api/v1/checkins/today", json=MODERATE, headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["persisted"] is False
        assert len(response.json()["steps"]) == 6


class TestPlans:
    def test_preview_is_stateless(self, client) -> None:
        plan = client.post("/api/v1/plans/preview", json={"level": "none", "symptoms": []}).json()

        assert [step["id"] for step in plan["steps"]] == ["morning-1", "morning-2", "morning-3", "midday-1"]
        assert plan["hydrationGoalLiters"] == 1.0

    def test_analysis(self, client) -> None:
        analysis = client.post("/api/v1/plans/analysis", json={"level": "severe"}).json()

        assert analysis["estimatedRecoveryHoursRange"] == {"min": 24, "max": 36}
        assert len(analysis["recommendations"]) == 4


class TestAccess:
    def test_new_account_is_in_welcome_window(self, client, auth_headers) -> None:
        access = client.get("/api/v1/access", headers=auth_headers).json()

        assert access["tier"] == "welcome"
        assert access["hasFullAccess"] is True
        assert access["welcomeRemainingSeconds"] > 0

    def test_gates_for_full_access(self, client, auth_headers) -> None:
        decisions = client.post(
            "/api/v1/access/gates",
            json={"features": ["recovery_plan_afternoon", "progress_trends"], "contextScreen": "today"},
            headers=auth_headers,
        ).json()

        assert [d["visible"] for d in decisions] == ["full", "full"]

    def test_unknown_gate(self, client, auth_headers) -> None:
        response = client.post("/api/v1/access/gates", json={"features": ["moon_phase"]}, headers=auth_headers)
        assert response.status_code == 422

    def test_restore_failure_offers_retry(self, client, auth_headers) -> None:
        result = client.post("/api/v1/access/restore", headers=auth_headers).json()

        assert result["success"] is False
        assert result["canRetry"] is True
        assert result["supportContact"] == "support@hangovershield.co"


class TestDeleteAccount:
    def test_removes_checkins(self, client, auth_headers) -> None:
        client.post("/api/v1/checkins/today", json=MODERATE, headers=auth_headers)

        response = client.delete("/api/v1/auth/me", headers=auth_headers)

        assert response.status_code == 204
        store = client.checkin_store
        assert store.list_recent("1", "1970-01-01") == []

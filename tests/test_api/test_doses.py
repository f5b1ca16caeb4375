"""
Tests for Doses API
===================

Dose generation, the daily schedule and dose card actions, including the
quick-confirm prompt.
"""

import time
import pytest
from datetime import date
from fastapi import status
from fastapi.testclient import TestClient

from models import DoseStatus
from actions.quick_confirm import card_sessions


class TestGeneration:

    @pytest.mark.api
    def test_generate_is_idempotent(self, client: TestClient, test_user, test_medicine):
        first = client.post(f"/api/v1/users/{test_user.id}/doses/generate")
        second = client.post(f"/api/v1/users/{test_user.id}/doses/generate")

        assert first.json()["created"] == 2
        assert second.json()["created"] == 0

    @pytest.mark.api
    def test_generate_for_date(self, client: TestClient, test_user, test_medicine):
        response = client.post(
            f"/api/v1/users/{test_user.id}/doses/generate",
            params={"date": "2030-01-15"}
        )

        data = response.json()
        assert data["date"] == "2030-01-15"
        assert all(d["scheduled_date"] == "2030-01-15" for d in data["doses"])

    @pytest.mark.api
    def test_today_and_schedule(self, client: TestClient, test_user, test_medicine):
        client.post(f"/api/v1/users/{test_user.id}/doses/generate")

        today = client.get(f"/api/v1/users/{test_user.id}/doses/today").json()
        assert today["total"] == 2
        assert today["date"] == date.today().isoformat()

        schedule = client.get(f"/api/v1/users/{test_user.id}/schedule/today").json()
        assert [s["time_slot"] for s in schedule["slots"]] == ["morning", "night"]


class TestMarkTaken:
    """Tests for the mark-taken action and its guard"""

    @pytest.mark.api
    def test_first_tap_commits(self, client: TestClient, test_dose_log):
        response = client.post(f"/api/v1/doses/{test_dose_log.id}/taken", json={})

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["committed"] is True
        assert data["dose"]["status"] == "taken"
        assert data["dose"]["taken_time"] is not None

    @pytest.mark.api
    def test_tap_right_after_reminder_needs_confirmation(self, client: TestClient, test_dose_log, db_session):
        now_ms = int(time.time() * 1000)
        card_sessions.get(test_dose_log.id).note_action(now_ms)

        response = client.post(
            f"/api/v1/doses/{test_dose_log.id}/taken",
            json={"action_at_ms": now_ms + 1500}
        )

        assert response.status_code == status.HTTP_202_ACCEPTED
        assert response.json()["requires_confirmation"] is True
        db_session.refresh(test_dose_log)
        assert test_dose_log.status == DoseStatus.PENDING

    @pytest.mark.api
    def test_tap_well_after_reminder_commits(self, client: TestClient, test_dose_log):
        now_ms = int(time.time() * 1000)
        card_sessions.get(test_dose_log.id).note_action(now_ms - 5000)

        response = client.post(
            f"/api/v1/doses/{test_dose_log.id}/taken",
            json={"action_at_ms": now_ms}
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["dose"]["status"] == "taken"

    @pytest.mark.api
    def test_confirmed_quick_tap_is_suspected(self, client: TestClient, test_dose_log):
        card_sessions.get(test_dose_log.id).note_action(10_000)
        client.post(f"/api/v1/doses/{test_dose_log.id}/taken", json={"action_at_ms": 11_000})

        response = client.post(f"/api/v1/doses/{test_dose_log.id}/confirm", json={"confirmed": True})

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["dose"]["status"] == "suspected"

    @pytest.mark.api
    def test_declined_quick_tap_changes_nothing(self, client: TestClient, test_dose_log, db_session):
        card_sessions.get(test_dose_log.id).note_action(10_000)
        client.post(f"/api/v1/doses/{test_dose_log.id}/taken", json={"action_at_ms": 11_000})

        response = client.post(f"/api/v1/doses/{test_dose_log.id}/confirm", json={"confirmed": False})

        assert response.json()["committed"] is False
        db_session.refresh(test_dose_log)
        assert test_dose_log.status == DoseStatus.PENDING

    @pytest.mark.api
    def test_confirm_without_prompt(self, client: TestClient, test_dose_log):
        response = client.post(f"/api/v1/doses/{test_dose_log.id}/confirm", json={"confirmed": True})
        assert response.status_code == status.HTTP_409_CONFLICT

    @pytest.mark.api
    def test_terminal_dose_rejected(self, client: TestClient, test_dose_log):
        client.post(f"/api/v1/doses/{test_dose_log.id}/taken", json={})

        response = client.post(f"/api/v1/doses/{test_dose_log.id}/missed")

        assert response.status_code == status.HTTP_409_CONFLICT

    @pytest.mark.api
    def test_unknown_dose(self, client: TestClient):
        response = client.post("/api/v1/doses/9999/taken", json={})
        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestMarkMissed:

    @pytest.mark.api
    def test_missed_updates_score(self, client: TestClient, test_user, test_dose_log):
        response = client.post(f"/api/v1/doses/{test_dose_log.id}/missed")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["dose"]["status"] == "missed"
        # No email provider configured in tests
        assert data["caretaker_notified"] is False

        user = client.get(f"/api/v1/users/{test_user.id}").json()
        assert user["adherence_score"] == 0

    @pytest.mark.api
    def test_acknowledge_without_reminder(self, client: TestClient, test_dose_log):
        response = client.post(f"/api/v1/doses/{test_dose_log.id}/acknowledge")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["follow_up_cancelled"] is False

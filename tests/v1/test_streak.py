# tests/v1/test_streak.py
"""Tests for the login streak endpoint."""

from fastapi import status

from srm_collab.db.time import utctoday
from tests.conftest import ALICE


def test_first_login_starts_streak(client, auth_token) -> None:
    response = client.get("/api/v1/streak", headers=auth_token)

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["user_id"] == ALICE
    assert data["current_streak"] == 1
    assert data["max_streak"] == 1
    assert data["last_login_date"] == utctoday().isoformat()


def test_streak_recorded_on_read_when_untracked(client, registry, auth_token) -> None:
    registry.track_logins = False

    response = client.get("/api/v1/streak", headers=auth_token)

    assert response.json()["current_streak"] == 1


def test_repeat_visits_same_day(client, auth_token) -> None:
    client.get("/api/v1/streak", headers=auth_token)
    response = client.get("/api/v1/streak", headers=auth_token)

    assert response.json()["current_streak"] == 1

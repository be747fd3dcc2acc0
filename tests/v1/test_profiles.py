# tests/v1/test_profiles.py
"""Tests for profile endpoints."""

import base64

from fastapi import status

from tests.conftest import ALICE, BOB, ERIN


def test_search_combines_criteria(client, profiles, auth_token) -> None:
    response = client.get(
        "/api/v1/profiles",
        params={"skill": "Python", "course": "CSE"},
        headers=auth_token,
    )

    assert response.status_code == status.HTTP_200_OK
    assert {profile["user_id"] for profile in response.json()} == {ALICE, ERIN}


def test_search_tags_are_case_sensitive(client, profiles, auth_token) -> None:
    response = client.get("/api/v1/profiles", params={"skill": "python"}, headers=auth_token)
    assert [profile["user_id"] for profile in response.json()] == [BOB]


def test_options_catalogue(client, auth_token) -> None:
    response = client.get("/api/v1/profiles/options", headers=auth_token)

    assert response.status_code == status.HTTP_200_OK
    assert "Python" in response.json()["skills"]
    assert "Research" in response.json()["interests"]


def test_facets_are_sorted_and_distinct(client, profiles, auth_token) -> None:
    response = client.get("/api/v1/profiles/facets", headers=auth_token)

    data = response.json()
    assert data["courses"] == ["CSE", "ECE"]
    assert data["interests"] == ["Music", "Sports", "Technology"]
    assert data["skills"].count("Python") == 1


def test_own_profile_lifecycle(client, auth_token) -> None:
    missing = client.get("/api/v1/profiles/me", headers=auth_token)
    assert missing.status_code == status.HTTP_404_NOT_FOUND

    saved = client.put(
        "/api/v1/profiles/me",
        json={"name": "Alice", "course": "CSE", "skills": ["Python"], "interests": ["Research"]},
        headers=auth_token,
    )
    assert saved.status_code == status.HTTP_200_OK
    assert saved.json()["user_id"] == ALICE

    fetched = client.get("/api/v1/profiles/me", headers=auth_token)
    assert fetched.json()["interests"] == ["Research"]


def test_update_profile_requires_name(client, auth_token) -> None:
    response = client.put("/api/v1/profiles/me", json={"name": "  "}, headers=auth_token)
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_avatar_upload(client, profiles, auth_token) -> None:
    response = client.post(
        "/api/v1/profiles/me/avatar",
        json={
            "filename": "me.png",
            "data_b64": base64.b64encode(b"png").decode(),
            "content_type": "image/png",
        },
        headers=auth_token,
    )

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["avatar_url"] == f"http://test/storage/avatars/{ALICE}/avatar.png"
    assert response.json()["name"] == "Alice"


def test_avatar_upload_rejects_bad_data(client, profiles, auth_token) -> None:
    response = client.post(
        "/api/v1/profiles/me/avatar",
        json={"filename": "me.png", "data_b64": "not base64!"},
        headers=auth_token,
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_read_other_profile(client, profiles, auth_token) -> None:
    found = client.get(f"/api/v1/profiles/{BOB}", headers=auth_token)
    missing = client.get("/api/v1/profiles/nobody", headers=auth_token)

    assert found.json()["name"] == "Bob"
    assert missing.status_code == status.HTTP_404_NOT_FOUND

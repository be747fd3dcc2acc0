"""Tests for profile management."""

import pytest

from srm_collab.backend.base import Query
from srm_collab.core.errors import StorageError
from srm_collab.schemas import FileUpload, ProfileRecord, ProfileUpdate
from srm_collab.services.profiles import (
    INTEREST_OPTIONS,
    SKILL_OPTIONS,
    get_profile,
    is_profile_complete,
    save_profile,
    upload_avatar,
)
from tests.conftest import ALICE, ERIN


@pytest.mark.asyncio
async def test_save_profile_creates_then_updates(alice_session, backend) -> None:
    created = await save_profile(
        alice_session,
        ProfileUpdate(name=" Alice ", course="CSE", skills=["Python", "Python"], interests=[]),
    )
    updated = await save_profile(
        alice_session, ProfileUpdate(name="Alice K", course="CSE", skills=["Python", "React"])
    )

    assert created.user_id == ALICE
    assert created.name == "Alice"
    assert created.skills == ["Python"]
    assert updated.id == created.id
    assert updated.skills == ["Python", "React"]
    assert len(await backend.query(Query("profiles"))) == 1


@pytest.mark.asyncio
async def test_save_profile_requires_a_name(alice_session) -> None:
    with pytest.raises(ValueError):
        await save_profile(alice_session, ProfileUpdate(name="   "))


@pytest.mark.asyncio
async def test_get_profile(alice_session, profiles) -> None:
    own = await get_profile(alice_session)
    other = await get_profile(alice_session, ERIN)

    assert own.name == "Alice"
    assert other.name == "Erin"
    assert await get_profile(alice_session, "nobody") is None


@pytest.mark.asyncio
async def test_upload_avatar_overwrites_and_links(alice_session, profiles) -> None:
    upload = FileUpload(filename="me.jpg", data=b"jpg", content_type="image/jpeg")

    first = await upload_avatar(alice_session, upload)
    second = await upload_avatar(alice_session, upload)

    expected = f"http://test/storage/avatars/{ALICE}/avatar.jpg"
    assert first.avatar_url == second.avatar_url == expected
    assert second.name == "Alice"


@pytest.mark.asyncio
async def test_failed_avatar_upload_leaves_profile(alice_session, backend, profiles, mocker) -> None:
    mocker.patch.object(backend, "upload", side_effect=StorageError("denied"))

    with pytest.raises(StorageError):
        await upload_avatar(alice_session, FileUpload(filename="me.png", data=b"x"))

    assert (await get_profile(alice_session)).avatar_url is None


def test_profile_completeness() -> None:
    assert not is_profile_complete(None)
    assert not is_profile_complete(ProfileRecord(user_id=ALICE, name="Alice"))
    assert is_profile_complete(ProfileRecord(user_id=ALICE, name="Alice", course="CSE"))


def test_tag_catalogues() -> None:
    assert "Python" in SKILL_OPTIONS
    assert "Startups" in INTEREST_OPTIONS
    assert len(set(SKILL_OPTIONS)) == len(SKILL_OPTIONS)


def test_null_tag_lists_become_empty() -> None:
    profile = ProfileRecord.model_validate({"user_id": ALICE, "skills": None, "interests": None})
    assert profile.skills == []
    assert profile.interests == []

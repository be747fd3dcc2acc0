"""Tests for client sessions, the mutation guard and the session registry."""

from datetime import timedelta

import pytest

from srm_collab.core.errors import AuthError, BackendConnectionError, DuplicateMutationError
from srm_collab.core.security import create_access_token
from srm_collab.db.time import utcnow
from srm_collab.services.session import LIKE, VOTE, ClientSession, MutationGuard
from srm_collab.services.streak import get_streak
from tests.conftest import ALICE, BOB


def test_guard_claims_each_key_once() -> None:
    guard = MutationGuard()
    guard.claim(LIKE, "p1")
    guard.claim(VOTE, "p1")

    with pytest.raises(DuplicateMutationError, match="already liked"):
        guard.claim(LIKE, "p1")

    guard.release(LIKE, "p1")
    guard.claim(LIKE, "p1")
    assert len(guard) == 2

    guard.clear()
    assert not guard.is_claimed(VOTE, "p1")


def test_closed_session_has_no_identity(backend) -> None:
    session = ClientSession(user_id=ALICE, backend=backend)
    session.guard.claim(LIKE, "p1")
    feed = session.view("feed", list)

    assert session.current_identity() == ALICE
    assert session.view("feed", list) is feed

    session.close()

    assert session.current_identity() is None
    assert len(session.guard) == 0
    with pytest.raises(AuthError):
        session.require_identity()


@pytest.mark.asyncio
async def test_registry_reuses_session_per_user(registry) -> None:
    token = create_access_token(ALICE)

    first = await registry.resolve(token)
    again = await registry.resolve(create_access_token(ALICE, email="alice@srm.test"))

    assert first is again
    assert len(registry) == 1


@pytest.mark.asyncio
async def test_opening_a_session_records_a_login(registry) -> None:
    session = await registry.resolve(create_access_token(ALICE))

    streak = await get_streak(session)
    assert streak.current_streak == 1


@pytest.mark.asyncio
async def test_streak_failure_does_not_block_sign_in(registry, backend, mocker) -> None:
    mocker.patch.object(backend, "upsert", side_effect=BackendConnectionError("offline"))

    session = await registry.resolve(create_access_token(ALICE))

    assert session.current_identity() == ALICE


@pytest.mark.asyncio
async def test_sign_out_starts_a_fresh_session(registry) -> None:
    first = await registry.resolve(create_access_token(ALICE))
    first.guard.claim(LIKE, "p1")

    assert registry.close(ALICE)
    assert not registry.close(ALICE)
    second = await registry.resolve(create_access_token(ALICE))

    assert second is not first
    assert first.closed
    assert not second.guard.is_claimed(LIKE, "p1")


@pytest.mark.asyncio
async def test_invalid_token_is_rejected(registry) -> None:
    with pytest.raises(AuthError):
        await registry.resolve("not-a-token")


@pytest.mark.asyncio
async def test_expired_sessions_are_evicted(registry) -> None:
    alice = await registry.resolve(create_access_token(ALICE, expires_delta=timedelta(minutes=1)))
    bob = await registry.resolve(create_access_token(BOB))

    evicted = registry.prune_expired(now=utcnow() + timedelta(minutes=5))

    assert evicted == 1
    assert alice.closed
    assert registry.get(ALICE) is None
    assert registry.get(BOB) is bob


@pytest.mark.asyncio
async def test_resolve_drops_stale_sessions_of_other_users(registry) -> None:
    alice = await registry.resolve(create_access_token(ALICE))
    alice.expires_at = utcnow() - timedelta(seconds=1)

    await registry.resolve(create_access_token(BOB))

    assert alice.closed
    assert len(registry) == 1


@pytest.mark.asyncio
async def test_refreshed_token_extends_the_session(registry) -> None:
    session = await registry.resolve(
        create_access_token(ALICE, expires_delta=timedelta(minutes=1))
    )
    first_expiry = session.expires_at

    await registry.resolve(create_access_token(ALICE, expires_delta=timedelta(hours=1)))

    assert session.expires_at > first_expiry
    assert registry.prune_expired(now=first_expiry + timedelta(minutes=1)) == 0

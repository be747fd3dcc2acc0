"""Tests for login streak bookkeeping."""

from datetime import date, timedelta

import pytest

from srm_collab.services.streak import advance_streak, get_streak, record_login

D = date(2026, 3, 10)


def test_first_login_starts_at_one() -> None:
    update = advance_streak(D, None)
    assert (update.current_streak, update.max_streak, update.changed) == (1, 1, True)


def test_same_day_is_a_no_op() -> None:
    update = advance_streak(D, D, 3, 5)
    assert (update.current_streak, update.max_streak, update.changed) == (3, 5, False)


def test_consecutive_day_extends() -> None:
    update = advance_streak(D, D - timedelta(days=1), 3, 5)
    assert (update.current_streak, update.max_streak) == (4, 5)


def test_extension_raises_max() -> None:
    update = advance_streak(D, D - timedelta(days=1), 5, 5)
    assert (update.current_streak, update.max_streak) == (6, 6)


def test_gap_resets_and_keeps_max() -> None:
    update = advance_streak(D, D - timedelta(days=10), 4, 9)
    assert (update.current_streak, update.max_streak, update.changed) == (1, 9, True)


@pytest.mark.asyncio
async def test_record_login_over_several_days(alice_session, backend, mocker) -> None:
    first = await record_login(alice_session, today=D)
    assert (first.current_streak, first.max_streak, first.last_login_date) == (1, 1, D)

    spy = mocker.spy(backend, "upsert")
    same_day = await record_login(alice_session, today=D)
    spy.assert_not_called()
    assert same_day.current_streak == 1

    second = await record_login(alice_session, today=D + timedelta(days=1))
    third = await record_login(alice_session, today=D + timedelta(days=2))
    assert (third.current_streak, third.max_streak) == (3, 3)
    assert second.id == third.id == first.id

    after_gap = await record_login(alice_session, today=D + timedelta(days=9))
    assert (after_gap.current_streak, after_gap.max_streak) == (1, 3)
    assert (await get_streak(alice_session)).last_login_date == D + timedelta(days=9)


@pytest.mark.asyncio
async def test_no_streak_before_first_login(alice_session) -> None:
    assert await get_streak(alice_session) is None

"""Tests for the client-side joins and derived feed views."""

from datetime import timedelta

import pytest

from srm_collab.backend.base import Query
from srm_collab.core.errors import BackendConnectionError
from srm_collab.db.time import utcnow
from srm_collab.schemas import ProfileCriteria
from srm_collab.services import aggregation
from tests.conftest import ALICE, BOB, CAROL, DAVE, ERIN, STRANGER, add_post


def _profile_queries(spy) -> list[Query]:
    return [call.args[0] for call in spy.call_args_list if call.args[0].collection == "profiles"]


@pytest.mark.asyncio
async def test_feed_fetches_authors_in_one_batched_query(backend, db_session, profiles, mocker) -> None:
    for index, author in enumerate([ALICE, BOB, ALICE, CAROL, BOB, ERIN]):
        add_post(db_session, author, f"post {index}", age=timedelta(minutes=index))
    spy = mocker.spy(backend, "query")

    posts = await aggregation.load_feed(backend)

    assert len(posts) == 6
    lookups = _profile_queries(spy)
    assert len(lookups) == 1
    assert list(lookups[0].filters[0].value) == [ALICE, BOB, CAROL, ERIN]
    assert [post.author.name for post in posts] == ["Alice", "Bob", "Alice", "Carol", "Bob", "Erin"]


@pytest.mark.asyncio
async def test_feed_is_newest_first(backend, db_session, profiles) -> None:
    add_post(db_session, ALICE, "older", age=timedelta(hours=2))
    add_post(db_session, BOB, "newer", age=timedelta(hours=1))

    posts = await aggregation.load_feed(backend)

    assert [post.content for post in posts] == ["newer", "older"]


@pytest.mark.asyncio
async def test_empty_feed_skips_profile_lookup(backend, mocker) -> None:
    spy = mocker.spy(backend, "query")

    assert await aggregation.load_feed(backend) == []
    assert _profile_queries(spy) == []


@pytest.mark.asyncio
async def test_missing_profile_degrades_to_unknown_user(backend, db_session, profiles) -> None:
    add_post(db_session, STRANGER, "who am I")

    posts = await aggregation.load_feed(backend)

    assert posts[0].author.name == aggregation.UNKNOWN_USER
    assert posts[0].author.avatar_url is None


@pytest.mark.asyncio
async def test_failed_profile_lookup_keeps_posts(backend, db_session, profiles, mocker) -> None:
    add_post(db_session, ERIN, "still here")
    original = backend.query

    async def flaky(query):
        if query.collection == "profiles":
            raise BackendConnectionError("profiles down")
        return await original(query)

    mocker.patch.object(backend, "query", side_effect=flaky)

    posts = await aggregation.load_feed(backend)

    assert [post.content for post in posts] == ["still here"]
    assert posts[0].author.name == "Unknown User"


@pytest.mark.asyncio
async def test_trending_limits_window_count_and_order(backend, db_session, profiles) -> None:
    now = utcnow()
    add_post(db_session, ALICE, "ancient hit", likes=100, age=timedelta(hours=30), now=now)
    add_post(db_session, BOB, "b", likes=7, age=timedelta(hours=3), now=now)
    add_post(db_session, CAROL, "c", likes=12, age=timedelta(hours=5), now=now)
    add_post(db_session, DAVE, "d", likes=1, age=timedelta(hours=1), now=now)
    add_post(db_session, ERIN, "e", likes=7, age=timedelta(hours=1), now=now)

    trending = await aggregation.load_trending(backend, now=now)

    assert [post.content for post in trending] == ["c", "e", "b"]
    assert all(post.created_at >= now - timedelta(hours=24) for post in trending)


@pytest.mark.asyncio
async def test_trending_with_no_recent_posts(backend, db_session, profiles) -> None:
    add_post(db_session, ALICE, "last week", likes=50, age=timedelta(days=7))

    assert await aggregation.load_trending(backend) == []


@pytest.mark.asyncio
async def test_filter_profiles_is_and_and_case_sensitive(backend, profiles) -> None:
    matches = await aggregation.filter_profiles(
        backend, ProfileCriteria(skill="Python", course="CSE")
    )

    assert {profile.user_id for profile in matches} == {ALICE, ERIN}


@pytest.mark.asyncio
async def test_filter_profiles_by_interest_with_exclusion(backend, profiles) -> None:
    matches = await aggregation.filter_profiles(
        backend, ProfileCriteria(interest="Music"), exclude=[BOB]
    )

    assert [profile.user_id for profile in matches] == [ERIN]


@pytest.mark.asyncio
async def test_filtered_feed_reuses_fetched_profiles(backend, db_session, profiles, mocker) -> None:
    add_post(db_session, ALICE, "alice post", age=timedelta(minutes=2))
    add_post(db_session, BOB, "bob post", age=timedelta(minutes=1))
    add_post(db_session, ERIN, "erin post")
    spy = mocker.spy(backend, "query")

    posts = await aggregation.load_filtered_feed(
        backend, ProfileCriteria(skill="Python", course="CSE")
    )

    assert [post.content for post in posts] == ["erin post", "alice post"]
    assert posts[0].author.avatar_url == "http://test/storage/avatars/erin.png"
    assert len(_profile_queries(spy)) == 1


@pytest.mark.asyncio
async def test_filtered_feed_without_matches_is_empty(backend, db_session, profiles) -> None:
    add_post(db_session, ALICE, "alice post")

    assert await aggregation.load_filtered_feed(backend, ProfileCriteria(skill="Rust")) == []


@pytest.mark.asyncio
async def test_empty_criteria_is_the_whole_feed(backend, db_session, profiles) -> None:
    add_post(db_session, DAVE, "dave post")

    posts = await aggregation.load_filtered_feed(backend, ProfileCriteria())

    assert [post.content for post in posts] == ["dave post"]


@pytest.mark.asyncio
async def test_profile_facets_are_sorted_and_distinct(backend, profiles) -> None:
    facets = await aggregation.load_profile_facets(backend)

    assert facets.courses == ["CSE", "ECE"]
    assert facets.skills == ["Java", "Machine Learning", "Python", "React", "python"]
    assert facets.interests == ["Music", "Sports", "Technology"]


@pytest.mark.asyncio
async def test_comments_are_oldest_first(backend, db_session, test_post) -> None:
    await backend.insert(
        "comments",
        {"post_id": test_post.id, "user_id": ALICE, "content": "first",
         "created_at": utcnow() - timedelta(minutes=2)},
    )
    await backend.insert(
        "comments", {"post_id": test_post.id, "user_id": STRANGER, "content": "second"}
    )

    comments = await aggregation.load_comments(backend, test_post.id)

    assert [(c.content, c.author.name) for c in comments] == [
        ("first", "Alice"),
        ("second", "Unknown User"),
    ]


@pytest.mark.asyncio
async def test_matches_carry_the_matched_profile(backend, test_match) -> None:
    matches = await aggregation.load_matches(backend, ALICE)

    assert len(matches) == 1
    assert matches[0].matched_user.name == "Erin"
    assert matches[0].profile.skills == ["Python", "Machine Learning"]
    assert await aggregation.load_matches(backend, ERIN) == []

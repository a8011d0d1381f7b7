import asyncio

import pytest

from pathshala.common.errors import Forbidden, ValidationError
from pathshala.features.profiles.schemas import ProfileUpdate
from pathshala.common.utils import KeyedLocks
from pathshala.features.profiles.service import ProfileService
from pathshala.features.progress.schemas import CompletionSubmit, QuizSubmit
from pathshala.features.progress.service import COMPLETION_POINTS, ProgressService

pytestmark = pytest.mark.anyio("asyncio")

USER = "student-1"
EMAIL = "rahim@example.com"


@pytest.fixture
def seeded(store):
    store.seed("topics", {"id": "t1", "name": "পাইথন", "order": 0})
    store.seed(
        "videos",
        {"id": "v1", "title": "পরিচিতি", "youtube_url": "https://youtu.be/dQw4w9WgXcQ", "video_id": "dQw4w9WgXcQ", "topic_id": "t1", "order": 0},
        {"id": "v2", "title": "ভেরিয়েবল", "youtube_url": "https://youtu.be/aaaaaaaaaaa", "video_id": "aaaaaaaaaaa", "topic_id": "t1", "order": 1},
    )
    store.seed(
        "quizzes",
        {
            "id": "q2",
            "video_id": "v2",
            "passing_score": 70,
            "points": 10,
            "questions": [
                {"id": str(i), "question": f"প্রশ্ন {i}", "options": ["ক", "খ", "গ", "ঘ"], "correct_answer": 0}
                for i in range(4)
            ],
        },
    )
    store.seed("user_profiles", {"id": "pr1", "user_id": USER, "display_name": "রহিম", "points": 0})
    return store


def _profile(store):
    return next(r for r in store.rows("user_profiles") if r["user_id"] == USER)


async def test_open_video_creates_progress_once(seeded, registry):
    service = ProgressService(registry)
    session = await service.open_video(USER, "v1")
    assert session.can_access
    assert session.quiz is None
    assert session.embed_url.endswith("/dQw4w9WgXcQ")
    await service.open_video(USER, "v1")
    rows = [r for r in seeded.rows("user_progress") if r["video_id"] == "v1"]
    assert len(rows) == 1
    assert rows[0]["quiz_attempts"] == 0


async def test_second_video_locked_until_first_completed(seeded, registry):
    service = ProgressService(registry)
    session = await service.open_video(USER, "v2")
    assert not session.can_access
    assert session.quiz is None
    with pytest.raises(Forbidden):
        await service.submit_quiz(USER, EMAIL, "v2", QuizSubmit(answers=[0, 0, 0, 0]))

    await service.submit_completion(USER, EMAIL, "v1", CompletionSubmit(summary="শিখলাম"))
    session = await service.open_video(USER, "v2")
    assert session.can_access
    assert session.progress.can_access
    assert [q.question for q in session.quiz.questions][0] == "প্রশ্ন 0"
    assert "correct_answer" not in session.quiz.questions[0].model_dump()


async def test_completion_without_quiz_awards_once(seeded, registry):
    service = ProgressService(registry)
    first = await service.submit_completion(USER, EMAIL, "v1", CompletionSubmit(summary="সারাংশ", work_link="https://github.com/x"))
    assert first.points_awarded == COMPLETION_POINTS
    assert first.progress.watched
    assert first.progress.completed_at is not None
    again = await service.submit_completion(USER, EMAIL, "v1", CompletionSubmit(summary="আবার"))
    assert again.points_awarded == 0
    assert again.progress.summary == "আবার"
    profile = _profile(seeded)
    assert profile["points"] == COMPLETION_POINTS
    assert profile["completed_videos"] == 1


async def test_completion_requires_summary(seeded, registry):
    with pytest.raises(ValidationError):
        await ProgressService(registry).submit_completion(USER, EMAIL, "v1", CompletionSubmit(summary="  "))
    assert seeded.rows("user_progress") == []


async def test_completion_with_quiz_waits_for_quiz(seeded, registry):
    service = ProgressService(registry)
    await service.submit_completion(USER, EMAIL, "v1", CompletionSubmit(summary="১"))
    outcome = await service.submit_completion(USER, EMAIL, "v2", CompletionSubmit(summary="২"))
    assert outcome.points_awarded == 0
    assert not outcome.progress.watched


async def test_quiz_pass_awards_only_first_time(seeded, registry):
    service = ProgressService(registry)
    await service.submit_completion(USER, EMAIL, "v1", CompletionSubmit(summary="১"))

    failed = await service.submit_quiz(USER, EMAIL, "v2", QuizSubmit(answers=[0, 1, 1, 1]))
    assert failed.score == 25 and not failed.passed and failed.points_awarded == 0
    assert not failed.progress.watched

    passed = await service.submit_quiz(USER, EMAIL, "v2", QuizSubmit(answers=[0, 0, 0, 1]))
    assert passed.score == 75 and passed.passed and passed.points_awarded == 10
    assert passed.progress.watched and passed.progress.quiz_passed

    retry = await service.submit_quiz(USER, EMAIL, "v2", QuizSubmit(answers=[0, 0, 0, 0]))
    assert retry.score == 100 and retry.points_awarded == 0
    assert retry.progress.quiz_attempts == 3

    worse = await service.submit_quiz(USER, EMAIL, "v2", QuizSubmit(answers=[1, 1, 1, 1]))
    assert not worse.passed
    assert worse.progress.watched and worse.progress.quiz_passed

    profile = _profile(seeded)
    assert profile["points"] == COMPLETION_POINTS + 10
    assert profile["completed_videos"] == 2


async def test_quiz_needs_every_answer(seeded, registry):
    service = ProgressService(registry)
    with pytest.raises(ValidationError):
        await service.submit_quiz(USER, EMAIL, "v2", QuizSubmit(answers=[0, None, 0, 0]))
    with pytest.raises(ValidationError):
        await service.submit_quiz(USER, EMAIL, "v1", QuizSubmit(answers=[0]))


async def test_admin_listing_filters_and_labels(seeded, registry):
    service = ProgressService(registry)
    await service.submit_completion(USER, EMAIL, "v1", CompletionSubmit(summary="১"))
    await service.open_video("other", "v1")

    listing = await service.listing("completed")
    assert listing.counts == {"all": 2, "pending": 1, "completed": 1}
    [row] = listing.items
    assert row.video_title == "পরিচিতি"
    assert row.topic_name == "পাইথন"
    assert row.display_name == "রহিম"
    pending = await service.listing("pending")
    assert pending.items[0].display_name == "অজানা"
    with pytest.raises(ValidationError):
        await service.listing("done")


async def test_award_creates_missing_profile(store, registry):
    profiles = ProfileService(registry)
    profile = await profiles.award("new-user", "nadia@example.com", 5)
    assert profile.display_name == "nadia"
    assert profile.points == 5
    assert profile.completed_videos == 1


async def test_profile_upsert_keeps_points(seeded, registry):
    profiles = ProfileService(registry)
    await profiles.award(USER, EMAIL, 30)
    updated = await profiles.upsert_profile(USER, EMAIL, ProfileUpdate(display_name=" রহিম উদ্দিন ", bio="ছাত্র"))
    assert updated.display_name == "রহিম উদ্দিন"
    assert updated.points == 30
    with pytest.raises(ValidationError):
        await profiles.upsert_profile(USER, EMAIL, ProfileUpdate(display_name=""))


async def test_leaderboard_ranks_and_my_rank(store, registry):
    store.seed(
        "user_profiles",
        {"id": "a", "user_id": "ua", "display_name": "A", "points": 10},
        {"id": "b", "user_id": "ub", "display_name": "B", "points": 10},
        {"id": "c", "user_id": "uc", "display_name": "C", "points": 20},
    )
    profiles = ProfileService(registry)
    board = await profiles.leaderboard("ub")
    assert [(e.rank, e.profile.user_id) for e in board.entries] == [(0, "uc"), (1, "ua"), (2, "ub")]
    assert board.my_rank == 2
    assert len((await profiles.leaderboard("ub", limit=1)).entries) == 1
    assert await profiles.my_rank("nobody") is None


async def test_ensure_profile_checks_the_store_before_inserting(store, registry):
    profiles = ProfileService(registry)
    assert await profiles.get_profile("u9") is None
    store.seed("user_profiles", {"id": "pr9", "user_id": "u9", "display_name": "করিম", "points": 3})
    profile = await profiles.ensure_profile("u9", "karim@example.com")
    assert profile.id == "pr9"
    assert len([r for r in store.rows("user_profiles") if r["user_id"] == "u9"]) == 1


async def test_concurrent_awards_to_one_user_add_up(seeded, registry):
    profiles = ProfileService(registry)
    await asyncio.gather(
        profiles.award(USER, EMAIL, 10),
        profiles.award(USER, EMAIL, 5),
    )
    row = _profile(seeded)
    assert row["points"] == 15
    assert row["completed_videos"] == 2


async def test_keyed_locks_serialize_and_are_dropped():
    locks = KeyedLocks()
    order = []

    async def worker(n):
        async with locks.hold("u1"):
            order.append(("in", n))
            await asyncio.sleep(0)
            order.append(("out", n))

    await asyncio.gather(worker(1), worker(2))
    assert order == [("in", 1), ("out", 1), ("in", 2), ("out", 2)]
    assert len(locks) == 0

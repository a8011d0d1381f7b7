"""Video playback flow for students and the admin progress view.

Points are awarded once per (user, video): a completion without a quiz only
awards when the video was not already watched, and a quiz only awards on the
first passing attempt.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from pathshala.common import views
from pathshala.common.errors import Forbidden, ValidationError
from pathshala.common.utils import KeyedLocks, current_timestamp
from pathshala.common.youtube import embed_url, get_thumbnail_url
from pathshala.db.binding import BindingRegistry, CollectionBinding
from pathshala.db.records import Quiz, Topic, UserProfile, UserProgress, Video
from pathshala.features.profiles.service import ProfileService
from pathshala.features.quizzes.grading import grade_quiz

from .schemas import (
    CompletionOutcome,
    CompletionSubmit,
    ProgressListing,
    ProgressRow,
    QuestionView,
    QuizOutcome,
    QuizSubmit,
    QuizView,
    VideoSession,
)

logger = logging.getLogger("progress.service")

COMPLETION_POINTS = 5
LOCKED_MESSAGE = "আগের ভিডিওটি সম্পন্ন করুন!"

_video_locks = KeyedLocks()


def quiz_view(quiz: Optional[Quiz]) -> Optional[QuizView]:
    if quiz is None:
        return None
    return QuizView(
        id=quiz.id,
        passing_score=quiz.passing_score,
        points=quiz.points,
        questions=[QuestionView(id=q.id, question=q.question, options=q.options) for q in quiz.questions],
    )


class ProgressService:
    def __init__(self, registry: BindingRegistry) -> None:
        self.registry = registry
        self.profiles = ProfileService(registry)

    async def _progress(self) -> CollectionBinding[UserProgress]:
        return await self.registry.bind(UserProgress)

    async def _videos(self) -> CollectionBinding[Video]:
        return await self.registry.bind(Video, order="order")

    async def _quiz_for(self, video_id: str) -> Optional[Quiz]:
        quizzes = await self.registry.bind(Quiz)
        return quizzes.find(lambda q: q.video_id == video_id)

    # ---- student flow --------------------------------------------------------

    async def open_video(self, user_id: str, video_id: str) -> VideoSession:
        videos = await self._videos()
        video = videos.require(video_id)
        progress = await self._progress()
        allowed = views.can_access_video(videos.records, progress.records, video, user_id)
        record = views.find_progress(progress.records, user_id, video_id)
        if record is None:
            record = await progress.create(
                {
                    "user_id": user_id,
                    "video_id": video_id,
                    "watched": False,
                    "can_access": allowed,
                    "summary": "",
                    "work_link": "",
                    "quiz_score": None,
                    "quiz_passed": False,
                    "quiz_attempts": 0,
                }
            )
            logger.info("progress.opened user_id=%s video_id=%s can_access=%s", user_id, video_id, allowed)
        elif record.can_access != allowed:
            await progress.update(record.id, {"can_access": allowed})
            record = progress.require(record.id)
        return VideoSession(
            video=video,
            progress=record,
            can_access=allowed,
            thumbnail_url=get_thumbnail_url(video.video_id, "high"),
            embed_url=embed_url(video.video_id),
            quiz=quiz_view(await self._quiz_for(video_id)) if allowed else None,
        )

    async def _accessible_record(self, user_id: str, video_id: str) -> UserProgress:
        videos = await self._videos()
        video = videos.require(video_id)
        progress = await self._progress()
        if not views.can_access_video(videos.records, progress.records, video, user_id):
            raise Forbidden(LOCKED_MESSAGE)
        record = views.find_progress(progress.records, user_id, video_id)
        if record is None:
            await self.open_video(user_id, video_id)
            record = views.find_progress(progress.records, user_id, video_id)
        return record

    async def submit_completion(
        self, user_id: str, email: Optional[str], video_id: str, payload: CompletionSubmit
    ) -> CompletionOutcome:
        summary = payload.summary.strip()
        if not summary:
            raise ValidationError("ভিডিওর সারাংশ লিখুন!", field="summary")
        async with _video_locks.hold((user_id, video_id)):
            record = await self._accessible_record(user_id, video_id)
            now = current_timestamp()
            changes = {"summary": summary, "work_link": payload.work_link.strip(), "submitted_at": now}
            award = 0
            if await self._quiz_for(video_id) is None and not record.watched:
                changes.update({"watched": True, "completed_at": now})
                award = COMPLETION_POINTS
            progress = await self._progress()
            await progress.update(record.id, changes)
            if award:
                await self.profiles.award(user_id, email, award)
            logger.info("progress.submitted user_id=%s video_id=%s points=%d", user_id, video_id, award)
            return CompletionOutcome(points_awarded=award, progress=progress.require(record.id))

    async def submit_quiz(self, user_id: str, email: Optional[str], video_id: str, payload: QuizSubmit) -> QuizOutcome:
        quiz = await self._quiz_for(video_id)
        if quiz is None:
            raise ValidationError("এই ভিডিওর কোনো কুইজ নেই!", field="video_id")
        if len(payload.answers) != len(quiz.questions) or any(a is None for a in payload.answers):
            raise ValidationError("সব প্রশ্নের উত্তর দিন!", field="answers")
        grade = grade_quiz(quiz.questions, payload.answers, quiz.passing_score)
        async with _video_locks.hold((user_id, video_id)):
            record = await self._accessible_record(user_id, video_id)
            first_pass = grade.passed and not record.quiz_passed
            changes = {
                "quiz_score": grade.score,
                "quiz_passed": grade.passed or record.quiz_passed,
                "quiz_attempts": record.quiz_attempts + 1,
                "watched": grade.passed or record.watched,
            }
            if first_pass:
                changes["completed_at"] = current_timestamp()
            progress = await self._progress()
            await progress.update(record.id, changes)
            award = quiz.points if first_pass else 0
            if award:
                await self.profiles.award(user_id, email, award)
            logger.info(
                "progress.quiz_graded user_id=%s video_id=%s score=%d passed=%s points=%d",
                user_id,
                video_id,
                grade.score,
                grade.passed,
                award,
            )
            return QuizOutcome(
                score=grade.score,
                correct=grade.correct,
                total=grade.total,
                passed=grade.passed,
                points_awarded=award,
                progress=progress.require(record.id),
            )

    async def my_progress(self, user_id: str) -> List[UserProgress]:
        progress = await self._progress()
        return progress.where(lambda p: p.user_id == user_id)

    # ---- admin view ----------------------------------------------------------

    async def listing(self, status: str = "all") -> ProgressListing:
        if status not in views.PROGRESS_FILTERS:
            raise ValidationError("অজানা ফিল্টার!", field="status")
        progress = (await self._progress()).records
        videos = (await self._videos()).records
        topics = (await self.registry.bind(Topic, order="order")).records
        profiles = (await self.registry.bind(UserProfile)).records
        names = {p.user_id: p.display_name for p in profiles}
        ordered = sorted(
            views.filter_progress(progress, status),
            key=lambda p: (p.submitted_at or p.created_at or current_timestamp()).timestamp(),
            reverse=True,
        )
        return ProgressListing(
            status=status,
            counts=views.progress_counts(progress),
            items=[
                ProgressRow(
                    progress=p,
                    video_title=views.video_title(videos, p.video_id),
                    topic_name=views.video_topic_name(videos, topics, p.video_id),
                    display_name=names.get(p.user_id) or views.UNKNOWN_LABEL,
                )
                for p in ordered
            ],
        )

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence
from uuid import uuid4

from pathshala.common import views
from pathshala.common.errors import ValidationError
from pathshala.db.binding import BindingRegistry, CollectionBinding
from pathshala.db.records import Quiz, UserProfile, UserProgress, Video

from .schemas import QuestionIn, QuizCreate, QuizResultEntry, QuizResults, QuizUpdate

logger = logging.getLogger("quizzes.service")

OPTION_COUNT = 4


def validate_questions(questions: Sequence[QuestionIn]) -> List[Dict[str, Any]]:
    """Check the quiz form and return the questions as stored rows."""
    if not questions:
        raise ValidationError("অন্তত একটি প্রশ্ন যোগ করুন!", field="questions")
    rows: List[Dict[str, Any]] = []
    for index, q in enumerate(questions, start=1):
        if not q.question.strip():
            raise ValidationError(f"প্রশ্ন {index} লিখুন!", field="questions")
        if len(q.options) != OPTION_COUNT or any(not o.strip() for o in q.options):
            raise ValidationError(f"প্রশ্ন {index} এর সব অপশন পূরণ করুন!", field="questions")
        if not 0 <= q.correct_answer < OPTION_COUNT:
            raise ValidationError(f"প্রশ্ন {index} এর সঠিক উত্তর নির্বাচন করুন!", field="questions")
        rows.append(
            {
                "id": q.id or uuid4().hex,
                "question": q.question.strip(),
                "options": [o.strip() for o in q.options],
                "correct_answer": q.correct_answer,
            }
        )
    return rows


def validate_scoring(passing_score: Optional[int], points: Optional[int]) -> None:
    if passing_score is not None and not 0 <= passing_score <= 100:
        raise ValidationError("পাস মার্ক ০ থেকে ১০০ এর মধ্যে হতে হবে!", field="passing_score")
    if points is not None and points < 0:
        raise ValidationError("পয়েন্ট ঋণাত্মক হতে পারে না!", field="points")


class QuizService:
    def __init__(self, registry: BindingRegistry) -> None:
        self.registry = registry

    async def _quizzes(self) -> CollectionBinding[Quiz]:
        return await self.registry.bind(Quiz)

    async def list_quizzes(self) -> List[Quiz]:
        return list((await self._quizzes()).records)

    async def quiz_for_video(self, video_id: str) -> Optional[Quiz]:
        quizzes = await self._quizzes()
        return quizzes.find(lambda q: q.video_id == video_id)

    async def create_quiz(self, payload: QuizCreate) -> Quiz:
        if not payload.video_id:
            raise ValidationError("ভিডিও নির্বাচন করুন!", field="video_id")
        questions = validate_questions(payload.questions)
        validate_scoring(payload.passing_score, payload.points)
        quizzes = await self._quizzes()
        quiz = await quizzes.create(
            {
                "video_id": payload.video_id,
                "questions": questions,
                "passing_score": payload.passing_score,
                "points": payload.points,
            }
        )
        logger.info("quizzes.created id=%s video_id=%s questions=%d", quiz.id, quiz.video_id, len(questions))
        return quiz

    async def update_quiz(self, quiz_id: str, payload: QuizUpdate) -> Quiz:
        changes = payload.model_dump(exclude_unset=True, exclude={"questions"})
        if payload.questions is not None:
            changes["questions"] = validate_questions(payload.questions)
        validate_scoring(changes.get("passing_score"), changes.get("points"))
        quizzes = await self._quizzes()
        quizzes.require(quiz_id)
        if changes:
            await quizzes.update(quiz_id, changes)
        return quizzes.require(quiz_id)

    async def delete_quiz(self, quiz_id: str) -> None:
        quizzes = await self._quizzes()
        await quizzes.remove(quiz_id)
        logger.info("quizzes.deleted id=%s", quiz_id)

    async def results(self, quiz_id: str) -> QuizResults:
        quiz = (await self._quizzes()).require(quiz_id)
        progress = (await self.registry.bind(UserProgress)).records
        videos = (await self.registry.bind(Video, order="order")).records
        profiles = (await self.registry.bind(UserProfile)).records
        attempts = views.quiz_results(quiz, progress)
        names = {p.user_id: p.display_name for p in profiles}
        return QuizResults(
            quiz_id=quiz.id,
            video_title=views.video_title(videos, quiz.video_id),
            attempts=len(attempts),
            average_score=views.average_score(attempts),
            results=[
                QuizResultEntry(progress=p, display_name=names.get(p.user_id) or views.UNKNOWN_LABEL)
                for p in attempts
            ],
        )

"""Weekly/monthly challenges: admin management and the student flow.

Creating and resetting a challenge touch several rows without a transaction.
Each row write is a retried step; when one keeps failing the caller gets a
``PartialFailure`` naming what already happened.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple, Union

from pathshala.common import views
from pathshala.common.errors import Forbidden, ValidationError
from pathshala.common.utils import display_name_for, run_steps
from pathshala.common.youtube import extract_video_id
from pathshala.db.binding import BindingRegistry, CollectionBinding
from pathshala.db.records import (
    Challenge,
    ChallengeComment,
    ChallengePayment,
    ChallengeSubmission,
    ChallengeType,
    PaymentStatus,
    UserProfile,
)

from .schemas import (
    ActiveChallenge,
    ChallengeCreate,
    ChallengeUpdate,
    CommentCreate,
    LikeResult,
    PaymentCreate,
    PendingReview,
    RankedSubmission,
    SubmissionCreate,
)

logger = logging.getLogger("challenges.service")

NO_ACTIVE = "এই মুহূর্তে কোনো সক্রিয় চ্যালেঞ্জ নেই!"
PAYMENT_REQUIRED = "অংশগ্রহণ করতে পেমেন্ট সম্পন্ন করুন!"


class ChallengeService:
    def __init__(self, registry: BindingRegistry, *, step_retries: int = 3, step_backoff: float = 0.2) -> None:
        self.registry = registry
        self.step_retries = step_retries
        self.step_backoff = step_backoff

    async def _challenges(self) -> CollectionBinding[Challenge]:
        return await self.registry.bind(Challenge, order="created_at", ascending=False)

    async def _submissions(self) -> CollectionBinding[ChallengeSubmission]:
        return await self.registry.bind(ChallengeSubmission, order="created_at", ascending=False)

    async def _payments(self) -> CollectionBinding[ChallengePayment]:
        return await self.registry.bind(ChallengePayment, order="created_at", ascending=False)

    async def _comments(self) -> CollectionBinding[ChallengeComment]:
        return await self.registry.bind(ChallengeComment, order="created_at")

    async def _author(self, user_id: str, email: Optional[str]) -> Tuple[str, Optional[str]]:
        profiles = await self.registry.bind(UserProfile)
        profile = profiles.find(lambda p: p.user_id == user_id)
        if profile is not None and profile.display_name:
            return profile.display_name, profile.avatar
        return display_name_for(email), None

    # ---- admin ---------------------------------------------------------------

    async def list_challenges(self) -> List[Challenge]:
        return list((await self._challenges()).records)

    async def create_challenge(self, payload: ChallengeCreate) -> Challenge:
        title = payload.title.strip()
        if not title:
            raise ValidationError("চ্যালেঞ্জের শিরোনাম লিখুন!", field="title")
        if payload.end_date < payload.start_date:
            raise ValidationError("শেষের তারিখ শুরুর তারিখের পরে হতে হবে!", field="end_date")
        if payload.price < 0:
            raise ValidationError("মূল্য ঋণাত্মক হতে পারে না!", field="price")
        price = payload.price if payload.type == ChallengeType.thirty_day else 0

        challenges = await self._challenges()
        # Deactivate from a fresh read only
        await challenges.refresh(raise_errors=True)
        active = challenges.where(lambda c: c.type == payload.type and c.is_active)
        created: Dict[str, Any] = {}

        async def _insert() -> None:
            created["id"] = await challenges.add(
                {
                    "type": payload.type,
                    "title": title,
                    "description": payload.description.strip(),
                    "start_date": payload.start_date,
                    "end_date": payload.end_date,
                    "price": price,
                    "payment_number": (payload.payment_number or "").strip() or None,
                    "is_active": True,
                }
            )

        # Only one active challenge per type: deactivate the others first
        steps = [(f"deactivate:{c.id}", self._deactivate_step(challenges, c.id)) for c in active]
        steps.append(("insert", _insert))
        await run_steps("challenge.create", steps, attempts=self.step_retries, backoff=self.step_backoff)
        logger.info(
            "challenges.created id=%s type=%s deactivated=%d", created["id"], payload.type.value, len(active)
        )
        return challenges.require(created["id"])

    @staticmethod
    def _deactivate_step(challenges: CollectionBinding[Challenge], challenge_id: str):
        async def _call() -> None:
            await challenges.update(challenge_id, {"is_active": False})

        return _call

    async def update_challenge(self, challenge_id: str, payload: ChallengeUpdate) -> Challenge:
        changes = payload.model_dump(exclude_unset=True)
        if "title" in changes and not (changes["title"] or "").strip():
            raise ValidationError("চ্যালেঞ্জের শিরোনাম লিখুন!", field="title")
        challenges = await self._challenges()
        challenges.require(challenge_id)
        if changes:
            await challenges.update(challenge_id, changes)
        return challenges.require(challenge_id)

    async def delete_challenge(self, challenge_id: str) -> None:
        await (await self._challenges()).remove(challenge_id)
        logger.info("challenges.deleted id=%s", challenge_id)

    async def reset_challenge(self, challenge_id: str) -> List[str]:
        """Delete every submission of the challenge, then deactivate it."""
        challenges = await self._challenges()
        await challenges.refresh(raise_errors=True)
        challenges.require(challenge_id)
        submissions = await self._submissions()
        await submissions.refresh(raise_errors=True)
        doomed = submissions.where(lambda s: s.challenge_id == challenge_id)

        def _delete(submission_id: str):
            async def _call() -> None:
                await submissions.remove(submission_id)

            return _call

        steps = [(f"delete_submission:{s.id}", _delete(s.id)) for s in doomed]
        steps.append(("deactivate", self._deactivate_step(challenges, challenge_id)))
        completed = await run_steps("challenge.reset", steps, attempts=self.step_retries, backoff=self.step_backoff)
        logger.info("challenges.reset id=%s submissions_deleted=%d", challenge_id, len(doomed))
        return completed

    async def pending(self) -> PendingReview:
        submissions = (await self._submissions()).records
        payments = (await self._payments()).records
        return PendingReview(
            submissions=views.partition(submissions, lambda s: s.approved).no,
            payments=[p for p in payments if p.status == PaymentStatus.pending],
        )

    async def approve_submission(self, submission_id: str) -> ChallengeSubmission:
        submissions = await self._submissions()
        submissions.require(submission_id)
        await submissions.update(submission_id, {"approved": True})
        logger.info("challenges.submission_approved id=%s", submission_id)
        return submissions.require(submission_id)

    async def reject_submission(self, submission_id: str) -> None:
        await (await self._submissions()).remove(submission_id)
        logger.info("challenges.submission_rejected id=%s", submission_id)

    async def review_payment(self, payment_id: str, status: PaymentStatus) -> ChallengePayment:
        if status == PaymentStatus.pending:
            raise ValidationError("অনুমোদন বা বাতিল নির্বাচন করুন!", field="status")
        payments = await self._payments()
        payments.require(payment_id)
        await payments.update(payment_id, {"status": status})
        logger.info("challenges.payment_reviewed id=%s status=%s", payment_id, status.value)
        return payments.require(payment_id)

    # ---- student -------------------------------------------------------------

    async def active(self, challenge_type: Union[ChallengeType, str], user_id: Optional[str] = None) -> ActiveChallenge:
        challenge = views.active_challenge((await self._challenges()).records, challenge_type)
        if challenge is None:
            return ActiveChallenge()
        payments = (await self._payments()).records
        mine = [p for p in payments if p.challenge_id == challenge.id and p.user_id == user_id]
        return ActiveChallenge(
            challenge=challenge,
            can_participate=views.can_participate(challenge, payments, user_id),
            payment_status=mine[0].status if mine else None,
        )

    async def submit(
        self, challenge_type: Union[ChallengeType, str], user_id: str, email: Optional[str], payload: SubmissionCreate
    ) -> ChallengeSubmission:
        title = payload.title.strip()
        if not title:
            raise ValidationError("শিরোনাম লিখুন!", field="title")
        video_id = extract_video_id(payload.youtube_url)
        if not video_id:
            raise ValidationError("সঠিক ইউটিউব লিংক দিন!", field="youtube_url")
        state = await self.active(challenge_type, user_id)
        if state.challenge is None:
            raise ValidationError(NO_ACTIVE)
        if not state.can_participate:
            raise Forbidden(PAYMENT_REQUIRED)
        challenge = state.challenge
        author_name, author_avatar = await self._author(user_id, email)
        submission = await (await self._submissions()).create(
            {
                "challenge_id": challenge.id,
                "challenge_type": challenge.type,
                "user_id": user_id,
                "author_name": author_name,
                "author_avatar": author_avatar,
                "title": title,
                "description": payload.description.strip(),
                "youtube_url": payload.youtube_url.strip(),
                "video_id": video_id,
                "image_url": payload.image_url,
                "files": [f.model_dump() for f in payload.files],
                "approved": False,
                "likes": [],
                "likes_count": 0,
                "comments_count": 0,
            }
        )
        logger.info("challenges.submitted id=%s challenge_id=%s user_id=%s", submission.id, challenge.id, user_id)
        return submission

    async def submit_payment(self, user_id: str, email: Optional[str], payload: PaymentCreate) -> ChallengePayment:
        if not payload.payment_number.strip() or not payload.transaction_id.strip():
            raise ValidationError("পেমেন্ট নম্বর এবং ট্রানজেকশন আইডি দিন!")
        state = await self.active(ChallengeType.thirty_day, user_id)
        challenge = state.challenge
        if challenge is None:
            raise ValidationError(NO_ACTIVE)
        if state.payment_status in (PaymentStatus.pending, PaymentStatus.approved):
            raise ValidationError("আপনার পেমেন্ট ইতিমধ্যে জমা হয়েছে!")
        user_name, _ = await self._author(user_id, email)
        payment = await (await self._payments()).create(
            {
                "challenge_id": challenge.id,
                "user_id": user_id,
                "user_name": user_name,
                "user_email": email or "",
                "payment_number": payload.payment_number.strip(),
                "transaction_id": payload.transaction_id.strip(),
                "amount": challenge.price,
                "status": PaymentStatus.pending,
            }
        )
        logger.info("challenges.payment_submitted id=%s challenge_id=%s user_id=%s", payment.id, challenge.id, user_id)
        return payment

    async def toggle_like(self, submission_id: str, user_id: str) -> LikeResult:
        submissions = await self._submissions()
        submission = submissions.require(submission_id)
        likes, liked = views.toggle_membership(submission.likes, user_id)
        await submissions.update(submission_id, {"likes": likes, "likes_count": len(likes)})
        return LikeResult(liked=liked, likes_count=len(likes))

    async def comments(self, submission_id: str) -> List[ChallengeComment]:
        return (await self._comments()).where(lambda c: c.submission_id == submission_id)

    async def add_comment(
        self, submission_id: str, user_id: str, email: Optional[str], payload: CommentCreate
    ) -> ChallengeComment:
        content = payload.content.strip()
        if not content:
            raise ValidationError("মন্তব্য লিখুন!", field="content")
        submissions = await self._submissions()
        submission = submissions.require(submission_id)
        author_name, author_avatar = await self._author(user_id, email)
        comment = await (await self._comments()).create(
            {
                "submission_id": submission_id,
                "author_id": user_id,
                "author_name": author_name,
                "author_avatar": author_avatar,
                "content": content,
            }
        )
        await submissions.update(submission_id, {"comments_count": submission.comments_count + 1})
        return comment

    async def ranked_submissions(self, challenge_type: Union[ChallengeType, str]) -> List[RankedSubmission]:
        challenge = views.active_challenge((await self._challenges()).records, challenge_type)
        entries = views.leaderboard_submissions((await self._submissions()).records, challenge)
        return [RankedSubmission(rank=i, submission=s) for i, s in enumerate(entries)]

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, status

from pathshala.common.deps import CurrentUser, get_app_settings, get_current_user, get_registry, require_admin
from pathshala.core.config import Settings
from pathshala.db.binding import BindingRegistry
from pathshala.db.records import Challenge, ChallengeComment, ChallengePayment, ChallengeSubmission, ChallengeType

from .schemas import (
    ActiveChallenge,
    ChallengeCreate,
    ChallengeUpdate,
    CommentCreate,
    LikeResult,
    PaymentCreate,
    PaymentReview,
    PendingReview,
    RankedSubmission,
    SubmissionCreate,
)
from .service import ChallengeService

router = APIRouter(prefix="/challenges", tags=["Challenges"])


def get_challenge_service(
    registry: BindingRegistry = Depends(get_registry),
    settings: Settings = Depends(get_app_settings),
) -> ChallengeService:
    return ChallengeService(registry, step_retries=settings.step_retries)


# ---- admin -------------------------------------------------------------------

@router.get("/", response_model=List[Challenge])
async def list_challenges(
    admin: CurrentUser = Depends(require_admin()),
    service: ChallengeService = Depends(get_challenge_service),
):
    return await service.list_challenges()


@router.post("/", response_model=Challenge, status_code=status.HTTP_201_CREATED)
async def create_challenge(
    payload: ChallengeCreate,
    admin: CurrentUser = Depends(require_admin()),
    service: ChallengeService = Depends(get_challenge_service),
):
    return await service.create_challenge(payload)


@router.get("/pending", response_model=PendingReview)
async def pending_reviews(
    admin: CurrentUser = Depends(require_admin()),
    service: ChallengeService = Depends(get_challenge_service),
):
    return await service.pending()


@router.patch("/{challenge_id}", response_model=Challenge)
async def update_challenge(
    challenge_id: str,
    payload: ChallengeUpdate,
    admin: CurrentUser = Depends(require_admin()),
    service: ChallengeService = Depends(get_challenge_service),
):
    return await service.update_challenge(challenge_id, payload)


@router.delete("/{challenge_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_challenge(
    challenge_id: str,
    admin: CurrentUser = Depends(require_admin()),
    service: ChallengeService = Depends(get_challenge_service),
):
    await service.delete_challenge(challenge_id)


@router.post("/{challenge_id}/reset")
async def reset_challenge(
    challenge_id: str,
    admin: CurrentUser = Depends(require_admin()),
    service: ChallengeService = Depends(get_challenge_service),
):
    completed = await service.reset_challenge(challenge_id)
    return {"detail": "চ্যালেঞ্জ রিসেট হয়েছে!", "completed": completed}


@router.post("/submissions/{submission_id}/approve", response_model=ChallengeSubmission)
async def approve_submission(
    submission_id: str,
    admin: CurrentUser = Depends(require_admin()),
    service: ChallengeService = Depends(get_challenge_service),
):
    return await service.approve_submission(submission_id)


@router.delete("/submissions/{submission_id}", status_code=status.HTTP_204_NO_CONTENT)
async def reject_submission(
    submission_id: str,
    admin: CurrentUser = Depends(require_admin()),
    service: ChallengeService = Depends(get_challenge_service),
):
    await service.reject_submission(submission_id)


@router.post("/payments/{payment_id}/review", response_model=ChallengePayment)
async def review_payment(
    payment_id: str,
    payload: PaymentReview,
    admin: CurrentUser = Depends(require_admin()),
    service: ChallengeService = Depends(get_challenge_service),
):
    return await service.review_payment(payment_id, payload.status)


# ---- student -----------------------------------------------------------------

@router.get("/active/{challenge_type}", response_model=ActiveChallenge)
async def active_challenge(
    challenge_type: ChallengeType,
    current_user: CurrentUser = Depends(get_current_user),
    service: ChallengeService = Depends(get_challenge_service),
):
    return await service.active(challenge_type, current_user.id)


@router.get("/active/{challenge_type}/submissions", response_model=List[RankedSubmission])
async def ranked_submissions(
    challenge_type: ChallengeType,
    current_user: CurrentUser = Depends(get_current_user),
    service: ChallengeService = Depends(get_challenge_service),
):
    return await service.ranked_submissions(challenge_type)


@router.post(
    "/active/{challenge_type}/submissions",
    response_model=ChallengeSubmission,
    status_code=status.HTTP_201_CREATED,
)
async def submit(
    challenge_type: ChallengeType,
    payload: SubmissionCreate,
    current_user: CurrentUser = Depends(get_current_user),
    service: ChallengeService = Depends(get_challenge_service),
):
    return await service.submit(challenge_type, current_user.id, current_user.email, payload)


@router.post("/payments", response_model=ChallengePayment, status_code=status.HTTP_201_CREATED)
async def submit_payment(
    payload: PaymentCreate,
    current_user: CurrentUser = Depends(get_current_user),
    service: ChallengeService = Depends(get_challenge_service),
):
    return await service.submit_payment(current_user.id, current_user.email, payload)


@router.post("/submissions/{submission_id}/like", response_model=LikeResult)
async def toggle_like(
    submission_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: ChallengeService = Depends(get_challenge_service),
):
    return await service.toggle_like(submission_id, current_user.id)


@router.get("/submissions/{submission_id}/comments", response_model=List[ChallengeComment])
async def list_comments(
    submission_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: ChallengeService = Depends(get_challenge_service),
):
    return await service.comments(submission_id)


@router.post(
    "/submissions/{submission_id}/comments",
    response_model=ChallengeComment,
    status_code=status.HTTP_201_CREATED,
)
async def add_comment(
    submission_id: str,
    payload: CommentCreate,
    current_user: CurrentUser = Depends(get_current_user),
    service: ChallengeService = Depends(get_challenge_service),
):
    return await service.add_comment(submission_id, current_user.id, current_user.email, payload)

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from pathshala.db.records import (
    Challenge,
    ChallengePayment,
    ChallengeSubmission,
    ChallengeType,
    FileAttachment,
    PaymentStatus,
)


class ChallengeCreate(BaseModel):
    type: ChallengeType
    title: str = ""
    description: str = ""
    start_date: datetime
    end_date: datetime
    price: float = 0
    payment_number: Optional[str] = None


class ChallengeUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    price: Optional[float] = None
    payment_number: Optional[str] = None
    is_active: Optional[bool] = None


class SubmissionCreate(BaseModel):
    title: str = ""
    description: str = ""
    youtube_url: str = ""
    image_url: Optional[str] = None
    files: List[FileAttachment] = Field(default_factory=list)


class PaymentCreate(BaseModel):
    payment_number: str = ""
    transaction_id: str = ""


class PaymentReview(BaseModel):
    status: PaymentStatus


class CommentCreate(BaseModel):
    content: str = ""


class ActiveChallenge(BaseModel):
    challenge: Optional[Challenge] = None
    can_participate: bool = False
    payment_status: Optional[PaymentStatus] = None


class RankedSubmission(BaseModel):
    rank: int
    submission: ChallengeSubmission


class LikeResult(BaseModel):
    liked: bool
    likes_count: int


class PendingReview(BaseModel):
    submissions: List[ChallengeSubmission]
    payments: List[ChallengePayment]

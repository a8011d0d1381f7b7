"""Per-table record schemas.

Rows coming back from Supabase are validated into these models at the binding
boundary, so a malformed row fails with ``SchemaError`` instead of leaking
``None`` into the view logic.
"""

from __future__ import annotations

import enum
import typing
from datetime import date, datetime
from typing import Any, ClassVar, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class EventType(str, enum.Enum):
    live = "live"
    assignment = "assignment"
    exam = "exam"
    other = "other"


class ChallengeType(str, enum.Enum):
    seven_day = "7day"
    thirty_day = "30day"


class PaymentStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class Record(BaseModel):
    """Base row: string ids, unknown columns kept."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    table: ClassVar[str] = ""

    id: str
    created_at: Optional[datetime] = None

    @model_validator(mode="before")
    @classmethod
    def _stringify_ids(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        out = dict(data)
        for key, value in data.items():
            if (key == "id" or key.endswith("_id")) and value is not None and not isinstance(value, str):
                out[key] = str(value)
        return out

    @classmethod
    def date_fields(cls) -> Tuple[str, ...]:
        names = []
        for name, field in cls.model_fields.items():
            annotation = field.annotation
            args = typing.get_args(annotation) or (annotation,)
            if any(arg in (datetime, date) for arg in args):
                names.append(name)
        return tuple(names)


class FileAttachment(BaseModel):
    id: str
    name: str
    url: str
    size: int = 0
    type: str = ""

    @field_validator("id", mode="before")
    @classmethod
    def _id_to_str(cls, value: Any) -> str:
        return str(value)


class Topic(Record):
    table: ClassVar[str] = "topics"

    name: str
    description: str = ""
    thumbnail: Optional[str] = None
    order: int = 0


class Video(Record):
    table: ClassVar[str] = "videos"

    title: str
    description: str = ""
    youtube_url: str
    video_id: str
    topic_id: str
    order: int = 0
    files: List[FileAttachment] = Field(default_factory=list)


class Question(BaseModel):
    id: str
    question: str
    options: List[str]
    correct_answer: int

    @field_validator("id", mode="before")
    @classmethod
    def _id_to_str(cls, value: Any) -> str:
        return str(value)


class Quiz(Record):
    table: ClassVar[str] = "quizzes"

    video_id: str
    questions: List[Question] = Field(default_factory=list)
    passing_score: int = 70
    points: int = 10


class UserProgress(Record):
    table: ClassVar[str] = "user_progress"

    user_id: str
    video_id: str
    watched: bool = False
    can_access: bool = True
    summary: str = ""
    work_link: str = ""
    quiz_score: Optional[int] = None
    quiz_passed: bool = False
    quiz_attempts: int = 0
    submitted_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class UserProfile(Record):
    table: ClassVar[str] = "user_profiles"

    user_id: str
    display_name: str = ""
    avatar: Optional[str] = None
    bio: Optional[str] = None
    points: int = 0
    completed_videos: int = 0
    joined_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Category(Record):
    table: ClassVar[str] = "categories"

    name: str
    description: str = ""
    color: str = "#3B82F6"


class Post(Record):
    table: ClassVar[str] = "posts"

    title: str
    content: str
    image_url: Optional[str] = None
    youtube_url: Optional[str] = None
    files: List[FileAttachment] = Field(default_factory=list)
    category_id: str
    author_id: str
    author_name: str = ""
    author_avatar: Optional[str] = None
    approved: bool = False
    pinned: bool = False
    likes: List[str] = Field(default_factory=list)
    likes_count: int = 0
    comments_count: int = 0


class Comment(Record):
    table: ClassVar[str] = "comments"

    post_id: str
    author_id: str
    author_name: str = ""
    author_avatar: Optional[str] = None
    content: str


class Event(Record):
    table: ClassVar[str] = "events"

    title: str
    description: str = ""
    date: datetime
    time: str = ""
    live_link: Optional[str] = None
    type: EventType = EventType.other


class Challenge(Record):
    table: ClassVar[str] = "challenges"

    type: ChallengeType
    title: str
    description: str = ""
    start_date: datetime
    end_date: datetime
    price: float = 0
    payment_number: Optional[str] = None
    is_active: bool = False


class ChallengeSubmission(Record):
    table: ClassVar[str] = "challenge_submissions"

    challenge_id: str
    challenge_type: ChallengeType
    user_id: str
    author_name: str = ""
    author_avatar: Optional[str] = None
    title: str
    description: str = ""
    youtube_url: str
    video_id: str
    image_url: Optional[str] = None
    files: List[FileAttachment] = Field(default_factory=list)
    approved: bool = False
    likes: List[str] = Field(default_factory=list)
    likes_count: int = 0
    comments_count: int = 0


class ChallengePayment(Record):
    table: ClassVar[str] = "challenge_payments"

    challenge_id: str
    user_id: str
    user_name: str = ""
    user_email: str = ""
    payment_number: str
    transaction_id: str
    amount: float = 0
    status: PaymentStatus = PaymentStatus.pending


class ChallengeComment(Record):
    table: ClassVar[str] = "challenge_comments"

    submission_id: str
    author_id: str
    author_name: str = ""
    author_avatar: Optional[str] = None
    content: str


class UserSession(Record):
    table: ClassVar[str] = "user_sessions"

    email: str
    user_id: str
    device_info: str = ""


__all__ = [
    "EventType",
    "ChallengeType",
    "PaymentStatus",
    "Record",
    "FileAttachment",
    "Topic",
    "Video",
    "Question",
    "Quiz",
    "UserProgress",
    "UserProfile",
    "Category",
    "Post",
    "Comment",
    "Event",
    "Challenge",
    "ChallengeSubmission",
    "ChallengePayment",
    "ChallengeComment",
    "UserSession",
]

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from pathshala.db.records import UserProgress, Video


class CompletionSubmit(BaseModel):
    summary: str = ""
    work_link: str = ""


class QuizSubmit(BaseModel):
    answers: List[Optional[int]] = Field(default_factory=list)


class QuestionView(BaseModel):
    """A quiz question as shown to a student; the answer index is withheld."""

    id: str
    question: str
    options: List[str]


class QuizView(BaseModel):
    id: str
    passing_score: int
    points: int
    questions: List[QuestionView]


class VideoSession(BaseModel):
    video: Video
    progress: UserProgress
    can_access: bool
    thumbnail_url: str
    embed_url: str
    quiz: Optional[QuizView] = None


class QuizOutcome(BaseModel):
    score: int
    correct: int
    total: int
    passed: bool
    points_awarded: int
    progress: UserProgress


class CompletionOutcome(BaseModel):
    points_awarded: int
    progress: UserProgress


class ProgressRow(BaseModel):
    progress: UserProgress
    video_title: str
    topic_name: str
    display_name: str


class ProgressListing(BaseModel):
    status: str
    counts: Dict[str, int]
    items: List[ProgressRow]

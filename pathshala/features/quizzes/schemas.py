from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from pathshala.db.records import UserProgress


class QuestionIn(BaseModel):
    id: Optional[str] = None
    question: str = ""
    options: List[str] = Field(default_factory=list)
    correct_answer: int = 0


class QuizCreate(BaseModel):
    video_id: str
    questions: List[QuestionIn] = Field(default_factory=list)
    passing_score: int = 70
    points: int = 10


class QuizUpdate(BaseModel):
    questions: Optional[List[QuestionIn]] = None
    passing_score: Optional[int] = None
    points: Optional[int] = None


class QuizResultEntry(BaseModel):
    progress: UserProgress
    display_name: str


class QuizResults(BaseModel):
    quiz_id: str
    video_title: str
    attempts: int
    average_score: float
    results: List[QuizResultEntry]

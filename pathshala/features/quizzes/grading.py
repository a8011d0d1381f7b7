from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from pathshala.db.records import Question


@dataclass(frozen=True)
class Grade:
    correct: int
    total: int
    score: int
    passed: bool


def score_for(correct: int, total: int) -> int:
    if total <= 0:
        return 0
    # Half-up rounding; round() would send 62.5 to 62
    return int(100 * correct / total + 0.5)


def grade_quiz(questions: Sequence[Question], answers: Sequence[Optional[int]], passing_score: int) -> Grade:
    correct = sum(
        1
        for i, q in enumerate(questions)
        if i < len(answers) and answers[i] is not None and answers[i] == q.correct_answer
    )
    score = score_for(correct, len(questions))
    return Grade(correct=correct, total=len(questions), score=score, passed=score >= passing_score)


__all__ = ["Grade", "grade_quiz", "score_for"]

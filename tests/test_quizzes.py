import pytest

from pathshala.common.errors import ValidationError
from pathshala.db.records import Question
from pathshala.features.quizzes.grading import grade_quiz, score_for
from pathshala.features.quizzes.schemas import QuestionIn, QuizCreate, QuizUpdate
from pathshala.features.quizzes.service import QuizService, validate_questions

pytestmark = pytest.mark.anyio("asyncio")


def _questions(n=4):
    return [
        Question(id=str(i), question=f"প্রশ্ন {i}", options=["ক", "খ", "গ", "ঘ"], correct_answer=i % 4)
        for i in range(n)
    ]


def _form(**overrides):
    data = {"question": "২ + ২ = ?", "options": ["৩", "৪", "৫", "৬"], "correct_answer": 1}
    data.update(overrides)
    return QuestionIn(**data)


def test_three_of_four_scores_75():
    questions = _questions()
    answers = [0, 1, 2, 0]  # last one wrong
    assert grade_quiz(questions, answers, 70).score == 75
    assert grade_quiz(questions, answers, 70).passed is True
    assert grade_quiz(questions, answers, 80).passed is False


def test_score_rounds_half_up():
    assert score_for(5, 8) == 63
    assert score_for(2, 3) == 67
    assert score_for(0, 0) == 0


def test_missing_answers_count_as_wrong():
    grade = grade_quiz(_questions(), [0, None], 50)
    assert grade.correct == 1
    assert grade.score == 25
    assert not grade.passed


def test_validation_requires_questions():
    with pytest.raises(ValidationError):
        validate_questions([])


@pytest.mark.parametrize(
    "question",
    [
        {"question": "   "},
        {"options": ["৩", "৪", "৫"]},
        {"options": ["৩", "৪", "", "৬"]},
        {"correct_answer": 4},
        {"correct_answer": -1},
    ],
)
def test_validation_rejects_bad_questions(question):
    with pytest.raises(ValidationError):
        validate_questions([_form(**question)])


def test_validation_normalises_rows():
    [row] = validate_questions([_form(question="  ২ + ২ = ?  ")])
    assert row["question"] == "২ + ২ = ?"
    assert row["id"]
    assert row["correct_answer"] == 1


async def test_create_quiz_rejects_before_any_write(store, registry):
    service = QuizService(registry)
    with pytest.raises(ValidationError):
        await service.create_quiz(QuizCreate(video_id="v1", questions=[_form()], passing_score=120))
    assert not [c for c in store.calls if c[0] != "select"]


async def test_quiz_crud_and_results(store, registry):
    store.seed("videos", {"id": "v1", "title": "ভিডিও ১", "youtube_url": "", "video_id": "x" * 11, "topic_id": "t1"})
    store.seed(
        "user_progress",
        {"id": "p1", "user_id": "u1", "video_id": "v1", "quiz_score": 100},
        {"id": "p2", "user_id": "u2", "video_id": "v1", "quiz_score": 50},
        {"id": "p3", "user_id": "u3", "video_id": "v1"},
    )
    store.seed("user_profiles", {"id": "pr1", "user_id": "u1", "display_name": "রহিম"})
    service = QuizService(registry)

    quiz = await service.create_quiz(QuizCreate(video_id="v1", questions=[_form()], points=15))
    assert quiz.points == 15
    assert quiz.passing_score == 70
    assert (await service.quiz_for_video("v1")).id == quiz.id

    updated = await service.update_quiz(quiz.id, QuizUpdate(passing_score=50))
    assert updated.passing_score == 50
    assert len(updated.questions) == 1

    results = await service.results(quiz.id)
    assert results.video_title == "ভিডিও ১"
    assert results.attempts == 2
    assert results.average_score == 75
    assert [r.display_name for r in results.results] == ["রহিম", "অজানা"]

    await service.delete_quiz(quiz.id)
    assert await service.list_quizzes() == []

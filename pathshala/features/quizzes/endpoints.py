from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, status

from pathshala.common.deps import CurrentUser, get_current_user, get_registry, require_admin
from pathshala.db.binding import BindingRegistry
from pathshala.db.records import Quiz

from .schemas import QuizCreate, QuizResults, QuizUpdate
from .service import QuizService

router = APIRouter(prefix="/quizzes", tags=["Quizzes"])


def get_quiz_service(registry: BindingRegistry = Depends(get_registry)) -> QuizService:
    return QuizService(registry)


@router.get("/", response_model=List[Quiz])
async def list_quizzes(
    admin: CurrentUser = Depends(require_admin()),
    service: QuizService = Depends(get_quiz_service),
):
    return await service.list_quizzes()


@router.post("/", response_model=Quiz, status_code=status.HTTP_201_CREATED)
async def create_quiz(
    payload: QuizCreate,
    admin: CurrentUser = Depends(require_admin()),
    service: QuizService = Depends(get_quiz_service),
):
    return await service.create_quiz(payload)


@router.patch("/{quiz_id}", response_model=Quiz)
async def update_quiz(
    quiz_id: str,
    payload: QuizUpdate,
    admin: CurrentUser = Depends(require_admin()),
    service: QuizService = Depends(get_quiz_service),
):
    return await service.update_quiz(quiz_id, payload)


@router.delete("/{quiz_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_quiz(
    quiz_id: str,
    admin: CurrentUser = Depends(require_admin()),
    service: QuizService = Depends(get_quiz_service),
):
    await service.delete_quiz(quiz_id)


@router.get("/{quiz_id}/results", response_model=QuizResults)
async def quiz_results(
    quiz_id: str,
    admin: CurrentUser = Depends(require_admin()),
    service: QuizService = Depends(get_quiz_service),
):
    return await service.results(quiz_id)

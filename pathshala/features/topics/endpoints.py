from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, status

from pathshala.common.deps import CurrentUser, get_current_user, get_registry, require_admin
from pathshala.db.binding import BindingRegistry
from pathshala.db.records import Topic

from .schemas import TopicCreate, TopicUpdate
from .service import TopicService

router = APIRouter(prefix="/topics", tags=["Topics"])


def get_topic_service(registry: BindingRegistry = Depends(get_registry)) -> TopicService:
    return TopicService(registry)


@router.get("/", response_model=List[Topic])
async def list_topics(
    current_user: CurrentUser = Depends(get_current_user),
    service: TopicService = Depends(get_topic_service),
):
    return await service.list_topics()


@router.post("/", response_model=Topic, status_code=status.HTTP_201_CREATED)
async def create_topic(
    payload: TopicCreate,
    admin: CurrentUser = Depends(require_admin()),
    service: TopicService = Depends(get_topic_service),
):
    return await service.create_topic(payload)


@router.patch("/{topic_id}", response_model=Topic)
async def update_topic(
    topic_id: str,
    payload: TopicUpdate,
    admin: CurrentUser = Depends(require_admin()),
    service: TopicService = Depends(get_topic_service),
):
    return await service.update_topic(topic_id, payload)


@router.delete("/{topic_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_topic(
    topic_id: str,
    admin: CurrentUser = Depends(require_admin()),
    service: TopicService = Depends(get_topic_service),
):
    await service.delete_topic(topic_id)

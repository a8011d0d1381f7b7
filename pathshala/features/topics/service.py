from __future__ import annotations

import logging
from typing import List

from pathshala.common.errors import ValidationError
from pathshala.db.binding import BindingRegistry, CollectionBinding
from pathshala.db.records import Topic

from .schemas import TopicCreate, TopicUpdate

logger = logging.getLogger("topics.service")


class TopicService:
    def __init__(self, registry: BindingRegistry) -> None:
        self.registry = registry

    async def _topics(self) -> CollectionBinding[Topic]:
        return await self.registry.bind(Topic, order="order")

    async def list_topics(self) -> List[Topic]:
        return list((await self._topics()).records)

    async def create_topic(self, payload: TopicCreate) -> Topic:
        name = payload.name.strip()
        if not name:
            raise ValidationError("টপিকের নাম লিখুন!", field="name")
        topics = await self._topics()
        # New topics go to the end of the list
        topic = await topics.create(
            {
                "name": name,
                "description": payload.description.strip(),
                "thumbnail": payload.thumbnail,
                "order": len(topics.records),
            }
        )
        logger.info("topics.created id=%s order=%d", topic.id, topic.order)
        return topic

    async def update_topic(self, topic_id: str, payload: TopicUpdate) -> Topic:
        topics = await self._topics()
        topics.require(topic_id)
        changes = payload.model_dump(exclude_unset=True)
        if "name" in changes and not (changes["name"] or "").strip():
            raise ValidationError("টপিকের নাম লিখুন!", field="name")
        if changes:
            await topics.update(topic_id, changes)
        return topics.require(topic_id)

    async def delete_topic(self, topic_id: str) -> None:
        topics = await self._topics()
        await topics.remove(topic_id)
        logger.info("topics.deleted id=%s", topic_id)

from __future__ import annotations

import logging
from typing import List, Optional

from pathshala.common import views
from pathshala.common.errors import ValidationError
from pathshala.common.youtube import extract_video_id, get_thumbnail_url
from pathshala.db.binding import BindingRegistry, CollectionBinding
from pathshala.db.records import FileAttachment, Topic, Video
from pathshala.storage.upload import StorageUploader

from .schemas import VideoCreate, VideoOut, VideoUpdate

logger = logging.getLogger("videos.service")

INVALID_URL = "সঠিক ইউটিউব লিংক দিন!"


def _require_video_id(url: Optional[str]) -> str:
    video_id = extract_video_id(url)
    if not video_id:
        raise ValidationError(INVALID_URL, field="youtube_url")
    return video_id


class VideoService:
    def __init__(self, registry: BindingRegistry, uploader: Optional[StorageUploader] = None) -> None:
        self.registry = registry
        self.uploader = uploader

    async def _videos(self) -> CollectionBinding[Video]:
        return await self.registry.bind(Video, order="order")

    async def _topics(self) -> CollectionBinding[Topic]:
        return await self.registry.bind(Topic, order="order")

    async def list_videos(self, topic_id: Optional[str] = None) -> List[VideoOut]:
        videos = (await self._videos()).records
        topics = (await self._topics()).records
        if topic_id is not None:
            videos = views.topic_videos(videos, topic_id)
        return [
            VideoOut(
                **v.model_dump(),
                thumbnail_url=get_thumbnail_url(v.video_id, "medium"),
                topic_name=views.lookup(topics, v.topic_id, "name", views.UNKNOWN_TOPIC),
            )
            for v in videos
        ]

    async def create_video(self, payload: VideoCreate) -> Video:
        if not payload.title.strip():
            raise ValidationError("ভিডিওর শিরোনাম লিখুন!", field="title")
        if not payload.topic_id:
            raise ValidationError("টপিক নির্বাচন করুন!", field="topic_id")
        video_id = _require_video_id(payload.youtube_url)
        videos = await self._videos()
        video = await videos.create(
            {
                "title": payload.title.strip(),
                "description": payload.description,
                "youtube_url": payload.youtube_url.strip(),
                "video_id": video_id,
                "topic_id": payload.topic_id,
                "order": len(videos.records),
                "files": [f.model_dump() for f in payload.files],
            }
        )
        logger.info("videos.created id=%s video_id=%s topic_id=%s", video.id, video_id, video.topic_id)
        return video

    async def update_video(self, video_id: str, payload: VideoUpdate) -> Video:
        changes = payload.model_dump(exclude_unset=True)
        if "youtube_url" in changes:
            changes["video_id"] = _require_video_id(changes["youtube_url"])
        if "title" in changes and not (changes["title"] or "").strip():
            raise ValidationError("ভিডিওর শিরোনাম লিখুন!", field="title")
        videos = await self._videos()
        videos.require(video_id)
        if changes:
            await videos.update(video_id, changes)
        return videos.require(video_id)

    async def attach_files(self, video_id: str, files: List[FileAttachment]) -> Video:
        videos = await self._videos()
        video = videos.require(video_id)
        merged = [f.model_dump() for f in video.files] + [f.model_dump() for f in files]
        await videos.update(video_id, {"files": merged})
        return videos.require(video_id)

    async def remove_file(self, video_id: str, file_id: str) -> Video:
        videos = await self._videos()
        video = videos.require(video_id)
        removed = [f for f in video.files if f.id == file_id]
        kept = [f.model_dump() for f in video.files if f.id != file_id]
        await videos.update(video_id, {"files": kept})
        if self.uploader is not None:
            for attachment in removed:
                await self.uploader.delete(attachment.url)
        return videos.require(video_id)

    async def delete_video(self, video_id: str) -> None:
        videos = await self._videos()
        await videos.remove(video_id)
        logger.info("videos.deleted id=%s", video_id)

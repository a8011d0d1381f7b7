from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from pathshala.common import views
from pathshala.common.errors import ValidationError
from pathshala.common.utils import display_name_for
from pathshala.common.youtube import extract_video_id
from pathshala.db.binding import BindingRegistry, CollectionBinding
from pathshala.db.records import Category, Comment, Post, UserProfile

from .schemas import CategoryCreate, CategoryUpdate, CommentCreate, LikeResult, PostCreate, PostOut

logger = logging.getLogger("community.service")


class CommunityService:
    def __init__(self, registry: BindingRegistry) -> None:
        self.registry = registry

    async def _categories(self) -> CollectionBinding[Category]:
        return await self.registry.bind(Category, order="name")

    async def _posts(self) -> CollectionBinding[Post]:
        return await self.registry.bind(Post, order="created_at", ascending=False)

    async def _comments(self) -> CollectionBinding[Comment]:
        return await self.registry.bind(Comment, order="created_at")

    async def _author(self, user_id: str, email: Optional[str]) -> Tuple[str, Optional[str]]:
        profiles = await self.registry.bind(UserProfile)
        profile = profiles.find(lambda p: p.user_id == user_id)
        if profile is not None and profile.display_name:
            return profile.display_name, profile.avatar
        return display_name_for(email), None

    # ---- categories ----------------------------------------------------------

    async def list_categories(self) -> List[Category]:
        return list((await self._categories()).records)

    async def create_category(self, payload: CategoryCreate) -> Category:
        name = payload.name.strip()
        if not name:
            raise ValidationError("ক্যাটাগরির নাম লিখুন!", field="name")
        categories = await self._categories()
        category = await categories.create(
            {"name": name, "description": payload.description.strip(), "color": payload.color}
        )
        logger.info("community.category_created id=%s", category.id)
        return category

    async def update_category(self, category_id: str, payload: CategoryUpdate) -> Category:
        changes = payload.model_dump(exclude_unset=True)
        if "name" in changes and not (changes["name"] or "").strip():
            raise ValidationError("ক্যাটাগরির নাম লিখুন!", field="name")
        categories = await self._categories()
        categories.require(category_id)
        if changes:
            await categories.update(category_id, changes)
        return categories.require(category_id)

    async def delete_category(self, category_id: str) -> None:
        await (await self._categories()).remove(category_id)
        logger.info("community.category_deleted id=%s", category_id)

    # ---- posts ---------------------------------------------------------------

    def _present(self, post: Post, categories: List[Category], user_id: Optional[str]) -> PostOut:
        return PostOut(
            **post.model_dump(),
            category_name=views.lookup(categories, post.category_id),
            liked=bool(user_id) and user_id in post.likes,
        )

    async def feed(self, user_id: Optional[str] = None, category_id: Optional[str] = None) -> List[PostOut]:
        posts = (await self._posts()).records
        categories = (await self._categories()).records
        feed = views.approved_feed(posts)
        if category_id:
            feed = [p for p in feed if p.category_id == category_id]
        return [self._present(p, categories, user_id) for p in feed]

    async def pending(self) -> List[PostOut]:
        posts = (await self._posts()).records
        categories = (await self._categories()).records
        return [self._present(p, categories, None) for p in views.partition(posts, lambda p: p.approved).no]

    async def create_post(self, user_id: str, email: Optional[str], payload: PostCreate) -> Post:
        title, content = payload.title.strip(), payload.content.strip()
        if not title or not content or not payload.category_id:
            raise ValidationError("শিরোনাম, বিষয়বস্তু এবং ক্যাটাগরি আবশ্যক!")
        youtube_url = (payload.youtube_url or "").strip() or None
        if youtube_url and not extract_video_id(youtube_url):
            raise ValidationError("সঠিক ইউটিউব লিংক দিন!", field="youtube_url")
        author_name, author_avatar = await self._author(user_id, email)
        posts = await self._posts()
        post = await posts.create(
            {
                "title": title,
                "content": content,
                "category_id": payload.category_id,
                "image_url": payload.image_url,
                "youtube_url": youtube_url,
                "files": [f.model_dump() for f in payload.files],
                "author_id": user_id,
                "author_name": author_name,
                "author_avatar": author_avatar,
                "approved": False,
                "pinned": False,
                "likes": [],
                "likes_count": 0,
                "comments_count": 0,
            }
        )
        logger.info("community.post_created id=%s author_id=%s", post.id, user_id)
        return post

    async def approve_post(self, post_id: str) -> Post:
        posts = await self._posts()
        posts.require(post_id)
        await posts.update(post_id, {"approved": True})
        logger.info("community.post_approved id=%s", post_id)
        return posts.require(post_id)

    async def reject_post(self, post_id: str) -> None:
        await (await self._posts()).remove(post_id)
        logger.info("community.post_rejected id=%s", post_id)

    async def toggle_pin(self, post_id: str) -> Post:
        posts = await self._posts()
        post = posts.require(post_id)
        await posts.update(post_id, {"pinned": not post.pinned})
        return posts.require(post_id)

    async def toggle_like(self, post_id: str, user_id: str) -> LikeResult:
        posts = await self._posts()
        post = posts.require(post_id)
        likes, liked = views.toggle_membership(post.likes, user_id)
        await posts.update(post_id, {"likes": likes, "likes_count": len(likes)})
        return LikeResult(liked=liked, likes_count=len(likes))

    # ---- comments ------------------------------------------------------------

    async def comments(self, post_id: str) -> List[Comment]:
        comments = await self._comments()
        return comments.where(lambda c: c.post_id == post_id)

    async def add_comment(self, post_id: str, user_id: str, email: Optional[str], payload: CommentCreate) -> Comment:
        content = payload.content.strip()
        if not content:
            raise ValidationError("মন্তব্য লিখুন!", field="content")
        posts = await self._posts()
        post = posts.require(post_id)
        author_name, author_avatar = await self._author(user_id, email)
        comment = await (await self._comments()).create(
            {
                "post_id": post_id,
                "author_id": user_id,
                "author_name": author_name,
                "author_avatar": author_avatar,
                "content": content,
            }
        )
        await posts.update(post_id, {"comments_count": post.comments_count + 1})
        return comment

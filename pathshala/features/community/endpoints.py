from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, status

from pathshala.common.deps import CurrentUser, get_current_user, get_registry, require_admin
from pathshala.db.binding import BindingRegistry
from pathshala.db.records import Category, Comment, Post

from .schemas import CategoryCreate, CategoryUpdate, CommentCreate, LikeResult, PostCreate, PostOut
from .service import CommunityService

router = APIRouter(prefix="/community", tags=["Community"])


def get_community_service(registry: BindingRegistry = Depends(get_registry)) -> CommunityService:
    return CommunityService(registry)


@router.get("/categories", response_model=List[Category])
async def list_categories(
    current_user: CurrentUser = Depends(get_current_user),
    service: CommunityService = Depends(get_community_service),
):
    return await service.list_categories()


@router.post("/categories", response_model=Category, status_code=status.HTTP_201_CREATED)
async def create_category(
    payload: CategoryCreate,
    admin: CurrentUser = Depends(require_admin()),
    service: CommunityService = Depends(get_community_service),
):
    return await service.create_category(payload)


@router.patch("/categories/{category_id}", response_model=Category)
async def update_category(
    category_id: str,
    payload: CategoryUpdate,
    admin: CurrentUser = Depends(require_admin()),
    service: CommunityService = Depends(get_community_service),
):
    return await service.update_category(category_id, payload)


@router.delete("/categories/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category(
    category_id: str,
    admin: CurrentUser = Depends(require_admin()),
    service: CommunityService = Depends(get_community_service),
):
    await service.delete_category(category_id)


@router.get("/posts", response_model=List[PostOut])
async def feed(
    category_id: Optional[str] = None,
    current_user: CurrentUser = Depends(get_current_user),
    service: CommunityService = Depends(get_community_service),
):
    return await service.feed(current_user.id, category_id)


@router.get("/posts/pending", response_model=List[PostOut])
async def pending_posts(
    admin: CurrentUser = Depends(require_admin()),
    service: CommunityService = Depends(get_community_service),
):
    return await service.pending()


@router.post("/posts", response_model=Post, status_code=status.HTTP_201_CREATED)
async def create_post(
    payload: PostCreate,
    current_user: CurrentUser = Depends(get_current_user),
    service: CommunityService = Depends(get_community_service),
):
    return await service.create_post(current_user.id, current_user.email, payload)


@router.post("/posts/{post_id}/approve", response_model=Post)
async def approve_post(
    post_id: str,
    admin: CurrentUser = Depends(require_admin()),
    service: CommunityService = Depends(get_community_service),
):
    return await service.approve_post(post_id)


@router.delete("/posts/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def reject_post(
    post_id: str,
    admin: CurrentUser = Depends(require_admin()),
    service: CommunityService = Depends(get_community_service),
):
    await service.reject_post(post_id)


@router.post("/posts/{post_id}/pin", response_model=Post)
async def toggle_pin(
    post_id: str,
    admin: CurrentUser = Depends(require_admin()),
    service: CommunityService = Depends(get_community_service),
):
    return await service.toggle_pin(post_id)


@router.post("/posts/{post_id}/like", response_model=LikeResult)
async def toggle_like(
    post_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: CommunityService = Depends(get_community_service),
):
    return await service.toggle_like(post_id, current_user.id)


@router.get("/posts/{post_id}/comments", response_model=List[Comment])
async def list_comments(
    post_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: CommunityService = Depends(get_community_service),
):
    return await service.comments(post_id)


@router.post("/posts/{post_id}/comments", response_model=Comment, status_code=status.HTTP_201_CREATED)
async def add_comment(
    post_id: str,
    payload: CommentCreate,
    current_user: CurrentUser = Depends(get_current_user),
    service: CommunityService = Depends(get_community_service),
):
    return await service.add_comment(post_id, current_user.id, current_user.email, payload)

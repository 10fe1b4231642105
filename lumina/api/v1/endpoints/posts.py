from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, HTTPException, Response

import lumina.core.runtime as runtime
from ....core.store import PostNotFound, PostStore
from ....schemas.blog import CommentCreate, CommentPublic, ErrorPublic, PostCreate, PostPublic, PostUpdate


log = logging.getLogger(__name__)

router = APIRouter()

NOT_FOUND = {404: {"model": ErrorPublic, "description": "Post not found"}}


def _store() -> PostStore:
    if runtime.store is None:
        raise HTTPException(status_code=500, detail="Store not initialized")
    return runtime.store


@router.get("/posts", response_model=List[PostPublic])
async def list_posts() -> List[PostPublic]:
    return await _store().list_all()


@router.get("/posts/{post_id}", response_model=PostPublic, responses=NOT_FOUND)
async def get_post(post_id: str) -> PostPublic:
    try:
        return await _store().get_by_id(post_id)
    except PostNotFound:
        raise HTTPException(status_code=404, detail="Post not found")


@router.post("/posts", response_model=PostPublic, status_code=201)
async def create_post(payload: PostCreate) -> PostPublic:
    post = await _store().create(payload.model_dump())
    log.info("Created post %s in %s", post.id, post.category)
    return post


@router.put("/posts/{post_id}", response_model=PostPublic, responses=NOT_FOUND)
async def update_post(post_id: str, payload: PostUpdate) -> PostPublic:
    try:
        return await _store().update(post_id, payload.changes())
    except PostNotFound:
        raise HTTPException(status_code=404, detail="Post not found")


@router.delete("/posts/{post_id}", status_code=204, response_class=Response, responses=NOT_FOUND)
async def delete_post(post_id: str) -> Response:
    try:
        await _store().delete(post_id)
    except PostNotFound:
        raise HTTPException(status_code=404, detail="Post not found")
    log.info("Deleted post %s", post_id)
    return Response(status_code=204)


@router.post("/posts/{post_id}/comments", response_model=CommentPublic, status_code=201, responses=NOT_FOUND)
async def add_comment(post_id: str, payload: CommentCreate) -> CommentPublic:
    try:
        return await _store().append_comment(post_id, payload.content, payload.author)
    except PostNotFound:
        raise HTTPException(status_code=404, detail="Post not found")

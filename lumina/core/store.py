"""Post persistence.

Two interchangeable backends sit behind :class:`PostStore`: a redis-backed
document store and a process-local list. :func:`open_store` picks one exactly
once, at startup, and falls back to the list when redis cannot be reached.

This module is the only place that assigns ids and timestamps and computes
``readTime``.
"""

from __future__ import annotations

import abc
import asyncio
import datetime as dt
import itertools
import logging
import math
from typing import Any, Mapping

import redis.asyncio as redis
from redis.exceptions import RedisError

from ..schemas.blog import CommentPublic, PostPublic
from .config import get_redis_url, get_store_connect_timeout, use_fake_redis
from .memory_redis import AsyncMemoryRedis


log = logging.getLogger(__name__)

WORDS_PER_MINUTE = 200

POST_FIELDS = ("title", "excerpt", "content", "author", "category", "imageUrl")

SEED_POST: dict[str, str] = {
    "title": "The Future of Web Development",
    "excerpt": "How AI is reshaping how we build...",
    "content": (
        "In recent years, artificial intelligence has made significant strides in various fields, "
        "including web development. From automated code generation to intelligent design tools, AI is "
        "transforming the way developers create websites and applications. This article explores the "
        "latest trends and technologies that are shaping the future of web development."
    ),
    "author": "Alex Rivera",
    "category": "Technology",
    "imageUrl": "https://picsum.photos/id/48/800/400",
}


class StoreError(Exception):
    pass


class PostNotFound(StoreError):
    def __init__(self, post_id: str) -> None:
        super().__init__(f"Post not found: {post_id}")
        self.post_id = post_id


class BackendUnavailable(StoreError):
    pass


def _now_iso() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat()


def compute_read_time(content: str) -> str:
    words = len(content.split())
    minutes = max(1, math.ceil(words / WORDS_PER_MINUTE))
    return f"{minutes} min read"


def _build_post(post_id: str, fields: Mapping[str, Any]) -> PostPublic:
    missing = [f for f in POST_FIELDS if not fields.get(f)]
    if missing:
        raise ValueError(f"missing post fields: {', '.join(missing)}")
    return PostPublic(
        id=post_id,
        title=fields["title"],
        excerpt=fields["excerpt"],
        content=fields["content"],
        author=fields["author"],
        category=fields["category"],
        imageUrl=fields["imageUrl"],
        createdAt=_now_iso(),
        readTime=compute_read_time(fields["content"]),
        comments=[],
    )


def _apply_update(post: PostPublic, changes: Mapping[str, Any]) -> PostPublic:
    mapping: dict[str, Any] = {f: changes[f] for f in POST_FIELDS if changes.get(f)}
    if "content" in mapping:
        mapping["readTime"] = compute_read_time(mapping["content"])
    return post.model_copy(update=mapping, deep=True)


def _build_comment(comment_id: str, content: str, author: str) -> CommentPublic:
    return CommentPublic(id=comment_id, content=content, author=author, createdAt=_now_iso())


class PostStore(abc.ABC):
    name: str = "abstract"

    @abc.abstractmethod
    async def list_all(self) -> list[PostPublic]:
        """All posts, newest first."""

    @abc.abstractmethod
    async def get_by_id(self, post_id: str) -> PostPublic:
        ...

    @abc.abstractmethod
    async def create(self, fields: Mapping[str, Any]) -> PostPublic:
        ...

    @abc.abstractmethod
    async def update(self, post_id: str, changes: Mapping[str, Any]) -> PostPublic:
        """Overwrite the truthy fields in ``changes``; ``readTime`` follows ``content``."""

    @abc.abstractmethod
    async def delete(self, post_id: str) -> None:
        ...

    @abc.abstractmethod
    async def append_comment(self, post_id: str, content: str, author: str) -> CommentPublic:
        ...

    @abc.abstractmethod
    async def is_empty(self) -> bool:
        ...

    async def seed(self) -> None:
        if await self.is_empty():
            post = await self.create(SEED_POST)
            log.info("Seeded %s store with example post %s", self.name, post.id)

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        return None


class MemoryPostStore(PostStore):
    name = "memory"

    def __init__(self) -> None:
        self._posts: list[PostPublic] = []
        self._post_seq = itertools.count(1)
        self._comment_seq = itertools.count(1)

    def _index(self, post_id: str) -> int:
        for i, post in enumerate(self._posts):
            if post.id == post_id:
                return i
        raise PostNotFound(post_id)

    async def list_all(self) -> list[PostPublic]:
        return [p.model_copy(deep=True) for p in self._posts]

    async def get_by_id(self, post_id: str) -> PostPublic:
        return self._posts[self._index(post_id)].model_copy(deep=True)

    async def create(self, fields: Mapping[str, Any]) -> PostPublic:
        post = _build_post(str(next(self._post_seq)), fields)
        self._posts.insert(0, post)
        return post.model_copy(deep=True)

    async def update(self, post_id: str, changes: Mapping[str, Any]) -> PostPublic:
        i = self._index(post_id)
        self._posts[i] = _apply_update(self._posts[i], changes)
        return self._posts[i].model_copy(deep=True)

    async def delete(self, post_id: str) -> None:
        del self._posts[self._index(post_id)]

    async def append_comment(self, post_id: str, content: str, author: str) -> CommentPublic:
        post = self._posts[self._index(post_id)]
        comment = _build_comment(str(next(self._comment_seq)), content, author)
        post.comments.append(comment)
        return comment.model_copy()

    async def is_empty(self) -> bool:
        return not self._posts


class RedisPostStore(PostStore):
    """One JSON document per post, ordered by the ``lumina:posts`` sorted set.

    Comments live in their own list per post so appending one never rewrites
    the post document. Writes that touch more than one key go through a
    ``MULTI``/``EXEC`` pipeline.
    """

    name = "redis"

    POSTS_KEY = "lumina:posts"
    POST_SEQ_KEY = "lumina:post_seq"
    COMMENT_SEQ_KEY = "lumina:comment_seq"

    def __init__(self, client: Any) -> None:
        self._r = client

    @staticmethod
    def _key(post_id: str) -> str:
        return f"lumina:post:{post_id}"

    @staticmethod
    def _comments_key(post_id: str) -> str:
        return f"lumina:post:{post_id}:comments"

    @staticmethod
    def _decode(raw: str, raw_comments: list[str]) -> PostPublic:
        post = PostPublic.model_validate_json(raw)
        post.comments = [CommentPublic.model_validate_json(c) for c in raw_comments]
        return post

    async def _read(self, post_ids: list[str]) -> list[PostPublic]:
        pipe = self._r.pipeline(transaction=True)
        for pid in post_ids:
            pipe.get(self._key(pid))
            pipe.lrange(self._comments_key(pid), 0, -1)
        results = await pipe.execute()
        return [self._decode(raw, comments) for raw, comments in zip(results[::2], results[1::2]) if raw is not None]

    async def _save(self, post: PostPublic) -> None:
        # xx keeps a concurrently deleted post from being written back
        ok = await self._r.set(self._key(post.id), post.model_dump_json(exclude={"comments"}), xx=True)
        if not ok:
            raise PostNotFound(post.id)

    async def list_all(self) -> list[PostPublic]:
        ids = await self._r.zrevrange(self.POSTS_KEY, 0, -1)
        if not ids:
            return []
        return await self._read(ids)

    async def get_by_id(self, post_id: str) -> PostPublic:
        found = await self._read([post_id])
        if not found:
            raise PostNotFound(post_id)
        return found[0]

    async def create(self, fields: Mapping[str, Any]) -> PostPublic:
        seq = await self._r.incr(self.POST_SEQ_KEY)
        post = _build_post(str(seq), fields)
        pipe = self._r.pipeline(transaction=True)
        pipe.set(self._key(post.id), post.model_dump_json(exclude={"comments"}))
        pipe.zadd(self.POSTS_KEY, {post.id: seq})
        await pipe.execute()
        return post

    async def update(self, post_id: str, changes: Mapping[str, Any]) -> PostPublic:
        post = _apply_update(await self.get_by_id(post_id), changes)
        await self._save(post)
        return post

    async def delete(self, post_id: str) -> None:
        pipe = self._r.pipeline(transaction=True)
        pipe.delete(self._key(post_id))
        pipe.delete(self._comments_key(post_id))
        pipe.zrem(self.POSTS_KEY, post_id)
        removed, _, _ = await pipe.execute()
        if not removed:
            raise PostNotFound(post_id)

    async def append_comment(self, post_id: str, content: str, author: str) -> CommentPublic:
        if not await self._r.exists(self._key(post_id)):
            raise PostNotFound(post_id)
        seq = await self._r.incr(self.COMMENT_SEQ_KEY)
        comment = _build_comment(str(seq), content, author)
        pipe = self._r.pipeline(transaction=True)
        pipe.exists(self._key(post_id))
        pipe.rpush(self._comments_key(post_id), comment.model_dump_json())
        exists, _ = await pipe.execute()
        if not exists:
            # the post was deleted between the check and the push
            await self._r.delete(self._comments_key(post_id))
            raise PostNotFound(post_id)
        return comment

    async def is_empty(self) -> bool:
        return await self._r.zcard(self.POSTS_KEY) == 0

    async def ping(self) -> bool:
        return bool(await self._r.ping())

    async def close(self) -> None:
        await self._r.aclose()


def _safe_url(url: str) -> str:
    return url.rsplit("@", 1)[-1]


async def _connect(redis_url: str, timeout: float) -> Any:
    try:
        client = redis.from_url(redis_url, decode_responses=True, socket_connect_timeout=timeout, socket_timeout=timeout)
    except ValueError as e:
        raise BackendUnavailable(f"invalid redis url: {e}") from e
    try:
        await asyncio.wait_for(client.ping(), timeout)
    except (RedisError, OSError, asyncio.TimeoutError) as e:
        try:
            await client.aclose()
        except RedisError:
            log.debug("Closing unreachable redis client failed", exc_info=True)
        raise BackendUnavailable(str(e) or type(e).__name__) from e
    return client


async def open_store(redis_url: str | None = None, timeout: float | None = None, fake: bool | None = None) -> PostStore:
    """Select the store backend for the lifetime of the process."""
    redis_url = redis_url or get_redis_url()
    timeout = get_store_connect_timeout() if timeout is None else timeout
    fake = use_fake_redis() if fake is None else fake

    store: PostStore
    if fake:
        log.info("Using in-process redis stand-in")
        store = RedisPostStore(AsyncMemoryRedis())
    else:
        log.info("Attempting to connect to redis at %s", _safe_url(redis_url))
        try:
            client = await _connect(redis_url, timeout)
        except BackendUnavailable as e:
            log.warning("Redis not available (%s), using in-memory storage", e)
            store = MemoryPostStore()
        else:
            log.info("Redis connected successfully")
            store = RedisPostStore(client)
    await store.seed()
    return store

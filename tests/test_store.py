import asyncio
import datetime as dt

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from lumina.core.memory_redis import AsyncMemoryRedis
from lumina.core.store import (
    SEED_POST,
    MemoryPostStore,
    PostNotFound,
    RedisPostStore,
    compute_read_time,
    open_store,
)
from lumina.schemas.blog import CommentPublic

from fakes import DroppingRedis

pytestmark = pytest.mark.anyio


@pytest.mark.parametrize(
    "words,expected",
    [(0, "1 min read"), (1, "1 min read"), (200, "1 min read"), (201, "2 min read"), (1000, "5 min read")],
)
def test_read_time(words, expected):
    assert compute_read_time(" ".join(["word"] * words)) == expected


def test_read_time_counts_whitespace_separated_words():
    assert compute_read_time("one\ntwo\tthree   four") == "1 min read"
    assert compute_read_time("w\n" * 401) == "3 min read"


async def test_create_assigns_id_timestamp_and_read_time(store, post_fields):
    before = dt.datetime.now(dt.timezone.utc)
    post = await store.create(post_fields)
    after = dt.datetime.now(dt.timezone.utc)
    assert post.id
    assert before <= dt.datetime.fromisoformat(post.createdAt) <= after
    assert post.readTime == compute_read_time(post_fields["content"])
    assert post.comments == []
    assert post.title == post_fields["title"]


async def test_concurrent_creates_get_distinct_ids(store, post_fields):
    posts = await asyncio.gather(*(store.create(post_fields) for _ in range(25)))
    assert len({p.id for p in posts}) == 25


async def test_list_all_is_newest_first(store, post_fields):
    first = await store.create({**post_fields, "title": "first"})
    second = await store.create({**post_fields, "title": "second"})
    third = await store.create({**post_fields, "title": "third"})
    assert [p.id for p in await store.list_all()] == [third.id, second.id, first.id]


async def test_get_by_id_missing(store):
    with pytest.raises(PostNotFound):
        await store.get_by_id("nope")


async def test_empty_update_changes_nothing(store, post_fields):
    post = await store.create(post_fields)
    updated = await store.update(post.id, {})
    assert updated == post
    assert await store.get_by_id(post.id) == post


async def test_update_with_falsy_values_keeps_previous(store, post_fields):
    post = await store.create(post_fields)
    updated = await store.update(post.id, {"title": "", "content": None, "author": "Grace"})
    assert updated.title == post.title
    assert updated.content == post.content
    assert updated.readTime == post.readTime
    assert updated.author == "Grace"


async def test_update_content_recomputes_read_time(store, post_fields):
    post = await store.create(post_fields)
    long_text = " ".join(["word"] * 950)
    updated = await store.update(post.id, {"content": long_text})
    assert updated.readTime == "5 min read"
    assert (await store.get_by_id(post.id)).readTime == "5 min read"


async def test_update_ignores_immutable_fields(store, post_fields):
    post = await store.create(post_fields)
    updated = await store.update(post.id, {"id": "other", "createdAt": "1999-01-01", "readTime": "99 min read"})
    assert updated.id == post.id
    assert updated.createdAt == post.createdAt
    assert updated.readTime == post.readTime


async def test_update_missing(store):
    with pytest.raises(PostNotFound):
        await store.update("nope", {"title": "x"})


async def test_concurrent_updates_last_write_wins(store, post_fields):
    post = await store.create(post_fields)
    await asyncio.gather(
        store.update(post.id, {"title": "from A", "content": "short"}),
        store.update(post.id, {"title": "from B", "content": " ".join(["word"] * 450)}),
    )
    final = await store.get_by_id(post.id)
    assert final.title == "from B"
    assert final.readTime == "3 min read"


async def test_delete_removes_post(store, post_fields):
    keep = await store.create(post_fields)
    gone = await store.create(post_fields)
    await store.append_comment(gone.id, "bye", "Bob")
    await store.delete(gone.id)
    with pytest.raises(PostNotFound):
        await store.get_by_id(gone.id)
    assert [p.id for p in await store.list_all()] == [keep.id]


async def test_delete_missing(store):
    with pytest.raises(PostNotFound):
        await store.delete("nope")


async def test_append_comment(store, post_fields):
    post = await store.create(post_fields)
    await store.append_comment(post.id, "first", "Ann")
    comment = await store.append_comment(post.id, "hello", "Bob")
    assert comment.id
    assert comment.content == "hello"
    assert comment.author == "Bob"
    assert comment.createdAt
    comments = (await store.get_by_id(post.id)).comments
    assert comments[-1] == comment
    assert [c.content for c in comments] == ["first", "hello"]
    assert len({c.id for c in comments}) == 2


async def test_append_comment_missing_post_creates_nothing(store):
    with pytest.raises(PostNotFound):
        await store.append_comment("nope", "hello", "Bob")
    assert await store.list_all() == []


async def test_returned_posts_are_detached(store, post_fields):
    post = await store.create(post_fields)
    fetched = await store.get_by_id(post.id)
    fetched.comments.append(CommentPublic(id="x", content="local", author="me", createdAt=post.createdAt))
    fetched.title = "changed locally"
    stored = await store.get_by_id(post.id)
    assert stored.comments == []
    assert stored.title == post.title


async def test_seed_only_when_empty(store, post_fields):
    await store.seed()
    await store.seed()
    posts = await store.list_all()
    assert len(posts) == 1
    assert posts[0].title == SEED_POST["title"]
    assert posts[0].readTime == compute_read_time(SEED_POST["content"])


async def test_open_store_falls_back_to_memory_when_redis_unreachable():
    store = await open_store("redis://127.0.0.1:1/0", timeout=0.5, fake=False)
    assert isinstance(store, MemoryPostStore)
    posts = await store.list_all()
    assert len(posts) == 1
    assert posts[0].title == SEED_POST["title"]


async def test_open_store_falls_back_on_invalid_url():
    store = await open_store("notaurl://", timeout=0.5, fake=False)
    assert isinstance(store, MemoryPostStore)


async def test_open_store_uses_fake_redis():
    store = await open_store("memory://", fake=True)
    assert isinstance(store, RedisPostStore)
    assert await store.ping()
    assert len(await store.list_all()) == 1
    await store.close()


async def test_concurrent_comments_are_all_kept(store, post_fields):
    post = await store.create(post_fields)
    comments = await asyncio.gather(*(store.append_comment(post.id, f"c{i}", "Bob") for i in range(5)))
    stored = (await store.get_by_id(post.id)).comments
    assert len(stored) == 5
    assert {c.id for c in stored} == {c.id for c in comments}


async def test_update_overlapping_comment_keeps_comment(store, post_fields):
    post = await store.create(post_fields)
    comment, updated = await asyncio.gather(
        store.append_comment(post.id, "hello", "Bob"),
        store.update(post.id, {"title": "Renamed"}),
    )
    final = await store.get_by_id(post.id)
    assert final.title == "Renamed"
    assert final.comments == [comment]


async def test_redis_create_is_all_or_nothing(post_fields):
    client = DroppingRedis(drop_on="zadd")
    store = RedisPostStore(client)
    with pytest.raises(RedisConnectionError):
        await store.create(post_fields)
    assert client._kv.keys() == {RedisPostStore.POST_SEQ_KEY}
    assert await store.list_all() == []


async def test_redis_delete_drops_comment_list(post_fields):
    client = AsyncMemoryRedis()
    store = RedisPostStore(client)
    post = await store.create(post_fields)
    await store.append_comment(post.id, "bye", "Bob")
    await store.delete(post.id)
    assert not await client.exists(f"lumina:post:{post.id}", f"lumina:post:{post.id}:comments")

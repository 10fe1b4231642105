import httpx
import pytest
from fastapi.testclient import TestClient

import lumina.core.runtime as runtime
from lumina.core.memory_redis import AsyncMemoryRedis
from lumina.core.store import MemoryPostStore, RedisPostStore
from lumina.main import app
from lumina.services.gateway import BlogGateway

from fakes import InterleavingRedis


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def post_fields():
    return {
        "title": "AI Rising",
        "excerpt": "Machines are learning to write.",
        "content": "## Intro\nLarge models now draft whole articles.\n\n### Why\nBecause they can.",
        "author": "Ada",
        "category": "Technology",
        "imageUrl": "https://picsum.photos/id/1/800/400",
    }


@pytest.fixture(params=["memory", "redis", "redis-interleaved"])
def store(request):
    """Both backends, so every contract test runs against each.

    ``redis-interleaved`` lets other tasks run between redis round trips.
    """
    if request.param == "memory":
        return MemoryPostStore()
    if request.param == "redis":
        return RedisPostStore(AsyncMemoryRedis())
    return RedisPostStore(InterleavingRedis())


@pytest.fixture
def api_store():
    runtime.store = MemoryPostStore()
    runtime.assistant = None
    yield runtime.store
    runtime.store = None
    runtime.assistant = None


@pytest.fixture
def client(api_store):
    return TestClient(app)


@pytest.fixture
async def gateway(anyio_backend, api_store):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http:
        yield BlogGateway(client=http)

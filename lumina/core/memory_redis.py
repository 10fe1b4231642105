from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional, Tuple


Command = Tuple[str, tuple, dict]


class MemoryPipeline:
    """Queues commands and applies them in one step, like ``MULTI``/``EXEC``."""

    def __init__(self, client: "AsyncMemoryRedis") -> None:
        self._client = client
        self._commands: List[Command] = []

    def _queue(self, name: str, *args: Any, **kwargs: Any) -> "MemoryPipeline":
        self._commands.append((name, args, kwargs))
        return self

    def get(self, key: str) -> "MemoryPipeline":
        return self._queue("get", key)

    def set(self, key: str, value: Any, nx: bool | None = None, xx: bool | None = None) -> "MemoryPipeline":
        return self._queue("set", key, value, nx=nx, xx=xx)

    def exists(self, *keys: str) -> "MemoryPipeline":
        return self._queue("exists", *keys)

    def delete(self, *keys: str) -> "MemoryPipeline":
        return self._queue("delete", *keys)

    def rpush(self, key: str, *values: Any) -> "MemoryPipeline":
        return self._queue("rpush", key, *values)

    def lrange(self, key: str, start: int, end: int) -> "MemoryPipeline":
        return self._queue("lrange", key, start, end)

    def zadd(self, key: str, mapping: Dict[str, float]) -> "MemoryPipeline":
        return self._queue("zadd", key, mapping)

    def zrem(self, key: str, *members: str) -> "MemoryPipeline":
        return self._queue("zrem", key, *members)

    async def execute(self) -> List[Any]:
        commands, self._commands = self._commands, []
        return await self._client._execute(commands)

    async def __aenter__(self) -> "MemoryPipeline":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        self._commands = []


class AsyncMemoryRedis:
    """In-process stand-in for the subset of ``redis.asyncio`` the post store uses.

    Values are kept as strings, mirroring a client created with
    ``decode_responses=True``. Every command, single or pipelined, runs
    through :meth:`_execute` under one lock.
    """

    def __init__(self) -> None:
        self._kv: Dict[str, str] = {}
        self._lists: Dict[str, List[str]] = {}
        self._zsets: Dict[str, Dict[str, float]] = {}
        self._lock = asyncio.Lock()

    async def _execute(self, commands: List[Command]) -> List[Any]:
        async with self._lock:
            return [getattr(self, f"_{name}")(*args, **kwargs) for name, args, kwargs in commands]

    async def _one(self, name: str, *args: Any, **kwargs: Any) -> Any:
        (result,) = await self._execute([(name, args, kwargs)])
        return result

    def pipeline(self, transaction: bool = True) -> MemoryPipeline:
        return MemoryPipeline(self)

    async def ping(self) -> bool:
        return True

    async def aclose(self) -> None:
        return None

    async def close(self) -> None:
        return None

    async def get(self, key: str) -> Optional[str]:
        return await self._one("get", key)

    async def mget(self, keys: List[str]) -> List[Optional[str]]:
        return await self._execute([("get", (k,), {}) for k in keys])

    async def set(self, key: str, value: Any, nx: bool | None = None, xx: bool | None = None) -> bool:
        return await self._one("set", key, value, nx=nx, xx=xx)

    async def exists(self, *keys: str) -> int:
        return await self._one("exists", *keys)

    async def incr(self, key: str) -> int:
        return await self._one("incr", key)

    async def delete(self, *keys: str) -> int:
        return await self._one("delete", *keys)

    async def rpush(self, key: str, *values: Any) -> int:
        return await self._one("rpush", key, *values)

    async def lrange(self, key: str, start: int, end: int) -> List[str]:
        return await self._one("lrange", key, start, end)

    async def zadd(self, key: str, mapping: Dict[str, float]) -> int:
        return await self._one("zadd", key, mapping)

    async def zrem(self, key: str, *members: str) -> int:
        return await self._one("zrem", key, *members)

    async def zcard(self, key: str) -> int:
        return await self._one("zcard", key)

    async def zrevrange(self, key: str, start: int, end: int) -> List[str]:
        return await self._one("zrevrange", key, start, end)

    def _get(self, key: str) -> Optional[str]:
        return self._kv.get(key)

    def _set(self, key: str, value: Any, nx: bool | None = None, xx: bool | None = None) -> bool:
        if nx and key in self._kv:
            return False
        if xx and key not in self._kv:
            return False
        self._kv[key] = str(value)
        return True

    def _exists(self, *keys: str) -> int:
        return sum(1 for k in keys if k in self._kv or k in self._lists or k in self._zsets)

    def _incr(self, key: str) -> int:
        cur = int(self._kv.get(key, 0)) + 1
        self._kv[key] = str(cur)
        return cur

    def _delete(self, *keys: str) -> int:
        removed = 0
        for k in keys:
            for space in (self._kv, self._lists, self._zsets):
                if space.pop(k, None) is not None:
                    removed += 1
        return removed

    def _rpush(self, key: str, *values: Any) -> int:
        items = self._lists.setdefault(key, [])
        items.extend(str(v) for v in values)
        return len(items)

    def _lrange(self, key: str, start: int, end: int) -> List[str]:
        items = self._lists.get(key, [])
        stop = None if end == -1 else end + 1
        return list(items[start:stop])

    def _zadd(self, key: str, mapping: Dict[str, float]) -> int:
        z = self._zsets.setdefault(key, {})
        added = len([m for m in mapping if m not in z])
        z.update({str(m): float(s) for m, s in mapping.items()})
        return added

    def _zrem(self, key: str, *members: str) -> int:
        z = self._zsets.get(key, {})
        removed = 0
        for m in members:
            if z.pop(m, None) is not None:
                removed += 1
        return removed

    def _zcard(self, key: str) -> int:
        return len(self._zsets.get(key, {}))

    def _zrevrange(self, key: str, start: int, end: int) -> List[str]:
        z = self._zsets.get(key, {})
        # Redis breaks score ties by member, descending for ZREVRANGE.
        ordered = [m for m, _ in sorted(z.items(), key=lambda kv: (kv[1], kv[0]), reverse=True)]
        stop = None if end == -1 else end + 1
        return ordered[start:stop]

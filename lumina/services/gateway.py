"""Client data gateway.

The only path UI code uses to reach the content API. Every call either
returns parsed wire models or raises :class:`GatewayError`.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

import httpx

from ..schemas.blog import CommentPublic, PostPublic
from ..schemas.draft import DEFAULT_TONE, DraftPublic


log = logging.getLogger(__name__)


class GatewayError(Exception):
    def __init__(self, operation: str, status_code: int | None = None, payload: Any = None) -> None:
        self.operation = operation
        self.status_code = status_code
        self.payload = payload
        message = f"Failed to {operation}"
        if isinstance(payload, dict) and payload.get("message"):
            message = f"{message}: {payload['message']}"
        super().__init__(message)

    @property
    def not_found(self) -> bool:
        return self.status_code == 404

    @property
    def retryable(self) -> bool:
        return isinstance(self.payload, dict) and bool(self.payload.get("retryable"))

    @property
    def field_errors(self) -> dict[str, str]:
        if not isinstance(self.payload, dict):
            return {}
        return {e["field"]: e["message"] for e in self.payload.get("errors") or [] if "field" in e}


def _payload(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return {"message": resp.text} if resp.text else None


class BlogGateway:
    def __init__(self, base_url: str = "http://localhost:3000", client: httpx.AsyncClient | None = None, timeout: float = 10.0) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def __aenter__(self) -> "BlogGateway":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _request(self, operation: str, method: str, path: str, json: Any = None) -> httpx.Response:
        try:
            resp = await self._client.request(method, path, json=json)
        except httpx.HTTPError as e:
            log.warning("%s %s failed: %s", method, path, e)
            raise GatewayError(operation, None, {"message": str(e) or type(e).__name__}) from e
        if not resp.is_success:
            raise GatewayError(operation, resp.status_code, _payload(resp))
        return resp

    async def fetch_posts(self) -> list[PostPublic]:
        resp = await self._request("fetch posts", "GET", "/api/posts")
        return [PostPublic.model_validate(p) for p in resp.json()]

    async def fetch_post(self, post_id: str) -> PostPublic:
        resp = await self._request("fetch post", "GET", f"/api/posts/{post_id}")
        return PostPublic.model_validate(resp.json())

    async def create_post(self, fields: Mapping[str, Any]) -> PostPublic:
        resp = await self._request("create post", "POST", "/api/posts", json=dict(fields))
        return PostPublic.model_validate(resp.json())

    async def update_post(self, post_id: str, fields: Mapping[str, Any]) -> PostPublic:
        resp = await self._request("update post", "PUT", f"/api/posts/{post_id}", json=dict(fields))
        return PostPublic.model_validate(resp.json())

    async def delete_post(self, post_id: str) -> None:
        await self._request("delete post", "DELETE", f"/api/posts/{post_id}")

    async def add_comment(self, post_id: str, content: str, author: str) -> CommentPublic:
        resp = await self._request("add comment", "POST", f"/api/posts/{post_id}/comments", json={"content": content, "author": author})
        return CommentPublic.model_validate(resp.json())

    async def generate_draft(self, topic: str, tone: str = DEFAULT_TONE) -> DraftPublic:
        resp = await self._request("generate draft", "POST", "/api/drafts", json={"topic": topic, "tone": tone})
        return DraftPublic.model_validate(resp.json())

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .api.v1.endpoints import drafts, posts
from .core import runtime
from .core.config import get_cors_origins, get_host, get_port
from .core.logs import configure_logging
from .core.store import StoreError, open_store
from .services.assistant import AssistantGenerationError


log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):  # type: ignore[override]
    configure_logging()
    # Backend selection happens once; requests never retry redis.
    runtime.store = await open_store()
    yield
    store, runtime.store = runtime.store, None
    if store is not None:
        try:
            await store.close()
        except RedisError:
            log.warning("Closing %s store failed", store.name, exc_info=True)
    assistant, runtime.assistant = runtime.assistant, None
    if assistant is not None:
        await assistant.close()


app = FastAPI(title="Lumina Backend", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _field_name(loc: tuple[Any, ...]) -> str:
    parts = [str(p) for p in loc if p != "body"]
    return ".".join(parts) or "body"


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"message": str(exc.detail)}, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [{"field": _field_name(tuple(e.get("loc", ()))), "message": e.get("msg", "Invalid value")} for e in exc.errors()]
    return JSONResponse(status_code=400, content={"message": "Validation failed", "errors": errors})


@app.exception_handler(AssistantGenerationError)
async def assistant_error_handler(request: Request, exc: AssistantGenerationError) -> JSONResponse:
    log.warning("Draft generation failed: %s", exc)
    return JSONResponse(status_code=502, content={"message": "Draft generation failed, please try again", "retryable": True})


@app.exception_handler(StoreError)
@app.exception_handler(RedisError)
async def store_error_handler(request: Request, exc: Exception) -> JSONResponse:
    log.error("Store failure on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"message": "Internal server error"})


@app.get("/healthz")
async def healthz() -> dict[str, Any]:
    status: dict[str, Any] = {"ok": True}
    store = runtime.store
    if store is None:
        status["store"] = {"connected": False, "message": "store not initialized"}
        return status
    try:
        status["store"] = {"backend": store.name, "connected": await store.ping()}
    except RedisError as e:  # pragma: no cover - diagnostic only
        status["store"] = {"backend": store.name, "connected": False, "error": str(e)}
    return status


app.include_router(posts.router, prefix="/api", tags=["posts"])  # e.g., /api/posts
app.include_router(drafts.router, prefix="/api", tags=["drafts"])  # e.g., /api/drafts


def main() -> None:
    configure_logging()
    uvicorn.run(app, host=get_host(), port=get_port())


if __name__ == "__main__":
    main()

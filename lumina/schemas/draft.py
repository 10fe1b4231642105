from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


DEFAULT_TONE = "Professional but engaging"


class DraftRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    topic: str = Field(min_length=1, max_length=500)
    tone: str = Field(default=DEFAULT_TONE, min_length=1, max_length=100)


class DraftPublic(BaseModel):
    title: str
    excerpt: str
    content: str

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


SUGGESTED_CATEGORIES = ("Technology", "Design", "Travel", "Lifestyle", "Food", "Business")


class PostCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=1, max_length=200)
    excerpt: str = Field(min_length=1)
    content: str = Field(min_length=1)
    author: str = Field(min_length=1, max_length=100)
    category: str = Field(min_length=1, max_length=60)
    imageUrl: str = Field(min_length=1)


class PostUpdate(BaseModel):
    # Blank strings strip to "" and are ignored: only truthy fields overwrite.
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str | None = None
    excerpt: str | None = None
    content: str | None = None
    author: str | None = None
    category: str | None = None
    imageUrl: str | None = None

    def changes(self) -> dict[str, str]:
        return {k: v for k, v in self.model_dump().items() if v}


class CommentCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    content: str = Field(min_length=1)
    author: str = Field(min_length=1, max_length=100)


class CommentPublic(BaseModel):
    id: str
    content: str
    author: str
    createdAt: str


class PostPublic(BaseModel):
    id: str
    title: str
    excerpt: str
    content: str
    author: str
    category: str
    imageUrl: str
    createdAt: str
    readTime: str
    comments: list[CommentPublic] = Field(default_factory=list)


class FieldError(BaseModel):
    field: str
    message: str


class ErrorPublic(BaseModel):
    message: str
    errors: list[FieldError] | None = None

"""HTML rendering for the home, detail and post form views.

Renderers only read view models and posts; they never touch ``BlogState``.
All user-provided text is escaped.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from html import escape
from urllib.parse import quote

from ..schemas.blog import PostPublic
from .state import FORM_FIELDS, HomeViewModel, Status


@dataclass(frozen=True)
class Block:
    kind: str  # h2, h3, p, br
    text: str = ""


def parse_content(content: str) -> list[Block]:
    blocks: list[Block] = []
    for line in content.split("\n"):
        if line.startswith("## "):
            blocks.append(Block("h2", line[3:]))
        elif line.startswith("### "):
            blocks.append(Block("h3", line[4:]))
        elif line:
            blocks.append(Block("p", line))
        else:
            blocks.append(Block("br"))
    return blocks


def format_date(iso: str, with_weekday: bool = False) -> str:
    try:
        d = dt.datetime.fromisoformat(iso)
    except ValueError:
        return iso
    text = f"{d:%B} {d.day}, {d.year}"
    return f"{d:%A}, {text}" if with_weekday else text


def render_blocks(blocks: list[Block]) -> str:
    out = []
    for b in blocks:
        if b.kind == "br":
            out.append("<br/>")
        else:
            out.append(f"<{b.kind}>{escape(b.text)}</{b.kind}>")
    return "".join(out)


def render_post_card(post: PostPublic, featured: bool = False) -> str:
    cls = "post-card featured" if featured else "post-card"
    return (
        f'<article class="{cls}" data-post-id="{escape(post.id)}">'
        f'<img src="{escape(post.imageUrl)}" alt="{escape(post.title)}"/>'
        f'<span class="category">{escape(post.category)}</span>'
        f"<h2>{escape(post.title)}</h2>"
        f"<p>{escape(post.excerpt)}</p>"
        f'<footer><span>{escape(post.author)}</span> <span>{format_date(post.createdAt)}</span> <span>{escape(post.readTime)}</span></footer>'
        "</article>"
    )


def render_home(vm: HomeViewModel) -> str:
    if vm.status is Status.LOADING:
        return '<div class="loading">Loading contents...</div>'
    header = f"<header><h1>{escape(vm.heading)}</h1><p>{escape(vm.subtitle)}</p></header>"
    if vm.status is Status.EMPTY:
        clear = '<button data-action="clear-filters">Clear filters</button>' if vm.filters.active else ""
        return f'{header}<div class="empty"><p>{escape(vm.empty_message)}</p>{clear}</div>'
    featured = render_post_card(vm.featured, featured=True) if vm.featured else ""
    grid = "".join(render_post_card(p) for p in vm.others)
    return f'{header}{featured}<section class="grid">{grid}</section>'


def render_detail(post: PostPublic | None, not_found: bool = False) -> str:
    if not_found:
        return '<div class="not-found"><p>Post not found</p><button data-action="home">Back to home</button></div>'
    if post is None:
        return '<div class="loading">Loading post...</div>'
    comments = "".join(
        f'<li data-comment-id="{escape(c.id)}"><strong>{escape(c.author)}</strong> '
        f"<time>{format_date(c.createdAt)}</time><p>{escape(c.content)}</p></li>"
        for c in post.comments
    )
    avatar = f"https://ui-avatars.com/api/?name={quote(post.author)}"
    return (
        f'<article data-post-id="{escape(post.id)}">'
        f'<span class="category">{escape(post.category)}</span>'
        f"<h1>{escape(post.title)}</h1>"
        f'<div class="meta"><img src="{escape(avatar)}"/> {escape(post.author)} '
        f"<span>{format_date(post.createdAt, with_weekday=True)}</span> <span>{escape(post.readTime)}</span></div>"
        f'<div class="prose">{render_blocks(parse_content(post.content))}</div>'
        f'<section id="comments"><h3>Comments ({len(post.comments)})</h3><ul>{comments}</ul></section>'
        "</article>"
    )


def render_form(form: dict[str, str], field_errors: dict[str, str], editing: bool = False) -> str:
    inputs = []
    for name in FORM_FIELDS:
        value = escape(form.get(name, ""))
        if name == "content":
            control = f'<textarea name="content">{value}</textarea>'
        else:
            control = f'<input name="{name}" value="{value}"/>'
        error = field_errors.get(name)
        hint = f'<span class="field-error">{escape(error)}</span>' if error else ""
        inputs.append(f"<label>{name}{control}{hint}</label>")
    heading = "Edit Story" if editing else "Write a New Story"
    action = "Update Story" if editing else "Publish Story"
    return f'<form><h1>{heading}</h1>{"".join(inputs)}<button type="submit">{action}</button></form>'

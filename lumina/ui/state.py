"""Client-side UI state.

:class:`BlogState` is the single state container for the blog UI. Every change
goes through one of its named transitions; nothing else writes its fields.
:func:`derive_visible_state` turns the active filters and the cached post list
into the render-ready home view model and has no side effects.

Navigation transitions return a *generation* number. A response fetched for a
view is applied only if it carries the generation that is still current, so a
late reply for an abandoned view cannot overwrite the newer one.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field, replace
from typing import Iterable, Sequence

from ..schemas.blog import CommentPublic, PostPublic
from ..schemas.draft import DraftPublic


FORM_FIELDS = ("title", "excerpt", "content", "author", "category", "imageUrl")

DEFAULT_HEADING = "Lumina Insights"
DEFAULT_SUBTITLE = "Discover stories, thinking, and expertise from writers on any topic."


class View(str, enum.Enum):
    HOME = "HOME"
    DETAIL = "DETAIL"
    CREATE = "CREATE"
    EDIT = "EDIT"


class Status(str, enum.Enum):
    LOADING = "loading"
    EMPTY = "empty"
    READY = "ready"


@dataclass(frozen=True)
class Filters:
    search_query: str = ""
    category: str | None = None

    @property
    def active(self) -> bool:
        return bool(self.search_query) or bool(self.category)


@dataclass(frozen=True)
class HomeViewModel:
    status: Status
    heading: str = DEFAULT_HEADING
    subtitle: str = DEFAULT_SUBTITLE
    featured: PostPublic | None = None
    others: tuple[PostPublic, ...] = ()
    empty_message: str = ""
    filters: Filters = Filters()

    @property
    def visible(self) -> list[PostPublic]:
        return ([self.featured] if self.featured else []) + list(self.others)


def matches_search(post: PostPublic, query: str) -> bool:
    q = query.lower()
    return q in post.title.lower() or q in post.content.lower() or q in post.excerpt.lower()


def filter_posts(filters: Filters, posts: Iterable[PostPublic]) -> list[PostPublic]:
    visible = list(posts)
    if filters.search_query:
        visible = [p for p in visible if matches_search(p, filters.search_query)]
    if filters.category:
        visible = [p for p in visible if p.category == filters.category]
    return visible


def _heading(filters: Filters, count: int) -> tuple[str, str]:
    if filters.search_query:
        return f'Search results for "{filters.search_query}"', f"Found {count} post{'' if count == 1 else 's'}"
    if filters.category:
        return f"{filters.category} Posts", f"Discover {filters.category.lower()} stories"
    return DEFAULT_HEADING, DEFAULT_SUBTITLE


def _empty_message(filters: Filters) -> str:
    if not filters.active:
        return "No posts yet"
    msg = "No posts found"
    if filters.search_query:
        msg += f' for "{filters.search_query}"'
    if filters.category:
        msg += f" in {filters.category}"
    return msg


def derive_visible_state(filters: Filters, posts: Sequence[PostPublic] | None) -> HomeViewModel:
    """Project the cached, newest-first post list through the active filters."""
    if posts is None:
        return HomeViewModel(status=Status.LOADING, filters=filters)
    visible = filter_posts(filters, posts)
    heading, subtitle = _heading(filters, len(visible))
    if not visible:
        return HomeViewModel(status=Status.EMPTY, heading=heading, subtitle=subtitle, empty_message=_empty_message(filters), filters=filters)
    return HomeViewModel(
        status=Status.READY,
        heading=heading,
        subtitle=subtitle,
        featured=visible[0],
        others=tuple(visible[1:]),
        filters=filters,
    )


@dataclass
class BlogState:
    view: View = View.HOME
    active_post_id: str | None = None
    posts: list[PostPublic] | None = None
    current_post: PostPublic | None = None
    post_not_found: bool = False
    # The post being edited; set only in the EDIT view.
    edit_draft: PostPublic | None = None
    form: dict[str, str] = field(default_factory=dict)
    filters: Filters = field(default_factory=Filters)
    mobile_menu_open: bool = False
    assistant_open: bool = False
    assistant_busy: bool = False
    alert: str | None = None
    field_errors: dict[str, str] = field(default_factory=dict)
    generation: int = 0

    # navigation

    def _navigate(self, view: View, post_id: str | None = None) -> int:
        self.view = view
        self.active_post_id = post_id
        self.mobile_menu_open = False
        self.assistant_open = False
        self.assistant_busy = False
        self.alert = None
        self.field_errors = {}
        self.post_not_found = False
        self.generation += 1
        return self.generation

    def navigate_home(self) -> int:
        self.edit_draft = None
        self.form = {}
        self.current_post = None
        return self._navigate(View.HOME)

    def navigate_to_post(self, post_id: str) -> int:
        self.edit_draft = None
        self.form = {}
        self.current_post = None
        return self._navigate(View.DETAIL, post_id)

    def navigate_to_create(self) -> int:
        self.edit_draft = None
        self.form = {f: "" for f in FORM_FIELDS}
        return self._navigate(View.CREATE)

    def begin_edit(self, post: PostPublic) -> int:
        self.edit_draft = post
        self.form = {f: getattr(post, f) for f in FORM_FIELDS}
        return self._navigate(View.EDIT, post.id)

    def cancel_edit(self) -> int:
        return self.navigate_home()

    def finish_edit(self) -> int:
        return self.navigate_home()

    # form and filters

    def update_form(self, **values: str) -> None:
        if self.view not in (View.CREATE, View.EDIT):
            return
        for key, value in values.items():
            if key in FORM_FIELDS:
                self.form[key] = value
                self.field_errors.pop(key, None)

    def set_search(self, query: str) -> None:
        self.filters = replace(self.filters, search_query=query)

    def select_category(self, category: str | None) -> int:
        """Toggle the category filter and go back home."""
        chosen = None if category == self.filters.category else category
        self.filters = replace(self.filters, category=chosen)
        return self.navigate_home()

    def clear_filters(self) -> None:
        self.filters = Filters()

    def toggle_mobile_menu(self) -> None:
        self.mobile_menu_open = not self.mobile_menu_open

    # draft assistant modal

    def open_assistant(self) -> None:
        if self.view in (View.CREATE, View.EDIT):
            self.assistant_open = True

    def close_assistant(self) -> None:
        self.assistant_open = False
        self.assistant_busy = False

    def start_generating(self) -> None:
        self.assistant_busy = True
        self.alert = None

    def apply_draft(self, generation: int, draft: DraftPublic) -> bool:
        if not self.is_current(generation) or self.view not in (View.CREATE, View.EDIT):
            return False
        self.update_form(title=draft.title, excerpt=draft.excerpt, content=draft.content)
        self.close_assistant()
        return True

    # server responses

    def is_current(self, generation: int) -> bool:
        return generation == self.generation

    def receive_posts(self, generation: int, posts: Sequence[PostPublic]) -> bool:
        if not self.is_current(generation) or self.view is not View.HOME:
            return False
        self.posts = list(posts)
        return True

    def receive_post(self, generation: int, post: PostPublic) -> bool:
        if not self.is_current(generation) or self.view is not View.DETAIL or post.id != self.active_post_id:
            return False
        self.current_post = post
        return True

    def receive_comment(self, post_id: str, comment: CommentPublic) -> bool:
        post = self.current_post
        if self.view is not View.DETAIL or post is None or post.id != post_id:
            return False
        self.current_post = post.model_copy(update={"comments": [*post.comments, comment]})
        return True

    def mark_not_found(self, generation: int) -> bool:
        if not self.is_current(generation):
            return False
        self.post_not_found = True
        return True

    def fail(self, message: str, field_errors: dict[str, str] | None = None) -> None:
        self.alert = message
        self.field_errors = dict(field_errors or {})
        self.assistant_busy = False

    def dismiss_alert(self) -> None:
        self.alert = None

    # projections

    def home_view(self) -> HomeViewModel:
        return derive_visible_state(self.filters, self.posts)

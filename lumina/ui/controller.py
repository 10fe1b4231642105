from __future__ import annotations

import logging
from html import escape

from ..schemas.blog import CommentPublic, PostPublic
from ..schemas.draft import DEFAULT_TONE
from ..services.gateway import BlogGateway, GatewayError
from .render import render_detail, render_form, render_home
from .state import BlogState, HomeViewModel, View


log = logging.getLogger(__name__)

DEFAULT_COMMENT_AUTHOR = "Guest User"


class BlogController:
    """User actions for the blog UI.

    Each action issues at most the gateway calls it needs, awaits them, and
    only then moves ``state`` forward. A failed call records an alert and
    leaves the rest of the state as it was.
    """

    def __init__(self, gateway: BlogGateway, state: BlogState | None = None) -> None:
        self.gateway = gateway
        self.state = state or BlogState()

    def _fail(self, err: GatewayError, generation: int | None = None) -> None:
        if generation is not None and not self.state.is_current(generation):
            log.debug("Discarding stale failure: %s", err)
            return
        log.warning("%s", err)
        self.state.fail(str(err), err.field_errors)

    async def _refresh_posts(self, generation: int) -> None:
        try:
            posts = await self.gateway.fetch_posts()
        except GatewayError as e:
            self._fail(e, generation)
            return
        if not self.state.receive_posts(generation, posts):
            log.debug("Discarding stale post list for generation %s", generation)

    async def load_home(self) -> None:
        await self._refresh_posts(self.state.navigate_home())

    async def open_post(self, post_id: str) -> None:
        generation = self.state.navigate_to_post(post_id)
        try:
            post = await self.gateway.fetch_post(post_id)
        except GatewayError as e:
            if e.not_found:
                self.state.mark_not_found(generation)
            else:
                self._fail(e, generation)
            return
        self.state.receive_post(generation, post)

    def open_create(self) -> None:
        self.state.navigate_to_create()

    async def edit_post(self, post_id: str) -> bool:
        # The edit view is entered only once the target post has loaded.
        generation = self.state.generation
        try:
            post = await self.gateway.fetch_post(post_id)
        except GatewayError as e:
            self._fail(e, generation)
            return False
        if not self.state.is_current(generation):
            return False
        self.state.begin_edit(post)
        return True

    async def cancel_edit(self) -> None:
        await self._refresh_posts(self.state.cancel_edit())

    async def submit_post(self) -> PostPublic | None:
        state = self.state
        if state.view not in (View.CREATE, View.EDIT):
            return None
        form = dict(state.form)
        try:
            if state.edit_draft is not None:
                post = await self.gateway.update_post(state.edit_draft.id, form)
            else:
                post = await self.gateway.create_post(form)
        except GatewayError as e:
            self._fail(e)
            return None
        await self._refresh_posts(state.finish_edit())
        return post

    async def delete_post(self, post_id: str) -> bool:
        try:
            await self.gateway.delete_post(post_id)
        except GatewayError as e:
            self._fail(e)
            return False
        await self.load_home()
        return True

    async def submit_comment(self, content: str, author: str = DEFAULT_COMMENT_AUTHOR) -> CommentPublic | None:
        post = self.state.current_post
        if post is None or not content.strip():
            return None
        try:
            comment = await self.gateway.add_comment(post.id, content, author)
        except GatewayError as e:
            self._fail(e)
            return None
        # The server's comment carries its own id and timestamp.
        self.state.receive_comment(post.id, comment)
        return comment

    def search(self, query: str) -> HomeViewModel:
        self.state.set_search(query)
        return self.state.home_view()

    async def select_category(self, category: str | None) -> None:
        await self._refresh_posts(self.state.select_category(category))

    async def clear_filters(self) -> None:
        self.state.clear_filters()
        await self.load_home()

    async def generate_draft(self, topic: str, tone: str = DEFAULT_TONE) -> bool:
        state = self.state
        if state.view not in (View.CREATE, View.EDIT) or not topic.strip():
            return False
        generation = state.generation
        state.open_assistant()
        state.start_generating()
        try:
            draft = await self.gateway.generate_draft(topic, tone)
        except GatewayError as e:
            # modal stays open so the user can retry
            self._fail(e, generation)
            return False
        return state.apply_draft(generation, draft)

    def render(self) -> str:
        """HTML for whatever view ``state`` is on."""
        state = self.state
        if state.view is View.HOME:
            body = render_home(state.home_view())
        elif state.view is View.DETAIL:
            body = render_detail(state.current_post, not_found=state.post_not_found)
        else:
            body = render_form(state.form, state.field_errors, editing=state.view is View.EDIT)
        if state.alert:
            body = f'<div class="alert" role="alert">{escape(state.alert)}</div>{body}'
        return body

from __future__ import annotations

from fastapi import APIRouter

import lumina.core.runtime as runtime
from ....schemas.blog import ErrorPublic
from ....schemas.draft import DraftPublic, DraftRequest
from ....services.assistant import DraftAssistant, generate_draft


router = APIRouter()


def _assistant() -> DraftAssistant:
    if runtime.assistant is None:
        runtime.assistant = DraftAssistant()
    return runtime.assistant


@router.post("/drafts", response_model=DraftPublic, responses={502: {"model": ErrorPublic, "description": "Draft generation failed"}})
async def create_draft(payload: DraftRequest) -> DraftPublic:
    # AssistantGenerationError propagates to the app-level 502 handler
    return await generate_draft(_assistant(), payload.topic, payload.tone)

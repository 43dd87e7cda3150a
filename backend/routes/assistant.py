from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from backend.auth import Identity, require_identity
from backend.errors import GenerativeServiceError
from backend.schemas import CompletionRequest, CompletionResponse
from backend.services import assistant_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/v1/assistant/complete", response_model=CompletionResponse)
async def complete(payload: CompletionRequest, identity: Identity = Depends(require_identity)):
    try:
        text = await assistant_service.complete(payload.prompt)
    except GenerativeServiceError as exc:
        logger.error("Assistant completion failed for %s: %s", identity.email, exc.message)
        return {"text": assistant_service.FALLBACK_MESSAGE, "ok": False}
    return {"text": text, "ok": True}

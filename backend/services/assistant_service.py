from __future__ import annotations

import logging

import httpx

from backend.errors import GenerativeServiceError
from backend.settings import get_settings

logger = logging.getLogger(__name__)

FALLBACK_MESSAGE = "I'm having trouble connecting right now. Please try again later."


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
        error = payload.get("error")
        if isinstance(error, dict):
            return error.get("message") or response.text
        return str(error or payload.get("message") or response.text)
    except Exception:
        return response.text


async def complete(prompt: str, transport: httpx.AsyncBaseTransport | None = None) -> str:
    """Send ``prompt`` to the configured chat-completions endpoint and return the reply text."""
    clean_prompt = str(prompt or "").strip()
    if not clean_prompt:
        raise GenerativeServiceError("Prompt cannot be empty")
    settings = get_settings()
    if not settings.llm_api_url:
        raise GenerativeServiceError("LLM_API_URL not configured")
    headers = {"Content-Type": "application/json"}
    if settings.llm_api_key:
        headers["Authorization"] = f"Bearer {settings.llm_api_key}"
    body = {
        "model": settings.llm_model,
        "messages": [{"role": "user", "content": clean_prompt}],
    }
    try:
        async with httpx.AsyncClient(timeout=settings.llm_timeout_seconds, transport=transport) as client:
            response = await client.post(settings.llm_api_url, headers=headers, json=body)
    except httpx.HTTPError as exc:
        raise GenerativeServiceError(f"LLM request failed: {exc}") from exc
    if response.status_code >= 400:
        raise GenerativeServiceError(f"LLM API error ({response.status_code}): {_error_message(response)}")
    try:
        payload = response.json()
        text = payload["choices"][0]["message"]["content"]
    except (ValueError, KeyError, IndexError, TypeError) as exc:
        raise GenerativeServiceError(f"Unexpected LLM response: {exc}") from exc
    if not isinstance(text, str) or not text.strip():
        raise GenerativeServiceError("LLM returned an empty reply")
    return text.strip()

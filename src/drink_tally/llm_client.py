from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx

from drink_tally.errors import LlmResponseError, LlmTransportError

GEMINI_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"


@dataclass(frozen=True)
class LlmRoute:
    model: str
    api_key: str | None
    endpoint: str = GEMINI_ENDPOINT
    timeout_seconds: float = 20


def build_payload(prompt: str) -> dict[str, Any]:
    return {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}


def extract_text(payload: Any) -> str | None:
    if not isinstance(payload, dict):
        return None
    candidates = payload.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        return None
    content = candidates[0].get("content") if isinstance(candidates[0], dict) else None
    if not isinstance(content, dict):
        return None
    parts = content.get("parts")
    if not isinstance(parts, list) or not parts or not isinstance(parts[0], dict):
        return None
    text = parts[0].get("text")
    if not isinstance(text, str):
        return None
    return text.strip() or None


def generate_text(route: LlmRoute, prompt: str, transport: httpx.BaseTransport | None = None) -> str:
    """Call the generateContent endpoint and return the first candidate's text.

    Raises LlmTransportError for network failures and error statuses, and
    LlmResponseError when the body does not carry generated text.
    """
    url = route.endpoint.format(model=route.model)
    params = {"key": route.api_key or ""}
    try:
        with httpx.Client(timeout=route.timeout_seconds, transport=transport) as client:
            resp = client.post(url, params=params, json=build_payload(prompt))
    except httpx.HTTPError as exc:
        raise LlmTransportError(f"Request to {route.model} failed: {exc}") from exc

    if resp.status_code >= 400:
        raise LlmTransportError(f"{route.model} returned HTTP {resp.status_code}")
    try:
        data = resp.json()
    except ValueError as exc:
        raise LlmResponseError("Response body is not JSON") from exc

    text = extract_text(data)
    if text is None:
        raise LlmResponseError(f"Unexpected API response structure: {str(data)[:200]}")
    return text

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import httpx
import yaml

from drink_tally.config import Settings
from drink_tally.errors import LlmResponseError, LlmTransportError
from drink_tally.llm_client import GEMINI_ENDPOINT, LlmRoute, generate_text

logger = logging.getLogger(__name__)

TRUTH_OR_DARE_PROMPT = (
    "Generate either a fun truth question or a creative dare suitable for a casual drinking game "
    "among friends. Make it concise and engaging. Do not include any introductory or concluding "
    "remarks, just the truth or dare."
)
DRINK_SUGGESTION_PROMPT = (
    "Suggest a fun and easy drink recipe for a casual party. Include ingredients and simple "
    "instructions. Make it concise and engaging. Do not include any introductory or concluding "
    "remarks, just the drink suggestion/recipe."
)

TRUTH_OR_DARE_FALLBACK = "Could not generate a truth or dare. Please try again!"
DRINK_SUGGESTION_FALLBACK = "Could not generate a drink suggestion. Please try again!"
NETWORK_FALLBACK = "Failed to generate. Network error or API issue."


@dataclass(frozen=True)
class Prompts:
    truth_or_dare: str = TRUTH_OR_DARE_PROMPT
    drink_suggestion: str = DRINK_SUGGESTION_PROMPT


@dataclass(frozen=True)
class LlmContext:
    enabled: bool
    route: LlmRoute
    prompts: Prompts = Prompts()
    transport: httpx.BaseTransport | None = None


@dataclass(frozen=True)
class Generated:
    text: str
    ok: bool


def load_llm_context(settings: Settings) -> LlmContext:
    """Build the generation context from settings, overridden by the optional YAML file."""
    model = settings.llm_model
    endpoint = GEMINI_ENDPOINT
    timeout: float = settings.llm_timeout_seconds
    prompts = Prompts()

    path: Path = settings.llm_config_path
    if path.exists():
        raw = yaml.safe_load(path.read_text()) or {}
        if isinstance(raw, dict):
            model = str(raw.get("model", model)).strip() or model
            endpoint = str(raw.get("endpoint", endpoint)).strip() or endpoint
            try:
                timeout = max(1.0, float(raw.get("timeout_seconds", timeout)))
            except (TypeError, ValueError):
                pass
            prompts_raw = raw.get("prompts")
            if isinstance(prompts_raw, dict):
                prompts = Prompts(
                    truth_or_dare=str(prompts_raw.get("truth_or_dare", "")).strip() or TRUTH_OR_DARE_PROMPT,
                    drink_suggestion=str(prompts_raw.get("drink_suggestion", "")).strip() or DRINK_SUGGESTION_PROMPT,
                )

    return LlmContext(
        enabled=settings.llm_enabled,
        route=LlmRoute(model=model, api_key=settings.llm_api_key, endpoint=endpoint, timeout_seconds=timeout),
        prompts=prompts,
    )


def _generate(ctx: LlmContext | None, prompt: str, fallback: str, what: str) -> Generated:
    if ctx is None or not ctx.enabled:
        return Generated(text=fallback, ok=False)
    try:
        text = generate_text(ctx.route, prompt, transport=ctx.transport)
    except LlmResponseError as exc:
        logger.error("Error generating %s: %s", what, exc)
        return Generated(text=fallback, ok=False)
    except LlmTransportError as exc:
        logger.error("Error generating %s: %s", what, exc)
        return Generated(text=NETWORK_FALLBACK, ok=False)
    return Generated(text=text, ok=True)


def truth_or_dare(ctx: LlmContext | None) -> Generated:
    prompt = ctx.prompts.truth_or_dare if ctx else TRUTH_OR_DARE_PROMPT
    return _generate(ctx, prompt, TRUTH_OR_DARE_FALLBACK, "truth or dare")


def drink_suggestion(ctx: LlmContext | None) -> Generated:
    prompt = ctx.prompts.drink_suggestion if ctx else DRINK_SUGGESTION_PROMPT
    return _generate(ctx, prompt, DRINK_SUGGESTION_FALLBACK, "drink suggestion")

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_APP_ID = "default-drinking-game-app"


@dataclass(frozen=True)
class Settings:
    app_id: str
    database_path: Path
    tz: str
    telegram_bot_token: str | None
    llm_enabled: bool
    llm_api_key: str | None
    llm_model: str
    llm_timeout_seconds: int
    llm_config_path: Path
    store_write_retries: int
    store_retry_backoff_seconds: float
    penalty_stale_seconds: float
    web_host: str
    web_port: int
    web_signing_secret: str | None
    web_session_ttl_seconds: float


_TRUTHY = frozenset({"1", "true", "yes", "y", "on"})


def _read_env_file(path: Path) -> dict[str, str]:
    pairs: dict[str, str] = {}
    if not path.is_file():
        return pairs
    for line in path.read_text().splitlines():
        key, sep, value = line.partition("=")
        key = key.strip()
        if not sep or not key or key.startswith("#"):
            continue
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
            value = value[1:-1]
        pairs[key] = value
    return pairs


def _env_flag(name: str, default: bool = False) -> bool:
    raw = (os.getenv(name) or "").strip().lower()
    if not raw:
        return default
    return raw in _TRUTHY


def _parse_int(value: str | None, default: int, min_value: int = 0) -> int:
    if value is None:
        return default
    try:
        parsed = int(value)
    except ValueError:
        return default
    return max(min_value, parsed)


def _parse_float(value: str | None, default: float) -> float:
    if value is None:
        return default
    try:
        parsed = float(value)
    except ValueError:
        return default
    return max(0.0, parsed)


def load_settings() -> Settings:
    for key, value in _read_env_file(Path(".env")).items():
        os.environ.setdefault(key, value)

    return Settings(
        app_id=os.getenv("APP_ID", "").strip() or DEFAULT_APP_ID,
        database_path=Path(os.getenv("DATABASE_PATH", "./data/drink_tally.db")),
        tz=os.getenv("TZ", "Europe/Oslo"),
        telegram_bot_token=os.getenv("TELEGRAM_BOT_TOKEN") or None,
        llm_enabled=_env_flag("LLM_ENABLED"),
        llm_api_key=os.getenv("GEMINI_API_KEY") or None,
        llm_model=os.getenv("LLM_MODEL", "gemini-2.0-flash"),
        llm_timeout_seconds=_parse_int(os.getenv("LLM_TIMEOUT_SECONDS"), 20, min_value=1),
        llm_config_path=Path(os.getenv("LLM_CONFIG", "./llm.yaml")),
        store_write_retries=_parse_int(os.getenv("STORE_WRITE_RETRIES"), 0),
        store_retry_backoff_seconds=_parse_float(os.getenv("STORE_RETRY_BACKOFF_SECONDS"), 0.2),
        penalty_stale_seconds=_parse_float(os.getenv("PENALTY_STALE_SECONDS"), 6.0),
        web_host=os.getenv("WEB_HOST", "127.0.0.1"),
        web_port=_parse_int(os.getenv("WEB_PORT"), 8080, min_value=1),
        web_signing_secret=os.getenv("WEB_SIGNING_SECRET") or None,
        web_session_ttl_seconds=_parse_float(os.getenv("WEB_SESSION_TTL_SECONDS"), 1800.0),
    )

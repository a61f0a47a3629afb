from __future__ import annotations

import asyncio

from drink_tally.config import load_settings
from drink_tally.llm_messages import load_llm_context
from drink_tally.logging_setup import setup_logging
from drink_tally.store import DocumentStore
from drink_tally.telegram_bot import build_application, close_sessions
from drink_tally.web_app import run_web


def run_bot() -> None:
    setup_logging()
    settings = load_settings()
    store = DocumentStore(settings.database_path)

    # run_polling drives the current loop; newer interpreters no longer create one implicitly.
    asyncio.set_event_loop(asyncio.new_event_loop())

    application = build_application(settings, store, load_llm_context(settings))
    try:
        application.run_polling()
    finally:
        close_sessions(application)


__all__ = ["run_bot", "run_web"]

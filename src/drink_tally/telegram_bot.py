from __future__ import annotations

import asyncio
import logging

from telegram import InlineKeyboardButton, InlineKeyboardMarkup, Update
from telegram.ext import Application, CallbackQueryHandler, CommandHandler, ContextTypes

from drink_tally.config import Settings
from drink_tally.identity import IdentityProvider
from drink_tally.llm_messages import LlmContext
from drink_tally.messages import leaderboard_message, quests_message, stats_message
from drink_tally.session import ActionResult, GameSession, open_session
from drink_tally.store import DocumentStore

logger = logging.getLogger(__name__)

NOT_READY_TEXT = "Still connecting to the game. Try again in a moment."


def build_keyboard() -> InlineKeyboardMarkup:
    rows = [
        [
            InlineKeyboardButton("🍺 +1 Drink", callback_data="drink"),
            InlineKeyboardButton("🎲 Truth or Dare", callback_data="truthdare"),
        ],
        [
            InlineKeyboardButton("🍹 Suggest a drink", callback_data="suggest"),
            InlineKeyboardButton("🏆 Leaderboard", callback_data="leaderboard"),
        ],
        [
            InlineKeyboardButton("🎯 Quests", callback_data="quests"),
            InlineKeyboardButton("📊 Me", callback_data="me"),
        ],
    ]
    return InlineKeyboardMarkup(rows)


def _store(context: ContextTypes.DEFAULT_TYPE) -> DocumentStore:
    store = context.application.bot_data.get("store")
    if not isinstance(store, DocumentStore):
        raise RuntimeError("Document store is not configured")
    return store


def _settings(context: ContextTypes.DEFAULT_TYPE) -> Settings:
    settings = context.application.bot_data.get("settings")
    if not isinstance(settings, Settings):
        raise RuntimeError("Settings are not configured")
    return settings


def _sessions(context: ContextTypes.DEFAULT_TYPE) -> dict[str, GameSession]:
    return context.application.bot_data.setdefault("sessions", {})


def get_session(update: Update, context: ContextTypes.DEFAULT_TYPE) -> GameSession:
    user = update.effective_user
    if user is None:
        raise RuntimeError("Update carries no user")
    uid = str(user.id)
    sessions = _sessions(context)
    session = sessions.get(uid)
    if session is None:
        identity = IdentityProvider().sign_in_trusted(uid)
        llm = context.application.bot_data.get("llm")
        session = open_session(
            _store(context),
            _settings(context),
            identity,
            llm=llm if isinstance(llm, LlmContext) else None,
        )
        sessions[uid] = session
    return session


def _action_reply(result: ActionResult, success: str) -> str:
    if not result.ok:
        return f"⚠️ {result.error}"
    if result.quest_message:
        return f"{success}\n\n🎉 {result.quest_message}"
    return success


async def _reply(update: Update, text: str) -> None:
    msg = update.effective_message
    if msg is None:
        return
    await msg.reply_text(text, reply_markup=build_keyboard())


async def cmd_start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    session = get_session(update, context)
    record = session.refresh()
    if not session.ready or record is None:
        await _reply(update, NOT_READY_TEXT)
        return
    await _reply(update, "🍻 Welcome to the Drinking Game!\n\n" + stats_message(record, session.rank))


async def cmd_me(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    session = get_session(update, context)
    record = session.refresh()
    if record is None:
        await _reply(update, NOT_READY_TEXT)
        return
    await _reply(update, stats_message(record, session.rank, session.penalty_active))


async def cmd_drink(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    session = get_session(update, context)
    proof = " ".join(context.args or [])
    result = session.add_drink(proof)
    drinks = result.record.drinks if result.record else 0
    await _reply(update, _action_reply(result, f"🍺 Cheers! You're at {drinks} drinks."))


async def cmd_name(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    session = get_session(update, context)
    if not context.args:
        await _reply(update, "Usage: /name <new display name>")
        return
    result = session.rename(" ".join(context.args))
    name = result.record.display_name if result.record else ""
    await _reply(update, _action_reply(result, f"Display name set to {name}."))


async def cmd_truthordare(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    session = get_session(update, context)
    generated = await asyncio.to_thread(session.generate_truth_or_dare)
    text = f"🎲 {generated.text}"
    if generated.quest is not None and generated.quest.quest_message:
        text += f"\n\n🎉 {generated.quest.quest_message}"
    await _reply(update, text)


async def cmd_suggest(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    session = get_session(update, context)
    generated = await asyncio.to_thread(session.suggest_drink)
    await _reply(update, f"🍹 {generated.text}")


async def cmd_quests(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    session = get_session(update, context)
    record = session.refresh()
    if record is None:
        await _reply(update, NOT_READY_TEXT)
        return
    await _reply(update, quests_message(record))


async def cmd_leaderboard(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    session = get_session(update, context)
    await _reply(update, leaderboard_message(session.leaderboard, highlight_uid=session.uid))


async def handle_callback(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    query = update.callback_query
    if query is None:
        return
    await query.answer()

    context.args = []
    handlers = {
        "drink": cmd_drink,
        "truthdare": cmd_truthordare,
        "suggest": cmd_suggest,
        "leaderboard": cmd_leaderboard,
        "quests": cmd_quests,
        "me": cmd_me,
    }
    handler = handlers.get(query.data or "")
    if handler is None:
        logger.warning("Unknown callback data: %s", query.data)
        return
    await handler(update, context)


def close_sessions(app: Application) -> None:
    sessions: dict[str, GameSession] = app.bot_data.get("sessions", {})
    for session in sessions.values():
        session.close()
    sessions.clear()


def build_application(settings: Settings, store: DocumentStore, llm: LlmContext | None = None) -> Application:
    if not settings.telegram_bot_token:
        raise RuntimeError("TELEGRAM_BOT_TOKEN is required")
    app = Application.builder().token(settings.telegram_bot_token).build()
    app.bot_data["store"] = store
    app.bot_data["settings"] = settings
    app.bot_data["llm"] = llm
    app.bot_data["sessions"] = {}

    app.add_handler(CommandHandler("start", cmd_start))
    app.add_handler(CommandHandler("me", cmd_me))
    app.add_handler(CommandHandler("drink", cmd_drink))
    app.add_handler(CommandHandler("name", cmd_name))
    app.add_handler(CommandHandler("truthordare", cmd_truthordare))
    app.add_handler(CommandHandler("suggest", cmd_suggest))
    app.add_handler(CommandHandler("quests", cmd_quests))
    app.add_handler(CommandHandler("leaderboard", cmd_leaderboard))
    app.add_handler(CallbackQueryHandler(handle_callback))

    return app

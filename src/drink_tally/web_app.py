from __future__ import annotations

import asyncio
import logging
import secrets
import time
from contextlib import asynccontextmanager
from typing import Any, Callable

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from pydantic import BaseModel

from drink_tally.config import Settings, load_settings
from drink_tally.converters import record_to_document
from drink_tally.errors import InitializationError
from drink_tally.identity import IdentityProvider, mint_custom_token
from drink_tally.leaderboard import ranked
from drink_tally.llm_messages import LlmContext, load_llm_context
from drink_tally.logging_setup import setup_logging
from drink_tally.models import UserRecord
from drink_tally.penalty import PENALTY_NOTICE, ReportedPenalty
from drink_tally.session import ActionResult, GameSession, open_session
from drink_tally.store import DocumentStore

logger = logging.getLogger(__name__)


class SessionRequest(BaseModel):
    token: str | None = None


class DrinkRequest(BaseModel):
    proof: str = ""


class RenameRequest(BaseModel):
    name: str = ""


class PenaltyReport(BaseModel):
    active: bool = False


def _action_payload(result: ActionResult) -> dict[str, Any]:
    if not result.ok:
        raise HTTPException(status_code=503, detail=result.error)
    return {
        "ok": True,
        "record": record_to_document(result.record) if result.record else None,
        "reward": result.reward,
        "quest_message": result.quest_message,
    }


def _bearer_token(request: Request) -> str:
    scheme, _, token = request.headers.get("authorization", "").partition(" ")
    if scheme.lower() != "bearer":
        return ""
    return token.strip()


def build_web_app(
    store: DocumentStore,
    settings: Settings,
    llm: LlmContext | None = None,
    clock: Callable[[], float] = time.monotonic,
) -> FastAPI:
    # Without a configured secret, tokens are only valid for this process.
    signing_secret = settings.web_signing_secret or secrets.token_hex(32)
    session_ttl = settings.web_session_ttl_seconds
    sessions: dict[str, GameSession] = {}
    penalties: dict[str, ReportedPenalty] = {}
    last_seen: dict[str, float] = {}

    def _drop(token: str) -> None:
        session = sessions.pop(token, None)
        penalties.pop(token, None)
        last_seen.pop(token, None)
        if session is not None:
            session.close()

    def _evict_idle() -> None:
        if session_ttl <= 0:
            return
        now = clock()
        for token in [t for t, seen in last_seen.items() if now - seen > session_ttl]:
            logger.info("Closing idle web session for %s", sessions[token].uid)
            _drop(token)

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        yield
        for token in list(sessions):
            _drop(token)

    app = FastAPI(title="Drink Tally", version="1.0.0", lifespan=lifespan)
    app.state.sessions = sessions

    def _open(provider: IdentityProvider) -> tuple[str, GameSession]:
        identity = provider.current
        if identity is None:
            raise HTTPException(status_code=401, detail="Not signed in")
        token = mint_custom_token(identity.uid, signing_secret)
        existing = sessions.get(token)
        if existing is not None:
            last_seen[token] = clock()
            return token, existing
        penalty = ReportedPenalty(stale_after=settings.penalty_stale_seconds)
        session = open_session(store, settings, identity, penalty=penalty, llm=llm)
        if not session.ready:
            session.close()
            logger.error("Failed to initialize session for %s: %s", identity.uid, session.initialization_error)
            raise HTTPException(status_code=503, detail=session.initialization_error or "Initialization failed")
        sessions[token] = session
        penalties[token] = penalty
        last_seen[token] = clock()
        return token, session

    def _session(request: Request) -> GameSession:
        _evict_idle()
        token = _bearer_token(request)
        session = sessions.get(token) if token else None
        if session is None:
            raise HTTPException(status_code=401, detail="Unknown or expired session")
        last_seen[token] = clock()
        return session

    def _own_record(session: GameSession) -> UserRecord:
        record = session.refresh()
        if record is None:
            raise HTTPException(status_code=503, detail="Session is not ready")
        return record

    @app.post("/api/session")
    async def api_session(payload: SessionRequest | None = None) -> dict[str, Any]:
        _evict_idle()
        provider = IdentityProvider(signing_secret=signing_secret)
        if payload is not None and payload.token:
            try:
                provider.sign_in_with_custom_token(payload.token)
            except InitializationError as exc:
                raise HTTPException(status_code=401, detail=str(exc)) from exc
        else:
            provider.sign_in_anonymously()
        token, session = _open(provider)
        return {"uid": session.uid, "token": token}

    @app.delete("/api/session")
    async def api_close_session(request: Request) -> dict[str, Any]:
        _session(request)
        _drop(_bearer_token(request))
        return {"ok": True}

    @app.get("/api/me")
    async def api_me(request: Request) -> dict[str, Any]:
        session = _session(request)
        record = _own_record(session)
        return {
            "record": record_to_document(record),
            "rank": session.rank,
            "penalty_active": session.penalty_active,
            "penalty_notice": PENALTY_NOTICE if session.penalty_active else None,
            "last_error": session.last_error,
        }

    @app.get("/api/quests")
    async def api_quests(request: Request) -> dict[str, Any]:
        record = _own_record(_session(request))
        return {"quests": record_to_document(record)["dailyQuests"]}

    @app.get("/api/leaderboard")
    async def api_leaderboard(request: Request, limit: int = 50) -> dict[str, Any]:
        session = _session(request)
        entries = ranked(session.leaderboard)[: max(1, limit)]
        return {
            "entries": [
                {"rank": e.rank, "display_name": e.display_name, "drinks": e.drinks, "you": e.user_id == session.uid}
                for e in entries
            ]
        }

    @app.post("/api/drinks")
    async def api_add_drink(request: Request, payload: DrinkRequest) -> dict[str, Any]:
        session = _session(request)
        return _action_payload(session.add_drink(payload.proof))

    @app.post("/api/name")
    async def api_rename(request: Request, payload: RenameRequest) -> dict[str, Any]:
        session = _session(request)
        if not payload.name.strip():
            raise HTTPException(status_code=400, detail="Display name cannot be empty")
        return _action_payload(session.rename(payload.name))

    @app.post("/api/truth-or-dare")
    async def api_truth_or_dare(request: Request) -> dict[str, Any]:
        session = _session(request)
        result = await asyncio.to_thread(session.generate_truth_or_dare)
        quest_message = result.quest.quest_message if result.quest else None
        return {"text": result.text, "generated": result.generated, "quest_message": quest_message}

    @app.post("/api/drink-suggestion")
    async def api_drink_suggestion(request: Request) -> dict[str, Any]:
        session = _session(request)
        result = await asyncio.to_thread(session.suggest_drink)
        return {"text": result.text, "generated": result.generated}

    @app.post("/api/penalty")
    async def api_penalty(request: Request, payload: PenaltyReport) -> dict[str, Any]:
        session = _session(request)
        penalties[_bearer_token(request)].report(payload.active)
        return {"penalty_active": session.penalty_active}

    return app


def run_web() -> None:
    setup_logging()
    settings = load_settings()
    store = DocumentStore(settings.database_path)
    app = build_web_app(store, settings, load_llm_context(settings))
    uvicorn.run(app, host=settings.web_host, port=settings.web_port)

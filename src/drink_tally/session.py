from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterable

from drink_tally.config import Settings
from drink_tally.converters import document_to_record, record_to_document
from drink_tally.errors import StoreWriteError, ValidationError
from drink_tally.identity import Identity
from drink_tally.leaderboard import project, rank_of
from drink_tally.ledger import add_drinks, grant_reward
from drink_tally.llm_messages import LlmContext, drink_suggestion, truth_or_dare
from drink_tally.models import ADD_DRINKS_QUEST, CHANGE_NAME_QUEST, TRUTH_DARE_QUEST, QuestState, UserRecord
from drink_tally.penalty import PenaltySignal, no_penalty
from drink_tally.profile import rename as rename_record
from drink_tally.quests import (
    QuestProgressResult,
    ensure_daily_quests,
    new_user_record,
    quest_completion_message,
    record_progress,
)
from drink_tally.store import CollectionSnapshot, DocumentSnapshot, DocumentStore, Subscription, user_collection_path
from drink_tally.time_utils import local_date_string, now_local

logger = logging.getLogger(__name__)

NOT_READY = "Session is not ready"

_DRINK_FIELDS = ("drinks", "lastUpdated", "lastProofMessage", "dailyQuests", "lastQuestResetDate")
_NAME_FIELDS = ("displayName", "drinks", "dailyQuests", "lastQuestResetDate")
_QUEST_FIELDS = ("drinks", "dailyQuests", "lastQuestResetDate")


@dataclass(frozen=True)
class ActionResult:
    ok: bool
    record: UserRecord | None = None
    reward: int | None = None
    completed_quest: QuestState | None = None
    error: str | None = None

    @property
    def quest_message(self) -> str | None:
        if self.completed_quest is None:
            return None
        return quest_completion_message(self.completed_quest)


@dataclass(frozen=True)
class GenerationResult:
    text: str
    generated: bool
    quest: ActionResult | None = None


class GameSession:
    """One client's view of the game, bound to a single identity.

    The session keeps two live subscriptions: one to the player's own document
    and one to the whole user collection. ``record`` and ``leaderboard`` are only
    ever replaced from store snapshots. Actions compute the new record from the
    current mirror, write it, and let the subscription reflect it back; a failed
    write leaves the mirror on the store's value and sets ``last_error``.
    """

    def __init__(
        self,
        store: DocumentStore,
        app_id: str,
        identity: Identity,
        *,
        tz: str = "Europe/Oslo",
        penalty: PenaltySignal = no_penalty,
        llm: LlmContext | None = None,
        clock: Callable[[], datetime] | None = None,
        write_retries: int = 0,
        retry_backoff_seconds: float = 0.2,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.store = store
        self.app_id = app_id
        self.identity = identity
        self.collection = user_collection_path(app_id)
        self.tz = tz
        self.penalty = penalty
        self.llm = llm
        self._clock = clock or (lambda: now_local(tz))
        self.write_retries = max(0, write_retries)
        self.retry_backoff_seconds = retry_backoff_seconds
        self._sleep = sleep

        self.record: UserRecord | None = None
        self.leaderboard: list[UserRecord] = []
        self.last_error: str | None = None
        self.initialization_error: str | None = None
        self._own_sub: Subscription | None = None
        self._board_sub: Subscription | None = None
        self._action_lock = threading.RLock()

    @property
    def uid(self) -> str:
        return self.identity.uid

    @property
    def ready(self) -> bool:
        return self.record is not None and self._own_sub is not None

    @property
    def penalty_active(self) -> bool:
        return bool(self.penalty())

    @property
    def rank(self) -> int | None:
        return rank_of(self.leaderboard, self.uid)

    def today(self) -> str:
        return local_date_string(self._clock(), self.tz)

    def open(self) -> GameSession:
        if self._own_sub is not None:
            return self
        self._own_sub = self.store.subscribe_document(
            self.collection, self.uid, self._on_own_snapshot, self._on_own_error
        )
        self._board_sub = self.store.subscribe_collection(
            self.collection, self._on_board_snapshot, self._on_board_error
        )
        return self

    def close(self) -> None:
        for sub in (self._own_sub, self._board_sub):
            if sub is not None:
                sub.cancel()
        self._own_sub = None
        self._board_sub = None

    def __enter__(self) -> GameSession:
        return self.open()

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # Subscription callbacks

    def _on_own_snapshot(self, snapshot: DocumentSnapshot) -> None:
        today = self.today()
        if snapshot.data is None:
            record = new_user_record(self.uid, today, self._clock())
            logger.info("Creating user document for %s", self.uid)
            error = self._write(record, fields=None)
            if error:
                self.initialization_error = error
            return

        record = document_to_record(snapshot.data, snapshot.doc_id)
        self.record = record
        self.initialization_error = None
        refreshed = ensure_daily_quests(record, today)
        if refreshed is not record:
            self._write(refreshed, fields=("dailyQuests", "lastQuestResetDate"))

    def _on_own_error(self, exc: Exception) -> None:
        logger.error("Error listening to user document %s: %s", self.uid, exc)
        self.last_error = str(exc)

    def _on_board_snapshot(self, snapshot: CollectionSnapshot) -> None:
        records = [document_to_record(doc.data, doc.doc_id) for doc in snapshot.documents if doc.data is not None]
        self.leaderboard = project(records)

    def _on_board_error(self, exc: Exception) -> None:
        logger.error("Error listening to leaderboard: %s", exc)
        self.last_error = str(exc)

    # Writes

    def _write(self, record: UserRecord, fields: Iterable[str] | None) -> str | None:
        doc = record_to_document(record)
        attempts = 1 + self.write_retries
        error = ""
        for attempt in range(attempts):
            try:
                if fields is None:
                    self.store.set(self.collection, self.uid, doc)
                else:
                    self.store.update(self.collection, self.uid, {k: doc[k] for k in fields})
            except StoreWriteError as exc:
                error = str(exc)
                logger.exception("Write for %s failed (attempt %s/%s)", self.uid, attempt + 1, attempts)
                if attempt + 1 < attempts:
                    self._sleep(self.retry_backoff_seconds * (2**attempt))
                continue
            self.last_error = None
            return None
        self.last_error = error
        return error

    def _current(self) -> UserRecord | None:
        if not self.ready or self.record is None:
            return None
        return ensure_daily_quests(self.record, self.today())

    def _commit(self, progress: QuestProgressResult, fields: tuple[str, ...]) -> ActionResult:
        record = progress.record
        if progress.reward_granted:
            record = grant_reward(record, progress.reward_granted)
        error = self._write(record, fields)
        if error:
            return ActionResult(ok=False, error=error)
        return ActionResult(
            ok=True,
            record=record,
            reward=progress.reward_granted,
            completed_quest=progress.completed_quest,
        )

    def refresh(self) -> UserRecord | None:
        """Return the own record for display, applying the daily reset first."""
        with self._action_lock:
            if not self.ready or self.record is None:
                return self.record
            refreshed = ensure_daily_quests(self.record, self.today())
            if refreshed is not self.record:
                self._write(refreshed, fields=("dailyQuests", "lastQuestResetDate"))
            return self.record

    # Actions

    def add_drink(self, proof_note: str | None = None) -> ActionResult:
        with self._action_lock:
            base = self._current()
            if base is None:
                return ActionResult(ok=False, error=NOT_READY)
            updated = add_drinks(base, self.penalty_active, proof_note, self._clock())
            return self._commit(record_progress(updated, ADD_DRINKS_QUEST, 1), _DRINK_FIELDS)

    def rename(self, new_name: str | None) -> ActionResult:
        with self._action_lock:
            base = self._current()
            if base is None:
                return ActionResult(ok=False, error=NOT_READY)
            try:
                updated = rename_record(base, new_name)
            except ValidationError as exc:
                return ActionResult(ok=False, error=str(exc))
            return self._commit(record_progress(updated, CHANGE_NAME_QUEST, 1), _NAME_FIELDS)

    def record_quest_progress(self, quest_id: str, amount: int = 1) -> ActionResult:
        with self._action_lock:
            base = self._current()
            if base is None:
                return ActionResult(ok=False, error=NOT_READY)
            return self._commit(record_progress(base, quest_id, amount), _QUEST_FIELDS)

    def generate_truth_or_dare(self) -> GenerationResult:
        generated = truth_or_dare(self.llm)
        if not generated.ok:
            return GenerationResult(text=generated.text, generated=False)
        return GenerationResult(
            text=generated.text,
            generated=True,
            quest=self.record_quest_progress(TRUTH_DARE_QUEST, 1),
        )

    def suggest_drink(self) -> GenerationResult:
        generated = drink_suggestion(self.llm)
        return GenerationResult(text=generated.text, generated=generated.ok)


def open_session(
    store: DocumentStore,
    settings: Settings,
    identity: Identity,
    *,
    penalty: PenaltySignal = no_penalty,
    llm: LlmContext | None = None,
) -> GameSession:
    session = GameSession(
        store,
        settings.app_id,
        identity,
        tz=settings.tz,
        penalty=penalty,
        llm=llm,
        write_retries=settings.store_write_retries,
        retry_backoff_seconds=settings.store_retry_backoff_seconds,
    )
    return session.open()

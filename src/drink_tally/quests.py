from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime

from drink_tally.models import QUEST_TEMPLATES, QuestState, QuestTemplate, UserRecord, default_display_name

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QuestProgressResult:
    record: UserRecord
    reward_granted: int | None
    completed_quest: QuestState | None


def fresh_quests(templates: tuple[QuestTemplate, ...] = QUEST_TEMPLATES) -> tuple[QuestState, ...]:
    return tuple(
        QuestState(
            id=t.id,
            description=t.description,
            target=t.target,
            reward_points=t.reward_points,
        )
        for t in templates
    )


def new_user_record(user_id: str, today: str, now: datetime) -> UserRecord:
    return UserRecord(
        user_id=user_id,
        display_name=default_display_name(user_id),
        drinks=0,
        last_updated=now,
        last_proof_message="",
        daily_quests=fresh_quests(),
        last_quest_reset_date=today,
    )


def ensure_daily_quests(record: UserRecord, today: str) -> UserRecord:
    """Reset the quest set the first time a record is seen on a new local date.

    Calling this again with the same ``today`` returns the record untouched, so
    it is safe to run on every snapshot.
    """
    if record.last_quest_reset_date == today:
        return record
    logger.info("Resetting daily quests for %s (%s -> %s)", record.user_id, record.last_quest_reset_date, today)
    return replace(record, daily_quests=fresh_quests(), last_quest_reset_date=today)


def record_progress(record: UserRecord, quest_id: str, increment: int) -> QuestProgressResult:
    state = record.quest(quest_id)
    if state is None or state.completed:
        return QuestProgressResult(record=record, reward_granted=None, completed_quest=None)

    # Progress is stored unclamped; completion is checked once per call.
    progress = state.progress + increment
    completed = progress >= state.target
    updated = replace(state, progress=progress, completed=completed)
    quests = tuple(updated if q.id == quest_id else q for q in record.daily_quests)
    new_record = replace(record, daily_quests=quests)

    if not completed:
        return QuestProgressResult(record=new_record, reward_granted=None, completed_quest=None)
    logger.info("Quest %s completed by %s (+%s)", quest_id, record.user_id, state.reward_points)
    return QuestProgressResult(record=new_record, reward_granted=state.reward_points, completed_quest=updated)


def quest_completion_message(quest: QuestState) -> str:
    return f'Quest Completed: "{quest.description}"! +{quest.reward_points} drinks!'

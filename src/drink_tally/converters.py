from __future__ import annotations

from datetime import datetime
from typing import Any

from drink_tally.models import QuestState, UserRecord, default_display_name


def _quest_to_doc(state: QuestState) -> dict[str, Any]:
    return {
        "id": state.id,
        "description": state.description,
        "target": state.target,
        "rewardPoints": state.reward_points,
        "progress": state.progress,
        "completed": state.completed,
    }


def _as_int(value: Any, default: int = 0) -> int:
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _doc_to_quest(raw: dict[str, Any]) -> QuestState:
    return QuestState(
        id=str(raw.get("id", "")),
        description=str(raw.get("description", "")),
        target=_as_int(raw.get("target"), 1),
        reward_points=_as_int(raw.get("rewardPoints")),
        progress=_as_int(raw.get("progress")),
        completed=bool(raw.get("completed", False)),
    )


def _parse_timestamp(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            return None
    return None


def record_to_document(record: UserRecord) -> dict[str, Any]:
    return {
        "userId": record.user_id,
        "displayName": record.display_name,
        "drinks": record.drinks,
        "lastUpdated": record.last_updated.isoformat() if record.last_updated else None,
        "lastProofMessage": record.last_proof_message,
        "dailyQuests": [_quest_to_doc(q) for q in record.daily_quests],
        "lastQuestResetDate": record.last_quest_reset_date,
    }


def document_to_record(doc: dict[str, Any], doc_id: str | None = None) -> UserRecord:
    user_id = str(doc.get("userId") or doc_id or "")
    quests_raw = doc.get("dailyQuests")
    quests = tuple(_doc_to_quest(q) for q in quests_raw if isinstance(q, dict)) if isinstance(quests_raw, list) else ()
    reset_date = doc.get("lastQuestResetDate")
    return UserRecord(
        user_id=user_id,
        display_name=str(doc.get("displayName") or default_display_name(user_id)),
        drinks=max(0, _as_int(doc.get("drinks"))),
        last_updated=_parse_timestamp(doc.get("lastUpdated")),
        last_proof_message=str(doc.get("lastProofMessage") or ""),
        daily_quests=quests,
        last_quest_reset_date=str(reset_date) if reset_date else None,
    )

from __future__ import annotations

from dataclasses import replace
from datetime import datetime

from drink_tally.ledger import add_drinks, grant_reward
from drink_tally.models import ADD_DRINKS_QUEST, CHANGE_NAME_QUEST, QUEST_TEMPLATES, TRUTH_DARE_QUEST
from drink_tally.quests import (
    ensure_daily_quests,
    fresh_quests,
    new_user_record,
    quest_completion_message,
    record_progress,
)

NOW = datetime(2024, 5, 1, 20, 0)


def _with_progress(record, quest_id: str, progress: int):
    quests = tuple(replace(q, progress=progress) if q.id == quest_id else q for q in record.daily_quests)
    return replace(record, daily_quests=quests)


def test_new_record_defaults() -> None:
    record = new_user_record("u1", "2024-05-01", NOW)
    assert record.drinks == 0
    assert record.display_name == "Anonymous User u1"
    assert record.last_quest_reset_date == "2024-05-01"
    assert len(record.daily_quests) == 3
    assert all(q.progress == 0 and not q.completed for q in record.daily_quests)


def test_default_name_uses_first_six_chars() -> None:
    record = new_user_record("abcdefghij", "2024-05-01", NOW)
    assert record.display_name == "Anonymous User abcdef"


def test_reset_on_new_day_matches_templates() -> None:
    record = new_user_record("u1", "2024-05-01", NOW)
    record = record_progress(record, TRUTH_DARE_QUEST, 1).record
    record = record_progress(record, ADD_DRINKS_QUEST, 2).record

    reset = ensure_daily_quests(record, "2024-05-02")
    assert reset.last_quest_reset_date == "2024-05-02"
    assert [q.id for q in reset.daily_quests] == [t.id for t in QUEST_TEMPLATES]
    assert all(q.progress == 0 and q.completed is False for q in reset.daily_quests)


def test_reset_when_date_unset() -> None:
    record = replace(new_user_record("u1", "2024-05-01", NOW), last_quest_reset_date=None, daily_quests=())
    reset = ensure_daily_quests(record, "2024-05-01")
    assert reset.daily_quests == fresh_quests()
    assert reset.last_quest_reset_date == "2024-05-01"


def test_reset_is_idempotent_for_same_day() -> None:
    record = new_user_record("u1", "2024-04-30", NOW)
    once = ensure_daily_quests(record, "2024-05-01")
    once = record_progress(once, ADD_DRINKS_QUEST, 1).record
    twice = ensure_daily_quests(once, "2024-05-01")
    assert twice is once
    assert twice.quest(ADD_DRINKS_QUEST).progress == 1


def test_reset_keeps_drinks_and_name() -> None:
    record = replace(new_user_record("u1", "2024-05-01", NOW), drinks=12, display_name="Sam")
    reset = ensure_daily_quests(record, "2024-05-02")
    assert reset.drinks == 12
    assert reset.display_name == "Sam"


def test_progress_below_target_grants_nothing() -> None:
    record = new_user_record("u1", "2024-05-01", NOW)
    result = record_progress(record, ADD_DRINKS_QUEST, 1)
    assert result.reward_granted is None
    assert result.completed_quest is None
    assert result.record.quest(ADD_DRINKS_QUEST).progress == 1
    assert result.record.quest(ADD_DRINKS_QUEST).completed is False


def test_completion_rewards_exactly_once() -> None:
    record = new_user_record("u1", "2024-05-01", NOW)
    first = record_progress(record, CHANGE_NAME_QUEST, 1)
    assert first.reward_granted == 5
    assert first.record.quest(CHANGE_NAME_QUEST).completed is True

    second = record_progress(first.record, CHANGE_NAME_QUEST, 1)
    assert second.reward_granted is None
    assert second.record is first.record
    assert second.record.quest(CHANGE_NAME_QUEST).progress == 1


def test_overshoot_is_stored_unclamped() -> None:
    record = new_user_record("u1", "2024-05-01", NOW)
    result = record_progress(record, ADD_DRINKS_QUEST, 7)
    assert result.reward_granted == 10
    assert result.record.quest(ADD_DRINKS_QUEST).progress == 7
    assert result.record.quest(ADD_DRINKS_QUEST).completed is True

    again = record_progress(result.record, ADD_DRINKS_QUEST, 100)
    assert again.reward_granted is None
    assert again.record.quest(ADD_DRINKS_QUEST).progress == 7


def test_unknown_quest_is_noop() -> None:
    record = new_user_record("u1", "2024-05-01", NOW)
    result = record_progress(record, "drink_water_8", 1)
    assert result.record is record
    assert result.reward_granted is None


def test_quest_engine_never_touches_drinks() -> None:
    record = replace(new_user_record("u1", "2024-05-01", NOW), drinks=4)
    result = record_progress(record, ADD_DRINKS_QUEST, 3)
    assert result.reward_granted == 10
    assert result.record.drinks == 4


def test_add_drink_completes_quest_and_reward_is_applied() -> None:
    record = replace(new_user_record("u1", "2024-05-01", NOW), drinks=5)
    record = _with_progress(record, ADD_DRINKS_QUEST, 2)

    record = add_drinks(record, False, "pic", NOW)
    assert record.drinks == 6

    result = record_progress(record, ADD_DRINKS_QUEST, 1)
    assert result.record.quest(ADD_DRINKS_QUEST).completed is True
    assert result.reward_granted == 10

    final = grant_reward(result.record, result.reward_granted)
    assert final.drinks == 16


def test_completion_message() -> None:
    record = new_user_record("u1", "2024-05-01", NOW)
    quest = record_progress(record, TRUTH_DARE_QUEST, 1).completed_quest
    assert quest is not None
    assert quest_completion_message(quest) == 'Quest Completed: "Generate 1 Truth or Dare"! +5 drinks!'

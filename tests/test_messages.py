from __future__ import annotations

from dataclasses import replace

from drink_tally.messages import LEADERBOARD_EMPTY, leaderboard_message, quest_line, quests_message, stats_message
from drink_tally.models import UserRecord
from drink_tally.penalty import PENALTY_NOTICE
from drink_tally.quests import fresh_quests


def _record(uid: str, name: str, drinks: int) -> UserRecord:
    return UserRecord(
        user_id=uid,
        display_name=name,
        drinks=drinks,
        last_updated=None,
        last_proof_message="",
        daily_quests=fresh_quests(),
        last_quest_reset_date="2024-05-01",
    )


def test_quest_line_clamps_display_to_target() -> None:
    quest = replace(fresh_quests()[0], progress=5, completed=True)
    line = quest_line(quest)
    assert "3/3" in line
    assert line.startswith("✅")


def test_stats_message_shows_rank_and_penalty() -> None:
    record = replace(_record("u1", "Alice", 4), last_proof_message="selfie")
    text = stats_message(record, rank=2, penalty_active=True)
    assert "Alice" in text
    assert "Drinks: 4" in text
    assert "#2" in text
    assert "selfie" in text
    assert PENALTY_NOTICE in text
    assert PENALTY_NOTICE not in stats_message(record)


def test_quests_message_lists_every_quest() -> None:
    text = quests_message(_record("u1", "Alice", 0))
    assert text.count("\n") == 3
    assert quests_message(replace(_record("u1", "A", 0), daily_quests=())) == "No quests today."


def test_leaderboard_message_marks_caller() -> None:
    records = [_record("a", "Alice", 5), _record("b", "Bob", 2)]
    text = leaderboard_message(records, highlight_uid="b")
    assert text.splitlines()[1].startswith("1. Alice")
    assert "2. Bob (you): 2" in text
    assert leaderboard_message([]) == LEADERBOARD_EMPTY

from __future__ import annotations

from drink_tally.models import QuestState, UserRecord
from drink_tally.penalty import PENALTY_NOTICE

LEADERBOARD_EMPTY = "No players yet. Be the first to add a drink!"


def _bar(progress: int, target: int, width: int = 10) -> str:
    ratio = min(1.0, progress / target) if target > 0 else 1.0
    filled = max(0, min(width, int(round(ratio * width))))
    return "█" * filled + "░" * (width - filled)


def quest_line(quest: QuestState) -> str:
    shown = min(quest.progress, quest.target)
    mark = "✅" if quest.completed else "▫️"
    return f"{mark} {quest.description}: {shown}/{quest.target} {_bar(quest.progress, quest.target)} (+{quest.reward_points})"


def quests_message(record: UserRecord) -> str:
    if not record.daily_quests:
        return "No quests today."
    lines = ["🎯 Daily quests:"]
    lines.extend(quest_line(q) for q in record.daily_quests)
    return "\n".join(lines)


def stats_message(record: UserRecord, rank: int | None = None, penalty_active: bool = False) -> str:
    lines = [
        "📊 Your Stats",
        "",
        f"Name: {record.display_name}",
        f"🍺 Drinks: {record.drinks}",
    ]
    if rank is not None:
        lines.append(f"🏆 Rank: #{rank}")
    if record.last_proof_message:
        lines.append(f"Last proof: {record.last_proof_message}")
    if penalty_active:
        lines.extend(["", f"⚠️ {PENALTY_NOTICE}"])
    lines.extend(["", quests_message(record)])
    return "\n".join(lines)


def leaderboard_message(records: list[UserRecord], highlight_uid: str | None = None, limit: int = 10) -> str:
    if not records:
        return LEADERBOARD_EMPTY
    lines = ["🏆 Leaderboard"]
    for rank, record in enumerate(records[:limit], start=1):
        you = " (you)" if record.user_id == highlight_uid else ""
        lines.append(f"{rank}. {record.display_name}{you}: {record.drinks} 🍺")
    return "\n".join(lines)

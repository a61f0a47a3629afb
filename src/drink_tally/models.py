from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class QuestTemplate:
    id: str
    description: str
    target: int
    reward_points: int


@dataclass(frozen=True)
class QuestState:
    id: str
    description: str
    target: int
    reward_points: int
    progress: int = 0
    completed: bool = False


@dataclass(frozen=True)
class UserRecord:
    user_id: str
    display_name: str
    drinks: int
    last_updated: datetime | None
    last_proof_message: str
    daily_quests: tuple[QuestState, ...]
    last_quest_reset_date: str | None

    def quest(self, quest_id: str) -> QuestState | None:
        for state in self.daily_quests:
            if state.id == quest_id:
                return state
        return None


ADD_DRINKS_QUEST = "add_drinks_3"
TRUTH_DARE_QUEST = "generate_truth_dare_1"
CHANGE_NAME_QUEST = "change_name_1"

QUEST_TEMPLATES: tuple[QuestTemplate, ...] = (
    QuestTemplate(ADD_DRINKS_QUEST, "Add 3 drinks", target=3, reward_points=10),
    QuestTemplate(TRUTH_DARE_QUEST, "Generate 1 Truth or Dare", target=1, reward_points=5),
    QuestTemplate(CHANGE_NAME_QUEST, "Change your display name", target=1, reward_points=5),
)


def default_display_name(user_id: str) -> str:
    return f"Anonymous User {user_id[:6]}"

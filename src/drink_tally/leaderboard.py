from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from drink_tally.models import UserRecord


@dataclass(frozen=True)
class LeaderboardEntry:
    rank: int
    user_id: str
    display_name: str
    drinks: int


def project(records: Iterable[UserRecord]) -> list[UserRecord]:
    # Equal drink counts are ordered by user id so repeated projections agree.
    return sorted(records, key=lambda r: (-r.drinks, r.user_id))


def ranked(records: Iterable[UserRecord]) -> list[LeaderboardEntry]:
    return [
        LeaderboardEntry(rank=i, user_id=r.user_id, display_name=r.display_name, drinks=r.drinks)
        for i, r in enumerate(project(records), start=1)
    ]


def rank_of(records: Iterable[UserRecord], user_id: str) -> int | None:
    for entry in ranked(records):
        if entry.user_id == user_id:
            return entry.rank
    return None

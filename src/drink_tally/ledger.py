from __future__ import annotations

from dataclasses import replace
from datetime import datetime

from drink_tally.models import UserRecord

BASE_DRINK_INCREMENT = 1
PENALTY_MULTIPLIER = 2


def drink_increment(penalty_active: bool) -> int:
    return BASE_DRINK_INCREMENT * (PENALTY_MULTIPLIER if penalty_active else 1)


def add_drinks(record: UserRecord, penalty_active: bool, proof_note: str | None, now: datetime) -> UserRecord:
    return replace(
        record,
        drinks=record.drinks + drink_increment(penalty_active),
        last_updated=now,
        last_proof_message=(proof_note or "").strip(),
    )


def grant_reward(record: UserRecord, points: int) -> UserRecord:
    if points <= 0:
        return record
    return replace(record, drinks=record.drinks + points)
